"""Структурное логирование на structlog.

structlog отвечает за формирование событий, а вывод идёт через
стандартный logging, поэтому логи uvicorn и SQLAlchemy попадают
в тот же поток.

Пример:
    >>> from pr_reviewer.core.logging import get_logger, setup_logging
    >>> setup_logging(settings)
    >>> logger = get_logger(__name__)
    >>> logger.info("pr_created", pr_id="pr-1", reviewers=["u2"])
"""

import logging
import sys

import structlog

from pr_reviewer.core.config import Settings


def setup_logging(config: Settings) -> None:
    """Настроить structlog и корневой логгер."""
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Получить логгер с именем модуля."""
    return structlog.get_logger(name)


def bind_request_id(request_id: str) -> None:
    """Привязать request_id ко всем логам текущего запроса."""
    structlog.contextvars.bind_contextvars(request_id=request_id)


def clear_request_context() -> None:
    """Очистить контекст запроса."""
    structlog.contextvars.clear_contextvars()
