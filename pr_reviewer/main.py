"""Главный модуль FastAPI приложения."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from pr_reviewer.api.middleware import RequestTimeoutMiddleware, request_context_middleware
from pr_reviewer.api.v1 import health, pull_requests, stats, teams, users
from pr_reviewer.core.cache import close_cache, init_cache
from pr_reviewer.core.config import settings
from pr_reviewer.core.database import close_db, init_db
from pr_reviewer.core.exceptions import (
    ServiceException,
    http_exception_handler,
    service_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from pr_reviewer.core.logging import get_logger, setup_logging

setup_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events."""
    # Startup
    await init_db()
    await init_cache()
    logger.info("service_started", env=settings.ENV, port=settings.APP_PORT)
    yield
    # Shutdown
    await close_cache()
    await close_db()
    logger.info("service_stopped")


app = FastAPI(
    title="PR Reviewer Assignment Service",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

# последний добавленный middleware внешний: таймаут работает внутри контекста запроса
app.add_middleware(RequestTimeoutMiddleware)
app.middleware("http")(request_context_middleware)

# Регистрируем обработчики исключений
app.add_exception_handler(ServiceException, service_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Регистрируем роутеры
app.include_router(health.router)
app.include_router(teams.router)
app.include_router(users.router)
app.include_router(pull_requests.router)
app.include_router(stats.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
