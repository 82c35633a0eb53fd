"""Настройка базы данных."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from pr_reviewer.core.config import settings
from pr_reviewer.core.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)


async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Получить сессию БД."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(session: AsyncSession, op: str) -> AsyncIterator[AsyncSession]:
    """
    Выполнить единицу работы в одной транзакции.
    Коммит при успешном выходе из блока, откат при любом исключении,
    включая отмену задачи (asyncio.CancelledError). Исходное исключение
    пробрасывается без изменений.
    """
    try:
        yield session
        await session.commit()
    except BaseException as exc:
        try:
            await session.rollback()
        except Exception:
            logger.exception("transaction_rollback_failed", op=op)
        logger.debug("transaction_rolled_back", op=op, error=type(exc).__name__)
        raise


async def init_db():
    """Инициализация БД (создание таблиц)."""
    # модели должны быть зарегистрированы в metadata
    from pr_reviewer.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Закрытие соединений с БД."""
    await engine.dispose()
