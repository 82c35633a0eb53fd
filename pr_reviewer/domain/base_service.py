"""Базовый класс для сервисов."""

from typing import AsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.cache import CacheService, get_cache
from pr_reviewer.core.database import transaction


class BaseService:
    """Базовый класс для всех сервисов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _transaction(self, op: str) -> AsyncContextManager[AsyncSession]:
        """Открыть транзакцию для операции op."""
        return transaction(self.session, op)

    async def _get_cache_service(self) -> CacheService:
        """Получить сервис кеширования."""
        redis_client = await get_cache()
        return CacheService(redis_client)
