"""Сервис для работы со статистикой."""

from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.cache import STATS_KEY
from pr_reviewer.db.repositories.pr_query_repository import PRQueryRepository
from pr_reviewer.domain.base_service import BaseService


class StatsService(BaseService):
    """Сервис для работы со статистикой."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.pr_query = PRQueryRepository(session)

    async def get_stats(self) -> dict:
        """Получить статистику ревью по пользователям и сводку по PR."""
        cache_service = await self._get_cache_service()

        cached_result = await cache_service.get(STATS_KEY)
        if cached_result is not None:
            return cached_result

        result = {
            "users": await self.pr_query.get_user_stats(),
            "pull_requests": await self.pr_query.get_stats(),
        }

        await cache_service.set(STATS_KEY, result)
        return result
