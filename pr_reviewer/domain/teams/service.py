"""Сервис для работы с командами."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.cache import REVIEWS_KEY, STATS_KEY, TEAM_KEY
from pr_reviewer.core.exceptions import NotFoundException, TeamExistsException
from pr_reviewer.core.logging import get_logger
from pr_reviewer.db.models import Team
from pr_reviewer.db.repositories.team_repository import TeamRepository
from pr_reviewer.domain.base_service import BaseService

logger = get_logger(__name__)


class TeamService(BaseService):
    """Сервис для работы с командами."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.team_repo = TeamRepository(session)

    async def create_team(self, team_name: str, members: list[dict]) -> dict:
        """Создать команду и добавить/обновить её участников."""
        async with self._transaction("create_team"):
            if await self.team_repo.exists(team_name):
                raise TeamExistsException(team_name)

            try:
                team = await self.team_repo.create(team_name)
            except IntegrityError as exc:
                raise TeamExistsException(team_name) from exc

            await self.team_repo.upsert_members(team.id, members)
            team = await self.team_repo.get_by_name(team_name, load_members=True)
            team_data = self._team_to_schema(team)

        logger.info("team_created", team_name=team_name, team_id=team.id, members=len(members))

        # участники могли перейти из других команд
        cache_service = await self._get_cache_service()
        await cache_service.delete_pattern(TEAM_KEY.format(team_name="*"))
        await cache_service.delete(
            STATS_KEY, *(REVIEWS_KEY.format(user_id=m["user_id"]) for m in members)
        )
        await cache_service.set(TEAM_KEY.format(team_name=team_name), team_data)

        return {"team": team_data}

    async def get_team(self, team_name: str) -> dict:
        """Получить команду с участниками."""
        cache_service = await self._get_cache_service()
        cache_key = TEAM_KEY.format(team_name=team_name)

        cached_result = await cache_service.get(cache_key)
        if cached_result is not None:
            return {"team": cached_result}

        team = await self.team_repo.get_by_name(team_name, load_members=True)
        if not team:
            raise NotFoundException("Team")

        team_data = self._team_to_schema(team)
        await cache_service.set(cache_key, team_data)

        return {"team": team_data}

    def _team_to_schema(self, team: Team) -> dict:
        """Преобразовать модель в схему."""
        return {
            "team_name": team.name,
            "members": [
                {
                    "user_id": member.id,
                    "username": member.username,
                    "is_active": member.is_active,
                }
                for member in team.members
            ],
        }
