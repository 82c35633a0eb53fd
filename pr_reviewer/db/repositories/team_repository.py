"""Репозиторий для работы с командами."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pr_reviewer.db.models import Team, User
from pr_reviewer.db.repositories.base import BaseRepository


class TeamRepository(BaseRepository[Team]):
    """Репозиторий команд."""

    def __init__(self, session: AsyncSession):
        super().__init__(Team, session)

    async def get_by_name(self, team_name: str, load_members: bool = True) -> Optional[Team]:
        """Получить команду по имени."""
        query = select(Team).where(Team.name == team_name)
        if load_members:
            query = query.options(selectinload(Team.members)).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def exists(self, team_name: str) -> bool:
        """Проверить существование команды."""
        result = await self.session.execute(select(Team.id).where(Team.name == team_name))
        return result.scalar_one_or_none() is not None

    async def create(self, team_name: str) -> Team:
        """Создать команду. Дубликат имени приводит к IntegrityError при flush."""
        return await self.add(Team(name=team_name))

    async def upsert_members(self, team_id: int, members: list[dict]) -> None:
        """
        Создать или обновить участников команды по user_id.
        Существующий пользователь переносится в команду team_id.
        """
        if not members:
            return

        user_ids = [m["user_id"] for m in members]
        result = await self.session.execute(select(User).where(User.id.in_(user_ids)))
        existing = {user.id: user for user in result.scalars().all()}

        for member in members:
            user = existing.get(member["user_id"])
            if user is None:
                user = User(id=member["user_id"])
                self.session.add(user)
                existing[user.id] = user
            user.username = member["username"]
            user.team_id = team_id
            user.is_active = member["is_active"]

        await self.session.flush()
