"""Репозиторий для работы с пользователями."""

from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pr_reviewer.db.models import User
from pr_reviewer.db.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Репозиторий пользователей."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_id(self, user_id: str, load_team: bool = False) -> Optional[User]:
        """Получить пользователя по ID."""
        query = select(User).where(User.id == user_id)
        if load_team:
            query = query.options(selectinload(User.team))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def set_is_active(self, user_id: str, is_active: bool) -> Optional[User]:
        """Обновить флаг активности. Возвращает пользователя вместе с командой."""
        user = await self.get_by_id(user_id, load_team=True)
        if user:
            user.is_active = is_active
            await self.session.flush()
        return user

    async def deactivate_by_team_id(self, team_id: int) -> List[str]:
        """
        Деактивировать всех активных участников команды.
        Строки пользователей блокируются перед обновлением.
        Возвращает ID деактивированных.
        """
        result = await self.session.execute(
            select(User.id)
            .where(User.team_id == team_id, User.is_active == True)  # noqa: E712
            .with_for_update()
        )
        user_ids = list(result.scalars().all())
        if not user_ids:
            return []

        await self.session.execute(
            update(User)
            .where(User.id.in_(user_ids))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return user_ids
