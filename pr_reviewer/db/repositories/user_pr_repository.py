"""Репозиторий для запросов на стыке пользователей и Pull Request'ов."""

import random
from typing import Collection, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.db.models import User
from pr_reviewer.db.repositories.base import BaseRepository
from pr_reviewer.domain.pull_requests.selection import sample_reviewers


class UserPRRepository(BaseRepository[User]):
    """Команды авторов/ревьюверов и подбор кандидатов в ревьюверы."""

    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        super().__init__(User, session)
        self.rng = rng

    async def _get_team_id(self, user_id: str) -> Optional[int]:
        result = await self.session.execute(select(User.team_id).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_author_team_id(self, author_id: str) -> Optional[int]:
        """ID команды автора или None, если автора нет."""
        return await self._get_team_id(author_id)

    async def get_reviewer_team_id(self, reviewer_id: str) -> Optional[int]:
        """ID команды ревьювера или None, если пользователя нет."""
        return await self._get_team_id(reviewer_id)

    async def get_random_active_reviewers(
        self, team_id: int, exclude_user_ids: Collection[str], count: int
    ) -> List[str]:
        """
        Случайные активные участники команды, кроме exclude_user_ids.
        Возвращает не больше count ID; пустой список, если кандидатов нет.
        """
        query = select(User.id).where(
            User.team_id == team_id,
            User.is_active == True,  # noqa: E712
        )
        if exclude_user_ids:
            query = query.where(User.id.notin_(list(exclude_user_ids)))

        result = await self.session.execute(query)
        candidate_ids = list(result.scalars().all())
        return sample_reviewers(candidate_ids, count, self.rng)
