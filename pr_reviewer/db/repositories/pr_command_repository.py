"""Репозиторий изменений Pull Request'ов.

Все методы рассчитаны на вызов внутри транзакции сервиса.
"""

from datetime import datetime

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.db.models import PRStatus, PullRequest, reviewers
from pr_reviewer.db.repositories.base import BaseRepository


class PRCommandRepository(BaseRepository[PullRequest]):
    """Запись и блокировка Pull Request'ов."""

    def __init__(self, session: AsyncSession):
        super().__init__(PullRequest, session)

    async def create(self, pr: PullRequest) -> PullRequest:
        """Сохранить новый PR. Дубликат ID приводит к IntegrityError."""
        return await self.add(pr)

    async def assign_reviewers(self, pr_id: str, reviewer_ids: list[str]) -> None:
        """Добавить ревьюверов на PR."""
        if not reviewer_ids:
            return
        values = [{"pull_request_id": pr_id, "user_id": user_id} for user_id in reviewer_ids]
        await self.session.execute(insert(reviewers).values(values))

    async def get_for_update(self, pr_id: str) -> PullRequest | None:
        """
        Получить PR с блокировкой строки (SELECT ... FOR UPDATE).
        Данные перечитываются из БД, даже если объект уже есть в сессии.
        """
        result = await self.session.execute(
            select(PullRequest)
            .where(PullRequest.id == pr_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_merged(self, pr: PullRequest, merged_at: datetime) -> PullRequest:
        """Перевести PR в MERGED и снять флаг need_more_reviewers."""
        pr.status = PRStatus.MERGED.value
        pr.merged_at = merged_at
        pr.need_more_reviewers = False
        await self.session.flush()
        return pr

    async def remove_reviewer(self, pr_id: str, user_id: str) -> None:
        """Снять ревьювера с PR."""
        await self.session.execute(
            delete(reviewers).where(
                reviewers.c.pull_request_id == pr_id,
                reviewers.c.user_id == user_id,
            )
        )

    async def replace_reviewer(self, pr_id: str, old_user_id: str, new_user_id: str) -> None:
        """Заменить ревьювера: удалить старую строку и вставить новую."""
        await self.remove_reviewer(pr_id, old_user_id)
        await self.session.execute(
            insert(reviewers).values(pull_request_id=pr_id, user_id=new_user_id)
        )
