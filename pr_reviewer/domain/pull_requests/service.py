"""Сервис для работы с Pull Request'ами.

Жизненный цикл PR: OPEN -> MERGED (терминальный). Merge и переназначение
берут блокировку строки PR, поэтому конкурентные операции над одним PR
выполняются строго по очереди, а все проверки повторяются внутри той же
транзакции, что и изменение.
"""

import random

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.cache import REVIEWS_KEY, STATS_KEY
from pr_reviewer.core.exceptions import (
    NoCandidateException,
    NotFoundException,
    PRExistsException,
    PRMergedException,
    ReviewerNotAssignedException,
)
from pr_reviewer.core.logging import get_logger
from pr_reviewer.db.models import PRStatus, PullRequest, utcnow
from pr_reviewer.db.repositories.pr_command_repository import PRCommandRepository
from pr_reviewer.db.repositories.pr_query_repository import PRQueryRepository
from pr_reviewer.db.repositories.user_pr_repository import UserPRRepository
from pr_reviewer.domain.base_service import BaseService
from pr_reviewer.domain.pull_requests.selection import REVIEWERS_PER_PR, exclusion_set

logger = get_logger(__name__)


class PullRequestService(BaseService):
    """Сервис для работы с Pull Request'ами."""

    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        super().__init__(session)
        self.pr_cmd = PRCommandRepository(session)
        self.pr_query = PRQueryRepository(session)
        self.user_pr = UserPRRepository(session, rng=rng)

    async def create_pr(self, pr_id: str, pr_name: str, author_id: str) -> dict:
        """Создать PR и автоматически назначить до двух ревьюверов из команды автора."""
        log = logger.bind(op="create_pr", pr_id=pr_id, author_id=author_id)

        async with self._transaction("create_pr"):
            if await self.pr_query.exists(pr_id):
                raise PRExistsException(pr_id)

            team_id = await self.user_pr.get_author_team_id(author_id)
            if team_id is None:
                raise NotFoundException("Author")

            pr = PullRequest(
                id=pr_id,
                name=pr_name,
                author_id=author_id,
                status=PRStatus.OPEN.value,
                created_at=utcnow(),
            )
            reviewer_ids = await self.user_pr.get_random_active_reviewers(
                team_id, exclusion_set(pr, []), REVIEWERS_PER_PR
            )
            pr.need_more_reviewers = len(reviewer_ids) < REVIEWERS_PER_PR

            try:
                await self.pr_cmd.create(pr)
            except IntegrityError as exc:
                raise PRExistsException(pr_id) from exc
            await self.pr_cmd.assign_reviewers(pr_id, reviewer_ids)

        log.info("pr_created", reviewers=reviewer_ids, need_more_reviewers=pr.need_more_reviewers)
        await self._invalidate(reviewer_ids)

        return {"pr": self._pr_to_schema(pr, reviewer_ids)}

    async def get_pr(self, pr_id: str) -> dict:
        """Получить PR по идентификатору."""
        pr = await self.pr_query.get_by_id(pr_id)
        if not pr:
            raise NotFoundException("PR")

        reviewer_ids = await self.pr_query.get_reviewer_ids(pr_id)
        return {"pr": self._pr_to_schema(pr, reviewer_ids)}

    async def merge_pr(self, pr_id: str) -> dict:
        """Пометить PR как MERGED (идемпотентная операция)."""
        log = logger.bind(op="merge_pr", pr_id=pr_id)

        async with self._transaction("merge_pr"):
            pr = await self.pr_cmd.get_for_update(pr_id)
            if not pr:
                raise NotFoundException("PR")

            already_merged = pr.status == PRStatus.MERGED.value
            if not already_merged:
                await self.pr_cmd.mark_merged(pr, utcnow())

            reviewer_ids = await self.pr_query.get_reviewer_ids(pr_id)

        if already_merged:
            log.info("pr_already_merged")
        else:
            log.info("pr_merged")
            await self._invalidate(reviewer_ids)

        return {"pr": self._pr_to_schema(pr, reviewer_ids)}

    async def reassign_reviewer(self, pr_id: str, old_user_id: str) -> dict:
        """Заменить ревьювера на случайного активного участника его команды."""
        log = logger.bind(op="reassign_reviewer", pr_id=pr_id, old_reviewer_id=old_user_id)

        async with self._transaction("reassign_reviewer"):
            pr = await self.pr_cmd.get_for_update(pr_id)
            if not pr:
                raise NotFoundException("PR")

            if pr.status == PRStatus.MERGED.value:
                raise PRMergedException()

            current_ids = await self.pr_query.get_reviewer_ids(pr_id)
            if old_user_id not in current_ids:
                raise ReviewerNotAssignedException()

            team_id = await self.user_pr.get_reviewer_team_id(old_user_id)
            if team_id is None:
                raise NotFoundException("User")

            candidates = await self.user_pr.get_random_active_reviewers(
                team_id, exclusion_set(pr, current_ids), 1
            )
            if not candidates:
                raise NoCandidateException()

            new_user_id = candidates[0]
            await self.pr_cmd.replace_reviewer(pr_id, old_user_id, new_user_id)
            reviewer_ids = await self.pr_query.get_reviewer_ids(pr_id)

        log.info("reviewer_reassigned", new_reviewer_id=new_user_id)
        await self._invalidate([old_user_id, new_user_id])

        return {"pr": self._pr_to_schema(pr, reviewer_ids), "replaced_by": new_user_id}

    async def _invalidate(self, user_ids: list[str]):
        """Сбросить кеш ревью затронутых пользователей и статистику."""
        cache_service = await self._get_cache_service()
        await cache_service.delete(
            STATS_KEY, *(REVIEWS_KEY.format(user_id=user_id) for user_id in user_ids)
        )

    @staticmethod
    def _pr_to_schema(pr: PullRequest, reviewer_ids: list[str]) -> dict:
        """Преобразовать модель в схему."""
        return {
            "pull_request_id": pr.id,
            "pull_request_name": pr.name,
            "author_id": pr.author_id,
            "status": pr.status,
            "assigned_reviewers": list(reviewer_ids),
            "need_more_reviewers": pr.need_more_reviewers,
            "createdAt": pr.created_at.isoformat() if pr.created_at else None,
            "mergedAt": pr.merged_at.isoformat() if pr.merged_at else None,
        }
