"""Сервис для работы с пользователями."""

import random

from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.cache import REVIEWS_KEY, STATS_KEY, TEAM_KEY
from pr_reviewer.core.exceptions import NotFoundException
from pr_reviewer.core.logging import get_logger
from pr_reviewer.db.models import PullRequest
from pr_reviewer.db.repositories.pr_command_repository import PRCommandRepository
from pr_reviewer.db.repositories.pr_query_repository import PRQueryRepository
from pr_reviewer.db.repositories.team_repository import TeamRepository
from pr_reviewer.db.repositories.user_pr_repository import UserPRRepository
from pr_reviewer.db.repositories.user_repository import UserRepository
from pr_reviewer.domain.base_service import BaseService
from pr_reviewer.domain.pull_requests.selection import exclusion_set

logger = get_logger(__name__)


class UserService(BaseService):
    """Сервис для работы с пользователями."""

    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.team_repo = TeamRepository(session)
        self.pr_cmd = PRCommandRepository(session)
        self.pr_query = PRQueryRepository(session)
        self.user_pr = UserPRRepository(session, rng=rng)

    async def set_is_active(self, user_id: str, is_active: bool) -> dict:
        """Установить флаг активности пользователя."""
        async with self._transaction("set_is_active"):
            user = await self.user_repo.set_is_active(user_id, is_active)
            if not user:
                raise NotFoundException("User")
            result = {
                "user": {
                    "user_id": user.id,
                    "username": user.username,
                    "team_name": user.team.name,
                    "is_active": user.is_active,
                }
            }

        logger.info("user_activity_changed", user_id=user_id, is_active=is_active)

        cache_service = await self._get_cache_service()
        await cache_service.delete(TEAM_KEY.format(team_name=result["user"]["team_name"]))

        return result

    async def get_reviews(self, user_id: str) -> dict:
        """Получить PR'ы, где пользователь назначен ревьювером."""
        cache_service = await self._get_cache_service()
        cache_key = REVIEWS_KEY.format(user_id=user_id)

        cached_result = await cache_service.get(cache_key)
        if cached_result is not None:
            return cached_result

        prs = await self.pr_query.get_review_assignments(user_id)
        result = {
            "user_id": user_id,
            "pull_requests": [
                {
                    "pull_request_id": pr.id,
                    "pull_request_name": pr.name,
                    "author_id": pr.author_id,
                    "status": pr.status,
                }
                for pr in prs
            ],
        }

        await cache_service.set(cache_key, result)
        return result

    async def deactivate_team(self, team_name: str) -> dict:
        """
        Деактивировать всех активных участников команды и переназначить их ревью.
        Всё выполняется в одной транзакции. Если замены для слота нет,
        неактивный ревьювер снимается с PR, а каскад продолжается.
        Возвращает число деактивированных пользователей и число
        затронутых открытых PR.
        """
        log = logger.bind(op="deactivate_team", team_name=team_name)
        deactivated_ids: list[str] = []
        touched: list[tuple[PullRequest, list[str]]] = []

        async with self._transaction("deactivate_team"):
            team = await self.team_repo.get_by_name(team_name, load_members=False)
            if not team:
                raise NotFoundException("Team")

            deactivated_ids = await self.user_repo.deactivate_by_team_id(team.id)
            if deactivated_ids:
                touched = await self.pr_query.get_open_prs_by_reviewers(deactivated_ids)
                deactivated = set(deactivated_ids)
                for pr, reviewer_ids in touched:
                    await self._replace_inactive_reviewers(pr, reviewer_ids, deactivated, team.id)

        if not deactivated_ids:
            log.info("no_active_users_to_deactivate")
            return {"deactivated_users_count": 0, "reassigned_prs_count": 0}

        log.info(
            "team_deactivated",
            deactivated_users_count=len(deactivated_ids),
            reassigned_prs_count=len(touched),
        )

        cache_service = await self._get_cache_service()
        await cache_service.delete(TEAM_KEY.format(team_name=team_name), STATS_KEY)
        await cache_service.delete_pattern(REVIEWS_KEY.format(user_id="*"))

        return {
            "deactivated_users_count": len(deactivated_ids),
            "reassigned_prs_count": len(touched),
        }

    async def _replace_inactive_reviewers(
        self,
        pr: PullRequest,
        reviewer_ids: list[str],
        deactivated: set[str],
        team_id: int,
    ) -> None:
        """
        Заменить каждого деактивированного ревьювера PR.
        Замена ищется в команде деактивированного пользователя. reviewer_ids
        обновляется на месте, чтобы следующая замена учитывала предыдущую.
        """
        for old_id in [rid for rid in reviewer_ids if rid in deactivated]:
            candidates = await self.user_pr.get_random_active_reviewers(
                team_id, exclusion_set(pr, reviewer_ids), 1
            )
            if candidates:
                new_id = candidates[0]
                await self.pr_cmd.replace_reviewer(pr.id, old_id, new_id)
                reviewer_ids[reviewer_ids.index(old_id)] = new_id
                logger.debug(
                    "reviewer_replaced", pr_id=pr.id, old_reviewer_id=old_id, new_reviewer_id=new_id
                )
            else:
                await self.pr_cmd.remove_reviewer(pr.id, old_id)
                reviewer_ids.remove(old_id)
                logger.warning(
                    "no_replacement_candidate", pr_id=pr.id, old_reviewer_id=old_id
                )
