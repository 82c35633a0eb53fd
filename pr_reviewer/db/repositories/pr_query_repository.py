"""Репозиторий чтения Pull Request'ов."""

from collections import defaultdict
from typing import Collection

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.db.models import PRStatus, PullRequest, User, reviewers
from pr_reviewer.db.repositories.base import BaseRepository


class PRQueryRepository(BaseRepository[PullRequest]):
    """Чтение Pull Request'ов, ревьюверов и статистики."""

    def __init__(self, session: AsyncSession):
        super().__init__(PullRequest, session)

    async def get_by_id(self, pr_id: str) -> PullRequest | None:
        """Получить PR по ID."""
        result = await self.session.execute(select(PullRequest).where(PullRequest.id == pr_id))
        return result.scalar_one_or_none()

    async def exists(self, pr_id: str) -> bool:
        """Проверить существование PR."""
        result = await self.session.execute(
            select(PullRequest.id).where(PullRequest.id == pr_id)
        )
        return result.scalar_one_or_none() is not None

    async def get_reviewer_ids(self, pr_id: str) -> list[str]:
        """ID ревьюверов PR."""
        result = await self.session.execute(
            select(reviewers.c.user_id)
            .where(reviewers.c.pull_request_id == pr_id)
            .order_by(reviewers.c.user_id)
        )
        return list(result.scalars().all())

    async def get_review_assignments(self, user_id: str) -> list[PullRequest]:
        """PR'ы, где пользователь назначен ревьювером, новые первыми."""
        result = await self.session.execute(
            select(PullRequest)
            .join(reviewers, PullRequest.id == reviewers.c.pull_request_id)
            .where(reviewers.c.user_id == user_id)
            .order_by(PullRequest.created_at.desc(), PullRequest.id)
        )
        return list(result.scalars().all())

    async def get_open_prs_by_reviewers(
        self, user_ids: Collection[str]
    ) -> list[tuple[PullRequest, list[str]]]:
        """
        Открытые PR, где ревьювером назначен кто-то из user_ids.
        Строки PR блокируются (FOR UPDATE), чтобы их нельзя было смержить
        параллельно. Возвращает пары (PR, текущие ревьюверы).
        """
        if not user_ids:
            return []

        reviewed_pr_ids = select(reviewers.c.pull_request_id).where(
            reviewers.c.user_id.in_(list(user_ids))
        )
        # IN вместо JOIN + DISTINCT: PostgreSQL не допускает DISTINCT с FOR UPDATE
        prs_result = await self.session.execute(
            select(PullRequest)
            .where(
                PullRequest.id.in_(reviewed_pr_ids),
                PullRequest.status == PRStatus.OPEN.value,
            )
            .order_by(PullRequest.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        prs = list(prs_result.scalars().all())
        if not prs:
            return []

        reviewers_result = await self.session.execute(
            select(reviewers.c.pull_request_id, reviewers.c.user_id)
            .where(reviewers.c.pull_request_id.in_([pr.id for pr in prs]))
            .order_by(reviewers.c.user_id)
        )
        reviewer_map: dict[str, list[str]] = defaultdict(list)
        for pr_id, reviewer_id in reviewers_result.all():
            reviewer_map[pr_id].append(reviewer_id)

        return [(pr, reviewer_map[pr.id]) for pr in prs]

    async def get_user_stats(self) -> list[dict]:
        """Количество открытых и смерженных ревью по каждому пользователю."""
        open_reviews = func.count(case((PullRequest.status == PRStatus.OPEN.value, 1)))
        merged_reviews = func.count(case((PullRequest.status == PRStatus.MERGED.value, 1)))

        query = (
            select(
                User.id.label("user_id"),
                User.username,
                open_reviews.label("open_reviews"),
                merged_reviews.label("merged_reviews"),
            )
            .outerjoin(reviewers, User.id == reviewers.c.user_id)
            .outerjoin(PullRequest, reviewers.c.pull_request_id == PullRequest.id)
            .group_by(User.id, User.username)
            .order_by(User.username, User.id)
        )
        result = await self.session.execute(query)
        return [
            {
                "user_id": row.user_id,
                "username": row.username,
                "total_reviews": int(row.open_reviews or 0) + int(row.merged_reviews or 0),
                "open_reviews": int(row.open_reviews or 0),
                "merged_reviews": int(row.merged_reviews or 0),
            }
            for row in result.all()
        ]

    async def get_stats(self) -> dict:
        """Получить статистику по PR."""
        stats_query = select(
            func.count(PullRequest.id).label("total_prs"),
            func.sum(case((PullRequest.status == PRStatus.OPEN.value, 1), else_=0)).label(
                "open_prs"
            ),
            func.sum(case((PullRequest.status == PRStatus.MERGED.value, 1), else_=0)).label(
                "merged_prs"
            ),
            func.sum(case((PullRequest.need_more_reviewers == True, 1), else_=0)).label(  # noqa: E712
                "need_more_reviewers"
            ),
        )
        result = await self.session.execute(stats_query)
        row = result.one()

        pr_reviewer_counts = (
            select(
                PullRequest.id,
                func.count(reviewers.c.user_id).label("reviewer_count"),
            )
            .outerjoin(reviewers, PullRequest.id == reviewers.c.pull_request_id)
            .group_by(PullRequest.id)
            .subquery()
        )

        count_query = select(
            func.sum(case((pr_reviewer_counts.c.reviewer_count == 0, 1), else_=0)).label("count_0"),
            func.sum(case((pr_reviewer_counts.c.reviewer_count == 1, 1), else_=0)).label("count_1"),
            func.sum(case((pr_reviewer_counts.c.reviewer_count == 2, 1), else_=0)).label("count_2"),
        ).select_from(pr_reviewer_counts)
        count_result = await self.session.execute(count_query)
        count_row = count_result.one()

        return {
            "total_prs": int(row.total_prs or 0),
            "open_prs": int(row.open_prs or 0),
            "merged_prs": int(row.merged_prs or 0),
            "need_more_reviewers": int(row.need_more_reviewers or 0),
            "prs_with_0_reviewers": int(count_row.count_0 or 0),
            "prs_with_1_reviewer": int(count_row.count_1 or 0),
            "prs_with_2_reviewers": int(count_row.count_2 or 0),
        }
