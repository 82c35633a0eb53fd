"""API эндпоинты для статистики."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.api.dependencies import get_session
from pr_reviewer.domain.stats.service import StatsService
from pr_reviewer.schemas.stats import StatsResponse

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(
    session: AsyncSession = Depends(get_session),
) -> StatsResponse:
    """Получить статистику ревью по пользователям и PR."""
    return StatsResponse(**(await StatsService(session).get_stats()))
