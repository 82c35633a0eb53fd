"""API эндпоинты для команд."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.api.dependencies import get_session
from pr_reviewer.domain.teams.service import TeamService
from pr_reviewer.domain.users.service import UserService
from pr_reviewer.schemas.team import (
    CreateTeamRequest,
    DeactivateTeamRequest,
    DeactivateTeamResponse,
    TeamResponse,
)

router = APIRouter(prefix="/team", tags=["Teams"])


@router.post("/add", response_model=TeamResponse, status_code=201)
async def create_team(
    request: CreateTeamRequest,
    session: AsyncSession = Depends(get_session),
):
    """Создать команду с участниками."""
    return await TeamService(session).create_team(
        request.team_name, [m.model_dump() for m in request.members]
    )


@router.get("/get", response_model=TeamResponse)
async def get_team(
    team_name: str,
    session: AsyncSession = Depends(get_session),
):
    """Получить команду с участниками."""
    return await TeamService(session).get_team(team_name)


@router.post("/deactivate", response_model=DeactivateTeamResponse)
async def deactivate_team(
    request: DeactivateTeamRequest,
    session: AsyncSession = Depends(get_session),
):
    """Деактивировать всех участников команды и переназначить их открытые ревью."""
    return await UserService(session).deactivate_team(request.team_name)
