"""Схемы для команд."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

ID_PATTERN = r"^[a-zA-Z0-9_-]+$"

EntityId = Annotated[str, Field(min_length=1, max_length=100, pattern=ID_PATTERN)]
TeamName = Annotated[str, Field(min_length=3, max_length=50)]


class TeamMemberSchema(BaseModel):
    """Схема участника команды."""

    user_id: EntityId
    username: str = Field(min_length=2, max_length=100)
    is_active: bool


class TeamSchema(BaseModel):
    """Схема команды."""

    team_name: str
    members: list[TeamMemberSchema]

    model_config = ConfigDict(from_attributes=True)


class TeamResponse(BaseModel):
    """Ответ с командой."""

    team: TeamSchema


class CreateTeamRequest(BaseModel):
    """Запрос на создание команды."""

    team_name: TeamName
    members: list[TeamMemberSchema] = Field(default_factory=list)


class DeactivateTeamRequest(BaseModel):
    """Запрос на деактивацию всех участников команды."""

    team_name: TeamName


class DeactivateTeamResponse(BaseModel):
    """Ответ на деактивацию команды."""

    deactivated_users_count: int
    reassigned_prs_count: int
