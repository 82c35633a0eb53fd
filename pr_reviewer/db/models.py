"""SQLAlchemy модели базы данных."""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
)
from sqlalchemy.orm import relationship

from pr_reviewer.core.database import Base


def utcnow() -> datetime:
    """Текущее время в UTC без tzinfo (так оно хранится в БД)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PRStatus(str, enum.Enum):
    """Статус Pull Request."""

    OPEN = "OPEN"
    MERGED = "MERGED"


reviewers = Table(
    "reviewers",
    Base.metadata,
    Column(
        "pull_request_id",
        String(255),
        ForeignKey("pull_requests.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("user_id", String(255), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_reviewers_user", "user_id"),
)


class Team(Base):
    """Модель команды."""

    __tablename__ = "teams"
    __table_args__ = ({"comment": "Команды"},)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, comment="Название команды")

    members = relationship("User", back_populates="team", order_by="User.username")


class User(Base):
    """Модель пользователя."""

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_team_active", "team_id", "is_active"),
        {"comment": "Пользователи"},
    )

    id = Column(String(255), primary_key=True, comment="ID пользователя")
    username = Column(String(255), nullable=False, comment="Имя пользователя")
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID команды",
    )
    is_active = Column(Boolean, default=True, nullable=False, comment="Флаг активности")

    team = relationship("Team", back_populates="members")


class PullRequest(Base):
    """Модель Pull Request."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        Index("idx_pr_author", "author_id"),
        Index("idx_pr_status", "status"),
        {"comment": "Pull Request'ы"},
    )

    id = Column(String(255), primary_key=True, comment="ID PR")
    name = Column(String(500), nullable=False, comment="Название PR")
    author_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="ID автора",
    )
    status = Column(
        String(20), default=PRStatus.OPEN.value, nullable=False, comment="Статус: OPEN или MERGED"
    )
    need_more_reviewers = Column(
        Boolean, default=False, nullable=False, comment="Назначено меньше двух ревьюверов"
    )
    created_at = Column(DateTime, default=utcnow, nullable=False, comment="Дата создания")
    merged_at = Column(DateTime, nullable=True, comment="Дата merge")
