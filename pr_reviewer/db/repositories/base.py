"""Базовый репозиторий."""

from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from pr_reviewer.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Базовый репозиторий для работы с БД.
    Репозиторий не управляет транзакцией: коммит и откат выполняет сервис.
    """

    def __init__(self, model: type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get_by_id(self, id: str) -> ModelType | None:
        """Получить по первичному ключу."""
        return await self.session.get(self.model, id)

    async def add(self, instance: ModelType) -> ModelType:
        """Добавить запись и отправить INSERT в рамках текущей транзакции."""
        self.session.add(instance)
        await self.session.flush()
        return instance
