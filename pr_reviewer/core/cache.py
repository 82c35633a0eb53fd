"""Настройка кеширования Redis."""

import json
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from pr_reviewer.core.config import settings
from pr_reviewer.core.logging import get_logger

logger = get_logger(__name__)

redis_client: Optional[Redis] = None

TEAM_KEY = "teams:get_team:{team_name}"
REVIEWS_KEY = "users:get_reviews:{user_id}"
STATS_KEY = "stats:get_stats"


async def init_cache():
    """
    Подключиться к Redis, если кеш включён.
    При недоступности Redis клиент остаётся None и сервис работает без кеша.
    """
    global redis_client
    if redis_client is not None or not settings.CACHE_ENABLED:
        return

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("cache_unavailable", url=settings.REDIS_URL, error=str(exc))
        await client.aclose()
        return

    redis_client = client


async def close_cache():
    """Закрытие соединения с Redis."""
    global redis_client
    if redis_client:
        try:
            await redis_client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("cache_close_failed", error=str(exc))
        finally:
            redis_client = None


async def get_cache() -> Optional[Redis]:
    """Клиент Redis или None, если кеш выключен или недоступен."""
    if redis_client is None:
        await init_cache()
    return redis_client


class CacheService:
    """
    Кеш ответов на чтение: команды, ревью пользователя, статистика.
    Ошибка Redis не прерывает запрос: операция пропускается, а кеш
    помечается недоступным до конца жизни экземпляра. Сервисы сбрасывают
    ключи только после коммита транзакции.
    """

    def __init__(self, redis_client_instance: Optional[Redis], ttl: int = settings.REDIS_TTL):
        self.redis = redis_client_instance
        self.ttl = ttl

        self._is_available = self.redis is not None

    @property
    def is_available(self) -> bool:
        """Возвращает текущий статус доступности кеша."""
        return self._is_available

    def _disable(self, op: str, exc: Exception):
        logger.warning("cache_operation_failed", op=op, error=str(exc))
        self._is_available = False

    async def get(self, key: str) -> Optional[dict]:
        """Значение по ключу или None при промахе и ошибке."""
        if not self._is_available:
            return None
        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value)
        except (RedisError, OSError, ValueError) as exc:
            self._disable("get", exc)
        return None

    async def set(self, key: str, value: dict, ttl: Optional[int] = None):
        """Записать значение с TTL."""
        if not self._is_available:
            return
        try:
            ttl = ttl or self.ttl
            await self.redis.setex(key, ttl, json.dumps(value, default=str))
        except (RedisError, OSError, TypeError) as exc:
            self._disable("set", exc)

    async def delete(self, *keys: str):
        if not self._is_available or not keys:
            return
        try:
            await self.redis.delete(*keys)
        except (RedisError, OSError) as exc:
            self._disable("delete", exc)

    async def delete_pattern(self, pattern: str):
        """Удалить все ключи по glob-паттерну, например users:get_reviews:*."""
        if not self._is_available:
            return
        try:
            keys = await self.redis.keys(pattern)
            if keys:
                await self.redis.delete(*keys)
        except (RedisError, OSError) as exc:
            self._disable("delete_pattern", exc)
