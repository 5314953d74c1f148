"""Redis persisted state backend: every field lives in one hash."""

from __future__ import annotations

from typing import TYPE_CHECKING

from redis.asyncio import Redis
from redis.exceptions import RedisError

if TYPE_CHECKING:
    from wallet_ledger.config.settings import CacheConfig


class RedisCache:
    """Stores persisted fields in the Redis hash *record_key*.

    ``HDEL`` with several fields is a single command, so clearing the
    address and balance together can never leave one of them behind.
    """

    def __init__(self, config: CacheConfig, record_key: str) -> None:
        self._config = config
        self._record_key = record_key
        self._redis: Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis and verify the server answers.

        Raises:
            ConnectionError: If Redis is unreachable.
        """
        self._redis = Redis.from_url(
            self._config.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self._config.max_connections,
        )
        try:
            await self._redis.ping()
        except RedisError as e:
            await self._redis.aclose()
            self._redis = None
            msg = f"Failed to connect to Redis at {self._config.url}"
            raise ConnectionError(msg) from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, field: str) -> str | None:
        return await self._client().hget(self._record_key, field)

    async def set(self, field: str, value: str) -> None:
        await self._client().hset(self._record_key, field, value)

    async def delete(self, *fields: str) -> None:
        await self._client().hdel(self._record_key, *fields)

    async def exists(self, field: str) -> bool:
        return bool(await self._client().hexists(self._record_key, field))

    async def all(self) -> dict[str, str]:
        return dict(await self._client().hgetall(self._record_key))

    def _client(self) -> Redis:
        if self._redis is None:
            msg = "Redis backend not connected"
            raise RuntimeError(msg)
        return self._redis
