"""Persisted wallet state store with Redis and in-memory backends.

The store holds a handful of named fields (last-known canonical address,
cached display balance) that must survive a restart. Fields live together in
one record, ``{key_prefix}state``, so several can be removed in a single
atomic operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from wallet_ledger.config.settings import CacheConfig


class CacheClient:
    """Field store that delegates to a Redis hash or an in-process dict.

    Usage::

        cache = CacheClient(config.cache)
        await cache.connect()
        await cache.set("address", "0xabc...")
        await cache.delete("address", "balance")
    """

    def __init__(self, config: CacheConfig) -> None:
        self._config = config
        self._backend: CacheBackend | None = None

    async def connect(self) -> None:
        """Connect to the configured backend.

        Raises:
            ValueError: If the cache engine is not supported.
        """
        from wallet_ledger.cache.memory import MemoryCache
        from wallet_ledger.cache.redis import RedisCache

        engine = self._config.engine.lower()
        if engine == "redis":
            backend: CacheBackend = RedisCache(self._config, self.record_key)
        elif engine == "memory":
            backend = MemoryCache()
        else:
            msg = f"Unsupported cache engine: {engine}"
            raise ValueError(msg)

        await backend.connect()
        self._backend = backend

    async def close(self) -> None:
        """Close the backend connection (idempotent)."""
        if self._backend is not None:
            await self._backend.close()
            self._backend = None

    @property
    def is_connected(self) -> bool:
        return self._backend is not None

    @property
    def record_key(self) -> str:
        """Name of the record holding every persisted field."""
        return f"{self._config.key_prefix}state"

    async def get(self, field: str) -> str | None:
        """Return the value of *field*, or None if it is not set.

        Raises:
            RuntimeError: If not connected.
        """
        return await self._ensure_connected().get(field)

    async def set(self, field: str, value: str) -> None:
        await self._ensure_connected().set(field, value)

    async def delete(self, *fields: str) -> None:
        """Remove *fields* in one operation; missing fields are ignored."""
        if fields:
            await self._ensure_connected().delete(*fields)

    async def exists(self, field: str) -> bool:
        return await self._ensure_connected().exists(field)

    async def snapshot(self) -> dict[str, str]:
        """Return every persisted field."""
        return await self._ensure_connected().all()

    def _ensure_connected(self) -> CacheBackend:
        if self._backend is None:
            msg = "Cache not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._backend


class CacheBackend(Protocol):
    """Protocol for persisted field store implementations."""

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def get(self, field: str) -> str | None: ...
    async def set(self, field: str, value: str) -> None: ...
    async def delete(self, *fields: str) -> None: ...
    async def exists(self, field: str) -> bool: ...
    async def all(self) -> dict[str, str]: ...
