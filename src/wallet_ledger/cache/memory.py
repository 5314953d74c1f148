"""In-process persisted state backend (lost on exit; for tests and single runs)."""

from __future__ import annotations


class MemoryCache:
    """Dictionary of persisted fields."""

    def __init__(self) -> None:
        self._fields: dict[str, str] = {}

    async def connect(self) -> None:  # noqa: ASYNC910
        pass

    async def close(self) -> None:  # noqa: ASYNC910
        self._fields.clear()

    async def get(self, field: str) -> str | None:  # noqa: ASYNC910
        return self._fields.get(field)

    async def set(self, field: str, value: str) -> None:  # noqa: ASYNC910
        self._fields[field] = value

    async def delete(self, *fields: str) -> None:  # noqa: ASYNC910
        for field in fields:
            self._fields.pop(field, None)

    async def exists(self, field: str) -> bool:  # noqa: ASYNC910
        return field in self._fields

    async def all(self) -> dict[str, str]:  # noqa: ASYNC910
        return dict(self._fields)
