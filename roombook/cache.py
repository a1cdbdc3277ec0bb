"""Simple TTL cache helpers for rendered agenda grids."""
from __future__ import annotations

import hashlib
from datetime import date
from typing import Generic, Iterable, Optional, TypeVar

from cachetools import TTLCache

from .config import get_settings
from .schemas import AgendaGrid, Reservation, Room

T = TypeVar("T")


class SimpleTTLCache(Generic[T]):
    def __init__(self, ttl: int, maxsize: int = 256) -> None:
        self._cache: TTLCache[str, T] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: str) -> Optional[T]:
        return self._cache.get(key)

    def set(self, key: str, value: T) -> None:
        self._cache[key] = value

    def pop(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()


def agenda_key(on_date: date, rooms: Iterable[Room], reservations: Iterable[Reservation]) -> str:
    """Cache key for the grid of ``on_date`` built from exactly these records.

    Any change to a room or to one of the day's reservations, made by this
    process or another, yields a different key.
    """

    digest = hashlib.sha256()
    for record in (*rooms, *reservations):
        digest.update(record.model_dump_json().encode())
        digest.update(b"\n")
    return f"{on_date.isoformat()}:{digest.hexdigest()}"


# keyed by agenda_key, so entries never need explicit invalidation
agenda_cache: SimpleTTLCache[AgendaGrid] = SimpleTTLCache(ttl=get_settings().agenda_cache_ttl)
