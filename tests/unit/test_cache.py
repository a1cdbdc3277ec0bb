"""Unit tests for cache utilities."""
import time
from datetime import date, datetime

from roombook.cache import SimpleTTLCache, agenda_key
from roombook.schemas import Reservation, Room


class TestSimpleTTLCache:
    def test_cache_set_and_get(self):
        cache = SimpleTTLCache[str](ttl=60)

        cache.set("2024-06-01", "grid")
        assert cache.get("2024-06-01") == "grid"

    def test_cache_get_nonexistent_key(self):
        assert SimpleTTLCache[str](ttl=60).get("missing") is None

    def test_cache_ttl_expiration(self):
        cache = SimpleTTLCache[str](ttl=1)

        cache.set("key", "value")
        time.sleep(1.1)

        assert cache.get("key") is None

    def test_cache_pop_and_clear(self):
        cache = SimpleTTLCache[str](ttl=60)
        cache.set("a", "1")
        cache.set("b", "2")

        cache.pop("a")
        cache.pop("never-set")
        assert cache.get("a") is None
        assert cache.get("b") == "2"

        cache.clear()
        assert cache.get("b") is None

    def test_maxsize_evicts(self):
        cache = SimpleTTLCache[str](ttl=60, maxsize=2)
        for key in ("a", "b", "c"):
            cache.set(key, key)

        assert sum(cache.get(key) is not None for key in ("a", "b", "c")) == 2


class TestAgendaKey:
    ROOM = Room(id="r1", name="Alpha", capacity=4, created_at=datetime(2024, 5, 1, 12, 0))
    RESERVATION = Reservation(
        id="x1",
        room_id="r1",
        room_name="Alpha",
        date=date(2024, 6, 1),
        start_time="09:00",
        end_time="10:00",
        user_id="u1",
        user_name="Ana Souza",
        created_at=datetime(2024, 5, 2, 8, 30),
    )

    def test_same_records_same_key(self):
        day = date(2024, 6, 1)

        assert agenda_key(day, [self.ROOM], [self.RESERVATION]) == agenda_key(day, [self.ROOM], [self.RESERVATION])
        assert agenda_key(day, [self.ROOM], []).startswith("2024-06-01:")

    def test_any_change_gives_new_key(self):
        day = date(2024, 6, 1)
        key = agenda_key(day, [self.ROOM], [self.RESERVATION])

        renamed = self.ROOM.model_copy(update={"name": "Beta"})
        moved = self.RESERVATION.model_copy(update={"end_time": "11:00"})
        assert agenda_key(day, [renamed], [self.RESERVATION]) != key
        assert agenda_key(day, [self.ROOM], [moved]) != key
        assert agenda_key(day, [], []) != key
        assert agenda_key(date(2024, 6, 2), [self.ROOM], [self.RESERVATION]) != key
