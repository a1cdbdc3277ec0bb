"""In-memory source of truth for rooms and reservations.

A store is either purely in-memory or backed by a persistence collaborator
(see :mod:`roombook.persistence`). When backed, every mutation is sent to the
collaborator first and applied to memory only once it succeeded, so a failed
round trip leaves the store untouched.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from . import conflicts
from .errors import PersistenceError, ReservationConflict, RoomNotFound, StoreUnavailable, ValidationFailed
from .persistence import RESERVATIONS, ROOMS, Persistence
from .schemas import Actor, Reservation, ReservationBase, Room, RoomBase, RoomCreate, RoomUpdate, as_date

logger = logging.getLogger(__name__)

RoomData = Union[RoomBase, Dict[str, Any]]
ReservationData = Union[ReservationBase, Dict[str, Any]]

_ROOM_FIELDS = {"name", "description", "capacity"}
_RESERVATION_FIELDS = {"room_id", "date", "start_time", "end_time", "observation"}


def _parse(model: type[BaseModel], data: Any) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        errors = {".".join(str(part) for part in error["loc"]) or "__root__": error["msg"] for error in exc.errors()}
        raise ValidationFailed(errors) from exc


class ReservationStore:
    def __init__(
        self,
        rooms: Optional[Iterable[Room]] = None,
        reservations: Optional[Iterable[Reservation]] = None,
        persistence: Optional[Persistence] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._rooms: List[Room] = list(rooms or [])
        self._reservations: List[Reservation] = list(reservations or [])
        self._persistence = persistence
        self._clock = clock

    @classmethod
    def load(cls, persistence: Persistence, **kwargs: Any) -> "ReservationStore":
        """Build a store from the collaborator's current rooms and reservations."""

        try:
            rooms = persistence.list_rooms()
            reservations = persistence.list_reservations()
        except PersistenceError as exc:
            logger.error("Could not load rooms and reservations: %s", exc)
            raise StoreUnavailable("Could not load rooms and reservations. Please try again.") from exc
        return cls(rooms, reservations, persistence=persistence, **kwargs)

    @property
    def rooms(self) -> List[Room]:
        return list(self._rooms)

    @property
    def reservations(self) -> List[Reservation]:
        return list(self._reservations)

    @contextmanager
    def _remote(self, action: str) -> Iterator[Optional[Persistence]]:
        if self._persistence is None:
            yield None
            return
        try:
            with self._persistence.atomic():
                yield self._persistence
        except PersistenceError as exc:
            logger.error("Persistence failure while %s: %s", action, exc)
            raise StoreUnavailable() from exc

    def refresh(self) -> None:
        """Re-fetch reservations from the collaborator, replacing the local copy."""

        if self._persistence is None:
            return
        try:
            self._reservations = self._persistence.list_reservations()
        except PersistenceError as exc:
            logger.error("Could not refresh reservations: %s", exc)
            raise StoreUnavailable() from exc

    # Rooms

    def get_room(self, room_id: str) -> Optional[Room]:
        return next((room for room in self._rooms if room.id == room_id), None)

    def add_room(self, data: RoomData) -> Room:
        payload = data if isinstance(data, RoomBase) else _parse(RoomCreate, data)
        room = Room(id=str(uuid4()), created_at=self._clock(), **payload.model_dump(include=_ROOM_FIELDS))
        with self._remote("adding a room") as remote:
            if remote is not None:
                remote.insert(ROOMS, room.model_dump())
        self._rooms.append(room)
        return room

    def update_room(self, room_id: str, changes: Union[RoomUpdate, Dict[str, Any]]) -> Optional[Room]:
        """Merge ``changes`` into a room; a new name is copied onto its reservations.

        Returns the updated room, or ``None`` when no room has ``room_id``.
        """

        update = _parse(RoomUpdate, changes)
        fields = update.model_dump(exclude_unset=True, exclude_none=True)
        current = self.get_room(room_id)
        if current is None:
            return None

        new_name = fields.get("name")
        affected = [r for r in self._reservations if r.room_id == room_id] if new_name else []
        with self._remote("updating a room") as remote:
            if remote is not None:
                if fields:
                    remote.update(ROOMS, room_id, fields)
                for reservation in affected:
                    remote.update(RESERVATIONS, reservation.id, {"room_name": new_name})

        updated = current.model_copy(update=fields)
        self._rooms = [updated if room.id == room_id else room for room in self._rooms]
        if new_name:
            self._reservations = [
                r.model_copy(update={"room_name": new_name}) if r.room_id == room_id else r
                for r in self._reservations
            ]
        return updated

    def delete_room(self, room_id: str) -> bool:
        """Delete a room together with every reservation made for it."""

        if self.get_room(room_id) is None:
            return False
        with self._remote("deleting a room") as remote:
            if remote is not None:
                remote.delete(ROOMS, room_id)

        self._rooms = [room for room in self._rooms if room.id != room_id]
        kept = [r for r in self._reservations if r.room_id != room_id]
        removed = len(self._reservations) - len(kept)
        self._reservations = kept
        logger.info("Deleted room %s and %d reservation(s)", room_id, removed)
        return True

    # Reservations

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return next((r for r in self._reservations if r.id == reservation_id), None)

    def has_conflict(
        self,
        room_id: str,
        on_date: date | str,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        return conflicts.has_conflict(self._reservations, room_id, on_date, start_time, end_time, exclude_id)

    def find_conflicts(
        self,
        room_id: str,
        on_date: date | str,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> List[Reservation]:
        return conflicts.find_conflicts(self._reservations, room_id, on_date, start_time, end_time, exclude_id)

    def add_reservation(self, data: ReservationData, actor: Optional[Actor]) -> Optional[Reservation]:
        """Create a reservation unless it overlaps an existing one.

        Returns the new reservation, or ``None`` when there is no actor or the
        slot is taken. Raises :class:`RoomNotFound` for an unknown room.
        """

        payload = _parse(ReservationBase, data)
        if actor is None:
            logger.warning("Refusing reservation for room %s without an authenticated user", payload.room_id)
            return None
        room = self.get_room(payload.room_id)
        if room is None:
            raise RoomNotFound(payload.room_id)

        if self.has_conflict(payload.room_id, payload.date, payload.start_time, payload.end_time):
            logger.info(
                "Reservation for room %s on %s %s-%s overlaps an existing one",
                payload.room_id,
                payload.date,
                payload.start_time,
                payload.end_time,
            )
            return None

        reservation = Reservation(
            id=str(uuid4()),
            room_name=room.name,
            user_id=actor.id,
            user_name=actor.name,
            created_at=self._clock(),
            **payload.model_dump(include=_RESERVATION_FIELDS),
        )
        try:
            with self._remote("creating a reservation") as remote:
                if remote is not None:
                    remote.insert(RESERVATIONS, reservation.model_dump())
        except ReservationConflict as exc:
            # another writer got there first; our snapshot is stale
            logger.warning("Reservation rejected by the database: %s. Refreshing.", exc)
            self.refresh()
            return None

        self._reservations.append(reservation)
        return reservation

    def delete_reservation(self, reservation_id: str) -> bool:
        if self.get_reservation(reservation_id) is None:
            return False
        with self._remote("deleting a reservation") as remote:
            if remote is not None:
                remote.delete(RESERVATIONS, reservation_id)
        self._reservations = [r for r in self._reservations if r.id != reservation_id]
        return True

    def get_reservations_by_date(self, on_date: date | str) -> List[Reservation]:
        target = as_date(on_date)
        return sorted((r for r in self._reservations if r.date == target), key=lambda r: r.start_time)

    def get_reservations_by_room(self, room_id: str) -> List[Reservation]:
        return sorted(
            (r for r in self._reservations if r.room_id == room_id),
            key=lambda r: (r.date, r.start_time),
        )

    def reservation_dates(self) -> List[date]:
        return sorted({r.date for r in self._reservations})
