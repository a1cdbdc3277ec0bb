"""Interval-overlap conflict detection for reservations."""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from .intervals import TimeInterval
from .schemas import Reservation, as_date


def find_conflicts(
    reservations: Iterable[Reservation],
    room_id: str,
    on_date: date | str,
    start_time: str,
    end_time: str,
    exclude_id: Optional[str] = None,
) -> list[Reservation]:
    """Return every reservation of ``room_id`` on ``on_date`` that overlaps the candidate."""

    target_date = as_date(on_date)
    candidate = TimeInterval.from_strings(start_time, end_time)
    return [
        reservation
        for reservation in reservations
        if reservation.room_id == room_id
        and reservation.date == target_date
        and reservation.id != exclude_id
        and candidate.overlaps(reservation.interval)
    ]


def has_conflict(
    reservations: Iterable[Reservation],
    room_id: str,
    on_date: date | str,
    start_time: str,
    end_time: str,
    exclude_id: Optional[str] = None,
) -> bool:
    return bool(find_conflicts(reservations, room_id, on_date, start_time, end_time, exclude_id))
