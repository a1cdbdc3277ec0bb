"""Hour-by-room agenda grid for a day's reservations."""
from __future__ import annotations

import logging
import math
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .config import get_settings
from .intervals import format_minutes, parse_time, to_minutes
from .schemas import AgendaAnomaly, AgendaCell, AgendaGrid, AgendaRow, CellKind, Reservation, Room, as_date

logger = logging.getLogger(__name__)


def time_slots(first_hour: Optional[int] = None, last_hour: Optional[int] = None) -> List[str]:
    """Hourly slot labels, ``06:00`` through ``22:00`` unless configured otherwise."""

    settings = get_settings()
    first = settings.agenda_first_hour if first_hour is None else first_hour
    last = settings.agenda_last_hour if last_hour is None else last_hour
    return [f"{hour:02d}:00" for hour in range(first, last + 1)]


TIME_SLOTS = time_slots(6, 22)


def time_options(first_hour: int = 6, last_hour: int = 22, step: int = 30) -> List[str]:
    """Times offered for a reservation's start and end, in ``step``-minute increments."""

    return [format_minutes(minutes) for minutes in range(first_hour * 60, last_hour * 60 + 1, step)]


def available_end_times(start_time: Optional[str], options: Optional[Sequence[str]] = None) -> List[str]:
    options = list(options) if options is not None else time_options()
    if not start_time:
        return options
    start = to_minutes(start_time)
    return [option for option in options if to_minutes(option) > start]


def occupies_slot(reservation: Reservation, slot: str) -> bool:
    hour, _ = parse_time(slot)
    start_hour, _ = parse_time(reservation.start_time)
    end_hour, end_minute = parse_time(reservation.end_time)
    return hour >= start_hour and (hour < end_hour or (hour == end_hour and end_minute > 0))


def starts_in_slot(reservation: Reservation, slot: str) -> bool:
    # one-hour resolution: 09:15 starts in the 09:00 slot
    return parse_time(slot)[0] == parse_time(reservation.start_time)[0]


def reservation_span(reservation: Reservation) -> int:
    return math.ceil(reservation.interval.duration / 60)


def _layout_cell(room: Room, slot: str, reservations: Sequence[Reservation], anomalies: List[AgendaAnomaly]) -> AgendaCell:
    occupying = [r for r in reservations if r.room_id == room.id and occupies_slot(r, slot)]
    starting = [r for r in occupying if starts_in_slot(r, slot)]
    if starting:
        shown = starting[0]
        for hidden in starting[1:]:
            logger.warning(
                "Overlapping reservations in room %s at %s on %s: showing %s, hiding %s",
                room.id,
                slot,
                hidden.date,
                shown.id,
                hidden.id,
            )
            anomalies.append(AgendaAnomaly(room_id=room.id, slot=slot, shown_id=shown.id, hidden_id=hidden.id))
        return AgendaCell(room_id=room.id, slot=slot, kind=CellKind.START, reservation=shown, span=reservation_span(shown))
    if occupying:
        return AgendaCell(room_id=room.id, slot=slot, kind=CellKind.CONTINUATION)
    return AgendaCell(room_id=room.id, slot=slot)


def build_agenda(
    rooms: Iterable[Room],
    reservations: Iterable[Reservation],
    slots: Optional[Sequence[str]] = None,
    on_date: Optional[date | str] = None,
) -> AgendaGrid:
    """Lay out reservations on a slot-by-room grid.

    Each cell is ``empty``, ``start`` (the reservation's card, with the number
    of slots it spans) or ``continuation`` (covered by a card started above).
    When ``on_date`` is given, reservations on other dates are ignored.
    Reservations that start in a cell already taken by an earlier one (in
    iteration order) are not rendered; they are reported in ``anomalies``.
    """

    rooms = list(rooms)
    slots = list(slots) if slots is not None else time_slots()
    target = as_date(on_date) if on_date is not None else None
    day = [r for r in reservations if target is None or r.date == target]

    anomalies: List[AgendaAnomaly] = []
    rows = [
        AgendaRow(slot=slot, cells=[_layout_cell(room, slot, day, anomalies) for room in rooms])
        for slot in slots
    ]
    return AgendaGrid(date=target, slots=slots, rooms=rooms, rows=rows, anomalies=anomalies)
