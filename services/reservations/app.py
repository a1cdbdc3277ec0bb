from datetime import date
from typing import List, Optional

from fastapi import Depends, HTTPException, Query, Request, status

from roombook.agenda import available_end_times, build_agenda, time_options, time_slots
from roombook.cache import agenda_cache, agenda_key
from roombook.dependencies import get_current_actor, get_store
from roombook.errors import ReservationNotFound
from roombook.intervals import to_minutes
from roombook.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from roombook.schemas import (
    TIME_PATTERN,
    Actor,
    AgendaGrid,
    ConflictCheck,
    Reservation,
    ReservationCreate,
    TimeOptions,
)
from roombook.service import create_app
from roombook.store import ReservationStore

app = create_app("Reservations Service", "reservations")

CONFLICT_DETAIL = "This room is already reserved for that time"


@app.get("/reservations", response_model=List[Reservation])
@limiter.limit(READ_LIMIT)
def list_reservations(
    request: Request,
    on_date: Optional[date] = Query(default=None, alias="date"),
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> List[Reservation]:
    if on_date is None:
        return sorted(store.reservations, key=lambda r: (r.date, r.start_time))
    return store.get_reservations_by_date(on_date)


@app.post("/reservations", response_model=Reservation, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_reservation(
    request: Request,
    reservation_in: ReservationCreate,
    actor: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> Reservation:
    reservation = store.add_reservation(reservation_in, actor)
    if reservation is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL)
    return reservation


@app.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
def delete_reservation(
    request: Request,
    reservation_id: str,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> None:
    if store.get_reservation(reservation_id) is None:
        raise ReservationNotFound(reservation_id)
    store.delete_reservation(reservation_id)


@app.get("/reservations/conflicts", response_model=ConflictCheck)
@limiter.limit(READ_LIMIT)
def check_conflicts(
    request: Request,
    room_id: str,
    on_date: date = Query(..., alias="date"),
    start_time: str = Query(..., pattern=TIME_PATTERN),
    end_time: str = Query(..., pattern=TIME_PATTERN),
    exclude_id: Optional[str] = None,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> ConflictCheck:
    """Pre-flight check using the same overlap rule as reservation creation."""
    if to_minutes(end_time) <= to_minutes(start_time):
        raise HTTPException(status_code=422, detail="end_time must be later than start_time")
    found = store.find_conflicts(room_id, on_date, start_time, end_time, exclude_id)
    return ConflictCheck(
        room_id=room_id,
        date=on_date,
        start_time=start_time,
        end_time=end_time,
        conflict=bool(found),
        conflicting_ids=[r.id for r in found],
    )


@app.get("/reservations/dates", response_model=List[date])
@limiter.limit(READ_LIMIT)
def reservation_dates(
    request: Request,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> List[date]:
    return store.reservation_dates()


@app.get("/reservations/time-options", response_model=TimeOptions)
@limiter.limit(READ_LIMIT)
def reservation_time_options(
    request: Request,
    start_time: Optional[str] = Query(default=None, pattern=TIME_PATTERN),
    _: Actor = Depends(get_current_actor),
) -> TimeOptions:
    options = time_options()
    return TimeOptions(start_times=options, end_times=available_end_times(start_time, options))


@app.get("/agenda", response_model=AgendaGrid)
@limiter.limit(READ_LIMIT)
def agenda(
    request: Request,
    on_date: date = Query(..., alias="date"),
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> AgendaGrid:
    rooms = store.rooms
    reservations = store.get_reservations_by_date(on_date)
    cache_key = agenda_key(on_date, rooms, reservations)
    cached = agenda_cache.get(cache_key)
    if cached is not None:
        return cached
    grid = build_agenda(rooms, reservations, time_slots(), on_date=on_date)
    agenda_cache.set(cache_key, grid)
    return grid
