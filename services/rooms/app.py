from typing import List

from fastapi import Depends, HTTPException, Request, status

from roombook.dependencies import get_current_actor, get_store
from roombook.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from roombook.schemas import Actor, Reservation, Room, RoomCreate, RoomUpdate
from roombook.service import create_app
from roombook.store import ReservationStore

app = create_app("Rooms Service", "rooms")


def _get_room_or_404(store: ReservationStore, room_id: str) -> Room:
    room = store.get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@app.get("/rooms", response_model=List[Room])
@limiter.limit(READ_LIMIT)
def list_rooms(
    request: Request,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> List[Room]:
    return store.rooms


@app.post("/rooms", response_model=Room, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def add_room(
    request: Request,
    room_in: RoomCreate,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> Room:
    return store.add_room(room_in)


@app.get("/rooms/{room_id}", response_model=Room)
@limiter.limit(READ_LIMIT)
def get_room(
    request: Request,
    room_id: str,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> Room:
    return _get_room_or_404(store, room_id)


@app.put("/rooms/{room_id}", response_model=Room)
@limiter.limit(WRITE_LIMIT)
def update_room(
    request: Request,
    room_id: str,
    room_update: RoomUpdate,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> Room:
    room = store.update_room(room_id, room_update)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@app.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
def delete_room(
    request: Request,
    room_id: str,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> None:
    """Delete a room and every reservation made for it."""
    if not store.delete_room(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")


@app.get("/rooms/{room_id}/reservations", response_model=List[Reservation])
@limiter.limit(READ_LIMIT)
def room_reservations(
    request: Request,
    room_id: str,
    _: Actor = Depends(get_current_actor),
    store: ReservationStore = Depends(get_store),
) -> List[Reservation]:
    _get_room_or_404(store, room_id)
    return store.get_reservations_by_room(room_id)
