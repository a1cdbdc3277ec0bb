"""Store behaviour when backed by the SQL persistence collaborator."""
from contextlib import nullcontext
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from roombook.database import SessionLocal, engine
from roombook.errors import PersistenceError, StoreUnavailable
from roombook.models import Reserva, Sala
from roombook.persistence import RESERVATIONS, ROOMS, SqlPersistence, to_columns
from roombook.schemas import Actor
from roombook.store import ReservationStore

ACTOR = Actor(id="u1", name="Ana Souza", email="ana@example.com")
DAY = "2024-06-01"


def reservation_payload(room_id, start, end, day=DAY):
    return {"room_id": room_id, "date": day, "start_time": start, "end_time": end}


@pytest.fixture
def sql_store(db_session):
    return ReservationStore.load(SqlPersistence(db_session))


def failing_persistence(method, message):
    persistence = MagicMock()
    persistence.atomic.side_effect = lambda: nullcontext()
    getattr(persistence, method).side_effect = PersistenceError(message)
    return persistence


def fresh_store():
    session = SessionLocal()
    return session, ReservationStore.load(SqlPersistence(session))


def test_rooms_and_reservations_round_trip_through_localized_tables(sql_store, db_session):
    room = sql_store.add_room({"name": "Alpha", "description": "Ground floor", "capacity": 4})
    reservation = sql_store.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR)

    sala = db_session.get(Sala, room.id)
    assert (sala.nome, sala.descricao, sala.capacidade) == ("Alpha", "Ground floor", 4)
    reserva = db_session.get(Reserva, reservation.id)
    assert (reserva.sala_nome, reserva.hora_inicio, reserva.hora_fim) == ("Alpha", "09:00", "10:00")
    assert reserva.usuario_nome == "Ana Souza"

    session, reloaded = fresh_store()
    try:
        assert [r.name for r in reloaded.rooms] == ["Alpha"]
        [loaded] = reloaded.reservations
        assert loaded.id == reservation.id
        assert loaded.date == date(2024, 6, 1)
        assert loaded.room_name == "Alpha"
    finally:
        session.close()


def test_rename_and_cascade_are_persisted(sql_store):
    room = sql_store.add_room({"name": "Alpha", "capacity": 4})
    sql_store.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR)
    sql_store.add_reservation(reservation_payload(room.id, "10:00", "11:00"), ACTOR)

    sql_store.update_room(room.id, {"name": "New"})
    session, reloaded = fresh_store()
    try:
        assert {r.room_name for r in reloaded.reservations} == {"New"}
        assert session.get(Reserva, reloaded.reservations[0].id).sala_nome == "New"
    finally:
        session.close()

    sql_store.delete_room(room.id)
    session, reloaded = fresh_store()
    try:
        assert reloaded.rooms == []
        assert reloaded.reservations == []
    finally:
        session.close()


def test_database_rejects_overlap_from_stale_snapshot(sql_store):
    room = sql_store.add_room({"name": "Alpha", "capacity": 4})

    session, stale = fresh_store()
    try:
        assert sql_store.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR) is not None

        # the stale snapshot does not know about 09:00-10:00 yet
        assert stale.has_conflict(room.id, DAY, "09:30", "10:30") is False
        assert stale.add_reservation(reservation_payload(room.id, "09:30", "10:30"), ACTOR) is None

        # rejection refreshed the snapshot
        assert len(stale.reservations) == 1
        assert stale.has_conflict(room.id, DAY, "09:30", "10:30") is True
    finally:
        session.close()

    session, reloaded = fresh_store()
    try:
        assert len(reloaded.reservations) == 1
    finally:
        session.close()


def test_persistence_failure_leaves_store_unchanged():
    persistence = failing_persistence("insert", "connection reset")
    store = ReservationStore(persistence=persistence)

    with pytest.raises(StoreUnavailable) as excinfo:
        store.add_room({"name": "Alpha", "capacity": 4})

    assert store.rooms == []
    assert "connection reset" not in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, PersistenceError)


def test_failed_delete_keeps_room_and_reservations():
    store = ReservationStore()
    room = store.add_room({"name": "Alpha", "capacity": 4})
    store.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR)

    persistence = failing_persistence("delete", "timeout")
    remote = ReservationStore(store.rooms, store.reservations, persistence=persistence)

    with pytest.raises(StoreUnavailable):
        remote.delete_room(room.id)
    assert remote.get_room(room.id) is not None
    assert len(remote.reservations) == 1


def test_load_failure_is_reported_as_unavailable():
    persistence = failing_persistence("list_rooms", "no route to host")
    with pytest.raises(StoreUnavailable):
        ReservationStore.load(persistence)


def test_list_reservations_uses_current_room_name(db_session):
    persistence = SqlPersistence(db_session)
    store = ReservationStore.load(persistence)
    room = store.add_room({"name": "Alpha", "capacity": 4})
    reservation = store.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR)

    # rename behind the store's back: only the room row changes
    persistence.update(ROOMS, room.id, {"name": "Renamed"})
    assert db_session.get(Reserva, reservation.id).sala_nome == "Alpha"
    assert persistence.list_reservations()[0].room_name == "Renamed"


def test_field_translation():
    assert to_columns(RESERVATIONS, {"room_id": "r1", "start_time": "09:00"}) == {
        "sala_id": "r1",
        "hora_inicio": "09:00",
    }
    with pytest.raises(PersistenceError):
        to_columns(ROOMS, {"colour": "red"})
    with pytest.raises(PersistenceError):
        to_columns("reviews", {})


class InterleavingPersistence(SqlPersistence):
    """Runs ``competitor`` after the overlap check has passed, before the insert."""

    def __init__(self, session, competitor):
        super().__init__(session)
        self._competitor = competitor

    def _reject_overlap(self, values):
        super()._reject_overlap(values)
        self._competitor()


def test_concurrent_writer_cannot_slip_between_check_and_insert(sql_store):
    room = sql_store.add_room({"name": "Alpha", "capacity": 4})
    # fail fast instead of waiting out the busy timeout
    other_engine = create_engine(engine.url, connect_args={"check_same_thread": False, "timeout": 0})
    outcomes = []

    def competing_insert():
        with Session(other_engine) as other:
            competitor = ReservationStore.load(SqlPersistence(other))
            try:
                outcomes.append(competitor.add_reservation(reservation_payload(room.id, "09:30", "10:30"), ACTOR))
            except StoreUnavailable as exc:
                outcomes.append(exc)

    session = SessionLocal()
    try:
        writer = ReservationStore.load(InterleavingPersistence(session, competing_insert))
        created = writer.add_reservation(reservation_payload(room.id, "09:00", "10:00"), ACTOR)
    finally:
        session.close()
        other_engine.dispose()

    assert created is not None
    [competitor_outcome] = outcomes
    assert isinstance(competitor_outcome, StoreUnavailable)

    session, reloaded = fresh_store()
    try:
        rows = session.execute(select(Reserva.hora_inicio, Reserva.hora_fim)).all()
        assert [tuple(row) for row in rows] == [("09:00", "10:00")]
        assert [r.id for r in reloaded.reservations] == [created.id]
    finally:
        session.close()
