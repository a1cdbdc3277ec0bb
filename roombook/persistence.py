"""SQLAlchemy-backed persistence collaborator for the reservation store.

The store speaks in its own field names (``room_id``, ``start_time`` ...); the
tables use the localized column names of the hosted database. The mapping
between the two lives here and nowhere else.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError, ReservationConflict
from .intervals import TimeInterval
from .models import Reserva, Sala
from .schemas import Reservation, Room

ROOMS = "rooms"
RESERVATIONS = "reservations"

ROOM_COLUMNS: Dict[str, str] = {
    "id": "id",
    "name": "nome",
    "description": "descricao",
    "capacity": "capacidade",
    "created_at": "created_at",
}

RESERVATION_COLUMNS: Dict[str, str] = {
    "id": "id",
    "room_id": "sala_id",
    "room_name": "sala_nome",
    "date": "data",
    "start_time": "hora_inicio",
    "end_time": "hora_fim",
    "observation": "observacao",
    "user_id": "usuario_id",
    "user_name": "usuario_nome",
    "created_at": "created_at",
}

_TABLES = {
    ROOMS: (Sala, ROOM_COLUMNS),
    RESERVATIONS: (Reserva, RESERVATION_COLUMNS),
}


class Persistence(Protocol):
    def list_rooms(self) -> List[Room]: ...

    def list_reservations(self) -> List[Reservation]: ...

    def insert(self, table: str, record: Dict[str, Any]) -> None: ...

    def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, table: str, record_id: str) -> None: ...

    def atomic(self) -> Any: ...


def to_columns(table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    _, columns = _table(table)
    unknown = set(fields) - set(columns)
    if unknown:
        raise PersistenceError(f"Unknown {table} fields: {', '.join(sorted(unknown))}")
    return {columns[key]: value for key, value in fields.items()}


def _table(name: str):
    try:
        return _TABLES[name]
    except KeyError as exc:
        raise PersistenceError(f"Unknown table {name!r}") from exc


def _room_from_row(row: Sala) -> Room:
    return Room(
        id=row.id,
        name=row.nome,
        description=row.descricao or "",
        capacity=row.capacidade,
        created_at=row.created_at,
    )


def _reservation_from_row(row: Reserva, room_name: str) -> Reservation:
    return Reservation(
        id=row.id,
        room_id=row.sala_id,
        room_name=room_name,
        date=row.data,
        start_time=row.hora_inicio,
        end_time=row.hora_fim,
        observation=row.observacao or "",
        user_id=row.usuario_id,
        user_name=row.usuario_nome,
        created_at=row.created_at,
    )


class SqlPersistence:
    """Persistence collaborator over a SQLAlchemy session.

    Every operation runs in a transaction. Operations issued inside
    :meth:`atomic` share the enclosing transaction and are committed together.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield
            if outermost:
                self._session.commit()
        except SQLAlchemyError as exc:
            if outermost:
                self._session.rollback()
            raise PersistenceError(str(exc)) from exc
        except Exception:
            if outermost:
                self._session.rollback()
            raise
        finally:
            self._depth -= 1

    def list_rooms(self) -> List[Room]:
        try:
            rows = self._session.scalars(select(Sala).order_by(Sala.created_at, Sala.id)).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        return [_room_from_row(row) for row in rows]

    def list_reservations(self) -> List[Reservation]:
        query = (
            select(Reserva, func.coalesce(Sala.nome, Reserva.sala_nome))
            .outerjoin(Sala, Sala.id == Reserva.sala_id)
            .order_by(Reserva.created_at, Reserva.id)
        )
        try:
            rows = self._session.execute(query).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        return [_reservation_from_row(row, room_name) for row, room_name in rows]

    def insert(self, table: str, record: Dict[str, Any]) -> None:
        model, _ = _table(table)
        values = to_columns(table, record)
        with self.atomic():
            if table == RESERVATIONS:
                self._reject_overlap(values)
            self._session.add(model(**values))
            self._session.flush()

    def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> None:
        model, _ = _table(table)
        values = to_columns(table, fields)
        with self.atomic():
            row = self._session.get(model, record_id)
            if row is None:
                raise PersistenceError(f"{table} record {record_id} does not exist")
            for column, value in values.items():
                setattr(row, column, value)
            self._session.flush()

    def delete(self, table: str, record_id: str) -> None:
        model, _ = _table(table)
        with self.atomic():
            if table == ROOMS:
                self._session.execute(delete(Reserva).where(Reserva.sala_id == record_id))
            row = self._session.get(model, record_id)
            if row is not None:
                self._session.delete(row)
            self._session.flush()

    def _lock_room(self, room_id: str) -> None:
        """Take the room's write lock for the rest of the transaction.

        A no-op update locks the ``salas`` row on PostgreSQL and opens the write
        transaction on SQLite, so a concurrent insert for the same room waits for
        our commit instead of slipping in between the overlap check and the insert.
        """

        self._session.execute(
            update(Sala)
            .where(Sala.id == room_id)
            .values(nome=Sala.nome)
            .execution_options(synchronize_session=False)
        )

    def _reject_overlap(self, values: Dict[str, Any]) -> None:
        self._lock_room(values["sala_id"])
        candidate = TimeInterval.from_strings(values["hora_inicio"], values["hora_fim"])
        existing = self._session.scalars(
            select(Reserva).where(Reserva.sala_id == values["sala_id"], Reserva.data == values["data"])
        ).all()
        for row in existing:
            if candidate.overlaps(TimeInterval.from_strings(row.hora_inicio, row.hora_fim)):
                raise ReservationConflict(
                    f"Room {values['sala_id']} is already reserved on {values['data']} "
                    f"from {row.hora_inicio} to {row.hora_fim}"
                )
