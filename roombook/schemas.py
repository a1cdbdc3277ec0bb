"""Pydantic schemas shared by the core and the services."""
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from .intervals import TimeInterval, to_minutes

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def as_date(value: dt.date | str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(value)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class Actor(BaseModel):
    """The authenticated user on whose behalf an operation runs."""

    id: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return _strip(value)


class UserRead(Actor):
    created_at: dt.datetime


class RoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    capacity: int = Field(..., ge=1, le=1000)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1, le=1000)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class Room(RoomBase):
    id: str
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class ReservationBase(BaseModel):
    room_id: str = Field(..., min_length=1)
    date: dt.date
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    observation: str = ""

    @field_validator("observation", mode="before")
    @classmethod
    def strip_observation(cls, value):
        return _strip(value)

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, value: str, info: ValidationInfo) -> str:
        start = info.data.get("start_time")
        if start is not None and to_minutes(value) <= to_minutes(start):
            raise ValueError("end_time must be later than start_time")
        return value

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.from_strings(self.start_time, self.end_time)


class ReservationCreate(ReservationBase):
    @field_validator("date")
    @classmethod
    def _not_in_past(cls, value: dt.date) -> dt.date:
        if value < dt.date.today():
            raise ValueError("Reservations cannot be made for past dates")
        return value


class Reservation(ReservationBase):
    id: str
    room_name: str
    user_id: str
    user_name: str
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class ConflictCheck(BaseModel):
    room_id: str
    date: dt.date
    start_time: str
    end_time: str
    conflict: bool
    conflicting_ids: List[str] = []


class CellKind(str, Enum):
    EMPTY = "empty"
    CONTINUATION = "continuation"
    START = "start"


class AgendaCell(BaseModel):
    room_id: str
    slot: str
    kind: CellKind = CellKind.EMPTY
    reservation: Optional[Reservation] = None
    span: Optional[int] = None


class AgendaRow(BaseModel):
    slot: str
    cells: List[AgendaCell]


class AgendaAnomaly(BaseModel):
    """A reservation hidden because another one already starts in the same cell."""

    room_id: str
    slot: str
    shown_id: str
    hidden_id: str


class AgendaGrid(BaseModel):
    date: Optional[dt.date] = None
    slots: List[str]
    rooms: List[Room]
    rows: List[AgendaRow]
    anomalies: List[AgendaAnomaly] = []

    def cell(self, room_id: str, slot: str) -> AgendaCell:
        for row in self.rows:
            if row.slot == slot:
                for cell in row.cells:
                    if cell.room_id == room_id:
                        return cell
        raise KeyError((room_id, slot))


class TimeOptions(BaseModel):
    start_times: List[str]
    end_times: List[str]
