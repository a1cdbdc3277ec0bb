"""SQLAlchemy tables backing the persistence collaborator.

Room and reservation tables keep the localized names used by the hosted
database (``salas``/``reservas``); :mod:`roombook.persistence` translates them
to the in-memory field names.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Sala(Base):
    __tablename__ = "salas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    nome: Mapped[str] = mapped_column(String(100))
    descricao: Mapped[str] = mapped_column(Text, default="")
    capacidade: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    reservas: Mapped[List["Reserva"]] = relationship(back_populates="sala", passive_deletes=True)


class Reserva(Base):
    __tablename__ = "reservas"
    __table_args__ = (Index("ix_reservas_sala_data", "sala_id", "data"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    sala_id: Mapped[str] = mapped_column(ForeignKey("salas.id", ondelete="CASCADE"))
    sala_nome: Mapped[str] = mapped_column(String(100))
    data: Mapped[date] = mapped_column(Date, index=True)
    hora_inicio: Mapped[str] = mapped_column(String(5))
    hora_fim: Mapped[str] = mapped_column(String(5))
    observacao: Mapped[str] = mapped_column(Text, default="")
    usuario_id: Mapped[str] = mapped_column(String(36))
    usuario_nome: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    sala: Mapped[Sala] = relationship(back_populates="reservas")
