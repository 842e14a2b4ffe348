"""Database tables / schema"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from naval_combat.core.clock import utc_now
from naval_combat.core.shared_types import Status


class Base(DeclarativeBase):
    type_annotation_map = {datetime: DateTime(timezone=True)}


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(default=Status.OPEN.value)
    player1: Mapped[str]
    player2: Mapped[Optional[str]]
    current_turn: Mapped[Optional[str]]
    winner: Mapped[Optional[str]]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    started_at: Mapped[Optional[datetime]]
    finished_at: Mapped[Optional[datetime]]
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)

    boards: Mapped[list["DBBoard"]] = relationship(
        back_populates="game", cascade="all, delete-orphan", order_by="DBBoard.id"
    )
    moves: Mapped[list["DBMove"]] = relationship(
        back_populates="game", cascade="all, delete-orphan", order_by="DBMove.turn_index"
    )


class DBBoard(Base):
    __tablename__ = "boards"
    __table_args__ = (UniqueConstraint("game_id", "user"),)
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[UUID] = mapped_column(ForeignKey("games.id"))
    user: Mapped[str]
    width: Mapped[int]
    height: Mapped[int]
    # list of ships: {"type", "size", "cells", "hits", "sunk"} with cells/hits as [x, y] pairs
    fleet: Mapped[list[dict]] = mapped_column(JSON, default=list)
    placed_at: Mapped[Optional[datetime]]

    game: Mapped[DBGame] = relationship(back_populates="boards")


class DBMove(Base):
    __tablename__ = "moves"
    __table_args__ = (UniqueConstraint("game_id", "turn_index"),)
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[UUID] = mapped_column(ForeignKey("games.id"))
    attacker: Mapped[str]
    x: Mapped[int]
    y: Mapped[int]
    result: Mapped[str]
    turn_index: Mapped[int]
    created_at: Mapped[datetime]

    game: Mapped[DBGame] = relationship(back_populates="moves")


class DBUserStats(Base):
    __tablename__ = "user_stats"
    user: Mapped[str] = mapped_column(primary_key=True)
    points: Mapped[int] = mapped_column(default=0)
    wins: Mapped[int] = mapped_column(default=0)
    losses: Mapped[int] = mapped_column(default=0)
    hit_count_total: Mapped[int] = mapped_column(default=0)
    games_played: Mapped[int] = mapped_column(default=0)


class DBRankingSnapshot(Base):
    __tablename__ = "ranking_snapshots"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user: Mapped[str] = mapped_column(index=True)
    points: Mapped[int]
    wins: Mapped[int]
    losses: Mapped[int]
    timestamp: Mapped[datetime]
