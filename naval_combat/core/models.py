"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

# Type aliases to make the models easier to read
UserRef = str
CellPair = tuple[int, int]


@dataclass
class ShipModel:
    type: str
    size: int
    cells: list[CellPair]
    hits: list[CellPair] = field(default_factory=list)
    sunk: bool = False


@dataclass
class BoardModel:
    user: UserRef
    width: int
    height: int
    fleet: list[ShipModel] = field(default_factory=list)
    placed_at: Optional[datetime] = None


@dataclass
class MoveModel:
    attacker: UserRef
    x: int
    y: int
    result: str
    turn_index: int
    created_at: datetime


@dataclass
class GameModel:
    """Transport-safe representation of a naval combat game used between API, Service, DB, and Game layers."""

    id: UUID
    status: str
    player1: UserRef
    player2: Optional[UserRef]
    current_turn: Optional[UserRef]
    winner: Optional[UserRef]
    boards: list[BoardModel]
    moves: list[MoveModel]
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


@dataclass
class UserStats:
    """Score state of a single user. Only the scoring rules mutate it."""

    user: UserRef
    points: int = 0
    wins: int = 0
    losses: int = 0
    hit_count_total: int = 0
    games_played: int = 0

    @property
    def win_rate(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played


@dataclass(frozen=True)
class RankingSnapshot:
    """Immutable record of a user's score state at the moment a game ended for them."""

    user: UserRef
    points: int
    wins: int
    losses: int
    timestamp: datetime
