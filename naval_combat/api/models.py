"""Requests and Response models"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from naval_combat.core.exceptions import InvalidRequestError
from naval_combat.core.shared_types import AttackResult, ShipType, Status

PlayerName = str

# A board must at least fit the largest ship
MIN_BOARD_DIMENSION = 5
MAX_LEADERBOARD_LIMIT = 1000


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_name: PlayerName
    width: Optional[int] = None
    height: Optional[int] = None

    @field_validator(*["width", "height"])
    @classmethod
    def validate_dimension(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        if value < MIN_BOARD_DIMENSION:
            raise InvalidRequestError(
                f"Board dimension must be at least {MIN_BOARD_DIMENSION}, got {value}."
            )
        return value


class JoinGameRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName


class ShipRequest(BaseModel):
    type: str
    size: int
    cells: list[tuple[int, int]]


class PlaceFleetRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName
    fleet: list[ShipRequest]

    @field_validator("fleet")
    @classmethod
    def validate_fleet(cls, value: list[ShipRequest]) -> list[ShipRequest]:
        if not value:
            raise InvalidRequestError("No fleet provided.")
        return value


class AttackRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName
    x: int
    y: int


class SurrenderRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName


class CancelGameRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName


class GetGameRequest(BaseModel):
    game_id: UUID
    player_name: PlayerName


class LeaderboardRequest(BaseModel):
    limit: int = 100

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if not 1 <= value <= MAX_LEADERBOARD_LIMIT:
            raise InvalidRequestError(
                f"Leaderboard limit must be between 1 and {MAX_LEADERBOARD_LIMIT}, got {value}."
            )
        return value


class RankingRequest(BaseModel):
    player_name: PlayerName


# --- RESPONSE MODELS ---
class ShipResponse(BaseModel):
    type: ShipType
    size: int
    # only revealed on the player's own board
    cells: Optional[list[tuple[int, int]]] = None
    hits: list[tuple[int, int]]
    sunk: bool


class BoardResponse(BaseModel):
    user: PlayerName
    width: int
    height: int
    placed: bool
    fleet: list[ShipResponse]


class MoveResponse(BaseModel):
    attacker: PlayerName
    x: int
    y: int
    result: AttackResult
    turn_index: int
    created_at: datetime


class GameResponse(BaseModel):
    game_id: UUID
    status: Status
    players: list[PlayerName]
    current_turn: Optional[PlayerName]
    winner: Optional[PlayerName]
    remaining_time: int
    # countdown is about to run out for the turn holder
    turn_warning: bool = False
    own_board: Optional[BoardResponse]
    opponent_board: Optional[BoardResponse]
    moves: list[MoveResponse]


class AttackResponse(BaseModel):
    game_id: UUID
    result: AttackResult
    sunk_ship: Optional[ShipType]
    game_over: bool
    winner: Optional[PlayerName]
    current_turn: Optional[PlayerName]


class RankingEntry(BaseModel):
    user: PlayerName
    points: int
    wins: int
    losses: int
    timestamp: datetime


class LeaderboardResponse(BaseModel):
    entries: list[RankingEntry]


class RankingResponse(BaseModel):
    player_name: PlayerName
    position: int
    points: int
    wins: int
    losses: int
    games_played: int
    win_rate: float


class RankingStatsResponse(BaseModel):
    total_players: int
    average_points: float
    top_player: Optional[RankingEntry]
