"""
Events produced after every state transition.

The domain only describes what happened. Delivering the payloads (push, polling endpoint, log) is up to a Notifier
implementation in the service layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from naval_combat.battleship.game import Game, Move
from naval_combat.core.models import UserRef
from naval_combat.core.shared_types import EventType


@dataclass(frozen=True)
class GameEvent:
    type: EventType
    game_id: UUID
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Plain JSON-friendly dict, keys as clients expect them."""
        return {
            "type": self.type.value,
            "gameId": str(self.game_id),
            **self.data,
            "timestamp": self.timestamp.isoformat(),
        }


def state_updated(game: Game, now: datetime) -> GameEvent:
    return GameEvent(
        type=EventType.STATE_UPDATED,
        game_id=game.id,
        timestamp=now,
        data={"status": game.status.value, "currentTurn": game.current_turn},
    )


def move_made(game_id: UUID, move: Move) -> GameEvent:
    return GameEvent(
        type=EventType.MOVE_MADE,
        game_id=game_id,
        timestamp=move.created_at,
        data={
            "attacker": move.attacker,
            "x": move.x,
            "y": move.y,
            "result": move.result.value,
        },
    )


def game_finished(game_id: UUID, winner: Optional[UserRef], now: datetime) -> GameEvent:
    return GameEvent(
        type=EventType.GAME_FINISHED,
        game_id=game_id,
        timestamp=now,
        data={"winner": winner},
    )


def turn_timeout(game_id: UUID, timed_out_user: UserRef, now: datetime) -> GameEvent:
    return GameEvent(
        type=EventType.TURN_TIMEOUT,
        game_id=game_id,
        timestamp=now,
        data={"timedOutUser": timed_out_user},
    )
