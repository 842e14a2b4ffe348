"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    OPEN = "OPEN"
    PLACEMENT = "PLACEMENT"
    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class ShipType(StrEnum):
    CARRIER = "Carrier"
    BATTLESHIP = "Battleship"
    CRUISER = "Cruiser"
    SUBMARINE = "Submarine"
    DESTROYER = "Destroyer"


class AttackResult(StrEnum):
    MISS = "MISS"
    HIT = "HIT"
    SUNK = "SUNK"


class AttackRejection(StrEnum):
    """Reasons an attack is refused before it gets resolved."""

    OUT_OF_BOUNDS = "out of bounds"
    DUPLICATE_CELL = "duplicate cell"
    WRONG_TURN = "wrong turn"
    GAME_NOT_ACTIVE = "game not active"
    NO_OPPONENT = "no opponent"


class EventType(StrEnum):
    STATE_UPDATED = "state.updated"
    MOVE_MADE = "move.made"
    GAME_FINISHED = "game.finished"
    TURN_TIMEOUT = "turn.timeout"
