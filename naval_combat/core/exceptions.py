"""
Custom exceptions shared by all layers.

Every exception derives from GameError, so a caller (router, CLI, test) can catch a single type
and render the message to the acting player. None of these are fatal: they report a rejected operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from naval_combat.core.shared_types import AttackRejection

if TYPE_CHECKING:
    from naval_combat.battleship.placement import Violation


class GameError(Exception):
    """Top level exception for anything that went wrong while playing a game."""


class GameStateError(GameError):
    """Requested transition is not allowed in the current game status."""


class InvalidPlacementError(GameError):
    """The submitted fleet breaks composition, bounds or overlap rules. Nothing was placed."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = violations
        details = "; ".join(violation.message for violation in violations)
        super().__init__(f"Invalid fleet placement: {details}")


class InvalidAttackError(GameError):
    """The attack was rejected before resolution. No move was recorded."""

    def __init__(self, reason: AttackRejection, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or f"Attack rejected: {reason}")


class NotAPlayerError(GameError):
    """User is not registered as one of the two players of the game."""


class GameNotFoundError(GameError):
    """No game stored under the requested ID."""


class RepositoryError(GameError):
    """Persistence layer could not complete the request."""


class InvalidRequestError(GameError):
    """Incoming request data could not be parsed."""
