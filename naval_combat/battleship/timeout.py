"""
Turn time budget rules.

The domain does not own a clock: `now` and the budget are always passed in, so the same answers come out in tests
and in production. The periodic sweep that acts on these rules lives in the service layer (naval_combat/services/timeout_monitor.py).
"""

from datetime import datetime, timedelta

from naval_combat.battleship.game import Game
from naval_combat.core.shared_types import Status

DEFAULT_TURN_TIMEOUT = timedelta(seconds=60)
DEFAULT_WARNING = timedelta(seconds=10)


def is_turn_expired(game: Game, now: datetime, timeout_budget: timedelta = DEFAULT_TURN_TIMEOUT) -> bool:
    """The turn holder has been silent for longer than the budget (measured from the last move, or the start of play)."""
    if game.status != Status.IN_PROGRESS:
        return False
    last_activity = game.last_activity_at
    if last_activity is None:
        return False
    return last_activity < now - timeout_budget


def remaining_turn_time(game: Game, now: datetime, timeout_budget: timedelta = DEFAULT_TURN_TIMEOUT) -> int:
    """
    Seconds left for the current turn, for UI countdowns only (enforcement is the sweep's job).
    ----

    * full budget if nobody attacked yet
    * 0 if the game is not being played
    * never negative
    """
    budget_seconds = int(timeout_budget.total_seconds())
    if game.status != Status.IN_PROGRESS:
        return 0

    last_move = game.last_move
    if last_move is None:
        return budget_seconds

    elapsed = int((now - last_move.created_at).total_seconds())
    return max(0, budget_seconds - elapsed)


def is_turn_about_to_timeout(
    game: Game,
    now: datetime,
    timeout_budget: timedelta = DEFAULT_TURN_TIMEOUT,
    warning: timedelta = DEFAULT_WARNING,
) -> bool:
    remaining = remaining_turn_time(game, now, timeout_budget)
    return 0 < remaining <= int(warning.total_seconds())
