"""
Scoring rules: turn a finished game into point changes and ranking snapshots.

Holds no state of its own. UserStats values are mutated in place and one RankingSnapshot per touched user is returned,
the caller persists both.

Points
------
* win: 20 + own ships still afloat
* loss: 5 if the loser landed at least 5 hits, else 0
* forfeit (surrender / timeout): loser loses 10, never below 0
"""

from datetime import datetime
from typing import Optional

from naval_combat.core.models import RankingSnapshot, UserRef, UserStats

WIN_POINTS = 20
LOSER_HIT_THRESHOLD = 5
LOSER_HIT_BONUS = 5
FORFEIT_PENALTY = 10
RANKING_WINDOW = 1000
STATS_WINDOW = 100


def apply_outcome(
    winner: Optional[UserStats],
    loser: Optional[UserStats],
    remaining_ships: int = 0,
    loser_hit_count: int = 0,
    *,
    now: datetime,
) -> list[RankingSnapshot]:
    """
    Apply the result of a finished game.
    ----

    A forfeit is recognized by its signature rather than a flag: no winner, or remaining_ships == 0 and loser_hit_count == 0.
    A combat win always leaves the winner with at least one ship, so the two cannot be confused.
    """
    if winner is not None and loser is not None and not is_forfeit(remaining_ships, loser_hit_count):
        _award_win(winner, remaining_ships)
        _award_loss(loser, loser_hit_count)
    elif loser is not None:
        _penalize_forfeit(loser, loser_hit_count)

    if winner is not None:
        winner.games_played += 1
        winner.wins += 1
    if loser is not None:
        loser.games_played += 1
        loser.losses += 1

    return [take_snapshot(stats, now) for stats in (winner, loser) if stats is not None]


def apply_forfeit(winner: Optional[UserStats], forfeiter: UserStats, now: datetime) -> list[RankingSnapshot]:
    """Convenience wrapper: surrender and timeout are both scored through the forfeit signature."""
    return apply_outcome(winner, forfeiter, remaining_ships=0, loser_hit_count=0, now=now)


def is_forfeit(remaining_ships: int, loser_hit_count: int) -> bool:
    return remaining_ships == 0 and loser_hit_count == 0


def take_snapshot(stats: UserStats, now: datetime) -> RankingSnapshot:
    return RankingSnapshot(
        user=stats.user,
        points=stats.points,
        wins=stats.wins,
        losses=stats.losses,
        timestamp=now,
    )


# --- RANKING ---
def ranking_order(snapshots: list[RankingSnapshot]) -> list[RankingSnapshot]:
    """Points first, then wins. Ties go to the most recent activity, not to identity."""
    return sorted(
        snapshots,
        key=lambda snapshot: (snapshot.points, snapshot.wins, snapshot.timestamp),
        reverse=True,
    )


def leaderboard(snapshots: list[RankingSnapshot], limit: int = STATS_WINDOW) -> list[RankingSnapshot]:
    return ranking_order(snapshots)[:limit]


def ranking_position(snapshots: list[RankingSnapshot], user: UserRef, window: int = RANKING_WINDOW) -> int:
    """1-indexed position of the user's most recent snapshot within the top `window` entries. 0 if not in there."""
    own = [snapshot for snapshot in snapshots if snapshot.user == user]
    if not own:
        return 0
    latest = max(own, key=lambda snapshot: snapshot.timestamp)
    return position_of(leaderboard(snapshots, window), latest)


def position_of(ordered: list[RankingSnapshot], snapshot: RankingSnapshot) -> int:
    """1-indexed position of the snapshot in an already ranked list, 0 if missing."""
    for index, candidate in enumerate(ordered):
        if candidate == snapshot:
            return index + 1
    return 0


def ranking_stats(snapshots: list[RankingSnapshot], window: int = STATS_WINDOW) -> dict:
    """Summary shown next to the leaderboard."""
    top = leaderboard(snapshots, window)
    total_points = sum(snapshot.points for snapshot in top)
    return {
        "total_players": len(top),
        "average_points": round(total_points / len(top), 2) if top else 0,
        "top_player": top[0] if top else None,
    }


# -- PRIVATE HELPERS ---
def _award_win(winner: UserStats, remaining_ships: int) -> None:
    winner.points += WIN_POINTS + remaining_ships


def _award_loss(loser: UserStats, hit_count: int) -> None:
    if hit_count >= LOSER_HIT_THRESHOLD:
        loser.points += LOSER_HIT_BONUS
    loser.hit_count_total += hit_count


def _penalize_forfeit(forfeiter: UserStats, hit_count: int) -> None:
    forfeiter.points = max(0, forfeiter.points - FORFEIT_PENALTY)
    forfeiter.hit_count_total += hit_count
