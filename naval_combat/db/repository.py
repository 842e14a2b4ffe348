"""Protocol repositories (implemented for SQLAlchemy in sql_repository.py, mocked with dictionaries in the tests)"""

from typing import Protocol
from uuid import UUID

from naval_combat.core.models import GameModel, RankingSnapshot, UserRef, UserStats


class GameRepository(Protocol):
    """
    Persistence layer orchestration for games, their boards and moves.

    Writes are part of a unit of work that only becomes visible to other sessions on `commit`.
    Storage failures surface as RepositoryError.
    """

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel) -> GameModel:
        """Store new game and return the stored data."""
        ...

    def update_game(self, game: GameModel) -> GameModel | None:
        """Add new info to existing record. Moves are append-only."""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...

    def list_game_ids(self, status: str) -> list[UUID]:
        """IDs of all games in the given status."""
        ...

    def commit(self) -> None:
        """Make every write since the last commit durable, all at once."""
        ...

    def rollback(self) -> None:
        """Discard every write since the last commit."""
        ...


class ScoreRepository(Protocol):
    """Persistence of user statistics and the ranking history"""

    def get_stats(self, user: UserRef) -> UserStats:
        """Stats of the user. A user that never finished a game starts from zero."""
        ...

    def save_stats(self, stats: UserStats) -> UserStats:
        ...

    def add_snapshots(self, snapshots: list[RankingSnapshot]) -> None:
        """Snapshots are immutable history: only ever appended."""
        ...

    def latest_rankings(self, limit: int) -> list[RankingSnapshot]:
        """Snapshots ordered by points, wins and recency (all descending)."""
        ...

    def snapshots_for_user(self, user: UserRef) -> list[RankingSnapshot]:
        """Most recent first."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...
