"""Mock dependencies of the service layer, shared by the service and timeout monitor tests."""

import copy
from datetime import datetime, timezone
from typing import Generator
from uuid import UUID

import pytest

from naval_combat.api.models import CreateGameRequest, JoinGameRequest, PlaceFleetRequest, ShipRequest
from naval_combat.battleship.scoring import ranking_order
from naval_combat.core.clock import ManualClock
from naval_combat.core.models import GameModel, RankingSnapshot, UserRef, UserStats
from naval_combat.services.battleship_service import BattleshipService
from naval_combat.services.locks import GameLocks
from naval_combat.services.notifier import RecordingNotifier

START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

FLEET_REQUEST = [
    ShipRequest(type="Carrier", size=5, cells=[(x, 0) for x in range(5)]),
    ShipRequest(type="Battleship", size=4, cells=[(x, 1) for x in range(4)]),
    ShipRequest(type="Cruiser", size=3, cells=[(x, 2) for x in range(3)]),
    ShipRequest(type="Cruiser", size=3, cells=[(x, 3) for x in range(3)]),
    ShipRequest(type="Submarine", size=3, cells=[(x, 4) for x in range(3)]),
    ShipRequest(type="Destroyer", size=2, cells=[(x, 5) for x in range(2)]),
]


# --- MOCK DEPENDENCIES ----
class MockGameRepository:
    """Mock the GameRepository using a dictionary of game models. `rollback` restores the state of the last `commit`."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}
        self._committed: dict[UUID, GameModel] = {}

    def create_game(self, game: GameModel) -> GameModel:
        """Store new game and return the stored data."""
        self._games[game.id] = copy.deepcopy(game)
        return game

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists. A copy, like a fresh database read."""
        game = self._games.get(game_id)
        return copy.deepcopy(game) if game else None

    def update_game(self, game: GameModel) -> GameModel | None:
        """Add new info to existing record."""
        if game.id not in self._games:
            return None
        self._games[game.id] = copy.deepcopy(game)
        return game

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        return self._games.pop(game_id, None)

    def list_game_ids(self, status: str) -> list[UUID]:
        return [game_id for game_id, game in self._games.items() if game.status == status]

    def commit(self) -> None:
        self._committed = copy.deepcopy(self._games)

    def rollback(self) -> None:
        self._games = copy.deepcopy(self._committed)

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()
        self._committed.clear()


class MockScoreRepository:
    """Mock the ScoreRepository with a dict of stats and a list of snapshots. Same commit / rollback behaviour as the game mock."""

    def __init__(self) -> None:
        self._stats: dict[UserRef, UserStats] = {}
        self._snapshots: list[RankingSnapshot] = []
        self._committed: tuple[dict[UserRef, UserStats], list[RankingSnapshot]] = ({}, [])

    def get_stats(self, user: UserRef) -> UserStats:
        return copy.copy(self._stats.get(user, UserStats(user=user)))

    def save_stats(self, stats: UserStats) -> UserStats:
        self._stats[stats.user] = copy.copy(stats)
        return stats

    def add_snapshots(self, snapshots: list[RankingSnapshot]) -> None:
        self._snapshots.extend(snapshots)

    def latest_rankings(self, limit: int) -> list[RankingSnapshot]:
        return ranking_order(self._snapshots)[:limit]

    def snapshots_for_user(self, user: UserRef) -> list[RankingSnapshot]:
        own = [snapshot for snapshot in self._snapshots if snapshot.user == user]
        return sorted(own, key=lambda snapshot: snapshot.timestamp, reverse=True)

    def commit(self) -> None:
        self._committed = (copy.deepcopy(self._stats), list(self._snapshots))

    def rollback(self) -> None:
        stats, snapshots = self._committed
        self._stats = copy.deepcopy(stats)
        self._snapshots = list(snapshots)

    def clear(self) -> None:
        self._stats.clear()
        self._snapshots.clear()
        self._committed = ({}, [])


@pytest.fixture
def game_repository() -> Generator[MockGameRepository, None, None]:
    """Ensures to clear the repository between tests"""
    repo = MockGameRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def score_repository() -> Generator[MockScoreRepository, None, None]:
    repo = MockScoreRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def locks() -> GameLocks:
    return GameLocks()


@pytest.fixture
def service(
    game_repository: MockGameRepository,
    score_repository: MockScoreRepository,
    notifier: RecordingNotifier,
    clock: ManualClock,
    locks: GameLocks,
) -> BattleshipService:
    return BattleshipService(game_repository, score_repository, notifier=notifier, clock=clock, locks=locks)


@pytest.fixture
def game_id(service: BattleshipService, notifier: RecordingNotifier) -> UUID:
    """A game in progress between alice and bob (same layout on both boards), alice on turn. No events recorded yet."""
    created = service.create_new_game(CreateGameRequest(player_name="alice"))
    service.join_game(JoinGameRequest(game_id=created.game_id, player_name="bob"))
    for player in ("alice", "bob"):
        service.place_fleet(PlaceFleetRequest(game_id=created.game_id, player_name=player, fleet=FLEET_REQUEST))
    notifier.clear()
    return created.game_id
