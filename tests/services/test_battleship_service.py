"""Unit tests for naval_combat/services/battleship_service.py"""

from uuid import UUID, uuid4

import pytest

from naval_combat.api.models import (
    AttackRequest,
    AttackResponse,
    CancelGameRequest,
    CreateGameRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    LeaderboardRequest,
    PlaceFleetRequest,
    RankingRequest,
    ShipRequest,
    SurrenderRequest,
)
from naval_combat.battleship.game import Game
from naval_combat.core.clock import ManualClock
from naval_combat.core.exceptions import (
    GameError,
    GameNotFoundError,
    GameStateError,
    InvalidAttackError,
    InvalidPlacementError,
    NotAPlayerError,
    RepositoryError,
)
from naval_combat.core.models import UserStats
from naval_combat.core.shared_types import AttackRejection, AttackResult, ShipType, Status
from naval_combat.db.repository import GameRepository, ScoreRepository
from naval_combat.services.battleship_service import BattleshipService
from naval_combat.services.locks import GameLocks
from naval_combat.services.notifier import RecordingNotifier


def stored_game(repository: GameRepository, game_id: UUID) -> Game:
    model = repository.get_game(game_id)
    assert model is not None
    return Game.from_model(model)


def sink_fleet_of(service: BattleshipService, repository: GameRepository, game_id: UUID, attacker: str, defender: str) -> AttackResponse:
    """Hit every ship cell of the defender. Hits keep the turn, so one player can do it in a row."""
    cells = [cell for ship in stored_game(repository, game_id).boards[defender].fleet for cell in ship.cells]
    response = None
    for cell in cells:
        response = service.attack(AttackRequest(game_id=game_id, player_name=attacker, x=cell.x, y=cell.y))
    assert response is not None
    return response


# --- SERVICE - CREATE / JOIN / PLACE ----
def test_create_a_new_game(service: BattleshipService, game_repository: GameRepository) -> None:
    """Check that new game is created, persisted in repo, and return has the appropriate information."""
    response = service.create_new_game(CreateGameRequest(player_name="alice"))

    # Check response structure
    assert isinstance(response, GameResponse)
    assert isinstance(response.game_id, UUID)

    # Check response data
    assert response.status == Status.OPEN
    assert response.players == ["alice"]
    assert response.current_turn is None
    assert response.own_board is not None and not response.own_board.placed
    assert response.opponent_board is None

    # Check persisted data
    stored = game_repository.get_game(response.game_id)
    assert stored is not None
    assert stored.status == Status.OPEN.value
    assert stored.player1 == "alice"
    assert stored.moves == []


def test_create_with_custom_board(service: BattleshipService, game_repository: GameRepository) -> None:
    response = service.create_new_game(CreateGameRequest(player_name="alice", width=12, height=8))
    assert response.own_board is not None
    assert (response.own_board.width, response.own_board.height) == (12, 8)


def test_second_player_joins_game(
    service: BattleshipService, game_repository: GameRepository, notifier: RecordingNotifier
) -> None:
    created = service.create_new_game(CreateGameRequest(player_name="alice"))

    response = service.join_game(JoinGameRequest(game_id=created.game_id, player_name="bob"))

    assert response.status == Status.PLACEMENT
    assert response.players == ["alice", "bob"]
    assert stored_game(game_repository, created.game_id).player2 == "bob"
    assert notifier.types() == ["state.updated"]


def test_cannot_join_unknown_game(service: BattleshipService) -> None:
    """A GameError should be raised if attempting to join a not yet existing game."""
    with pytest.raises(GameNotFoundError):
        service.join_game(JoinGameRequest(game_id=uuid4(), player_name="bob"))


def test_both_placements_start_the_game(service: BattleshipService, game_id: UUID, game_repository: GameRepository) -> None:
    game = stored_game(game_repository, game_id)
    assert game.status == Status.IN_PROGRESS
    assert game.current_turn == "alice"
    assert game.started_at is not None
    assert all(board.is_placed for board in game.boards.values())


def test_invalid_fleet_is_rejected(service: BattleshipService, game_repository: GameRepository) -> None:
    created = service.create_new_game(CreateGameRequest(player_name="alice"))
    service.join_game(JoinGameRequest(game_id=created.game_id, player_name="bob"))
    fleet = [
        ShipRequest(type="Carrier", size=5, cells=[(x, 0) for x in range(5)]),
        ShipRequest(type="Carrier", size=5, cells=[(x, 1) for x in range(5)]),
    ]

    with pytest.raises(InvalidPlacementError) as exc_info:
        service.place_fleet(PlaceFleetRequest(game_id=created.game_id, player_name="alice", fleet=fleet))

    assert "expected 1 Carrier(s), found 2" in str(exc_info.value)
    board = stored_game(game_repository, created.game_id).boards["alice"]
    assert board.placed_at is None


# --- SERVICE - ATTACK ----
def test_attack_miss(service: BattleshipService, game_id: UUID, notifier: RecordingNotifier) -> None:
    response = service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))

    assert isinstance(response, AttackResponse)
    assert response.result == AttackResult.MISS
    assert response.sunk_ship is None
    assert not response.game_over
    assert response.current_turn == "bob"
    assert notifier.types() == ["move.made", "state.updated"]


def test_attack_sinks_destroyer(service: BattleshipService, game_id: UUID) -> None:
    first = service.attack(AttackRequest(game_id=game_id, player_name="alice", x=0, y=5))
    second = service.attack(AttackRequest(game_id=game_id, player_name="alice", x=1, y=5))

    assert first.result == AttackResult.HIT
    assert first.sunk_ship is None
    assert second.result == AttackResult.SUNK
    assert second.sunk_ship == ShipType.DESTROYER
    assert second.current_turn == "alice"


def test_rejected_attack_is_not_stored(service: BattleshipService, game_id: UUID, game_repository: GameRepository, notifier: RecordingNotifier) -> None:
    with pytest.raises(InvalidAttackError) as exc_info:
        service.attack(AttackRequest(game_id=game_id, player_name="bob", x=0, y=0))

    assert exc_info.value.reason == AttackRejection.WRONG_TURN
    assert stored_game(game_repository, game_id).moves == []
    assert notifier.events == []


def test_duplicate_attack(service: BattleshipService, game_id: UUID) -> None:
    service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))
    with pytest.raises(InvalidAttackError) as exc_info:
        service.attack(AttackRequest(game_id=game_id, player_name="bob", x=9, y=9))
    assert exc_info.value.reason == AttackRejection.DUPLICATE_CELL


def test_attack_by_stranger(service: BattleshipService, game_id: UUID) -> None:
    with pytest.raises(NotAPlayerError):
        service.attack(AttackRequest(game_id=game_id, player_name="mallory", x=0, y=0))


def test_winning_attack_scores_both_players(
    service: BattleshipService,
    game_id: UUID,
    game_repository: GameRepository,
    score_repository: ScoreRepository,
    notifier: RecordingNotifier,
) -> None:
    response = sink_fleet_of(service, game_repository, game_id, attacker="alice", defender="bob")

    assert response.game_over
    assert response.winner == "alice"
    assert response.current_turn is None
    assert notifier.types()[-3:] == ["move.made", "game.finished", "state.updated"]

    game = stored_game(game_repository, game_id)
    assert game.status == Status.FINISHED
    assert game.finished_at is not None

    alice = score_repository.get_stats("alice")
    bob = score_repository.get_stats("bob")
    assert (alice.points, alice.wins, alice.games_played) == (26, 1, 1)
    assert (bob.points, bob.losses, bob.games_played) == (0, 1, 1)
    assert [snapshot.user for snapshot in score_repository.latest_rankings(10)] == ["alice", "bob"]


def test_attack_after_game_over(service: BattleshipService, game_id: UUID, game_repository: GameRepository) -> None:
    sink_fleet_of(service, game_repository, game_id, attacker="alice", defender="bob")
    with pytest.raises(InvalidAttackError) as exc_info:
        service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))
    assert exc_info.value.reason == AttackRejection.GAME_NOT_ACTIVE


class StatsWriteFails:
    """Score repository that cannot store stats, everything else goes to the real one."""

    def __init__(self, inner: ScoreRepository) -> None:
        self.inner = inner

    def __getattr__(self, name: str) -> object:
        return getattr(self.inner, name)

    def save_stats(self, stats: UserStats) -> UserStats:
        raise RepositoryError("database is locked")


def test_failed_scoring_keeps_game_in_progress(
    service: BattleshipService,
    game_id: UUID,
    game_repository: GameRepository,
    score_repository: ScoreRepository,
    notifier: RecordingNotifier,
    clock: ManualClock,
    locks: GameLocks,
) -> None:
    """The winning attack and its scoring are stored together or not at all."""
    failing = BattleshipService(
        game_repository, StatsWriteFails(score_repository), notifier=notifier, clock=clock, locks=locks
    )

    with pytest.raises(RepositoryError):
        sink_fleet_of(failing, game_repository, game_id, attacker="alice", defender="bob")

    game = stored_game(game_repository, game_id)
    assert game.status == Status.IN_PROGRESS
    assert game.winner is None
    # 20 ship cells, the last hit was rolled back
    assert len(game.moves) == 19
    assert score_repository.get_stats("alice") == UserStats(user="alice")
    assert score_repository.latest_rankings(10) == []
    assert "game.finished" not in notifier.types()

    # once storage works again the same attack finishes the game
    response = service.attack(AttackRequest(game_id=game_id, player_name="alice", x=1, y=5))
    assert response.game_over
    assert score_repository.get_stats("alice").points == 26


def test_failed_scoring_keeps_surrender_undone(
    game_id: UUID,
    game_repository: GameRepository,
    score_repository: ScoreRepository,
    notifier: RecordingNotifier,
    clock: ManualClock,
    locks: GameLocks,
) -> None:
    failing = BattleshipService(
        game_repository, StatsWriteFails(score_repository), notifier=notifier, clock=clock, locks=locks
    )

    with pytest.raises(RepositoryError):
        failing.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))

    assert stored_game(game_repository, game_id).status == Status.IN_PROGRESS
    assert notifier.events == []


class BrokenNotifier:
    def publish(self, event: object) -> None:
        raise ConnectionError("push channel down")


def test_notifier_failure_does_not_undo_attack(
    game_repository: GameRepository, score_repository: ScoreRepository, clock: ManualClock, game_id: UUID
) -> None:
    service = BattleshipService(game_repository, score_repository, notifier=BrokenNotifier(), clock=clock)

    response = service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))

    assert response.result == AttackResult.MISS
    assert len(stored_game(game_repository, game_id).moves) == 1


# --- SERVICE - SURRENDER / CANCEL ----
def test_surrender_is_scored_as_forfeit(
    service: BattleshipService,
    game_id: UUID,
    score_repository: ScoreRepository,
    notifier: RecordingNotifier,
) -> None:
    score_repository.save_stats(UserStats(user="bob", points=5))
    score_repository.save_stats(UserStats(user="alice", points=12))

    response = service.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))

    assert response.status == Status.FINISHED
    assert response.winner == "alice"
    assert notifier.types() == ["game.finished"]

    bob = score_repository.get_stats("bob")
    alice = score_repository.get_stats("alice")
    assert (bob.points, bob.losses, bob.games_played) == (0, 1, 1)
    assert (alice.points, alice.wins, alice.games_played) == (12, 1, 1)


def test_cannot_surrender_twice(service: BattleshipService, game_id: UUID) -> None:
    service.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))
    with pytest.raises(GameStateError):
        service.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))


def test_cancel_game(service: BattleshipService, score_repository: ScoreRepository) -> None:
    created = service.create_new_game(CreateGameRequest(player_name="alice"))

    response = service.cancel_game(CancelGameRequest(game_id=created.game_id, player_name="alice"))

    assert response.status == Status.CANCELLED
    assert response.winner is None
    assert score_repository.snapshots_for_user("alice") == []


# --- SERVICE - GET / DELETE ----
def test_get_game_hides_opponent_ships(service: BattleshipService, game_id: UUID) -> None:
    service.attack(AttackRequest(game_id=game_id, player_name="alice", x=0, y=0))

    response = service.get_game_state(GetGameRequest(game_id=game_id, player_name="alice"))

    assert response.own_board is not None and response.opponent_board is not None
    assert all(ship.cells is not None for ship in response.own_board.fleet)
    assert all(ship.cells is None for ship in response.opponent_board.fleet)
    # hits on the opponent are public
    assert response.opponent_board.fleet[0].hits == [(0, 0)]
    assert [move.turn_index for move in response.moves] == [1]


def test_get_game_reveals_ships_when_finished(service: BattleshipService, game_id: UUID) -> None:
    service.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))
    response = service.get_game_state(GetGameRequest(game_id=game_id, player_name="alice"))
    assert response.opponent_board is not None
    assert all(ship.cells is not None for ship in response.opponent_board.fleet)


def test_remaining_time(service: BattleshipService, game_id: UUID, clock: ManualClock) -> None:
    service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))
    clock.advance(15)
    response = service.get_game_state(GetGameRequest(game_id=game_id, player_name="bob"))
    assert response.remaining_time == 45
    assert not response.turn_warning

    clock.advance(40)
    response = service.get_game_state(GetGameRequest(game_id=game_id, player_name="bob"))
    assert response.remaining_time == 5
    assert response.turn_warning


def test_get_game_by_stranger(service: BattleshipService, game_id: UUID) -> None:
    with pytest.raises(NotAPlayerError):
        service.get_game_state(GetGameRequest(game_id=game_id, player_name="mallory"))


def test_attempt_to_find_unknown_game(service: BattleshipService) -> None:
    """Ensure exception is raised when trying to look up a game with an unknown ID."""
    with pytest.raises(GameError):
        service.get_game_state(GetGameRequest(game_id=uuid4(), player_name="alice"))


def test_delete_game(service: BattleshipService, game_id: UUID, game_repository: GameRepository) -> None:
    service.delete_game(game_id)
    assert game_repository.get_game(game_id) is None


# --- SERVICE - RANKING ----
def test_leaderboard_and_ranking(
    service: BattleshipService, game_id: UUID, game_repository: GameRepository, clock: ManualClock
) -> None:
    sink_fleet_of(service, game_repository, game_id, attacker="alice", defender="bob")

    leaderboard = service.leaderboard(LeaderboardRequest(limit=10))
    assert [(entry.user, entry.points) for entry in leaderboard.entries] == [("alice", 26), ("bob", 0)]

    alice = service.ranking(RankingRequest(player_name="alice"))
    assert alice.position == 1
    assert alice.win_rate == 1.0

    bob = service.ranking(RankingRequest(player_name="bob"))
    assert bob.position == 2
    assert bob.losses == 1

    nobody = service.ranking(RankingRequest(player_name="carol"))
    assert nobody.position == 0
    assert nobody.games_played == 0

    stats = service.ranking_stats()
    assert stats.total_players == 2
    assert stats.average_points == 13
    assert stats.top_player is not None and stats.top_player.user == "alice"


# --- SERVICE - LOCKS ----
def test_ended_games_release_their_lock(service: BattleshipService, game_id: UUID, locks: GameLocks) -> None:
    service.attack(AttackRequest(game_id=game_id, player_name="alice", x=9, y=9))
    assert game_id in locks

    service.surrender(SurrenderRequest(game_id=game_id, player_name="bob"))
    assert game_id not in locks


def test_cancelled_games_release_their_lock(service: BattleshipService, locks: GameLocks) -> None:
    created = service.create_new_game(CreateGameRequest(player_name="alice"))
    service.join_game(JoinGameRequest(game_id=created.game_id, player_name="bob"))
    assert created.game_id in locks

    service.cancel_game(CancelGameRequest(game_id=created.game_id, player_name="bob"))
    assert created.game_id not in locks


def test_sunk_fleet_releases_the_lock(
    service: BattleshipService, game_id: UUID, game_repository: GameRepository, locks: GameLocks
) -> None:
    sink_fleet_of(service, game_repository, game_id, attacker="alice", defender="bob")
    assert game_id not in locks
