"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from naval_combat.api.models import (
    AttackRequest,
    AttackResponse,
    BoardResponse,
    CancelGameRequest,
    CreateGameRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    LeaderboardRequest,
    LeaderboardResponse,
    MoveResponse,
    PlaceFleetRequest,
    RankingEntry,
    RankingRequest,
    RankingResponse,
    RankingStatsResponse,
    ShipResponse,
    SurrenderRequest,
)
from naval_combat.battleship import events, scoring
from naval_combat.battleship.board import Board
from naval_combat.battleship.events import GameEvent
from naval_combat.battleship.game import Game
from naval_combat.battleship.ships import ShipPlacement
from naval_combat.battleship.timeout import is_turn_about_to_timeout, remaining_turn_time
from naval_combat.core.clock import Clock, utc_now
from naval_combat.core.config import Config, settings
from naval_combat.core.exceptions import GameNotFoundError, InvalidAttackError, NotAPlayerError
from naval_combat.core.models import RankingSnapshot, UserRef
from naval_combat.core.shared_types import Status
from naval_combat.db.repository import GameRepository, ScoreRepository
from naval_combat.services.locks import GameLocks
from naval_combat.services.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)


@contextmanager
def atomic(*repositories: GameRepository | ScoreRepository) -> Iterator[None]:
    """
    Commit every write made inside the block together, or roll all of them back.
    ----
    A finished game and the scoring it triggers are one unit: neither is stored without the other.
    """
    try:
        yield
        for repository in repositories:
            repository.commit()
    except Exception:
        for repository in repositories:
            repository.rollback()
        raise


def record_outcome(
    score_repository: ScoreRepository,
    winner: Optional[UserRef],
    loser: Optional[UserRef],
    now: datetime,
    remaining_ships: int = 0,
    loser_hit_count: int = 0,
) -> list[RankingSnapshot]:
    """Load the stats of both players, apply the scoring rules and store stats + snapshots."""
    winner_stats = score_repository.get_stats(winner) if winner else None
    loser_stats = score_repository.get_stats(loser) if loser else None

    snapshots = scoring.apply_outcome(
        winner_stats, loser_stats, remaining_ships, loser_hit_count, now=now
    )
    for stats in (winner_stats, loser_stats):
        if stats is not None:
            score_repository.save_stats(stats)
    score_repository.add_snapshots(snapshots)
    return snapshots


def publish_all(notifier: Notifier, game_events: list[GameEvent]) -> None:
    """Delivery is best-effort: the game state is already stored, a failing notifier must not undo that."""
    for event in game_events:
        try:
            notifier.publish(event)
        except Exception:
            logger.exception("Failed to publish %s for game %s", event.type.value, event.game_id)


class BattleshipService:
    """Orchestration of layers for naval combat games."""

    def __init__(
        self,
        game_repository: GameRepository,
        score_repository: ScoreRepository,
        notifier: Optional[Notifier] = None,
        clock: Clock = utc_now,
        config: Config = settings,
        locks: Optional[GameLocks] = None,
    ) -> None:
        self.repo = game_repository
        self.scores = score_repository
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.config = config
        self.locks = locks or GameLocks()

    @property
    def timeout_budget(self) -> timedelta:
        return timedelta(seconds=self.config.TURN_TIMEOUT_SEC)

    # -- API routes logic ---
    def create_new_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to create a new game."""
        now = self.clock()
        new_game = Game.new_game(
            player=request.player_name,
            now=now,
            width=request.width or self.config.BOARD_WIDTH,
            height=request.height or self.config.BOARD_HEIGHT,
        )
        with atomic(self.repo):
            self.repo.create_game(new_game.to_model())
        logger.info("Game %s opened by %s", new_game.id, request.player_name)
        return self._create_game_response(new_game, request.player_name, now)

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """Second player requested to join a game."""
        with self.locks.hold(request.game_id):
            now = self.clock()
            game = self._fetch_game(request.game_id)
            game.join(request.player_name, now)
            with atomic(self.repo):
                self.repo.update_game(game.to_model())

        logger.info("%s joined game %s, fleet placement started", request.player_name, game.id)
        publish_all(self.notifier, [events.state_updated(game, now)])
        return self._create_game_response(game, request.player_name, now)

    def place_fleet(self, request: PlaceFleetRequest) -> GameResponse:
        """A player submits the complete fleet layout for their board."""
        fleet = [
            ShipPlacement.from_pairs(ship.type, ship.size, ship.cells) for ship in request.fleet
        ]
        with self.locks.hold(request.game_id):
            now = self.clock()
            game = self._fetch_game(request.game_id)
            started = game.place_fleet(request.player_name, fleet, now)
            with atomic(self.repo):
                self.repo.update_game(game.to_model())

        if started:
            logger.info("Game %s started, %s opens", game.id, game.current_turn)
        publish_all(self.notifier, [events.state_updated(game, now)])
        return self._create_game_response(game, request.player_name, now)

    def attack(self, request: AttackRequest) -> AttackResponse:
        """Fire at a cell of the opponent's board."""
        with self.locks.hold(request.game_id):
            now = self.clock()
            game = self._fetch_game(request.game_id)
            self._assert_player(game, request.player_name)
            try:
                outcome = game.attack(request.player_name, request.x, request.y, now)
            except InvalidAttackError as error:
                logger.warning(
                    "Rejected attack by %s on game %s at (%s, %s): %s",
                    request.player_name,
                    game.id,
                    request.x,
                    request.y,
                    error.reason,
                )
                raise

            with atomic(self.repo, self.scores):
                self.repo.update_game(game.to_model())
                if outcome.finished:
                    record_outcome(
                        self.scores,
                        outcome.winner,
                        outcome.loser,
                        now,
                        remaining_ships=outcome.remaining_ships,
                        loser_hit_count=outcome.loser_hit_count,
                    )

        self._forget_lock_if_over(game)
        game_events = [events.move_made(game.id, outcome.move)]
        if outcome.finished:
            logger.info("Game %s finished, %s sank the last ship", game.id, outcome.winner)
            game_events.append(events.game_finished(game.id, outcome.winner, now))
        game_events.append(events.state_updated(game, now))
        publish_all(self.notifier, game_events)

        sunk_ship = outcome.resolution.ship if outcome.resolution.ship and outcome.resolution.ship.sunk else None
        return AttackResponse(
            game_id=game.id,
            result=outcome.resolution.result,
            sunk_ship=sunk_ship.type if sunk_ship else None,
            game_over=outcome.finished,
            winner=game.winner,
            current_turn=game.current_turn,
        )

    def surrender(self, request: SurrenderRequest) -> GameResponse:
        """Player gives up: the opponent wins and the quitter is scored as a forfeit."""
        with self.locks.hold(request.game_id):
            now = self.clock()
            game = self._fetch_game(request.game_id)
            winner = game.forfeit(request.player_name, now)
            with atomic(self.repo, self.scores):
                self.repo.update_game(game.to_model())
                record_outcome(self.scores, winner, request.player_name, now)

        self._forget_lock_if_over(game)
        logger.info("%s surrendered game %s to %s", request.player_name, game.id, winner)
        publish_all(self.notifier, [events.game_finished(game.id, winner, now)])
        return self._create_game_response(game, request.player_name, now)

    def cancel_game(self, request: CancelGameRequest) -> GameResponse:
        """Call the game off. Nobody wins, nobody gets scored."""
        with self.locks.hold(request.game_id):
            now = self.clock()
            game = self._fetch_game(request.game_id)
            game.cancel(request.player_name, now)
            with atomic(self.repo):
                self.repo.update_game(game.to_model())

        self._forget_lock_if_over(game)
        logger.info("Game %s cancelled by %s", game.id, request.player_name)
        publish_all(self.notifier, [events.state_updated(game, now)])
        return self._create_game_response(game, request.player_name, now)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state, as seen by the requesting player.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        game = self._fetch_game(request.game_id)
        self._assert_player(game, request.player_name)
        return self._create_game_response(game, request.player_name, self.clock())

    def delete_game(self, game_id: UUID) -> None:
        """Handle a request to delete a Game record."""
        with self.locks.hold(game_id):
            with atomic(self.repo):
                self.repo.delete_game(game_id)
        self.locks.discard(game_id)

    # -- Ranking ---
    def leaderboard(self, request: LeaderboardRequest) -> LeaderboardResponse:
        snapshots = self.scores.latest_rankings(request.limit)
        return LeaderboardResponse(entries=[self._ranking_entry(snapshot) for snapshot in snapshots])

    def ranking(self, request: RankingRequest) -> RankingResponse:
        """Where does the player stand? Position 0 means outside the ranking window."""
        stats = self.scores.get_stats(request.player_name)
        own_snapshots = self.scores.snapshots_for_user(request.player_name)
        position = 0
        if own_snapshots:
            top = self.scores.latest_rankings(self.config.RANKING_WINDOW)
            position = scoring.position_of(top, own_snapshots[0])

        return RankingResponse(
            player_name=request.player_name,
            position=position,
            points=stats.points,
            wins=stats.wins,
            losses=stats.losses,
            games_played=stats.games_played,
            win_rate=stats.win_rate,
        )

    def ranking_stats(self) -> RankingStatsResponse:
        stats = scoring.ranking_stats(self.scores.latest_rankings(self.config.LEADERBOARD_LIMIT))
        top_player = stats["top_player"]
        return RankingStatsResponse(
            total_players=stats["total_players"],
            average_points=stats["average_points"],
            top_player=self._ranking_entry(top_player) if top_player else None,
        )

    # -- Internal helpers --
    def _fetch_game(self, game_id: UUID) -> Game:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return Game.from_model(game_model)

    def _forget_lock_if_over(self, game: Game) -> None:
        """Finished and cancelled games never change again, their lock is not needed anymore."""
        if game.is_over:
            self.locks.discard(game.id)

    def _assert_player(self, game: Game, player: UserRef) -> None:
        if not game.is_player(player):
            raise NotAPlayerError(f"{player!r} is not a player of game {game.id}.")

    def _create_game_response(self, game: Game, viewer: UserRef, now: datetime) -> GameResponse:
        """Convert a Game into a GameResponse, from the point of view of `viewer` (opponent ships stay hidden)."""
        opponent = game.opponent_of(viewer)
        own_board = game.board_for(viewer)
        opponent_board = game.board_for(opponent) if opponent else None
        return GameResponse(
            game_id=game.id,
            status=game.status,
            players=game.players,
            current_turn=game.current_turn,
            winner=game.winner,
            remaining_time=remaining_turn_time(game, now, self.timeout_budget),
            turn_warning=is_turn_about_to_timeout(
                game, now, self.timeout_budget, timedelta(seconds=self.config.TURN_WARNING_SEC)
            ),
            own_board=self._board_response(own_board, reveal=True) if own_board else None,
            opponent_board=(
                self._board_response(opponent_board, reveal=game.status == Status.FINISHED)
                if opponent_board
                else None
            ),
            moves=[
                MoveResponse(
                    attacker=move.attacker,
                    x=move.x,
                    y=move.y,
                    result=move.result,
                    turn_index=move.turn_index,
                    created_at=move.created_at,
                )
                for move in game.moves
            ],
        )

    def _board_response(self, board: Board, reveal: bool) -> BoardResponse:
        return BoardResponse(
            user=board.user,
            width=board.width,
            height=board.height,
            placed=board.is_placed,
            fleet=[
                ShipResponse(
                    type=ship.type,
                    size=ship.size,
                    cells=[cell.to_pair() for cell in ship.cells] if reveal else None,
                    hits=sorted(cell.to_pair() for cell in ship.hits),
                    sunk=ship.sunk,
                )
                for ship in board.fleet
            ],
        )

    def _ranking_entry(self, snapshot: RankingSnapshot) -> RankingEntry:
        return RankingEntry(
            user=snapshot.user,
            points=snapshot.points,
            wins=snapshot.wins,
            losses=snapshot.losses,
            timestamp=snapshot.timestamp,
        )
