"""
Implementation of the repositories using SQLAlchemy

Writes are only flushed. The caller decides when the unit of work is complete and calls `commit` (or `rollback`).
Both repositories are meant to share one session, so a commit covers the game and its scoring together.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from naval_combat.core.exceptions import RepositoryError
from naval_combat.core.models import (
    BoardModel,
    GameModel,
    MoveModel,
    RankingSnapshot,
    ShipModel,
    UserRef,
    UserStats,
)
from naval_combat.db.schema import DBBoard, DBGame, DBMove, DBRankingSnapshot, DBUserStats


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll the session back on any database error and report it as a RepositoryError."""
    try:
        yield
    except SQLAlchemyError as error:
        db.rollback()
        raise RepositoryError(f"Failed to {action}: {error}") from error


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes even for timezone aware columns. Everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLGameRepository:
    """Games (with their boards and moves) stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        with storage_errors(self.db, f"load game {game_id}"):
            game_db = self._fetch_game(game_id)
            if game_db:
                return self._to_model(game_db)
            return None

    def create_game(self, game: GameModel) -> GameModel:
        """Store new game and return the stored data."""
        with storage_errors(self.db, f"create game {game.id}"):
            game_db = DBGame(
                id=game.id,
                status=game.status,
                player1=game.player1,
                player2=game.player2,
                current_turn=game.current_turn,
                winner=game.winner,
                created_at=game.created_at,
                started_at=game.started_at,
                finished_at=game.finished_at,
            )
            game_db.boards = [self._board_to_db(board) for board in game.boards]
            game_db.moves = [self._move_to_db(move) for move in game.moves]
            self.db.add(game_db)
            self.db.flush()
            self.db.refresh(game_db)
            return self._to_model(game_db)

    def update_game(self, game: GameModel) -> GameModel | None:
        """Add new info to existing record."""
        with storage_errors(self.db, f"update game {game.id}"):
            game_db = self._fetch_game(game.id)
            if not game_db:
                return None
            game_db.status = game.status
            game_db.player2 = game.player2
            game_db.current_turn = game.current_turn
            game_db.winner = game.winner
            game_db.started_at = game.started_at
            game_db.finished_at = game.finished_at

            # boards: update in place, add the ones that did not exist yet (second player joined)
            stored_boards = {board.user: board for board in game_db.boards}
            for board in game.boards:
                board_db = stored_boards.get(board.user)
                if board_db is None:
                    game_db.boards.append(self._board_to_db(board))
                    continue
                board_db.width = board.width
                board_db.height = board.height
                board_db.fleet = [self._ship_to_json(ship) for ship in board.fleet]
                board_db.placed_at = board.placed_at

            # moves: append-only, so only the ones beyond the last stored turn index get added
            last_index = max((move.turn_index for move in game_db.moves), default=0)
            for move in game.moves:
                if move.turn_index > last_index:
                    game_db.moves.append(self._move_to_db(move))

            self.db.flush()
            self.db.refresh(game_db)
            return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        with storage_errors(self.db, f"delete game {game_id}"):
            game_db = self._fetch_game(game_id)
            if not game_db:
                return None
            game_model = self._to_model(game_db)
            self.db.delete(game_db)
            self.db.flush()
            return game_model

    def list_game_ids(self, status: str) -> list[UUID]:
        with storage_errors(self.db, f"list {status} games"):
            query = select(DBGame.id).where(DBGame.status == status).order_by(DBGame.created_at)
            return list(self.db.scalars(query))

    def commit(self) -> None:
        with storage_errors(self.db, "commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        query = select(DBGame).where(DBGame.id == game_id)
        return self.db.scalar(query)

    # -- conversion helpers --
    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            id=game_db.id,
            status=game_db.status,
            player1=game_db.player1,
            player2=game_db.player2,
            current_turn=game_db.current_turn,
            winner=game_db.winner,
            boards=[self._board_to_model(board) for board in game_db.boards],
            moves=[self._move_to_model(move) for move in game_db.moves],
            created_at=as_utc(game_db.created_at),
            started_at=as_utc(game_db.started_at),
            finished_at=as_utc(game_db.finished_at),
        )

    def _board_to_db(self, board: BoardModel) -> DBBoard:
        return DBBoard(
            user=board.user,
            width=board.width,
            height=board.height,
            fleet=[self._ship_to_json(ship) for ship in board.fleet],
            placed_at=board.placed_at,
        )

    def _board_to_model(self, board_db: DBBoard) -> BoardModel:
        return BoardModel(
            user=board_db.user,
            width=board_db.width,
            height=board_db.height,
            fleet=[self._ship_from_json(ship) for ship in board_db.fleet],
            placed_at=as_utc(board_db.placed_at),
        )

    def _ship_to_json(self, ship: ShipModel) -> dict:
        ship_json = asdict(ship)
        ship_json["cells"] = [list(cell) for cell in ship.cells]
        ship_json["hits"] = [list(cell) for cell in ship.hits]
        return ship_json

    def _ship_from_json(self, ship_json: dict) -> ShipModel:
        return ShipModel(
            type=ship_json["type"],
            size=ship_json["size"],
            cells=[tuple(cell) for cell in ship_json["cells"]],
            hits=[tuple(cell) for cell in ship_json.get("hits", [])],
            sunk=ship_json.get("sunk", False),
        )

    def _move_to_db(self, move: MoveModel) -> DBMove:
        return DBMove(
            attacker=move.attacker,
            x=move.x,
            y=move.y,
            result=move.result,
            turn_index=move.turn_index,
            created_at=move.created_at,
        )

    def _move_to_model(self, move_db: DBMove) -> MoveModel:
        return MoveModel(
            attacker=move_db.attacker,
            x=move_db.x,
            y=move_db.y,
            result=move_db.result,
            turn_index=move_db.turn_index,
            created_at=as_utc(move_db.created_at),
        )


class SQLScoreRepository:
    """User statistics and ranking snapshots stored using SQL"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_stats(self, user: UserRef) -> UserStats:
        with storage_errors(self.db, f"load stats of {user}"):
            stats_db = self.db.get(DBUserStats, user)
            if stats_db is None:
                return UserStats(user=user)
            return self._stats_to_model(stats_db)

    def save_stats(self, stats: UserStats) -> UserStats:
        with storage_errors(self.db, f"save stats of {stats.user}"):
            stats_db = self.db.get(DBUserStats, stats.user)
            if stats_db is None:
                stats_db = DBUserStats(user=stats.user)
                self.db.add(stats_db)
            stats_db.points = stats.points
            stats_db.wins = stats.wins
            stats_db.losses = stats.losses
            stats_db.hit_count_total = stats.hit_count_total
            stats_db.games_played = stats.games_played
            self.db.flush()
            self.db.refresh(stats_db)
            return self._stats_to_model(stats_db)

    def add_snapshots(self, snapshots: list[RankingSnapshot]) -> None:
        with storage_errors(self.db, "add ranking snapshots"):
            self.db.add_all(
                DBRankingSnapshot(
                    user=snapshot.user,
                    points=snapshot.points,
                    wins=snapshot.wins,
                    losses=snapshot.losses,
                    timestamp=snapshot.timestamp,
                )
                for snapshot in snapshots
            )
            self.db.flush()

    def latest_rankings(self, limit: int) -> list[RankingSnapshot]:
        query = (
            select(DBRankingSnapshot)
            .order_by(
                DBRankingSnapshot.points.desc(),
                DBRankingSnapshot.wins.desc(),
                DBRankingSnapshot.timestamp.desc(),
            )
            .limit(limit)
        )
        with storage_errors(self.db, "load rankings"):
            return [self._snapshot_to_model(snapshot) for snapshot in self.db.scalars(query)]

    def snapshots_for_user(self, user: UserRef) -> list[RankingSnapshot]:
        query = (
            select(DBRankingSnapshot)
            .where(DBRankingSnapshot.user == user)
            .order_by(DBRankingSnapshot.timestamp.desc(), DBRankingSnapshot.id.desc())
        )
        with storage_errors(self.db, f"load snapshots of {user}"):
            return [self._snapshot_to_model(snapshot) for snapshot in self.db.scalars(query)]

    def commit(self) -> None:
        with storage_errors(self.db, "commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _stats_to_model(self, stats_db: DBUserStats) -> UserStats:
        return UserStats(
            user=stats_db.user,
            points=stats_db.points,
            wins=stats_db.wins,
            losses=stats_db.losses,
            hit_count_total=stats_db.hit_count_total,
            games_played=stats_db.games_played,
        )

    def _snapshot_to_model(self, snapshot_db: DBRankingSnapshot) -> RankingSnapshot:
        return RankingSnapshot(
            user=snapshot_db.user,
            points=snapshot_db.points,
            wins=snapshot_db.wins,
            losses=snapshot_db.losses,
            timestamp=as_utc(snapshot_db.timestamp),
        )
