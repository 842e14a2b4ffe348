"""
The Game class will be the entrypoint into the domain layer for the service layer.
It owns the lifecycle of a single game (status, turn ownership, winner) and orchestrates the rules
required to play a turn --> passes the outcome to the service layer, which then scores, persists and notifies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self
from uuid import UUID, uuid4

from naval_combat.battleship.board import Board
from naval_combat.battleship.combat import Resolution, resolve_attack
from naval_combat.battleship.coordinates import BOARD_DIMENSIONS, Cell
from naval_combat.battleship.placement import place_fleet
from naval_combat.battleship.ships import ShipPlacement
from naval_combat.core.exceptions import GameStateError, InvalidAttackError, NotAPlayerError
from naval_combat.core.models import GameModel, MoveModel, UserRef
from naval_combat.core.shared_types import AttackRejection, AttackResult, Status

# A player may only cancel while the game has not reached a final status
CANCELLABLE_STATUSES = (Status.OPEN, Status.PLACEMENT, Status.IN_PROGRESS)
ENDED_STATUSES = (Status.FINISHED, Status.CANCELLED)


@dataclass(frozen=True)
class Move:
    attacker: UserRef
    x: int
    y: int
    result: AttackResult
    turn_index: int
    created_at: datetime

    @classmethod
    def from_model(cls, model: MoveModel) -> Self:
        return cls(
            attacker=model.attacker,
            x=model.x,
            y=model.y,
            result=AttackResult(model.result),
            turn_index=model.turn_index,
            created_at=model.created_at,
        )

    def to_model(self) -> MoveModel:
        return MoveModel(
            attacker=self.attacker,
            x=self.x,
            y=self.y,
            result=self.result.value,
            turn_index=self.turn_index,
            created_at=self.created_at,
        )

    @property
    def cell(self) -> Cell:
        return Cell(self.x, self.y)

    @property
    def is_hit(self) -> bool:
        return self.result in (AttackResult.HIT, AttackResult.SUNK)


@dataclass(frozen=True)
class AttackOutcome:
    """Everything the service needs after a resolved attack: the recorded move and (if the game ended) the scoring input."""

    move: Move
    resolution: Resolution
    winner: Optional[UserRef] = None
    loser: Optional[UserRef] = None
    remaining_ships: int = 0
    loser_hit_count: int = 0

    @property
    def finished(self) -> bool:
        return self.winner is not None


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    id: UUID
    status: Status
    player1: UserRef
    player2: Optional[UserRef]
    current_turn: Optional[UserRef]
    winner: Optional[UserRef]
    boards: dict[UserRef, Board]
    moves: list[Move]
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    # board dimensions handed to the second player's board on join
    width: int = field(default=BOARD_DIMENSIONS[0])
    height: int = field(default=BOARD_DIMENSIONS[1])

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        if model.status not in Status.__members__:
            raise GameStateError(
                f"Invalid status code: {model.status!r}. \nPick one from {','.join(status.name for status in Status)}"
            )

        boards = {board.user: Board.from_model(board) for board in model.boards}
        first_board = next(iter(boards.values()), None)
        return cls(
            id=model.id,
            status=Status(model.status),
            player1=model.player1,
            player2=model.player2,
            current_turn=model.current_turn,
            winner=model.winner,
            boards=boards,
            moves=sorted((Move.from_model(move) for move in model.moves), key=lambda move: move.turn_index),
            created_at=model.created_at,
            started_at=model.started_at,
            finished_at=model.finished_at,
            width=first_board.width if first_board else BOARD_DIMENSIONS[0],
            height=first_board.height if first_board else BOARD_DIMENSIONS[1],
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""

        return GameModel(
            id=self.id,
            status=self.status.value,
            player1=self.player1,
            player2=self.player2,
            current_turn=self.current_turn,
            winner=self.winner,
            boards=[self.boards[player].to_model() for player in self.players if player in self.boards],
            moves=[move.to_model() for move in self.moves],
            created_at=self.created_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )

    @classmethod
    def new_game(
        cls,
        player: UserRef,
        now: datetime,
        width: int = BOARD_DIMENSIONS[0],
        height: int = BOARD_DIMENSIONS[1],
        game_id: Optional[UUID] = None,
    ) -> Self:
        """First player opens a game. The game waits (OPEN) for an opponent to join."""
        return cls(
            id=game_id or uuid4(),
            status=Status.OPEN,
            player1=player,
            player2=None,
            current_turn=None,
            winner=None,
            boards={player: Board(user=player, width=width, height=height)},
            moves=[],
            created_at=now,
            width=width,
            height=height,
        )

    # --- IDENTITY CHECKS (used by the service to produce NotAPlayer / NotYourTurn style errors) ---
    @property
    def players(self) -> list[UserRef]:
        return [player for player in (self.player1, self.player2) if player is not None]

    def is_player(self, user: UserRef) -> bool:
        return user in self.players

    def opponent_of(self, user: UserRef) -> Optional[UserRef]:
        if user == self.player1:
            return self.player2
        if user == self.player2:
            return self.player1
        return None

    def board_for(self, user: UserRef) -> Optional[Board]:
        return self.boards.get(user)

    def is_current_turn(self, user: UserRef) -> bool:
        return self.current_turn is not None and self.current_turn == user

    @property
    def is_over(self) -> bool:
        return self.status in ENDED_STATUSES

    @property
    def last_move(self) -> Optional[Move]:
        return self.moves[-1] if self.moves else None

    @property
    def last_activity_at(self) -> Optional[datetime]:
        """Time the current turn started: the last move, or the start of play if nobody attacked yet."""
        last_move = self.last_move
        return last_move.created_at if last_move else self.started_at

    def remaining_ships(self, user: UserRef) -> int:
        board = self.board_for(user)
        return board.alive_ship_count() if board else 0

    def hits_landed_by(self, user: UserRef) -> int:
        return sum(1 for move in self.moves if move.attacker == user and move.is_hit)

    # --- LIFECYCLE TRANSITIONS ---
    def join(self, player: UserRef, now: datetime) -> None:
        """Registering the 2nd player to an open game (OPEN --> PLACEMENT)"""
        if self.status != Status.OPEN or self.player2 is not None:
            raise GameStateError(
                f"Cannot join this game. Game is not accepting new players. status: {self.status}"
            )
        if player == self.player1:
            raise GameStateError("Cannot join your own game.")

        self.player2 = player
        self.boards[player] = Board(user=player, width=self.width, height=self.height)
        self._change_status(Status.PLACEMENT)

    def place_fleet(self, player: UserRef, fleet: list[ShipPlacement], now: datetime) -> bool:
        """
        Attach a validated fleet to the player's board.
        ----

        Returns True if this placement completed both boards and therefore started the game.
        """
        self._assert_player(player)
        if self.status != Status.PLACEMENT:
            raise GameStateError(f"Game is not in placement phase. status: {self.status}")

        board = self.boards[player]
        place_fleet(fleet, board, now)

        if self._all_boards_placed():
            self._start(now)
            return True
        return False

    def attack_rejection(self, attacker: UserRef, x: int, y: int) -> Optional[AttackRejection]:
        """
        Admission guard for an attack. None means the attack may be resolved.
        ----

        Order of checks matters: a player who is not on turn should learn that before learning anything about the board.
        """
        if self.status != Status.IN_PROGRESS:
            return AttackRejection.GAME_NOT_ACTIVE

        if not self.is_current_turn(attacker):
            return AttackRejection.WRONG_TURN

        opponent = self.opponent_of(attacker)
        if opponent is None or self.board_for(opponent) is None:
            return AttackRejection.NO_OPPONENT

        target = Cell(x, y)
        if not self.boards[opponent].contains(target):
            return AttackRejection.OUT_OF_BOUNDS

        # any earlier move on this cell counts, regardless of who made it
        if any(move.cell == target for move in self.moves):
            return AttackRejection.DUPLICATE_CELL

        return None

    def attack(self, attacker: UserRef, x: int, y: int, now: datetime) -> AttackOutcome:
        """
        Attempt an attack
        -----

        1. check the admission guard (nothing is mutated on rejection)
        2. resolve the shot against the opponent's fleet
        3. append the move
        4. switch turns on a miss (a hit earns another shot)
        5. check for game over
        """
        rejection = self.attack_rejection(attacker, x, y)
        if rejection is not None:
            raise InvalidAttackError(rejection, self._rejection_message(rejection, attacker, x, y))

        # for the type checker: the guard ensures there is an opponent
        opponent = self.opponent_of(attacker)
        assert opponent is not None

        resolution = resolve_attack(self.boards[opponent].fleet, x, y)
        move = self._record_move(attacker, x, y, resolution.result, now)

        if resolution.result == AttackResult.MISS:
            self.current_turn = opponent

        winner = self._determine_winner()
        if winner is None:
            return AttackOutcome(move=move, resolution=resolution)

        loser = self.opponent_of(winner)
        self._finish(winner, now)
        return AttackOutcome(
            move=move,
            resolution=resolution,
            winner=winner,
            loser=loser,
            remaining_ships=self.remaining_ships(winner),
            loser_hit_count=self.hits_landed_by(loser) if loser else 0,
        )

    def forfeit(self, loser: UserRef, now: datetime) -> UserRef:
        """Surrender or timeout: the opponent wins without the fleet being sunk. Returns the winner."""
        self._assert_player(loser)
        if self.status != Status.IN_PROGRESS:
            raise GameStateError(f"Game is not in progress. status: {self.status}")

        winner = self.opponent_of(loser)
        # for the type checker: IN_PROGRESS implies two registered players
        assert winner is not None
        self._finish(winner, now)
        return winner

    def cancel(self, user: UserRef, now: datetime) -> None:
        """A player calls the game off. No winner, no scoring."""
        self._assert_player(user)
        if self.status not in CANCELLABLE_STATUSES:
            raise GameStateError(f"Cannot cancel a game that already ended. status: {self.status}")

        self._change_status(Status.CANCELLED)
        self.current_turn = None
        self.finished_at = now

    # -- PRIVATE HELPERS ---
    def _assert_player(self, user: UserRef) -> None:
        if not self.is_player(user):
            raise NotAPlayerError(f"{user!r} is not a player of game {self.id}.")

    def _all_boards_placed(self) -> bool:
        return len(self.boards) == 2 and all(board.is_placed for board in self.boards.values())

    def _start(self, now: datetime) -> None:
        """Both fleets are placed: player1 always opens."""
        self._change_status(Status.IN_PROGRESS)
        self.current_turn = self.player1
        self.started_at = now

    def _record_move(
        self, attacker: UserRef, x: int, y: int, result: AttackResult, now: datetime
    ) -> Move:
        previous_index = max((move.turn_index for move in self.moves), default=0)
        move = Move(
            attacker=attacker,
            x=x,
            y=y,
            result=result,
            turn_index=previous_index + 1,
            created_at=now,
        )
        self.moves.append(move)
        return move

    def _determine_winner(self) -> Optional[UserRef]:
        """
        A board is defeated once all of its ships are sunk. If exactly one board is defeated, the owner of the other board wins.

        NOTE with one attacker per turn only a single board can lose its last ship at a time, so ties do not occur.
        """
        defeated = [user for user, board in self.boards.items() if board.is_defeated()]
        if len(defeated) != 1:
            return None
        return self.opponent_of(defeated[0])

    def _finish(self, winner: UserRef, now: datetime) -> None:
        self._change_status(Status.FINISHED)
        self.winner = winner
        self.current_turn = None
        self.finished_at = now

    def _change_status(self, new_status: Status) -> None:
        self.status = new_status

    def _rejection_message(self, rejection: AttackRejection, attacker: UserRef, x: int, y: int) -> str:
        if rejection == AttackRejection.GAME_NOT_ACTIVE:
            return f"Game is not in progress. status: {self.status}"
        if rejection == AttackRejection.WRONG_TURN:
            return f"It is not your turn. Waiting for player {self.current_turn} to attack first."
        if rejection == AttackRejection.NO_OPPONENT:
            return f"No opponent board found for {attacker!r}."
        if rejection == AttackRejection.OUT_OF_BOUNDS:
            return f"Cell ({x}, {y}) is outside the board."
        return f"Cell ({x}, {y}) was already attacked."
