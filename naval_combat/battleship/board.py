"""The Game board holds one player's fleet and answers questions about it"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self

from naval_combat.battleship.coordinates import BOARD_DIMENSIONS, Cell
from naval_combat.battleship.ships import Ship
from naval_combat.core.exceptions import GameStateError
from naval_combat.core.models import BoardModel, UserRef


@dataclass
class Board:
    user: UserRef
    width: int = BOARD_DIMENSIONS[0]
    height: int = BOARD_DIMENSIONS[1]
    fleet: list[Ship] = field(default_factory=list)
    placed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BoardModel) -> Self:
        return cls(
            user=model.user,
            width=model.width,
            height=model.height,
            fleet=[Ship.from_model(ship) for ship in model.fleet],
            placed_at=model.placed_at,
        )

    def to_model(self) -> BoardModel:
        return BoardModel(
            user=self.user,
            width=self.width,
            height=self.height,
            fleet=[ship.to_model() for ship in self.fleet],
            placed_at=self.placed_at,
        )

    @property
    def is_placed(self) -> bool:
        return self.placed_at is not None

    def contains(self, cell: Cell) -> bool:
        return cell.is_within_bounds(self.width, self.height)

    def attach_fleet(self, fleet: list[Ship], placed_at: datetime) -> None:
        """A fleet gets attached exactly once. Validation happens before (see placement.py)."""
        if self.is_placed:
            raise GameStateError(f"Fleet of {self.user!r} was already placed at {self.placed_at}.")
        self.fleet = fleet
        self.placed_at = placed_at

    def ship_index_at(self, cell: Cell) -> Optional[int]:
        """Index (within the fleet) of the ship occupying the cell, if any."""
        for index, ship in enumerate(self.fleet):
            if ship.occupies(cell):
                return index
        return None

    def ship_at(self, cell: Cell) -> Optional[Ship]:
        index = self.ship_index_at(cell)
        return self.fleet[index] if index is not None else None

    def alive_ship_count(self) -> int:
        return sum(1 for ship in self.fleet if ship.is_alive)

    def is_defeated(self) -> bool:
        """Every ship sunk. An empty fleet counts as defeated, so only ask this once the fleet is placed."""
        return self.alive_ship_count() == 0
