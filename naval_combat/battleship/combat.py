"""Resolving a single shot against a defending fleet"""

from dataclasses import dataclass
from typing import Optional

from naval_combat.battleship.coordinates import Cell
from naval_combat.battleship.ships import Ship
from naval_combat.core.shared_types import AttackResult


@dataclass(frozen=True)
class Resolution:
    result: AttackResult
    ship: Optional[Ship] = None

    @property
    def is_hit(self) -> bool:
        return self.result != AttackResult.MISS


def resolve_attack(defender_fleet: list[Ship], x: int, y: int) -> Resolution:
    """
    Classify the shot and update the ship that got hit.

    NOTE the caller guarantees the cell was not attacked before in this game (see Game.attack_rejection).
    """
    target = Cell(x, y)
    index = _owning_ship_index(defender_fleet, target)
    if index is None:
        return Resolution(AttackResult.MISS)

    ship = defender_fleet[index]
    ship.register_hit(target)
    result = AttackResult.SUNK if ship.sunk else AttackResult.HIT
    return Resolution(result, ship)


def _owning_ship_index(fleet: list[Ship], cell: Cell) -> Optional[int]:
    for index, ship in enumerate(fleet):
        if ship.occupies(cell):
            return index
    return None
