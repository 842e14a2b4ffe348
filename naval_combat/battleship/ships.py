"""Defines the types of ships and the fleet every player must field"""

from dataclasses import dataclass, field
from typing import Self

from naval_combat.battleship.coordinates import Cell
from naval_combat.core.models import ShipModel
from naval_combat.core.shared_types import ShipType

SHIP_SIZES: dict[ShipType, int] = {
    ShipType.CARRIER: 5,
    ShipType.BATTLESHIP: 4,
    ShipType.CRUISER: 3,
    ShipType.SUBMARINE: 3,
    ShipType.DESTROYER: 2,
}

# Exact number of ships of each type in a complete fleet
FLEET_COMPOSITION: dict[ShipType, int] = {
    ShipType.CARRIER: 1,
    ShipType.BATTLESHIP: 1,
    ShipType.CRUISER: 2,
    ShipType.SUBMARINE: 1,
    ShipType.DESTROYER: 1,
}

KNOWN_SHIP_TYPES: dict[str, ShipType] = {ship_type.value: ship_type for ship_type in ShipType}


@dataclass
class Ship:
    type: ShipType
    size: int
    cells: list[Cell]
    hits: set[Cell] = field(default_factory=set)
    sunk: bool = False

    @classmethod
    def from_model(cls, model: ShipModel) -> Self:
        return cls(
            type=ShipType(model.type),
            size=model.size,
            cells=[Cell.from_pair(pair) for pair in model.cells],
            hits={Cell.from_pair(pair) for pair in model.hits},
            sunk=model.sunk,
        )

    def to_model(self) -> ShipModel:
        return ShipModel(
            type=self.type.value,
            size=self.size,
            cells=[cell.to_pair() for cell in self.cells],
            # sorted so that stored/serialized fleets are stable
            hits=sorted(cell.to_pair() for cell in self.hits),
            sunk=self.sunk,
        )

    @property
    def is_alive(self) -> bool:
        return not self.sunk

    def occupies(self, cell: Cell) -> bool:
        return cell in self.cells

    def register_hit(self, cell: Cell) -> None:
        """Mark the cell as hit. The ship sinks once every cell has been hit."""
        self.hits.add(cell)
        if len(self.hits) >= self.size:
            self.sunk = True


@dataclass(frozen=True)
class ShipPlacement:
    """Ship as submitted by a player: not validated yet, so the type is still the raw name."""

    type: str
    size: int
    cells: list[Cell]

    @classmethod
    def from_pairs(cls, type: str, size: int, cells: list[tuple[int, int]]) -> Self:
        return cls(type=type, size=size, cells=[Cell.from_pair(pair) for pair in cells])

    def to_ship(self) -> Ship:
        """Only call after validation: the type name must be known."""
        return Ship(type=KNOWN_SHIP_TYPES[self.type], size=self.size, cells=list(self.cells))
