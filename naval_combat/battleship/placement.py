"""
Fleet placement rules.

A fleet is checked as a whole: composition first, then every ship on its own. All violations are collected
(not just the first one) so a player can fix the whole layout in one go. Per ship only the first failing rule is reported,
as later rules make little sense for a ship that already has the wrong type or size.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from naval_combat.battleship.board import Board
from naval_combat.battleship.coordinates import Cell, is_straight_line
from naval_combat.battleship.ships import FLEET_COMPOSITION, KNOWN_SHIP_TYPES, SHIP_SIZES, Ship, ShipPlacement
from naval_combat.core.exceptions import GameStateError, InvalidPlacementError


@dataclass(frozen=True)
class Violation:
    message: str
    ship_index: Optional[int] = None


def validate_placement(fleet: list[ShipPlacement], board: Board) -> list[Violation]:
    """Empty list means the fleet can be placed on the board."""
    violations = _composition_violations(fleet)

    occupied: set[Cell] = set()
    for index, ship in enumerate(fleet):
        violation = _ship_violation(ship, board, occupied)
        if violation is not None:
            violations.append(Violation(f"Ship #{index + 1} ({ship.type}): {violation}", index))
            continue
        # only ships that passed every check are used for overlap checks of the following ones
        occupied.update(ship.cells)

    return violations


def place_fleet(fleet: list[ShipPlacement], board: Board, now: datetime) -> list[Ship]:
    """
    Validate and attach the fleet in a single step
    ----

    Either the full fleet is attached (and placed_at is set), or an InvalidPlacementError is raised and the board is untouched.
    """
    if board.is_placed:
        raise GameStateError(f"Fleet of {board.user!r} is already placed and cannot be moved.")

    violations = validate_placement(fleet, board)
    if violations:
        raise InvalidPlacementError(violations)

    ships = [placement.to_ship() for placement in fleet]
    board.attach_fleet(ships, now)
    return ships


def _composition_violations(fleet: list[ShipPlacement]) -> list[Violation]:
    """Under- and over-count of every canonical ship type. Unknown types are reported per ship instead."""
    counts = Counter(ship.type for ship in fleet)
    return [
        Violation(f"expected {required} {ship_type.value}(s), found {counts.get(ship_type.value, 0)}")
        for ship_type, required in FLEET_COMPOSITION.items()
        if counts.get(ship_type.value, 0) != required
    ]


def _ship_violation(ship: ShipPlacement, board: Board, occupied: set[Cell]) -> Optional[str]:
    ship_type = KNOWN_SHIP_TYPES.get(ship.type)
    if ship_type is None:
        return f"invalid ship type {ship.type!r}"

    expected_size = SHIP_SIZES[ship_type]
    if ship.size != expected_size:
        return f"size {ship.size} does not match type (expected {expected_size})"

    if len(ship.cells) != ship.size:
        return f"occupies {len(ship.cells)} cell(s) but has size {ship.size}"

    if not is_straight_line(ship.cells):
        return "cells must form a single horizontal or vertical line"

    if not all(board.contains(cell) for cell in ship.cells):
        return f"outside board boundaries ({board.width}x{board.height})"

    if occupied.intersection(ship.cells):
        return "overlaps with another ship"

    return None
