"""
A cell on a board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Classic naval combat is played on 10x10. Boards take their own dimensions, this is only the default.
BOARD_DIMENSIONS = (10, 10)


@dataclass(frozen=True)
class Cell:
    x: int
    y: int

    @classmethod
    def from_pair(cls, pair: tuple[int, int] | list[int]) -> Cell:
        """Pairs arrive as [x, y] lists from JSON and as tuples from Python callers."""
        x, y = pair
        return cls(int(x), int(y))

    def to_pair(self) -> tuple[int, int]:
        return (self.x, self.y)

    def is_within_bounds(self, width: int, height: int) -> bool:
        return (0 <= self.x < width) and (0 <= self.y < height)


def is_straight_line(cells: list[Cell]) -> bool:
    """
    True if the cells form one unbroken horizontal or vertical segment.

    Order of the cells does not matter: [(2,0), (0,0), (1,0)] is a valid segment.
    """
    if not cells:
        return False
    if len(set(cells)) != len(cells):
        return False

    xs = sorted(cell.x for cell in cells)
    ys = sorted(cell.y for cell in cells)
    if len(set(ys)) == 1:
        return xs == list(range(xs[0], xs[0] + len(xs)))
    if len(set(xs)) == 1:
        return ys == list(range(ys[0], ys[0] + len(ys)))
    return False
