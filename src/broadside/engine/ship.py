"""Cell states, ship kinds and orientations for the Broadside engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate; ``x`` is the column, ``y`` the row."""

    x: int
    y: int


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def step(self) -> tuple[int, int]:
        """Offset from one ship cell to the next."""
        return (1, 0) if self is Orientation.HORIZONTAL else (0, 1)


class CellState(Enum):
    """Contents of a single board cell.

    A cell holds exactly one value. Ship kinds are only ever seen on a fleet
    board; an observer's view board holds the first four states only.
    """

    EMPTY = "empty"
    MISS = "miss"
    HIT = "hit"
    SUNK = "sunk"
    CARRIER = "carrier"
    BATTLESHIP = "battleship"
    CRUISER = "cruiser"
    SUBMARINE = "submarine"
    DESTROYER = "destroyer"

    @property
    def is_ship(self) -> bool:
        return self in SHIP_LENGTHS

    @property
    def length(self) -> int:
        """Number of contiguous cells the ship occupies; 0 for non-ships."""
        return ship_length(self)

    @property
    def resolved(self) -> bool:
        """True once the cell has been fired upon."""
        return self in (CellState.MISS, CellState.HIT, CellState.SUNK)

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


SHIP_LENGTHS: dict[CellState, int] = {
    CellState.CARRIER: 5,
    CellState.BATTLESHIP: 4,
    CellState.CRUISER: 3,
    CellState.SUBMARINE: 3,
    CellState.DESTROYER: 2,
}

# Placement order used when seeding: largest first.
SHIP_KINDS: tuple[CellState, ...] = tuple(SHIP_LENGTHS)

_SYMBOLS = {
    CellState.EMPTY: ".",
    CellState.MISS: "o",
    CellState.HIT: "X",
    CellState.SUNK: "#",
    CellState.CARRIER: "A",
    CellState.BATTLESHIP: "B",
    CellState.CRUISER: "C",
    CellState.SUBMARINE: "S",
    CellState.DESTROYER: "D",
}


def ship_length(kind: object) -> int:
    """Return the length of ``kind``, or 0 when it is not a ship kind."""
    return SHIP_LENGTHS.get(kind, 0)  # type: ignore[call-overload]
