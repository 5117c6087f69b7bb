"""Battle board: ship placement, attack resolution and sunk-ship bookkeeping."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from broadside.telemetry import get_meter, get_tracer

from .grid import Grid
from .ship import SHIP_KINDS, CellState, Coordinate, Orientation, ship_length

logger = logging.getLogger(__name__)
tracer = get_tracer("broadside.engine.board")
meter = get_meter("broadside.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "broadside_engine_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

ATTACK_COUNTER = meter.create_counter(
    "broadside_engine_attacks",
    unit="1",
    description="Attacks received by a board",
)

MAX_PLACEMENT_ATTEMPTS = 1000
ORIENTATIONS: tuple[Orientation, ...] = tuple(Orientation)


class AttackError(Enum):
    """Reasons an attack is rejected without touching the board."""

    ALREADY_ATTACKED = "already_attacked"


@dataclass(frozen=True)
class AttackResult:
    """Outcome of a single attack."""

    hit: bool
    sunk: bool
    ship: CellState | None = None
    error: AttackError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BattleBoard:
    """A fleet (or an observer's view of one) laid out on a wrap-around grid.

    The board owns its :class:`Grid` and exposes pass-through accessors for
    it. Reads and writes through those accessors wrap around like the grid
    does; ship placement is the one operation that enforces strict bounds.
    """

    def __init__(
        self,
        width: int = 10,
        height: int = 10,
        owner: str = "unknown",
        rng: random.Random | None = None,
    ) -> None:
        self.owner = owner
        self._grid: Grid[CellState] = Grid(width, height, CellState.EMPTY)
        self._rng = rng if rng is not None else random.Random()
        self._sunk: dict[CellState, bool] = dict.fromkeys(SHIP_KINDS, False)
        # Original ship kind of every hit cell; the grid itself only says HIT/SUNK.
        self._hit_locations: dict[Coordinate, CellState] = {}
        self._placed: list[CellState] = []

    # -- grid pass-through -------------------------------------------------

    @property
    def cols(self) -> int:
        return self._grid.cols

    @property
    def rows(self) -> int:
        return self._grid.rows

    def get(self, x: int, y: int) -> CellState:
        return self._grid.get(x, y)

    def set(self, x: int, y: int, value: CellState) -> None:
        self._grid.set(x, y, value)

    def in_bounds(self, x: int, y: int) -> bool:
        return self._grid.in_bounds(x, y)

    def to_list(self) -> list[CellState]:
        return self._grid.to_list()

    def render(self, reveal: bool = True) -> str:
        if reveal:
            return self._grid.render()
        masked: Grid[CellState] = Grid(self.cols, self.rows, CellState.EMPTY)
        masked.copy_from([self._mask(cell) for cell in self._grid.to_list()])
        return masked.render()

    # -- placement ---------------------------------------------------------

    def can_place(self, x: int, y: int, length: int, orientation: Orientation) -> bool:
        """Check bounds and overlap for a run of ``length`` cells from (x, y).

        A ship may sit flush against the far edge but never wraps past it.
        """
        if length <= 0 or not isinstance(orientation, Orientation):
            return False
        dx, dy = orientation.step
        if not self.in_bounds(x, y):
            return False
        if not self.in_bounds(x + dx * (length - 1), y + dy * (length - 1)):
            return False
        return all(
            self._grid.get(x + dx * offset, y + dy * offset) is CellState.EMPTY
            for offset in range(length)
        )

    def place_ship(self, x: int, y: int, kind: CellState, orientation: Orientation) -> bool:
        """Place ``kind`` starting at (x, y); return False and leave the board untouched on failure."""
        length = ship_length(kind)
        if length == 0 or not isinstance(orientation, Orientation):
            PLACEMENT_COUNTER.add(1, attributes={"result": "rejected", "owner": self.owner})
            logger.warning(
                "ship_placement_rejected",
                extra={"owner": self.owner, "kind": repr(kind), "orientation": repr(orientation)},
            )
            return False

        if not self.can_place(x, y, length, orientation):
            PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "owner": self.owner})
            logger.debug(
                "ship_placement_failed",
                extra={
                    "owner": self.owner,
                    "kind": kind.name,
                    "orientation": orientation.name,
                    "x": x,
                    "y": y,
                },
            )
            return False

        dx, dy = orientation.step
        for offset in range(length):
            self._grid.set(x + dx * offset, y + dy * offset, kind)
        self._placed.append(kind)
        PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
        logger.debug(
            "ship_placed",
            extra={
                "owner": self.owner,
                "kind": kind.name,
                "orientation": orientation.name,
                "x": x,
                "y": y,
            },
        )
        return True

    def seed_board(self, rng: random.Random | None = None) -> tuple[CellState, ...]:
        """Clear the board and place one ship of every kind at random.

        A ship that still does not fit after ``MAX_PLACEMENT_ATTEMPTS`` tries
        is skipped. Returns the kinds that were actually placed.
        """
        rng = rng if rng is not None else self._rng
        with tracer.start_as_current_span("board.seed_board") as span:
            span.set_attribute("board.owner", self.owner)
            self._grid.fill(CellState.EMPTY)
            self._sunk = dict.fromkeys(SHIP_KINDS, False)
            self._hit_locations.clear()
            self._placed.clear()

            for kind in SHIP_KINDS:
                for attempt in range(1, MAX_PLACEMENT_ATTEMPTS + 1):
                    orientation = rng.choice(ORIENTATIONS)
                    x = rng.randrange(self.cols)
                    y = rng.randrange(self.rows)
                    if self.place_ship(x, y, kind, orientation):
                        logger.debug(
                            "random_ship_placed",
                            extra={"kind": kind.name, "attempts": attempt, "owner": self.owner},
                        )
                        break
                else:
                    logger.warning(
                        "ship_unplaceable",
                        extra={
                            "kind": kind.name,
                            "attempts": MAX_PLACEMENT_ATTEMPTS,
                            "owner": self.owner,
                            "cols": self.cols,
                            "rows": self.rows,
                        },
                    )
            span.set_attribute("board.ships_placed", len(self._placed))
            return self.placed_ships

    @property
    def placed_ships(self) -> tuple[CellState, ...]:
        return tuple(self._placed)

    # -- attacks -----------------------------------------------------------

    def attack(self, x: int, y: int) -> AttackResult:
        """Fire at (x, y) and report the outcome.

        Re-attacking a resolved cell returns an ``ALREADY_ATTACKED`` result
        and leaves the board unchanged.
        """
        with tracer.start_as_current_span("board.attack") as span:
            x, y = self._grid.normalize(x, y)
            span.set_attribute("attack.x", x)
            span.set_attribute("attack.y", y)
            span.set_attribute("board.owner", self.owner)
            current = self._grid.get(x, y)

            if current.resolved:
                span.set_attribute("attack.outcome", "repeat")
                ATTACK_COUNTER.add(1, attributes={"outcome": "repeat", "owner": self.owner})
                logger.warning("attack_repeat", extra={"x": x, "y": y, "owner": self.owner})
                return AttackResult(False, False, None, AttackError.ALREADY_ATTACKED)

            if not current.is_ship:
                self._grid.set(x, y, CellState.MISS)
                span.set_attribute("attack.outcome", "miss")
                ATTACK_COUNTER.add(1, attributes={"outcome": "miss", "owner": self.owner})
                logger.debug("attack_miss", extra={"x": x, "y": y, "owner": self.owner})
                return AttackResult(False, False)

            self._hit_locations[Coordinate(x, y)] = current
            self._grid.set(x, y, CellState.HIT)
            sunk = current not in self._grid.to_list()
            if sunk:
                self._sink(current)

            span.set_attribute("attack.outcome", "sunk" if sunk else "hit")
            ATTACK_COUNTER.add(
                1, attributes={"outcome": "sunk" if sunk else "hit", "owner": self.owner}
            )
            logger.debug(
                "attack_hit",
                extra={"x": x, "y": y, "kind": current.name, "sunk": sunk, "owner": self.owner},
            )
            return AttackResult(True, sunk, current)

    def _sink(self, kind: CellState) -> None:
        self._sunk[kind] = True
        for coord, hit_kind in self._hit_locations.items():
            if hit_kind is kind:
                self._grid.set(coord.x, coord.y, CellState.SUNK)
        logger.info("ship_sunk", extra={"kind": kind.name, "owner": self.owner})

    def observe(self, x: int, y: int, result: AttackResult, truth: BattleBoard) -> None:
        """Mirror an attack made against ``truth`` onto this view board."""
        if not result.ok:
            return
        self._grid.set(x, y, CellState.HIT if result.hit else CellState.MISS)
        if result.sunk and result.ship is not None:
            self.record_sunk_ship(result.ship)
            for coord, kind in truth.hit_locations().items():
                if kind is result.ship:
                    self._grid.set(coord.x, coord.y, CellState.SUNK)

    # -- queries -----------------------------------------------------------

    def is_ship_sunk(self, kind: CellState) -> bool:
        return self._sunk.get(kind, False)

    def is_cell_sunk(self, x: int, y: int) -> bool:
        cell = self._grid.get(x, y)
        if cell is CellState.SUNK:
            return True
        if cell is not CellState.HIT:
            return False
        origin = self._hit_locations.get(Coordinate(*self._grid.normalize(x, y)))
        return origin is not None and self.is_ship_sunk(origin)

    def all_ships_sunk(self) -> bool:
        return all(self._sunk.values())

    def record_sunk_ship(self, kind: CellState) -> None:
        """Mark ``kind`` sunk without scanning the grid. Idempotent."""
        if kind not in self._sunk:
            logger.warning("record_sunk_unknown_kind", extra={"kind": repr(kind), "owner": self.owner})
            return
        self._sunk[kind] = True

    def sunk_ships(self) -> dict[CellState, bool]:
        return dict(self._sunk)

    def hit_locations(self) -> dict[Coordinate, CellState]:
        return dict(self._hit_locations)

    def visible_state(self, x: int, y: int) -> CellState:
        """Cell state as the opponent may see it: intact ships read as EMPTY."""
        return self._mask(self._grid.get(x, y))

    def empty_cells(self) -> list[Coordinate]:
        return [
            Coordinate(x, y) for x, y, cell in self._grid.cells() if cell is CellState.EMPTY
        ]

    @staticmethod
    def _mask(cell: CellState) -> CellState:
        return CellState.EMPTY if cell.is_ship else cell
