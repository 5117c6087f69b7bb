"""Probability heatmap used to rank candidate shots."""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from broadside.engine.board import BattleBoard
from broadside.engine.grid import Grid
from broadside.engine.ship import SHIP_KINDS, CellState, Orientation
from broadside.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("broadside.ai.heatmap")

HUNT_BONUS = 100
LINE_BONUS = 500
GAP_BONUS = 500

_AXES: dict[Orientation, tuple[tuple[int, int], tuple[int, int]]] = {
    Orientation.HORIZONTAL: ((-1, 0), (1, 0)),
    Orientation.VERTICAL: ((0, -1), (0, 1)),
}


class HeatmapBoard:
    """Per-cell shot desirability derived from what a board shows.

    The heat is rebuilt from scratch by every :meth:`calculate` call. The
    board passed in is only read during the call; no reference is kept.

    Target mode counts, for every ship kind not yet sunk, the placements
    that still fit entirely on EMPTY cells. Hunt mode then adds large
    bonuses next to HIT cells so a found ship gets finished first.
    """

    def __init__(self, width: int = 10, height: int = 10) -> None:
        self._grid: Grid[int] = Grid(width, height, 0)

    @property
    def cols(self) -> int:
        return self._grid.cols

    @property
    def rows(self) -> int:
        return self._grid.rows

    def get(self, x: int, y: int) -> int:
        return self._grid.get(x, y)

    def to_list(self) -> list[int]:
        return self._grid.to_list()

    def total(self) -> int:
        return sum(self._grid.to_list())

    def as_array(self) -> npt.NDArray[np.int64]:
        """Heat as a ``(rows, cols)`` array."""
        return np.array(self._grid.to_list(), dtype=np.int64).reshape(self.rows, self.cols)

    def render(self) -> str:
        return self._grid.render(width=5)

    def calculate(self, board: BattleBoard) -> None:
        if (board.cols, board.rows) != (self.cols, self.rows):
            raise ValueError(
                f"Heatmap is {self.cols}x{self.rows} but board is {board.cols}x{board.rows}."
            )
        with tracer.start_as_current_span("heatmap.calculate") as span:
            self._grid.fill(0)
            cells = board.to_list()
            alive = [kind for kind in SHIP_KINDS if not board.is_ship_sunk(kind)]
            for kind in alive:
                self._add_placements(cells, kind.length)
            self._add_hunt_bonuses(cells)
            span.set_attribute("heatmap.alive_ships", len(alive))
            span.set_attribute("heatmap.total", self.total())

    def _add_placements(self, cells: list[CellState], length: int) -> None:
        cols, rows = self.cols, self.rows
        heat = self._grid.to_list()
        empty = [cell is CellState.EMPTY for cell in cells]

        for y in range(rows):
            base = y * cols
            for x in range(cols - length + 1):
                start = base + x
                if all(empty[start : start + length]):
                    for index in range(start, start + length):
                        heat[index] += 1

        for y in range(rows - length + 1):
            for x in range(cols):
                run = range(y * cols + x, (y + length) * cols + x, cols)
                if all(empty[index] for index in run):
                    for index in run:
                        heat[index] += 1

    def _add_hunt_bonuses(self, cells: list[CellState]) -> None:
        cols, rows = self.cols, self.rows
        heat = self._grid.to_list()

        def state(x: int, y: int) -> CellState | None:
            if 0 <= x < cols and 0 <= y < rows:
                return cells[y * cols + x]
            return None

        def support(x: int, y: int, axis: Orientation) -> int:
            return sum(state(x + dx, y + dy) is CellState.HIT for dx, dy in _AXES[axis])

        for y in range(rows):
            for x in range(cols):
                cell = cells[y * cols + x]
                if cell is CellState.HIT:
                    for axis, other in (
                        (Orientation.HORIZONTAL, Orientation.VERTICAL),
                        (Orientation.VERTICAL, Orientation.HORIZONTAL),
                    ):
                        same = support(x, y, axis)
                        # A confirmed line on the other axis rules out a lateral turn.
                        if same == 0 and support(x, y, other) > 0:
                            continue
                        bonus = HUNT_BONUS + LINE_BONUS * same
                        for dx, dy in _AXES[axis]:
                            if state(x + dx, y + dy) is CellState.EMPTY:
                                heat[(y + dy) * cols + x + dx] += bonus
                elif cell is CellState.EMPTY:
                    if support(x, y, Orientation.HORIZONTAL) == 2 or support(
                        x, y, Orientation.VERTICAL
                    ) == 2:
                        heat[y * cols + x] += GAP_BONUS
