"""Shot selection strategies."""

from __future__ import annotations

import logging
import random
from typing import Protocol

from broadside.engine.board import BattleBoard
from broadside.engine.ship import CellState, Coordinate
from broadside.telemetry import get_meter, get_tracer

from .heatmap import HeatmapBoard

logger = logging.getLogger(__name__)
tracer = get_tracer("broadside.ai.targeting")
meter = get_meter("broadside.ai.targeting")

SELECTION_COUNTER = meter.create_counter(
    "broadside_targeting_selections",
    unit="1",
    description="Targets chosen, by how the choice was made",
)

_MOORE = tuple((dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0))


class TargetingStrategy(Protocol):
    """Anything that can pick the next cell to fire at on a view board."""

    def choose(self, view: BattleBoard) -> Coordinate | None: ...


class RandomTargeting:
    """Fires at a uniformly random cell that has not been attacked yet."""

    name = "random"

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    def choose(self, view: BattleBoard) -> Coordinate | None:
        candidates = view.empty_cells()
        if not candidates:
            return None
        return self._rng.choice(candidates)


class HeatmapTargeting:
    """Fires at the hottest EMPTY cell of a freshly computed heatmap.

    Equal maxima are separated by the summed heat of each candidate's eight
    neighbours; whatever still ties is drawn at random. With no positive
    heat anywhere, a random EMPTY cell is chosen.
    """

    name = "heatmap"

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.heatmap: HeatmapBoard | None = None

    def choose(self, view: BattleBoard) -> Coordinate | None:
        with tracer.start_as_current_span("targeting.choose") as span:
            heatmap = self._heatmap_for(view)
            heatmap.calculate(view)

            cells = view.to_list()
            heat = heatmap.to_list()
            cols = view.cols
            empty = [index for index, cell in enumerate(cells) if cell is CellState.EMPTY]
            if not empty:
                span.set_attribute("targeting.mode", "exhausted")
                return None

            best = max(heat[index] for index in empty)
            if best <= 0:
                index = self._rng.choice(empty)
                return self._select(span, "fallback", index % cols, index // cols, best)

            candidates = [
                Coordinate(index % cols, index // cols) for index in empty if heat[index] == best
            ]
            if len(candidates) == 1:
                only = candidates[0]
                return self._select(span, "heat", only.x, only.y, best)

            scores = {coord: self._neighbourhood_heat(heatmap, coord) for coord in candidates}
            top = max(scores.values())
            survivors = [coord for coord in candidates if scores[coord] == top]
            choice = survivors[0] if len(survivors) == 1 else self._rng.choice(survivors)
            mode = "neighbourhood" if len(survivors) == 1 else "random_tiebreak"
            return self._select(span, mode, choice.x, choice.y, best)

    def _heatmap_for(self, view: BattleBoard) -> HeatmapBoard:
        if self.heatmap is None or (self.heatmap.cols, self.heatmap.rows) != (view.cols, view.rows):
            self.heatmap = HeatmapBoard(view.cols, view.rows)
        return self.heatmap

    @staticmethod
    def _neighbourhood_heat(heatmap: HeatmapBoard, coord: Coordinate) -> int:
        total = 0
        for dx, dy in _MOORE:
            x, y = coord.x + dx, coord.y + dy
            # Edge cells do not borrow heat from the opposite edge.
            if 0 <= x < heatmap.cols and 0 <= y < heatmap.rows:
                total += heatmap.get(x, y)
        return total

    @staticmethod
    def _select(span, mode: str, x: int, y: int, heat: int) -> Coordinate:
        span.set_attribute("targeting.mode", mode)
        span.set_attribute("targeting.x", x)
        span.set_attribute("targeting.y", y)
        span.set_attribute("targeting.heat", heat)
        SELECTION_COUNTER.add(1, attributes={"mode": mode})
        logger.debug("target_selected", extra={"mode": mode, "x": x, "y": y, "heat": heat})
        return Coordinate(x, y)


STRATEGIES: dict[str, type[HeatmapTargeting] | type[RandomTargeting]] = {
    HeatmapTargeting.name: HeatmapTargeting,
    RandomTargeting.name: RandomTargeting,
}


def build_strategy(name: str, rng: random.Random | None = None) -> TargetingStrategy:
    """Instantiate a registered strategy by name."""
    try:
        factory = STRATEGIES[name]
    except KeyError as exc:
        raise ValueError(
            f"Unknown targeting strategy {name!r}; expected one of {sorted(STRATEGIES)}."
        ) from exc
    return factory(rng)
