"""Parallel single-player simulations for measuring targeting strategies."""

from __future__ import annotations

import json
import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import numpy as np

from broadside.engine.board import BattleBoard
from broadside.telemetry import get_meter, get_tracer, record_duration, record_game_metric

from .targeting import build_strategy

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    num_games: int = 100
    width: int = 10
    height: int = 10
    workers: int = 4
    strategy: str = "heatmap"
    seed: int | None = None
    ceiling_factor: int = 2
    save_path: str | None = None

    @property
    def move_ceiling(self) -> int:
        return self.width * self.height * self.ceiling_factor


@dataclass(frozen=True)
class GameOutcome:
    """Result of one simulated game."""

    moves: int
    completed: bool
    repeated_attacks: int
    ships_placed: int
    decision_seconds: float

    @property
    def anomalous(self) -> bool:
        return not self.completed or self.repeated_attacks > 0


@dataclass(frozen=True)
class SimulationReport:
    games: int
    completed: int
    anomalies: int
    mean_moves: float
    median_moves: float
    best_moves: int
    worst_moves: int
    total_moves: int
    duration_seconds: float
    mean_decision_ms: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def play_single_game(
    width: int = 10,
    height: int = 10,
    strategy: str = "heatmap",
    seed: int | None = None,
    ceiling_factor: int = 2,
) -> GameOutcome:
    """Seed a hidden fleet and let ``strategy`` fire at it until it is gone.

    The strategy only ever sees a view board fed through
    :meth:`BattleBoard.observe`. The game stops at ``width * height *
    ceiling_factor`` moves or when the strategy has nothing left to pick.
    """
    rng = random.Random(seed)
    truth = BattleBoard(width, height, owner="solution", rng=rng)
    placed = truth.seed_board()
    view = BattleBoard(width, height, owner="view")
    shooter = build_strategy(strategy, rng)

    repeats = 0
    decision_seconds = 0.0
    moves = 0
    for moves in range(1, width * height * ceiling_factor + 1):
        started = time.perf_counter()
        target = shooter.choose(view)
        decision_seconds += time.perf_counter() - started
        if target is None:
            break
        result = truth.attack(target.x, target.y)
        if not result.ok:
            repeats += 1
            continue
        view.observe(target.x, target.y, result, truth)
        if truth.all_ships_sunk():
            return GameOutcome(moves, True, repeats, len(placed), decision_seconds)

    logger.warning(
        "simulation_game_incomplete",
        extra={"moves": moves, "repeats": repeats, "ships_placed": len(placed), "seed": seed},
    )
    return GameOutcome(moves, False, repeats, len(placed), decision_seconds)


def summarize(outcomes: list[GameOutcome], duration_seconds: float) -> SimulationReport:
    if not outcomes:
        return SimulationReport(0, 0, 0, 0.0, 0.0, 0, 0, 0, duration_seconds, 0.0)
    moves = np.array([outcome.moves for outcome in outcomes], dtype=np.int64)
    total_moves = int(moves.sum())
    decision = sum(outcome.decision_seconds for outcome in outcomes)
    return SimulationReport(
        games=len(outcomes),
        completed=sum(outcome.completed for outcome in outcomes),
        anomalies=sum(outcome.anomalous for outcome in outcomes),
        mean_moves=float(np.mean(moves)),
        median_moves=float(np.median(moves)),
        best_moves=int(moves.min()),
        worst_moves=int(moves.max()),
        total_moves=total_moves,
        duration_seconds=duration_seconds,
        mean_decision_ms=(decision / total_moves) * 1000 if total_moves else 0.0,
    )


class Simulator:
    """Runs independent games on a thread pool and aggregates their outcomes.

    Every game builds its own boards and generator from a per-game seed drawn
    up front, so a seeded run is reproducible regardless of scheduling.
    Outcomes travel back through futures; nothing is shared between games.
    """

    def __init__(self, config: SimulationConfig) -> None:
        if config.num_games < 0:
            raise ValueError("num_games must not be negative.")
        if config.workers < 1:
            raise ValueError("workers must be at least 1.")
        build_strategy(config.strategy)
        self.config = config
        self.tracer = get_tracer()
        self.meter = get_meter()
        self.moves_hist = self.meter.create_histogram(
            "broadside_simulation_game_moves",
            unit="1",
            description="Moves needed to sink a full fleet",
        )

    def run(self) -> SimulationReport:
        config = self.config
        master = random.Random(config.seed)
        seeds = [master.getrandbits(63) for _ in range(config.num_games)]

        with self.tracer.start_as_current_span("simulation.run") as span:
            span.set_attribute("simulation.games", config.num_games)
            span.set_attribute("simulation.workers", config.workers)
            span.set_attribute("simulation.strategy", config.strategy)
            started = time.perf_counter()
            outcomes: list[GameOutcome] = []
            with ThreadPoolExecutor(max_workers=config.workers) as pool:
                futures = [
                    pool.submit(
                        play_single_game,
                        config.width,
                        config.height,
                        config.strategy,
                        seed,
                        config.ceiling_factor,
                    )
                    for seed in seeds
                ]
                for future in as_completed(futures):
                    outcome = future.result()
                    outcomes.append(outcome)
                    self.moves_hist.record(outcome.moves, attributes={"strategy": config.strategy})
                    record_game_metric(
                        "broadside_simulation_games_total",
                        1,
                        {"strategy": config.strategy, "completed": outcome.completed},
                    )
            duration = time.perf_counter() - started

            report = summarize(outcomes, duration)
            span.set_attribute("simulation.mean_moves", report.mean_moves)
            span.set_attribute("simulation.anomalies", report.anomalies)
            record_duration(
                "broadside_targeting_decision_ms",
                report.mean_decision_ms,
                {"strategy": config.strategy},
            )

        logger.info("simulation_complete", extra={"strategy": config.strategy, **report.to_dict()})
        if config.save_path:
            self._save(report)
        return report

    def _save(self, report: SimulationReport) -> None:
        path = Path(self.config.save_path or "")
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"config": asdict(self.config), "report": report.to_dict()}
        path.write_text(json.dumps(payload, indent=2))


def run_benchmark(
    num_games: int, width: int = 10, height: int = 10, seed: int | None = None
) -> SimulationReport:
    """Time the heatmap strategy on a single worker."""
    config = SimulationConfig(
        num_games=num_games, width=width, height=height, workers=1, strategy="heatmap", seed=seed
    )
    return Simulator(config).run()
