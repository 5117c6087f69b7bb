"""Automated targeting: heatmap, strategies and simulation harness."""

from .heatmap import HeatmapBoard
from .simulation import GameOutcome, SimulationConfig, SimulationReport, Simulator
from .targeting import HeatmapTargeting, RandomTargeting, TargetingStrategy, build_strategy

__all__ = [
    "HeatmapBoard",
    "HeatmapTargeting",
    "RandomTargeting",
    "TargetingStrategy",
    "build_strategy",
    "GameOutcome",
    "SimulationConfig",
    "SimulationReport",
    "Simulator",
]
