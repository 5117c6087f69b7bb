"""Host-side settings: board dimensions and simulation parameters."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator

ENV_FIELDS: dict[str, str] = {
    "board_width": "BATTLESHIPWIDTH",
    "board_height": "BATTLESHIPHEIGHT",
    "simulation_games": "BROADSIDE_SIM_GAMES",
    "simulation_workers": "BROADSIDE_SIM_WORKERS",
    "seed": "BROADSIDE_SEED",
    "log_level": "BROADSIDE_LOG_LEVEL",
}

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class GameSettings(BaseModel):
    """Values a host supplies to the engine as plain integers."""

    board_width: int = Field(default=10, gt=0)
    board_height: int = Field(default=10, gt=0)
    simulation_games: int = Field(default=100, gt=0)
    simulation_workers: int = Field(default=4, gt=0)
    seed: int | None = None
    log_level: LogLevel = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameSettings":
        """Read settings from the environment; pydantic coerces and validates them."""
        data: Dict[str, Any] = {}
        for field, env_name in ENV_FIELDS.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                data[field] = value.strip()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "GameSettings":
        """Return a validated copy with every non-``None`` override applied."""
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return type(self)(**data)


@lru_cache(maxsize=1)
def load_settings() -> GameSettings:
    """Load and cache settings from the environment."""
    return GameSettings.from_env()
