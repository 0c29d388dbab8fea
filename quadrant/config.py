"""
Engine configuration - Game constants and logging setup.

The constants mirror the standard game: five missions, seven counters per
turn, a hand limit of seven and 100 points to win. Tests and tools can build
an EngineConfig with different values; environment variables prefixed with
QUADRANT_ override the defaults through EngineConfig.from_env().
"""

from __future__ import annotations
from dataclasses import dataclass, fields
import logging
import os


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ENV_PREFIX = "QUADRANT_"


@dataclass(frozen=True)
class EngineConfig:
    """Tunable game constants."""
    starting_counters: int = 7
    max_hand_size: int = 7
    opening_hand_size: int = 7
    win_score: int = 100
    mission_count: int = 5
    quadrant_penalty: int = 2  # Extra range cost when crossing quadrants

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """
        Build a config from QUADRANT_* environment variables.

        Example: QUADRANT_WIN_SCORE=35 lowers the win threshold.
        Unset variables keep their defaults.
        """
        environ = os.environ if environ is None else environ
        overrides: dict[str, int] = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            try:
                overrides[f.name] = int(raw)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be an integer, got {raw!r}") from e
        return cls(**overrides)


DEFAULT_CONFIG = EngineConfig()


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
