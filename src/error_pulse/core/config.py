"""Runtime configuration resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ERROR_DIR_ENV = "ERROR_PULSE_ERROR_DIR"
ANALYTICS_DIR_ENV = "ERROR_PULSE_ANALYTICS_DIR"
TOP_N_ENV = "ERROR_PULSE_TOP_N"
CHANNEL_CAPACITY_ENV = "ERROR_PULSE_CHANNEL_CAPACITY"
ROWS_ENV = "ERROR_PULSE_ROWS"
SEED_ENV = "ERROR_PULSE_SEED"
REFERENCE_PATH_ENV = "ERROR_PULSE_REFERENCE_PATH"

DEFAULT_ANALYTICS_DIR = "analytics"
DEFAULT_TOP_N = 10
DEFAULT_ROWS = 10_000


@dataclass(frozen=True, slots=True)
class AnalyticsConfig:
    """Where to read input batches from and where to write reports."""

    error_dir: Path | None = None
    analytics_dir: Path = Path(DEFAULT_ANALYTICS_DIR)
    top_n: int = DEFAULT_TOP_N
    # 0 means unbounded channels.
    channel_capacity: int = 0


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Synthetic batch generation options."""

    error_dir: Path | None = None
    rows: int = DEFAULT_ROWS
    seed: int | None = None
    reference_path: Path | None = None


def _env_int(name: str, default: int | None, *, minimum: int) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw.strip()).expanduser()


def resolve_analytics_config() -> AnalyticsConfig:
    """Build an AnalyticsConfig from ERROR_PULSE_* environment variables."""
    return AnalyticsConfig(
        error_dir=_env_path(ERROR_DIR_ENV),
        analytics_dir=_env_path(ANALYTICS_DIR_ENV) or Path(DEFAULT_ANALYTICS_DIR),
        top_n=_env_int(TOP_N_ENV, DEFAULT_TOP_N, minimum=1),
        channel_capacity=_env_int(CHANNEL_CAPACITY_ENV, 0, minimum=0),
    )


def resolve_generation_config() -> GenerationConfig:
    """Build a GenerationConfig from ERROR_PULSE_* environment variables."""
    return GenerationConfig(
        error_dir=_env_path(ERROR_DIR_ENV),
        rows=_env_int(ROWS_ENV, DEFAULT_ROWS, minimum=1),
        seed=_env_int(SEED_ENV, None, minimum=0),
        reference_path=_env_path(REFERENCE_PATH_ENV),
    )
