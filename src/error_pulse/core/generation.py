"""Synthetic error batch generation.

Writes a CSV batch in the input format by sampling uniformly from reference
lookup tables. Useful for demos and load checks of the aggregation pipeline.
"""

from __future__ import annotations

import csv
import io
import logging
import random
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiofiles
from pydantic import BaseModel, Field, model_validator

from .config import GenerationConfig, resolve_generation_config
from .models import ErrorEvent
from .source import INPUT_COLUMNS

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
_SECONDS_PER_DAY = 24 * 60 * 60
_FLUSH_EVERY = 1000


class ReferenceData(BaseModel):
    """Lookup tables sampled by the generator."""

    severity: list[str] = Field(min_length=1, description="Severity names.")
    products: list[str] = Field(min_length=1, description="Product names.")
    versions: dict[str, list[str]] = Field(description="Known versions per product.")
    error_codes: list[str] = Field(min_length=1, description="Error code identifiers.")

    @model_validator(mode="after")
    def _every_product_has_versions(self) -> ReferenceData:
        missing = [p for p in self.products if not self.versions.get(p)]
        if missing:
            raise ValueError(f"No versions configured for: {', '.join(missing)}")
        return self


def default_reference_data() -> ReferenceData:
    """Small built-in reference set."""
    return ReferenceData(
        severity=["Critical", "Error", "Warning", "Info"],
        products=["Atlas", "Beacon", "Cobalt"],
        versions={
            "Atlas": ["1.0", "1.1", "2.0"],
            "Beacon": ["3.2", "3.3"],
            "Cobalt": ["0.9", "1.0"],
        },
        error_codes=["E1001", "E1002", "E2001", "E2002", "E3001", "E4040", "E5000"],
    )


def load_reference_data(path: str | Path | None) -> ReferenceData:
    """Load reference data from a JSON file, or return the built-in default."""
    if path is None:
        return default_reference_data()
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Reference data file not found: {p}")
    return ReferenceData.model_validate_json(p.read_text(encoding="utf-8"))


def generate_events(
    reference: ReferenceData,
    *,
    count: int,
    rng: random.Random,
    day: datetime,
) -> Iterator[ErrorEvent]:
    """Yield ``count`` events with timestamps spread over one day."""
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    for _ in range(count):
        product = rng.choice(reference.products)
        yield ErrorEvent(
            timestamp=start + timedelta(seconds=rng.randrange(_SECONDS_PER_DAY)),
            severity=rng.choice(reference.severity),
            product=product,
            version=rng.choice(reference.versions[product]),
            error_code=rng.choice(reference.error_codes),
        )


def _event_row(event: ErrorEvent) -> tuple[str, ...]:
    return (
        event.timestamp.strftime(TIMESTAMP_FORMAT),
        event.severity,
        event.product,
        event.version,
        event.error_code,
    )


async def generate_error_file(
    config: GenerationConfig | None = None,
    *,
    reference: ReferenceData | None = None,
    now: datetime | None = None,
) -> Path:
    """Write a new ``{uuid}.csv`` batch into the error directory."""
    cfg = config or resolve_generation_config()
    if cfg.error_dir is None:
        raise ValueError("Error data directory is not configured.")
    reference = reference or load_reference_data(cfg.reference_path)

    out_dir = Path(cfg.error_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{uuid.uuid4().hex}.csv"

    rng = random.Random(cfg.seed)
    day = (now or datetime.now(UTC)).replace(tzinfo=None)

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(INPUT_COLUMNS)
    async with aiofiles.open(path, mode="w", encoding="utf-8", newline="") as f:
        for i, event in enumerate(generate_events(reference, count=cfg.rows, rng=rng, day=day), 1):
            writer.writerow(_event_row(event))
            if i % _FLUSH_EVERY == 0:
                await f.write(buf.getvalue())
                buf.seek(0)
                buf.truncate()
        await f.write(buf.getvalue())

    logger.info("CSV file with %s rows created at %s", cfg.rows, path)
    return path
