"""Aggregation pipeline driver.

Source -> dispatcher -> one consumer task per aggregator -> join -> reports.
This module is the main integration point used by the CLI and the MCP tools.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .aggregators import (
    Aggregator,
    HourlyPeakAggregator,
    ProductVersionAggregator,
    SeverityAggregator,
    SignatureAggregator,
)
from .config import AnalyticsConfig, resolve_analytics_config
from .dispatcher import Channel, dispatch
from .models import AnalyticsSnapshot, ErrorEvent
from .reports import build_reports, write_reports
from .source import iter_events

logger = logging.getLogger(__name__)

INPUT_SUFFIX = ".csv"


@dataclass(frozen=True, slots=True)
class AnalyticsRunResult:
    """Outcome of one run, as reported to the trigger surface."""

    success: bool
    message: str
    input_path: Path | None = None
    total_events: int = 0
    reports: list[Path] = field(default_factory=list)


async def aggregate_events(
    source: AsyncIterable[ErrorEvent],
    *,
    channel_capacity: int = 0,
) -> AnalyticsSnapshot:
    """Fan the source out to every aggregator and return their frozen state.

    The snapshot is only built after every consumer has drained its channel.
    Any failure cancels the remaining tasks and propagates.
    """
    severity = SeverityAggregator()
    product_version = ProductVersionAggregator()
    signature = SignatureAggregator()
    hourly = HourlyPeakAggregator()
    aggregators: list[Aggregator] = [severity, product_version, signature, hourly]
    channels: list[Channel[ErrorEvent]] = [Channel(channel_capacity) for _ in aggregators]

    dispatch_task = asyncio.create_task(dispatch(source, channels), name="dispatch")
    consumer_tasks = [
        asyncio.create_task(agg.consume(ch), name=f"aggregate-{agg.name}")
        for agg, ch in zip(aggregators, channels)
    ]

    try:
        total, *_ = await asyncio.gather(dispatch_task, *consumer_tasks)
    finally:
        for task in (dispatch_task, *consumer_tasks):
            task.cancel()
        await asyncio.gather(dispatch_task, *consumer_tasks, return_exceptions=True)

    return AnalyticsSnapshot(
        total_events=total,
        severity_counts=severity.freeze(),
        product_version_counts=product_version.freeze(),
        signature_counts=signature.freeze(),
        hourly_histogram=hourly.freeze(),
    )


async def aggregate_file(path: str | Path, *, channel_capacity: int = 0) -> AnalyticsSnapshot:
    """Run the aggregation pipeline over one batch file."""
    return await aggregate_events(iter_events(path), channel_capacity=channel_capacity)


def find_latest_input(error_dir: str | Path) -> Path | None:
    """Return the newest *.csv in error_dir (mtime, then name), or None."""
    directory = Path(error_dir)
    if not directory.is_dir():
        return None
    candidates = [
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == INPUT_SUFFIX
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: (p.stat().st_mtime, p.name))


async def create_analytics_files(
    config: AnalyticsConfig | None = None,
    *,
    run_at: datetime | None = None,
) -> AnalyticsRunResult:
    """Aggregate the most recent input batch and write the four reports.

    Never raises for run failures: missing input and pipeline errors are
    logged and returned as ``success=False``.
    """
    cfg = config or resolve_analytics_config()

    if cfg.error_dir is None:
        logger.error("Error data directory is not configured.")
        return AnalyticsRunResult(False, "Error data directory is not configured.")

    input_path = find_latest_input(cfg.error_dir)
    if input_path is None:
        logger.error("No CSV data file found in %s. Skipping analytics.", cfg.error_dir)
        return AnalyticsRunResult(False, f"No CSV data file found in {cfg.error_dir}.")

    logger.info("Aggregating %s", input_path)
    try:
        snapshot = await aggregate_file(input_path, channel_capacity=cfg.channel_capacity)
        reports = build_reports(snapshot, top_n=cfg.top_n)
        paths = await write_reports(reports, cfg.analytics_dir, run_at=run_at)
    except Exception as exc:
        logger.exception("Analytics run over %s failed", input_path)
        return AnalyticsRunResult(False, f"Analytics failed: {exc}", input_path=input_path)

    logger.info("CSV analytics saved successfully (%s events).", snapshot.total_events)
    return AnalyticsRunResult(
        True,
        f"Wrote {len(paths)} reports from {snapshot.total_events} events.",
        input_path=input_path,
        total_events=snapshot.total_events,
        reports=paths,
    )
