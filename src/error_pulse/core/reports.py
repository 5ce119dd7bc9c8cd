"""Report building and CSV emission."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
import os
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import aiofiles

from .models import AnalyticsSnapshot, Report
from .ranking import rank_counts, rank_peaks

logger = logging.getLogger(__name__)

SEVERITY_REPORT = "errors_by_severity"
PRODUCT_VERSION_REPORT = "errors_by_product_version"
TOP_ERROR_CODES_REPORT = "top_error_codes"
PEAK_PERIODS_REPORT = "peak_error_periods"

REPORT_NAMES = (
    SEVERITY_REPORT,
    PRODUCT_VERSION_REPORT,
    TOP_ERROR_CODES_REPORT,
    PEAK_PERIODS_REPORT,
)

RUN_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
REPORT_SUFFIX = ".csv"


class ReportWriteError(RuntimeError):
    """One or more reports could not be written."""

    def __init__(self, failures: dict[str, BaseException], written: list[Path]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(f"Failed to write reports: {names}")
        self.failures = failures
        self.written = written


def build_reports(snapshot: AnalyticsSnapshot, *, top_n: int = 10) -> list[Report]:
    """Rank every rollup of the snapshot into report rows."""
    severity = Report(
        name=SEVERITY_REPORT,
        header=("Severity", "Count"),
        rows=tuple((sev, n) for sev, n in rank_counts(snapshot.severity_counts)),
    )
    product_version = Report(
        name=PRODUCT_VERSION_REPORT,
        header=("Product", "Version", "Count"),
        rows=tuple((*key, n) for key, n in rank_counts(snapshot.product_version_counts)),
    )
    top_codes = Report(
        name=TOP_ERROR_CODES_REPORT,
        header=("Product", "Severity", "ErrorCode", "Count"),
        rows=tuple(
            (*key, n) for key, n in rank_counts(snapshot.signature_counts, limit=top_n)
        ),
    )
    peaks = Report(
        name=PEAK_PERIODS_REPORT,
        header=("Period", "Product", "Severity", "ErrorCode", "Count"),
        rows=tuple(
            (p.label, *p.signature, p.count) for p in rank_peaks(snapshot.hourly_histogram)
        ),
    )
    return [severity, product_version, top_codes, peaks]


def render_csv(report: Report) -> str:
    """Serialize a report; fields containing commas or quotes are quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(report.header)
    writer.writerows(report.rows)
    return buf.getvalue()


def report_path(out_dir: Path, name: str, run_at: datetime) -> Path:
    return out_dir / f"{name}_{run_at.strftime(RUN_TIMESTAMP_FORMAT)}{REPORT_SUFFIX}"


async def write_report(report: Report, out_dir: Path, *, run_at: datetime) -> Path:
    """Write one report atomically (temp file + rename)."""
    path = report_path(out_dir, report.name, run_at)
    tmp = path.with_name(path.name + ".tmp")
    text = render_csv(report)
    try:
        async with aiofiles.open(tmp, mode="w", encoding="utf-8", newline="") as f:
            await f.write(text)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.info("Report %s saved at path: %s", report.name, path)
    return path


async def write_reports(
    reports: Sequence[Report],
    out_dir: str | Path,
    *,
    run_at: datetime | None = None,
) -> list[Path]:
    """Write all reports concurrently; a failure in one does not skip the rest."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    run_at = run_at or datetime.now()

    results = await asyncio.gather(
        *(write_report(r, out_dir, run_at=run_at) for r in reports),
        return_exceptions=True,
    )

    written: list[Path] = []
    failures: dict[str, BaseException] = {}
    for report, result in zip(reports, results):
        if isinstance(result, BaseException):
            logger.error("Report %s failed: %s", report.name, result)
            failures[report.name] = result
        else:
            written.append(result)

    if failures:
        raise ReportWriteError(failures, written)
    return written
