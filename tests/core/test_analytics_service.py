from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import datetime
from pathlib import Path

import pytest

from error_pulse.core.analytics_service import (
    aggregate_events,
    aggregate_file,
    create_analytics_files,
    find_latest_input,
)
from error_pulse.core.config import AnalyticsConfig
from error_pulse.core.models import ErrorEvent, Signature

RUN_AT = datetime(2025, 12, 30, 12, 0, 0)


def _read(out_dir: Path, name: str) -> str:
    (path,) = out_dir.glob(f"{name}_*.csv")
    return path.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_scenario_reports(tmp_path: Path, write_events_csv, scenario_rows) -> None:
    write_events_csv(tmp_path / "errors" / "batch.csv", scenario_rows)
    out_dir = tmp_path / "analytics"
    cfg = AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=out_dir)

    result = await create_analytics_files(cfg, run_at=RUN_AT)

    assert result.success
    assert result.total_events == 3
    assert len(result.reports) == 4
    assert _read(out_dir, "errors_by_severity") == "Severity,Count\nCritical,2\nWarning,1\n"
    assert _read(out_dir, "errors_by_product_version") == "Product,Version,Count\nFoo,1.0,3\n"
    assert _read(out_dir, "top_error_codes") == (
        "Product,Severity,ErrorCode,Count\nFoo,Critical,E1,2\nFoo,Warning,E2,1\n"
    )
    peaks = _read(out_dir, "peak_error_periods").splitlines()
    assert peaks[0] == "Period,Product,Severity,ErrorCode,Count"
    assert "10:00 - 11:00,Foo,Critical,E1,2" in peaks


@pytest.mark.asyncio
async def test_empty_input_writes_header_only_reports(tmp_path: Path, write_events_csv) -> None:
    write_events_csv(tmp_path / "errors" / "batch.csv", [])
    out_dir = tmp_path / "analytics"

    result = await create_analytics_files(
        AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=out_dir), run_at=RUN_AT
    )

    assert result.success
    assert result.total_events == 0
    for path in result.reports:
        assert len(path.read_text(encoding="utf-8").splitlines()) == 1


@pytest.mark.asyncio
async def test_absent_input_fails_without_output(tmp_path: Path) -> None:
    (tmp_path / "errors").mkdir()
    out_dir = tmp_path / "analytics"

    result = await create_analytics_files(
        AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=out_dir)
    )

    assert not result.success
    assert "No CSV data file found" in result.message
    assert not out_dir.exists()


@pytest.mark.asyncio
async def test_unconfigured_error_dir_fails(tmp_path: Path) -> None:
    result = await create_analytics_files(AnalyticsConfig(analytics_dir=tmp_path / "out"))

    assert not result.success
    assert "not configured" in result.message
    assert not (tmp_path / "out").exists()


@pytest.mark.asyncio
async def test_source_failure_aborts_run_without_reports(tmp_path: Path, write_events_csv) -> None:
    write_events_csv(
        tmp_path / "errors" / "batch.csv",
        ["2025-12-30T10:00:00,Critical,Foo,1.0,E1", "garbage-time,Critical,Foo,1.0,E1"],
    )
    out_dir = tmp_path / "analytics"

    result = await create_analytics_files(
        AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=out_dir)
    )

    assert not result.success
    assert "Analytics failed" in result.message
    assert not out_dir.exists()


@pytest.mark.asyncio
async def test_runs_are_idempotent(tmp_path: Path, write_events_csv, scenario_rows) -> None:
    write_events_csv(tmp_path / "errors" / "batch.csv", scenario_rows * 5)
    cfg_a = AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=tmp_path / "a")
    cfg_b = AnalyticsConfig(error_dir=tmp_path / "errors", analytics_dir=tmp_path / "b")

    first = await create_analytics_files(cfg_a, run_at=RUN_AT)
    second = await create_analytics_files(cfg_b, run_at=datetime(2025, 12, 31, 0, 0, 0))

    assert first.success and second.success
    for a, b in zip(first.reports, second.reports):
        assert a.read_text(encoding="utf-8") == b.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_aggregate_file_counts_sum_to_total(tmp_path: Path, write_events_csv) -> None:
    rows = [
        f"2025-12-30T{h:02d}:00:00,{sev},P{h % 3},1.{h % 2},E{h % 4}"
        for h in range(24)
        for sev in ("Critical", "Error", "Warning")
    ]
    path = write_events_csv(tmp_path / "batch.csv", rows)

    snapshot = await aggregate_file(path, channel_capacity=2)

    assert snapshot.total_events == len(rows)
    assert sum(snapshot.severity_counts.values()) == len(rows)
    assert sum(snapshot.product_version_counts.values()) == len(rows)
    assert sum(snapshot.signature_counts.values()) == len(rows)
    assert sum(sum(h.values()) for h in snapshot.hourly_histogram.values()) == len(rows)


@pytest.mark.asyncio
async def test_aggregate_events_propagates_source_error() -> None:
    async def broken() -> AsyncIterator[ErrorEvent]:
        yield ErrorEvent(datetime(2025, 1, 1, 5), "Error", "Foo", "1.0", "E1")
        raise OSError("read failed")

    with pytest.raises(OSError, match="read failed"):
        await aggregate_events(broken())


@pytest.mark.asyncio
async def test_aggregate_events_snapshot_is_complete() -> None:
    async def events() -> AsyncIterator[ErrorEvent]:
        for i in range(100):
            yield ErrorEvent(datetime(2025, 1, 1, i % 24), "Error", "Foo", "1.0", "E1")

    snapshot = await aggregate_events(events(), channel_capacity=1)

    assert snapshot.severity_counts == {"Error": 100}
    assert sum(snapshot.hourly_histogram[Signature("Foo", "Error", "E1")].values()) == 100


def test_find_latest_input_picks_newest_csv(tmp_path: Path) -> None:
    old = tmp_path / "old.csv"
    new = tmp_path / "new.csv"
    other = tmp_path / "notes.txt"
    for p in (old, new, other):
        p.write_text("x\n", encoding="utf-8")
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))
    os.utime(other, (3_000_000, 3_000_000))

    assert find_latest_input(tmp_path) == new


def test_find_latest_input_missing_dir(tmp_path: Path) -> None:
    assert find_latest_input(tmp_path / "nope") is None
