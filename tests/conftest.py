from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

HEADER = "Timestamp,Severity,Product,Version,ErrorCode"


@pytest.fixture
def write_events_csv() -> Callable[[Path, list[str]], Path]:
    def _write(path: Path, rows: list[str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join([HEADER, *rows]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def scenario_rows() -> list[str]:
    return [
        "2025-12-30T10:05:00,Critical,Foo,1.0,E1",
        "2025-12-30T10:45:00,Critical,Foo,1.0,E1",
        "2025-12-30T14:10:00,Warning,Foo,1.0,E2",
    ]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "ERROR_PULSE_ERROR_DIR",
        "ERROR_PULSE_ANALYTICS_DIR",
        "ERROR_PULSE_TOP_N",
        "ERROR_PULSE_CHANNEL_CAPACITY",
        "ERROR_PULSE_ROWS",
        "ERROR_PULSE_SEED",
        "ERROR_PULSE_REFERENCE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
