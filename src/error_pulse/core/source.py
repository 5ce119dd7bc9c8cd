"""Batch file reading.

Streams ErrorEvent records out of a delimited error-log batch file. Parsing is
permissive: missing or extra fields never fail the run.
"""

from __future__ import annotations

import csv
import gzip
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import aiofiles
from aiofiles.threadpool import wrap

from .models import MISSING_TIMESTAMP, ErrorEvent

logger = logging.getLogger(__name__)

INPUT_COLUMNS = ("Timestamp", "Severity", "Product", "Version", "ErrorCode")

DEFAULT_TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M:%S.%f",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S.%f %p",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M:%S.%f",
)


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str, decode_errors: str):
    """Open a batch file for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors, newline="")
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors, newline="") as f:
            yield f


def parse_timestamp(value: str, *, formats: Sequence[str] = DEFAULT_TIMESTAMP_FORMATS) -> datetime:
    """Parse a timestamp field; an empty field maps to MISSING_TIMESTAMP."""
    s = value.strip()
    if not s:
        return MISSING_TIMESTAMP
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in formats:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized timestamp: {value!r}")


def _split_record(lines: Sequence[str]) -> list[str]:
    return [field.strip() for field in next(csv.reader(lines), [])]


async def _iter_records(f) -> AsyncIterator[tuple[int, list[str]]]:
    """Yield (first line number, fields) per CSV record; blank lines are skipped.

    A record continues onto following lines while a quoted field is open.
    """
    pending: list[str] = []
    start = 0
    quotes = 0
    async for line_no, line in _enumerate_async(f, start=1):
        if not pending:
            if not line.strip():
                continue
            start = line_no
        pending.append(line)
        # Escaped quotes come in pairs, so odd parity means a field is still open.
        quotes += line.count('"')
        if quotes % 2:
            continue
        yield start, _split_record(pending)
        pending = []
        quotes = 0

    if pending:
        yield start, _split_record(pending)


def _column_positions(header: Sequence[str]) -> dict[str, int | None]:
    """Map each input column to its index in the header (None when absent)."""
    normalized = [h.strip().lower() for h in header]
    positions: dict[str, int | None] = {}
    for column in INPUT_COLUMNS:
        key = column.lower()
        positions[column] = normalized.index(key) if key in normalized else None
    return positions


async def iter_events(
    path: str | Path,
    *,
    encoding: str = "utf-8-sig",
    decode_errors: str = "replace",
    timestamp_formats: Sequence[str] = DEFAULT_TIMESTAMP_FORMATS,
) -> AsyncIterator[ErrorEvent]:
    """Yield one ErrorEvent per data row, in file order.

    The first non-blank record is the header. Columns are matched by name,
    case-insensitively. Rows with missing fields are still emitted with empty
    values; extra fields are ignored.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    positions: dict[str, int | None] | None = None
    header_len = 0
    malformed = 0

    async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
        async for line_no, fields in _iter_records(f):
            if positions is None:
                positions = _column_positions(fields)
                header_len = len(fields)
                missing = [c for c, pos in positions.items() if pos is None]
                if missing:
                    logger.warning("%s: header lacks columns %s", path.name, ", ".join(missing))
                continue

            if len(fields) != header_len:
                malformed += 1
                logger.debug(
                    "%s:%s has %s fields, expected %s", path.name, line_no, len(fields), header_len
                )

            def field(column: str) -> str:
                pos = positions[column]
                if pos is None or pos >= len(fields):
                    return ""
                return fields[pos]

            try:
                timestamp = parse_timestamp(field("Timestamp"), formats=timestamp_formats)
            except ValueError as exc:
                raise ValueError(f"{path.name}:{line_no}: {exc}") from exc

            yield ErrorEvent(
                timestamp=timestamp,
                severity=field("Severity"),
                product=field("Product"),
                version=field("Version"),
                error_code=field("ErrorCode"),
            )

    if malformed:
        logger.warning("%s: %s rows had missing or extra fields", path.name, malformed)


async def _enumerate_async(iterable, start: int = 0):
    """Async enumerate helper for async iterators."""
    index = start
    async for item in iterable:
        yield index, item
        index += 1
