"""Core data models for error analytics."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

# Used when a row has no Timestamp field; hour-of-day is 0.
MISSING_TIMESTAMP = datetime.min


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """One parsed input row describing a single logged error occurrence."""

    timestamp: datetime
    severity: str
    product: str
    version: str
    error_code: str

    @property
    def hour(self) -> int:
        return self.timestamp.hour

    @property
    def product_version(self) -> ProductVersion:
        return ProductVersion(self.product, self.version)

    @property
    def signature(self) -> Signature:
        return Signature(self.product, self.severity, self.error_code)


class ProductVersion(NamedTuple):
    product: str
    version: str


class Signature(NamedTuple):
    """Composite identity used to group related errors."""

    product: str
    severity: str
    error_code: str


SeverityCounts = Mapping[str, int]
ProductVersionCounts = Mapping[ProductVersion, int]
SignatureCounts = Mapping[Signature, int]
SignatureHourHistogram = Mapping[Signature, Mapping[int, int]]


@dataclass(frozen=True, slots=True)
class PeakPeriod:
    """Hour bucket with the highest count for one signature."""

    signature: Signature
    hour: int
    count: int

    @property
    def label(self) -> str:
        return period_label(self.hour)


def period_label(hour: int) -> str:
    """Format an hour bucket as ``HH:00 - HH:00`` (wrapping at midnight)."""
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in 0..23, got {hour}")
    return f"{hour:02d}:00 - {(hour + 1) % 24:02d}:00"


@dataclass(frozen=True, slots=True)
class AnalyticsSnapshot:
    """Frozen accumulator state of every rollup after the stream completed."""

    total_events: int
    severity_counts: SeverityCounts
    product_version_counts: ProductVersionCounts
    signature_counts: SignatureCounts
    hourly_histogram: SignatureHourHistogram


@dataclass(frozen=True, slots=True)
class Report:
    """Ranked rows for one rollup, ready to serialize."""

    name: str
    header: tuple[str, ...]
    rows: tuple[tuple[str | int, ...], ...]
