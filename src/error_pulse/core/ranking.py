"""Deterministic ranking and peak selection over frozen counts.

Tie-breaks:
- equal counts are ordered by ascending key,
- equal hour buckets resolve to the lowest hour.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeVar

from .models import PeakPeriod, Signature, SignatureHourHistogram

K = TypeVar("K")


def rank_counts(counts: Mapping[K, int], *, limit: int | None = None) -> list[tuple[K, int]]:
    """Return (key, count) pairs sorted by count desc, key asc; optionally truncated."""
    if limit is not None and limit < 0:
        raise ValueError("limit must be >= 0")
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def peak_hour(hours: Mapping[int, int]) -> tuple[int, int]:
    """Return (hour, count) of the busiest hour; lowest hour wins ties."""
    if not hours:
        raise ValueError("empty histogram")
    return min(hours.items(), key=lambda hc: (-hc[1], hc[0]))


def rank_peaks(histogram: SignatureHourHistogram) -> list[PeakPeriod]:
    """One PeakPeriod per signature, sorted by count desc, signature asc."""
    peaks: list[PeakPeriod] = []
    for signature, hours in histogram.items():
        if not hours:
            continue
        hour, count = peak_hour(hours)
        peaks.append(PeakPeriod(signature=Signature(*signature), hour=hour, count=count))
    peaks.sort(key=lambda p: (-p.count, p.signature))
    return peaks
