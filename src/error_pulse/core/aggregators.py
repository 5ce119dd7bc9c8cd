"""Per-rollup accumulators.

Each aggregator is drained by exactly one consumer task, so its state is plain
dicts with no locking. ``freeze()`` ends the accumulation phase and returns a
read-only view.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, Hashable, Mapping
from types import MappingProxyType
from typing import Generic, TypeVar

from .models import ErrorEvent, ProductVersion, Signature

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class Aggregator(ABC):
    """Base consumer: apply ``accumulate`` to each record until the stream ends."""

    name: str = "aggregator"

    def __init__(self) -> None:
        self._frozen = False
        self.consumed = 0

    @property
    def frozen(self) -> bool:
        return self._frozen

    @abstractmethod
    def accumulate(self, event: ErrorEvent) -> None:
        """Apply one record to the accumulator."""

    def add(self, event: ErrorEvent) -> None:
        if self._frozen:
            raise RuntimeError(f"{self.name} aggregator is frozen")
        self.accumulate(event)
        self.consumed += 1

    async def consume(self, records: AsyncIterable[ErrorEvent]) -> None:
        async for event in records:
            self.add(event)
        logger.debug("%s aggregator drained %s records", self.name, self.consumed)

    @abstractmethod
    def freeze(self) -> Mapping:
        """End accumulation and return a read-only snapshot."""

    def _mark_frozen(self) -> None:
        if self._frozen:
            raise RuntimeError(f"{self.name} aggregator already frozen")
        self._frozen = True


class CountingAggregator(Aggregator, Generic[K]):
    """Count records per key."""

    def __init__(self) -> None:
        super().__init__()
        self._counts: dict[K, int] = {}

    @abstractmethod
    def key_of(self, event: ErrorEvent) -> K:
        """Grouping key for one record."""

    def accumulate(self, event: ErrorEvent) -> None:
        key = self.key_of(event)
        self._counts[key] = self._counts.get(key, 0) + 1

    def freeze(self) -> Mapping[K, int]:
        self._mark_frozen()
        return MappingProxyType(dict(self._counts))


class SeverityAggregator(CountingAggregator[str]):
    name = "severity"

    def key_of(self, event: ErrorEvent) -> str:
        return event.severity


class ProductVersionAggregator(CountingAggregator[ProductVersion]):
    name = "product_version"

    def key_of(self, event: ErrorEvent) -> ProductVersion:
        return event.product_version


class SignatureAggregator(CountingAggregator[Signature]):
    name = "signature"

    def key_of(self, event: ErrorEvent) -> Signature:
        return event.signature


class HourlyPeakAggregator(Aggregator):
    """Per-signature histogram of hour-of-day counts."""

    name = "hourly_peak"

    def __init__(self) -> None:
        super().__init__()
        self._histogram: dict[Signature, dict[int, int]] = {}

    def accumulate(self, event: ErrorEvent) -> None:
        hours = self._histogram.setdefault(event.signature, {})
        hour = event.hour
        hours[hour] = hours.get(hour, 0) + 1

    def freeze(self) -> Mapping[Signature, Mapping[int, int]]:
        self._mark_frozen()
        return MappingProxyType(
            {sig: MappingProxyType(dict(hours)) for sig, hours in self._histogram.items()}
        )
