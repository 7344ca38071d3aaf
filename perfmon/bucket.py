"""Cumulative processing-time bucket shared by all pipeline components."""

import logging
import time
from collections import Counter
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Hashable, Iterable, List, Mapping

from .exceptions import ConfigurationError, UnknownComponentError
from .models import BucketSnapshot, ComponentSnapshot
from .stats import ComponentRecord, RunningStats

LOG = logging.getLogger(__name__)


class CumulativeTimeBucket:
    """Processing-time statistics for one measurement window.

    Holds an aggregate over every recorded measurement plus one
    :class:`ComponentRecord` per registered component. Membership is fixed at
    construction; only the contained statistics change.

    Every call to :meth:`record_for_component` also feeds the aggregate, so
    the aggregate count is the number of component measurements, not the
    number of packets. Drivers that want a per-packet aggregate have to call
    it exactly once per component per packet.
    """

    def __init__(self, component_ids: Iterable[Hashable]):
        ids = list(component_ids)
        duplicates = [cid for cid, seen in Counter(ids).items() if seen > 1]
        if duplicates:
            raise ConfigurationError(f"Duplicate component ids: {duplicates!r}")

        self._components: Mapping[Hashable, ComponentRecord] = MappingProxyType(
            {cid: ComponentRecord(cid) for cid in ids}
        )
        self._aggregate = RunningStats()
        self._stamp_start()
        LOG.debug("Created bucket with %d component(s): %s", len(ids), ids)

    def _stamp_start(self) -> None:
        self.start_time_ns = time.monotonic_ns()
        self.started_at = datetime.now(timezone.utc)

    def record_for_component(self, component_id: Hashable, duration_ns: int) -> None:
        """Record one component's processing time for a packet.

        Raises:
            UnknownComponentError: component_id was not registered.
            ValueError: duration_ns is negative or not an integer.
        """
        try:
            record = self._components[component_id]
        except KeyError:
            raise UnknownComponentError(component_id) from None
        # Both updates validate identically, so the first one failing leaves
        # the aggregate untouched as well.
        record.record(duration_ns)
        self._aggregate.record(duration_ns)

    def reset(self) -> None:
        """Start a new measurement window."""
        self._aggregate.reset()
        for record in self._components.values():
            record.reset()
        self._stamp_start()
        LOG.debug("Bucket reset at %s", self.started_at.isoformat())

    def compute_averages(self) -> None:
        """Refresh the standard deviations of the aggregate and every component.

        Must be called after the window's writes and before reading stddev.
        """
        self._aggregate.compute_stddev()
        for record in self._components.values():
            record.compute_stddev()

    def elapsed_ns(self) -> int:
        return time.monotonic_ns() - self.start_time_ns

    @property
    def aggregate(self) -> RunningStats:
        return self._aggregate

    @property
    def components(self) -> Mapping[Hashable, ComponentRecord]:
        return self._components

    @property
    def component_ids(self) -> List[Hashable]:
        return list(self._components)

    def get_component(self, component_id: Hashable) -> ComponentRecord:
        try:
            return self._components[component_id]
        except KeyError:
            raise UnknownComponentError(component_id) from None

    @property
    def num_components(self) -> int:
        return len(self._components)

    @property
    def total_count(self) -> int:
        return self._aggregate.count

    @property
    def total_sum(self) -> int:
        return self._aggregate.sum

    @property
    def mean(self) -> float:
        return self._aggregate.mean

    @property
    def min(self) -> float:
        return self._aggregate.min

    @property
    def max(self) -> float:
        return self._aggregate.max

    @property
    def stddev(self) -> float:
        return self._aggregate.stddev

    def modules(self) -> List[ComponentSnapshot]:
        """Snapshot of every component record, in registration order."""
        return [record.snapshot() for record in self._components.values()]

    def snapshot(self) -> BucketSnapshot:
        return BucketSnapshot(
            started_at=self.started_at,
            elapsed_ns=self.elapsed_ns(),
            aggregate=self._aggregate.snapshot(),
            components=self.modules(),
        )
