"""Composition root wiring a bucket and an SLA classifier to a packet pipeline."""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Hashable, Iterable, List, Mapping, Optional

from .bucket import CumulativeTimeBucket
from .config import PerfMonConfig
from .exceptions import UnknownComponentError
from .models import BucketSnapshot, IntervalSnapshot, PacketTiming
from .scheduler import IntervalResetTask, SnapshotListener
from .sla import LatencyBand, SlaClassifier
from .stats import validate_duration

LOG = logging.getLogger(__name__)


def _ns_to_datetime(timestamp_ns: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ns / 1e9, tz=timezone.utc)


class PacketMonitor:
    """Owns the bucket and the SLA classifier for one pipeline.

    The classifier is created here once and shared by every recording call;
    the reset task is only started on request.
    """

    def __init__(self, component_ids: Iterable[Hashable], config: Optional[PerfMonConfig] = None):
        self.config = config or PerfMonConfig()
        self.bucket = CumulativeTimeBucket(component_ids)
        self.classifier = SlaClassifier(self.config.satisfied_threshold_ns)
        self.reset_task = IntervalResetTask(self.classifier, self.config.reset_interval)

    def add_listener(self, listener: SnapshotListener) -> None:
        self.reset_task.add_listener(listener)

    def start(self) -> None:
        """Close SLA intervals periodically on a background thread."""
        self.reset_task.start()

    def stop(self) -> None:
        self.reset_task.stop()

    def record_packet(self, stage_durations: Mapping[Hashable, int],
                      total_ns: Optional[int] = None) -> LatencyBand:
        """Record every stage of one packet and classify its total time.

        total_ns defaults to the sum of the stage durations. Ids and durations
        are checked before anything is recorded.
        """
        components = self.bucket.components
        for component_id, duration_ns in stage_durations.items():
            if component_id not in components:
                raise UnknownComponentError(component_id)
            validate_duration(duration_ns)
        if total_ns is None:
            total_ns = sum(stage_durations.values())
        else:
            validate_duration(total_ns)

        for component_id, duration_ns in stage_durations.items():
            self.bucket.record_for_component(component_id, duration_ns)
        return self.classifier.classify(total_ns)

    @contextmanager
    def measure(self, component_id: Hashable):
        """Time the enclosed block and record it for ``component_id``."""
        if component_id not in self.bucket.components:
            raise UnknownComponentError(component_id)
        start = time.perf_counter_ns()
        try:
            yield
        finally:
            self.bucket.record_for_component(component_id, time.perf_counter_ns() - start)

    def close_interval(self, timestamp: Optional[datetime] = None) -> IntervalSnapshot:
        return self.reset_task.run_once(timestamp)

    def replay(self, packets: Iterable[PacketTiming]) -> List[IntervalSnapshot]:
        """Feed recorded packets through the monitor in trace time.

        An interval is closed each time a packet's timestamp crosses the next
        interval boundary (so silent intervals yield zero-count snapshots)
        and once more after the last packet.
        """
        interval_ns = self.config.reset_interval_ns
        snapshots: List[IntervalSnapshot] = []
        boundary = None
        for packet in packets:
            if boundary is None:
                boundary = packet.timestamp_ns + interval_ns
            while packet.timestamp_ns >= boundary:
                snapshots.append(self.close_interval(_ns_to_datetime(boundary)))
                boundary += interval_ns
            self.record_packet(packet.stages, packet.total_ns)

        if boundary is not None:
            snapshots.append(self.close_interval(_ns_to_datetime(boundary)))
        self.bucket.compute_averages()
        LOG.debug("Replayed trace into %d interval(s)", len(snapshots))
        return snapshots

    def report(self) -> BucketSnapshot:
        """Finalize the window's standard deviations and snapshot the bucket."""
        self.bucket.compute_averages()
        return self.bucket.snapshot()
