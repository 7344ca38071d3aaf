"""Latency SLA classification and the Latency Performance Index (LPIndex)."""

import enum
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from .exceptions import ConfigurationError
from .models import IntervalSnapshot
from .stats import validate_duration

LOG = logging.getLogger(__name__)

DEFAULT_SATISFIED_THRESHOLD_NS = 25000
TOLERATED_FACTOR = 4


class LatencyBand(str, enum.Enum):
    SATISFIED = 'satisfied'
    TOLERATED = 'tolerated'
    UNSATISFIED = 'unsatisfied'


class SlaClassifier:
    """Per-interval SLA counters for end-to-end packet latency.

    A packet taking at most ``T`` ns is satisfied, at most ``4T`` ns
    tolerated, anything slower unsatisfied. The LPIndex of an interval is
    ``(satisfied + 0.5 * tolerated) / total``, and 1.0 for an interval
    without packets.

    One instance is created per process and shared by every recording call
    site. An external periodic caller invokes :meth:`reset_interval` to close
    the current interval; the classifier itself never schedules anything.
    """

    def __init__(self, satisfied_threshold_ns: int = DEFAULT_SATISFIED_THRESHOLD_NS):
        if (isinstance(satisfied_threshold_ns, bool) or not isinstance(satisfied_threshold_ns, int)
                or satisfied_threshold_ns <= 0):
            raise ConfigurationError(
                f"Satisfied threshold must be a positive integer (ns), got {satisfied_threshold_ns!r}"
            )
        self.satisfied_threshold_ns = satisfied_threshold_ns
        self.tolerated_threshold_ns = TOLERATED_FACTOR * satisfied_threshold_ns

        self._lock = threading.Lock()
        self._satisfied_count = 0
        self._tolerated_count = 0
        self._unsatisfied_count = 0
        self._total_count = 0
        self._sum_duration_ns = 0
        self._lp_index = 1.0
        self._mean_per_interval = 0.0
        self._interval_number = 0
        self._last_snapshot: Optional[IntervalSnapshot] = None

    def band_for(self, duration_ns: int) -> LatencyBand:
        if duration_ns <= self.satisfied_threshold_ns:
            return LatencyBand.SATISFIED
        if duration_ns <= self.tolerated_threshold_ns:
            return LatencyBand.TOLERATED
        return LatencyBand.UNSATISFIED

    def classify(self, total_duration_ns: int) -> LatencyBand:
        """Count one packet's end-to-end processing time and return its band."""
        validate_duration(total_duration_ns)
        band = self.band_for(total_duration_ns)
        with self._lock:
            self._total_count += 1
            self._sum_duration_ns += total_duration_ns
            if band is LatencyBand.SATISFIED:
                self._satisfied_count += 1
            elif band is LatencyBand.TOLERATED:
                self._tolerated_count += 1
            else:
                self._unsatisfied_count += 1
        return band

    def _lp_index_locked(self) -> float:
        if self._total_count == 0:
            return 1.0
        return (self._satisfied_count + 0.5 * self._tolerated_count) / self._total_count

    def _mean_locked(self) -> float:
        if self._total_count == 0:
            return 0.0
        return self._sum_duration_ns / self._total_count

    def compute_lp_index(self) -> float:
        with self._lock:
            self._lp_index = self._lp_index_locked()
            return self._lp_index

    def compute_mean_per_interval(self) -> float:
        with self._lock:
            self._mean_per_interval = self._mean_locked()
            return self._mean_per_interval

    def reset_interval(self, timestamp: Optional[datetime] = None) -> IntervalSnapshot:
        """Close the current interval.

        LPIndex and the mean are computed from the closing interval, the
        snapshot is taken and the counters are zeroed in one critical
        section, so each classification is reported in exactly one interval.
        LPIndex and the mean keep their values until the next computation.

        Args:
            timestamp: Close time recorded in the snapshot (default: now, UTC)
        """
        with self._lock:
            self._lp_index = self._lp_index_locked()
            self._mean_per_interval = self._mean_locked()
            self._interval_number += 1
            snapshot = IntervalSnapshot(
                interval_number=self._interval_number,
                timestamp=timestamp or datetime.now(timezone.utc),
                total_count=self._total_count,
                satisfied_count=self._satisfied_count,
                tolerated_count=self._tolerated_count,
                unsatisfied_count=self._unsatisfied_count,
                lp_index=self._lp_index,
                mean_per_interval=self._mean_per_interval,
            )
            self._satisfied_count = 0
            self._tolerated_count = 0
            self._unsatisfied_count = 0
            self._total_count = 0
            self._sum_duration_ns = 0
            self._last_snapshot = snapshot

        LOG.debug("Interval %d closed: %d packet(s), LPIndex=%.4f",
                  snapshot.interval_number, snapshot.total_count, snapshot.lp_index)
        return snapshot

    @property
    def satisfied_count(self) -> int:
        return self._satisfied_count

    @property
    def tolerated_count(self) -> int:
        return self._tolerated_count

    @property
    def unsatisfied_count(self) -> int:
        return self._unsatisfied_count

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def sum_duration_per_interval(self) -> int:
        return self._sum_duration_ns

    @property
    def lp_index(self) -> float:
        """Last computed LPIndex."""
        return self._lp_index

    @property
    def mean_per_interval(self) -> float:
        """Last computed mean processing time (ns)."""
        return self._mean_per_interval

    @property
    def interval_number(self) -> int:
        return self._interval_number

    @property
    def last_snapshot(self) -> Optional[IntervalSnapshot]:
        return self._last_snapshot
