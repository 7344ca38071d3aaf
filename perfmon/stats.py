"""Running statistics kept per measurement window."""

import math
import threading
from typing import Hashable

from .models import ComponentSnapshot, StatsSnapshot


def validate_duration(duration_ns: int) -> None:
    if isinstance(duration_ns, bool) or not isinstance(duration_ns, int):
        raise ValueError(f"Duration must be an integer number of nanoseconds, got {duration_ns!r}")
    if duration_ns < 0:
        raise ValueError(f"Duration must be non-negative, got {duration_ns}")


class RunningStats:
    """Count, sum, sum of squares and extrema of a stream of durations.

    The mean is refreshed on every write. The standard deviation is only
    refreshed by :meth:`compute_stddev`, which keeps :meth:`record` O(1).
    Integer accumulators make the sum of squares exact for any duration.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_locked()

    def _reset_locked(self) -> None:
        self._count = 0
        self._sum = 0
        self._sum_of_squares = 0
        self._min = math.inf
        self._max = -math.inf
        self._mean = 0.0
        self._stddev = 0.0

    def record(self, duration_ns: int) -> None:
        """Add one duration (nanoseconds) to the statistics."""
        validate_duration(duration_ns)
        with self._lock:
            self._count += 1
            self._sum += duration_ns
            self._sum_of_squares += duration_ns * duration_ns
            self._mean = self._sum / self._count
            if duration_ns < self._min:
                self._min = duration_ns
            if duration_ns > self._max:
                self._max = duration_ns

    def reset(self) -> None:
        """Zero all counters and restore the min/max sentinels."""
        with self._lock:
            self._reset_locked()

    def compute_stddev(self) -> float:
        """Recompute and return the population standard deviation.

        Returns 0.0 when nothing has been recorded.
        """
        with self._lock:
            count = self._count
            if count == 0:
                self._stddev = 0.0
                return self._stddev
            # (sum_sq - sum^2/n) / n == (n*sum_sq - sum^2) / n^2, exact in integers
            numerator = count * self._sum_of_squares - self._sum * self._sum
            variance = max(numerator, 0) / (count * count)
            self._stddev = math.sqrt(variance)
            return self._stddev

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                count=self._count,
                sum=self._sum,
                sum_of_squares=self._sum_of_squares,
                min=self._min,
                max=self._max,
                mean=self._mean,
                stddev=self._stddev,
            )

    @property
    def count(self) -> int:
        return self._count

    @property
    def sum(self) -> int:
        return self._sum

    @property
    def sum_of_squares(self) -> int:
        return self._sum_of_squares

    @property
    def min(self) -> float:
        return self._min

    @property
    def max(self) -> float:
        return self._max

    @property
    def mean(self) -> float:
        return self._mean

    @property
    def stddev(self) -> float:
        return self._stddev

    def __repr__(self) -> str:
        return (f"RunningStats(count={self._count}, mean={self._mean:.1f}, "
                f"min={self._min}, max={self._max}, stddev={self._stddev:.1f})")


class ComponentRecord:
    """Running statistics for one named pipeline component."""

    def __init__(self, component_id: Hashable):
        self._component_id = component_id
        self._stats = RunningStats()

    @property
    def component_id(self) -> Hashable:
        return self._component_id

    @property
    def stats(self) -> RunningStats:
        return self._stats

    def record(self, duration_ns: int) -> None:
        self._stats.record(duration_ns)

    def reset(self) -> None:
        self._stats.reset()

    def compute_stddev(self) -> float:
        return self._stats.compute_stddev()

    def snapshot(self) -> ComponentSnapshot:
        return ComponentSnapshot(component_id=self._component_id, stats=self._stats.snapshot())

    @property
    def count(self) -> int:
        return self._stats.count

    @property
    def sum(self) -> int:
        return self._stats.sum

    @property
    def min(self) -> float:
        return self._stats.min

    @property
    def max(self) -> float:
        return self._stats.max

    @property
    def mean(self) -> float:
        return self._stats.mean

    @property
    def stddev(self) -> float:
        return self._stats.stddev

    def __repr__(self) -> str:
        return f"ComponentRecord({self._component_id!r}, {self._stats!r})"
