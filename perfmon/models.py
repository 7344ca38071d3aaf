"""Data models for performance monitor snapshots."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Hashable, List, Optional


def _finite_or_none(value: float) -> Optional[float]:
    # min/max sentinels are not valid JSON numbers
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class StatsSnapshot:
    """Consistent copy of one running-statistics primitive."""
    count: int
    sum: int  # nanoseconds
    sum_of_squares: int
    min: float  # math.inf until the first sample
    max: float  # -math.inf until the first sample
    mean: float
    stddev: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'sum_ns': self.sum,
            'sum_of_squares_ns2': self.sum_of_squares,
            'min_ns': _finite_or_none(self.min),
            'max_ns': _finite_or_none(self.max),
            'mean_ns': self.mean,
            'stddev_ns': self.stddev,
        }


@dataclass(frozen=True)
class ComponentSnapshot:
    """Statistics of a single pipeline component."""
    component_id: Hashable
    stats: StatsSnapshot

    def to_dict(self) -> Dict[str, Any]:
        data = {'component': str(self.component_id)}
        data.update(self.stats.to_dict())
        return data


@dataclass(frozen=True)
class BucketSnapshot:
    """Aggregate and per-component statistics of one measurement window."""
    started_at: datetime  # Wall-clock time the window was opened
    elapsed_ns: int
    aggregate: StatsSnapshot
    components: List[ComponentSnapshot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'started_at': self.started_at.isoformat(),
            'elapsed_ns': self.elapsed_ns,
            'aggregate': self.aggregate.to_dict(),
            'components': [component.to_dict() for component in self.components],
        }


@dataclass(frozen=True)
class IntervalSnapshot:
    """SLA counters captured at the end of one reporting interval."""
    interval_number: int
    timestamp: datetime  # Time the interval was closed
    total_count: int
    satisfied_count: int
    tolerated_count: int
    unsatisfied_count: int
    lp_index: float
    mean_per_interval: float  # nanoseconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            'interval_number': self.interval_number,
            'timestamp': self.timestamp.isoformat(),
            'total_count': self.total_count,
            'satisfied_count': self.satisfied_count,
            'tolerated_count': self.tolerated_count,
            'unsatisfied_count': self.unsatisfied_count,
            'lp_index': self.lp_index,
            'mean_per_interval_ns': self.mean_per_interval,
        }


@dataclass
class PacketTiming:
    """Timing of one packet as read from a trace."""
    timestamp_ns: int
    total_ns: int
    stages: Dict[str, int]  # component -> duration in nanoseconds
