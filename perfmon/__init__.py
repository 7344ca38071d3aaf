"""Per-component packet processing time statistics and latency SLA tracking."""

from .bucket import CumulativeTimeBucket
from .config import PerfMonConfig
from .exceptions import ConfigurationError, PerfMonError, TraceFormatError, UnknownComponentError
from .models import BucketSnapshot, ComponentSnapshot, IntervalSnapshot, PacketTiming, StatsSnapshot
from .monitor import PacketMonitor
from .scheduler import IntervalResetTask
from .sla import LatencyBand, SlaClassifier
from .stats import ComponentRecord, RunningStats

__version__ = '0.1.0'

__all__ = [
    'BucketSnapshot',
    'ComponentRecord',
    'ComponentSnapshot',
    'ConfigurationError',
    'CumulativeTimeBucket',
    'IntervalResetTask',
    'IntervalSnapshot',
    'LatencyBand',
    'PacketMonitor',
    'PacketTiming',
    'PerfMonConfig',
    'PerfMonError',
    'RunningStats',
    'SlaClassifier',
    'StatsSnapshot',
    'TraceFormatError',
    'UnknownComponentError',
]
