import math
from dataclasses import dataclass

from .exceptions import ConfigurationError
from .sla import DEFAULT_SATISFIED_THRESHOLD_NS


def _check_interval(seconds: float) -> None:
    # Interval boundaries advance in whole nanoseconds
    if not math.isfinite(seconds) or int(seconds * 1_000_000_000) < 1:
        raise ConfigurationError(f"reset_interval must be a finite number of seconds of at least 1ns, got {seconds!r}")


@dataclass
class PerfMonConfig:
    """Configuration for a packet monitor."""

    satisfied_threshold_ns: int = DEFAULT_SATISFIED_THRESHOLD_NS
    reset_interval: float = 1.0  # seconds
    instance_label: str = "perfmon"

    def __post_init__(self):
        if (isinstance(self.satisfied_threshold_ns, bool)
                or not isinstance(self.satisfied_threshold_ns, int)
                or self.satisfied_threshold_ns <= 0):
            raise ConfigurationError("satisfied_threshold_ns must be a positive integer")
        _check_interval(self.reset_interval)
        if not self.instance_label:
            raise ConfigurationError("instance_label must not be empty")

    @property
    def reset_interval_ns(self) -> int:
        return int(self.reset_interval * 1_000_000_000)

    @classmethod
    def default(cls) -> "PerfMonConfig":
        """25 us satisfied threshold, one-second intervals."""
        return cls()

    @classmethod
    def strict(cls) -> "PerfMonConfig":
        """10 us satisfied threshold for fast-path pipelines."""
        return cls(satisfied_threshold_ns=10_000)

    @classmethod
    def relaxed(cls) -> "PerfMonConfig":
        """100 us satisfied threshold for pipelines with heavy stages."""
        return cls(satisfied_threshold_ns=100_000)

    def with_threshold(self, ns: int) -> "PerfMonConfig":
        """Override the satisfied threshold.

        Args:
            ns: Threshold in nanoseconds

        Returns:
            Self for method chaining
        """
        if isinstance(ns, bool) or not isinstance(ns, int) or ns <= 0:
            raise ConfigurationError("satisfied_threshold_ns must be a positive integer")
        self.satisfied_threshold_ns = ns
        return self

    def with_interval(self, seconds: float) -> "PerfMonConfig":
        """Override the reporting interval.

        Args:
            seconds: Interval length in seconds

        Returns:
            Self for method chaining
        """
        _check_interval(seconds)
        self.reset_interval = seconds
        return self
