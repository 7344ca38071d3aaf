"""
Periodic driver that closes SLA reporting intervals.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime
from typing import Callable, List, Optional

from .exceptions import ConfigurationError
from .models import IntervalSnapshot
from .sla import SlaClassifier

LOG = logging.getLogger(__name__)

SnapshotListener = Callable[[IntervalSnapshot], None]


class IntervalResetTask:
    """Calls ``classifier.reset_interval()`` every ``interval`` seconds.

    Snapshots are handed to the registered listeners from the task's thread.
    """

    def __init__(
        self,
        classifier: SlaClassifier,
        interval: float = 1.0,
        listeners: Optional[List[SnapshotListener]] = None,
    ) -> None:
        if not math.isfinite(interval) or interval <= 0:
            raise ConfigurationError("interval must be greater than zero")
        self.classifier = classifier
        self.interval = interval
        self._listeners: List[SnapshotListener] = list(listeners or [])
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="perfmon-interval-reset", daemon=True
        )
        self._thread.start()
        LOG.debug("Interval reset task started (every %.3fs)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                LOG.warning("Interval reset task did not stop within %ss", timeout)
                return
            self._thread = None
            LOG.debug("Interval reset task stopped")

    def run_once(self, timestamp: Optional[datetime] = None) -> IntervalSnapshot:
        snapshot = self.classifier.reset_interval(timestamp)
        LOG.debug("%s interval %d reset", snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                  snapshot.interval_number)
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                LOG.exception("Interval listener %r failed", listener)
        return snapshot

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()

    def __enter__(self) -> "IntervalResetTask":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
