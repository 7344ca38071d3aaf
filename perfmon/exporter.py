"""Export performance monitor snapshots as Prometheus metrics."""

import math
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge
from prometheus_client.exposition import generate_latest

from .models import BucketSnapshot, IntervalSnapshot, StatsSnapshot
from .sla import LatencyBand


class PrometheusMetricsExporter:
    """Export bucket and SLA interval snapshots as Prometheus gauges."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = 'perfmon'):
        self.registry = registry or CollectorRegistry()
        self.prefix = prefix
        self._setup_metrics()

    def _gauge(self, name: str, documentation: str, labels=()) -> Gauge:
        return Gauge(f'{self.prefix}_{name}', documentation, list(labels), registry=self.registry)

    def _setup_metrics(self):
        """Set up Prometheus metric definitions."""
        # Bucket aggregate
        self.packets = self._gauge('packets_total', 'Measurements recorded in the current bucket')
        self.proc_time_sum = self._gauge('proc_time_ns_sum', 'Total processing time in nanoseconds')
        self.proc_time_avg = self._gauge('proc_time_ns_avg', 'Average processing time in nanoseconds')
        self.proc_time_min = self._gauge('proc_time_ns_min', 'Minimum processing time in nanoseconds')
        self.proc_time_max = self._gauge('proc_time_ns_max', 'Maximum processing time in nanoseconds')
        self.proc_time_stddev = self._gauge('proc_time_ns_stddev', 'Processing time standard deviation in nanoseconds')
        self.bucket_elapsed = self._gauge('bucket_elapsed_seconds', 'Age of the current measurement window')

        # Per component
        self.component_packets = self._gauge(
            'component_packets_total', 'Measurements recorded per component', ['component'])
        self.component_proc_time_sum = self._gauge(
            'component_proc_time_ns_sum', 'Total processing time per component in nanoseconds', ['component'])
        self.component_proc_time_avg = self._gauge(
            'component_proc_time_ns_avg', 'Average processing time per component in nanoseconds', ['component'])
        self.component_proc_time_min = self._gauge(
            'component_proc_time_ns_min', 'Minimum processing time per component in nanoseconds', ['component'])
        self.component_proc_time_max = self._gauge(
            'component_proc_time_ns_max', 'Maximum processing time per component in nanoseconds', ['component'])
        self.component_proc_time_stddev = self._gauge(
            'component_proc_time_ns_stddev', 'Processing time standard deviation per component in nanoseconds',
            ['component'])

        # SLA interval
        self.sla_packets = self._gauge('sla_packets', 'Packets per latency band in the last interval', ['band'])
        self.sla_packets_total = self._gauge('sla_packets_total', 'Packets classified in the last interval')
        self.lpindex = self._gauge('lpindex', 'Latency Performance Index of the last interval')
        self.sla_mean_proc_time = self._gauge(
            'sla_mean_proc_time_ns', 'Mean end-to-end processing time of the last interval in nanoseconds')
        self.sla_interval_number = self._gauge('sla_interval_number', 'Number of the last closed interval')

    @staticmethod
    def _set_stats(stats: StatsSnapshot, count, total, avg, minimum, maximum, stddev):
        count.set(stats.count)
        total.set(stats.sum)
        avg.set(stats.mean)
        stddev.set(stats.stddev)
        # Extrema are sentinels until the first measurement
        minimum.set(stats.min if math.isfinite(stats.min) else math.nan)
        maximum.set(stats.max if math.isfinite(stats.max) else math.nan)

    def export_bucket(self, snapshot: BucketSnapshot):
        """Export aggregate and per-component statistics of a bucket."""
        self._set_stats(snapshot.aggregate, self.packets, self.proc_time_sum, self.proc_time_avg,
                        self.proc_time_min, self.proc_time_max, self.proc_time_stddev)
        self.bucket_elapsed.set(snapshot.elapsed_ns / 1e9)

        for component in snapshot.components:
            label = str(component.component_id)
            self._set_stats(
                component.stats,
                self.component_packets.labels(component=label),
                self.component_proc_time_sum.labels(component=label),
                self.component_proc_time_avg.labels(component=label),
                self.component_proc_time_min.labels(component=label),
                self.component_proc_time_max.labels(component=label),
                self.component_proc_time_stddev.labels(component=label),
            )

    def export_interval(self, snapshot: IntervalSnapshot):
        """Export the SLA counters of a closed interval."""
        self.sla_packets.labels(band=LatencyBand.SATISFIED.value).set(snapshot.satisfied_count)
        self.sla_packets.labels(band=LatencyBand.TOLERATED.value).set(snapshot.tolerated_count)
        self.sla_packets.labels(band=LatencyBand.UNSATISFIED.value).set(snapshot.unsatisfied_count)
        self.sla_packets_total.set(snapshot.total_count)
        self.lpindex.set(snapshot.lp_index)
        self.sla_mean_proc_time.set(snapshot.mean_per_interval)
        self.sla_interval_number.set(snapshot.interval_number)

    def generate_latest(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
