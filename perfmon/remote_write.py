"""Client for sending performance monitor snapshots via Prometheus remote write."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
import snappy
from google.protobuf.json_format import MessageToJson

from prometheus_remote_writer.proto import remote_pb2 as prompb_pb2
from prometheus_remote_writer.proto import types_pb2

from .models import BucketSnapshot, IntervalSnapshot, StatsSnapshot
from .sla import LatencyBand

LOG = logging.getLogger(__name__)


def _timestamp_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class RemoteWriteClient:
    """Client for sending performance monitor snapshots via remote write."""

    def __init__(self, remote_write_url: str, headers: Optional[Dict[str, str]] = None,
                 instance_label: str = 'perfmon', verbose: bool = False, prefix: str = 'perfmon'):
        self.remote_write_url = remote_write_url
        self.headers = headers or {}
        self.headers.setdefault('Content-Type', 'application/x-protobuf')
        self.headers.setdefault('Content-Encoding', 'snappy')
        self.headers.setdefault('X-Prometheus-Remote-Write-Version', '0.1.0')
        self.instance_label = instance_label  # Value for the instance label
        self.verbose = verbose
        self.prefix = prefix

    def send_snapshots(self, intervals: List[IntervalSnapshot], bucket: Optional[BucketSnapshot] = None,
                       dry_run: bool = False, debug_file: Optional[str] = None) -> bool:
        """Send interval snapshots, and optionally a bucket snapshot, to the endpoint.

        Args:
            intervals: Closed SLA intervals, oldest first
            bucket: Final bucket snapshot, stamped with the last interval's time
            dry_run: If True, build the payload but skip sending it
            debug_file: Optional path to save the uncompressed payload as JSON

        Returns:
            True if successful, False otherwise
        """
        write_request = self.build_write_request(intervals, bucket)

        num_timeseries = len(write_request.timeseries)
        total_samples = sum(len(ts.samples) for ts in write_request.timeseries)
        LOG.info("Prepared %d time series with %d total samples", num_timeseries, total_samples)

        data = write_request.SerializeToString()

        if debug_file:
            self._write_debug_file(write_request, debug_file)

        if dry_run:
            LOG.info("Dry-run mode: skipping send to %s", self.remote_write_url)
            return True

        compressed_data = snappy.compress(data)
        LOG.info("Sending %d bytes (uncompressed: %d bytes)", len(compressed_data), len(data))

        try:
            response = requests.post(
                self.remote_write_url,
                data=compressed_data,
                headers=self.headers,
                timeout=30
            )
        except requests.exceptions.ConnectionError:
            LOG.error("Connection error: could not connect to %s", self.remote_write_url)
            LOG.error("Make sure Prometheus is running with --web.enable-remote-write-receiver")
            return False
        except requests.exceptions.RequestException as e:
            LOG.error("Error in remote write: %s", e)
            return False

        if response.status_code in (200, 204):
            LOG.info("Successfully sent metrics (status %d)", response.status_code)
            return True
        LOG.error("Error sending metrics: %d - %s", response.status_code, response.text)
        return False

    def _write_debug_file(self, write_request, debug_file: str) -> None:
        try:
            # protobuf 26.x+ renamed including_default_value_fields
            json_data = MessageToJson(write_request, always_print_fields_with_no_presence=True)  # type: ignore[call-arg]
        except TypeError:
            json_data = MessageToJson(write_request, including_default_value_fields=True)  # type: ignore[call-arg]
        try:
            with open(debug_file, 'w', encoding='utf-8') as f:
                f.write(json_data)
        except OSError as e:
            LOG.warning("Failed to write debug file %s: %s", debug_file, e)
            return
        LOG.info("Saved uncompressed payload as JSON (%d bytes) to %s", len(json_data), debug_file)

    def build_write_request(self, intervals: List[IntervalSnapshot], bucket: Optional[BucketSnapshot] = None):
        """Convert snapshots to a remote write request."""
        write_request = prompb_pb2.WriteRequest()  # type: ignore
        time_series_map: Dict[tuple, Any] = {}

        cumulative_total = 0
        cumulative_bands: Dict[str, int] = {band.value: 0 for band in LatencyBand}

        for snapshot in intervals:
            timestamp_ms = _timestamp_ms(snapshot.timestamp)
            band_counts = {
                LatencyBand.SATISFIED.value: snapshot.satisfied_count,
                LatencyBand.TOLERATED.value: snapshot.tolerated_count,
                LatencyBand.UNSATISFIED.value: snapshot.unsatisfied_count,
            }

            # Per-interval values
            for band, count in band_counts.items():
                self._add_sample_to_map(time_series_map, 'sla_packets', {'band': band}, count, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'lpindex', {}, snapshot.lp_index, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'sla_mean_proc_time_ns', {}, snapshot.mean_per_interval,
                                    timestamp_ms)

            # Running totals across intervals (counter semantics)
            cumulative_total += snapshot.total_count
            self._add_sample_to_map(time_series_map, 'sla_classified_total', {}, cumulative_total, timestamp_ms)
            for band, count in band_counts.items():
                cumulative_bands[band] += count
                self._add_sample_to_map(time_series_map, 'sla_band_total', {'band': band},
                                        cumulative_bands[band], timestamp_ms)

        if bucket is not None:
            stamp = intervals[-1].timestamp if intervals else datetime.now(timezone.utc)
            timestamp_ms = _timestamp_ms(stamp)
            self._add_stats_samples(time_series_map, '', {}, bucket.aggregate, timestamp_ms)
            for component in bucket.components:
                self._add_stats_samples(time_series_map, 'component_', {'component': str(component.component_id)},
                                        component.stats, timestamp_ms)

        self._finalize_time_series(time_series_map, write_request)
        return write_request

    def _add_stats_samples(self, time_series_map: Dict[tuple, Any], name_prefix: str, labels: Dict[str, str],
                           stats: StatsSnapshot, timestamp_ms: int) -> None:
        self._add_sample_to_map(time_series_map, f'{name_prefix}packets_total', labels, stats.count, timestamp_ms)
        self._add_sample_to_map(time_series_map, f'{name_prefix}proc_time_ns_sum', labels, stats.sum, timestamp_ms)
        self._add_sample_to_map(time_series_map, f'{name_prefix}proc_time_ns_avg', labels, stats.mean, timestamp_ms)
        self._add_sample_to_map(time_series_map, f'{name_prefix}proc_time_ns_stddev', labels, stats.stddev,
                                timestamp_ms)
        if math.isfinite(stats.min):
            self._add_sample_to_map(time_series_map, f'{name_prefix}proc_time_ns_min', labels, stats.min,
                                    timestamp_ms)
        if math.isfinite(stats.max):
            self._add_sample_to_map(time_series_map, f'{name_prefix}proc_time_ns_max', labels, stats.max,
                                    timestamp_ms)

    def _finalize_time_series(self, time_series_map: Dict[tuple, Any], write_request) -> None:
        """Add all time series to the write request."""
        for time_series in time_series_map.values():
            # Only add TimeSeries that have at least one sample
            if len(time_series.samples) > 0:
                new_ts = write_request.timeseries.add()
                new_ts.CopyFrom(time_series)

    def _print_metric_sample(self, time_series, timestamp_ms: int, value: float) -> None:
        """Print a single metric sample in verbose mode."""
        metric_name = None
        labels = {}
        for label in time_series.labels:
            if label.name == '__name__':
                metric_name = label.value
            else:
                labels[label.name] = label.value

        if labels:
            label_str = ','.join(f'{k}="{v}"' for k, v in sorted(labels.items()))
            metric_str = f'{metric_name}{{{label_str}}}'
        else:
            metric_str = metric_name

        timestamp_dt = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)
        print(f"{timestamp_dt.isoformat()} {metric_str} {value}")

    def _add_sample_to_map(self, time_series_map: Dict[tuple, Any], metric_name: str, labels: Dict[str, str],
                           value: float, timestamp_ms: int):
        """Add a sample to the time series map, grouping by metric name and labels."""
        metric_name = f'{self.prefix}_{metric_name}'
        labels_with_instance = labels.copy()
        labels_with_instance['instance'] = self.instance_label

        sorted_labels = tuple(sorted(labels_with_instance.items()))
        key = (metric_name, sorted_labels)

        if key not in time_series_map:
            time_series = types_pb2.TimeSeries()  # type: ignore

            label = time_series.labels.add()
            label.name = '__name__'
            label.value = metric_name

            for key_name, val in sorted_labels:
                label = time_series.labels.add()
                label.name = key_name
                label.value = str(val)

            time_series_map[key] = time_series

        sample = time_series_map[key].samples.add()
        sample.value = value
        sample.timestamp = timestamp_ms

        if self.verbose:
            self._print_metric_sample(time_series_map[key], timestamp_ms, value)
