import math
from datetime import datetime, timezone

import pytest

from prometheus_client import CollectorRegistry

from perfmon.bucket import CumulativeTimeBucket
from perfmon.exporter import PrometheusMetricsExporter
from perfmon.models import IntervalSnapshot


def make_interval(**overrides):
    values = dict(
        interval_number=3,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        total_count=10,
        satisfied_count=5,
        tolerated_count=4,
        unsatisfied_count=1,
        lp_index=0.7,
        mean_per_interval=31000.0,
    )
    values.update(overrides)
    return IntervalSnapshot(**values)


def test_export_bucket():
    """Test aggregate and per-component gauges."""
    registry = CollectorRegistry()
    exporter = PrometheusMetricsExporter(registry)
    bucket = CumulativeTimeBucket(["parser", "router"])
    bucket.record_for_component("parser", 10000)
    bucket.record_for_component("parser", 30000)
    bucket.record_for_component("router", 20000)
    bucket.compute_averages()

    exporter.export_bucket(bucket.snapshot())

    assert registry.get_sample_value('perfmon_packets_total') == 3
    assert registry.get_sample_value('perfmon_proc_time_ns_sum') == 60000
    assert registry.get_sample_value('perfmon_proc_time_ns_avg') == 20000
    assert registry.get_sample_value('perfmon_proc_time_ns_min') == 10000
    assert registry.get_sample_value('perfmon_proc_time_ns_max') == 30000
    assert registry.get_sample_value('perfmon_component_packets_total', {'component': 'parser'}) == 2
    assert registry.get_sample_value(
        'perfmon_component_proc_time_ns_stddev', {'component': 'parser'}) == pytest.approx(10000)
    assert registry.get_sample_value('perfmon_component_proc_time_ns_max', {'component': 'router'}) == 20000


def test_export_empty_bucket_extrema_are_nan():
    """Test that sentinel extrema are exported as NaN."""
    registry = CollectorRegistry()
    exporter = PrometheusMetricsExporter(registry)
    exporter.export_bucket(CumulativeTimeBucket(["parser"]).snapshot())

    assert registry.get_sample_value('perfmon_packets_total') == 0
    assert math.isnan(registry.get_sample_value('perfmon_proc_time_ns_min'))
    assert math.isnan(registry.get_sample_value('perfmon_proc_time_ns_max'))
    assert math.isnan(registry.get_sample_value('perfmon_component_proc_time_ns_max', {'component': 'parser'}))
    assert registry.get_sample_value('perfmon_proc_time_ns_stddev') == 0.0


def test_export_interval():
    """Test SLA gauges for a closed interval."""
    registry = CollectorRegistry()
    exporter = PrometheusMetricsExporter(registry)

    exporter.export_interval(make_interval())

    assert registry.get_sample_value('perfmon_sla_packets', {'band': 'satisfied'}) == 5
    assert registry.get_sample_value('perfmon_sla_packets', {'band': 'tolerated'}) == 4
    assert registry.get_sample_value('perfmon_sla_packets', {'band': 'unsatisfied'}) == 1
    assert registry.get_sample_value('perfmon_sla_packets_total') == 10
    assert registry.get_sample_value('perfmon_lpindex') == pytest.approx(0.7)
    assert registry.get_sample_value('perfmon_sla_mean_proc_time_ns') == 31000.0
    assert registry.get_sample_value('perfmon_sla_interval_number') == 3


def test_generate_latest_and_prefix():
    """Test the text exposition with a custom metric prefix."""
    exporter = PrometheusMetricsExporter(prefix='pipeline')
    exporter.export_interval(make_interval(lp_index=1.0))
    text = exporter.generate_latest().decode('utf-8')
    assert 'pipeline_lpindex 1.0' in text
