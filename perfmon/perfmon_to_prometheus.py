#!/usr/bin/env python3
"""
Replay a packet timing trace through the performance monitor and
send the resulting metrics using Prometheus remote write.
"""

import sys
import argparse
import logging
from typing import List, Optional

from .config import PerfMonConfig
from .exceptions import PerfMonError
from .exporter import PrometheusMetricsExporter
from .monitor import PacketMonitor
from .parser import TraceParser
from .utils import format_duration_ns, prepare_headers, send_metrics_remote_write

LOG = logging.getLogger("perfmon")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Replay a packet timing trace and send performance metrics to Prometheus via remote write'
    )
    parser.add_argument(
        'input_file',
        help='Path to the packet timing trace'
    )
    parser.add_argument(
        '--remote-write-url',
        help='Prometheus remote write endpoint URL (metrics are only printed when omitted)'
    )
    parser.add_argument(
        '--remote-write-header',
        action='append',
        help='Additional header for remote write (format: Key=Value)'
    )
    parser.add_argument(
        '--threshold-ns',
        type=int,
        default=PerfMonConfig.satisfied_threshold_ns,
        help='Satisfied latency threshold T in nanoseconds; 4T bounds the tolerated band (default: %(default)s)'
    )
    parser.add_argument(
        '--interval',
        type=float,
        default=PerfMonConfig.reset_interval,
        help='Reporting interval in seconds of trace time (default: %(default)s)'
    )
    parser.add_argument(
        '--instance-label',
        default=PerfMonConfig.instance_label,
        help='Value for the instance label added to all metrics (default: %(default)s)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Build the remote write payload without sending it'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print timestamp and metric information to stdout for each metric sent to Prometheus'
    )
    parser.add_argument(
        '--debug-file',
        help='Save the uncompressed payload data (before snappy compression) as JSON to the specified file'
    )
    parser.add_argument(
        '--print-metrics',
        action='store_true',
        help='Print the final metrics in the Prometheus text exposition format'
    )
    parser.add_argument(
        '--log',
        default='warning',
        help='Log level (default: %(default)s)'
    )
    return parser


def print_summary(monitor: PacketMonitor, intervals) -> None:
    for snapshot in intervals:
        print(f"  Interval {snapshot.interval_number}: packets={snapshot.total_count} "
              f"satisfied={snapshot.satisfied_count} tolerated={snapshot.tolerated_count} "
              f"unsatisfied={snapshot.unsatisfied_count} LPIndex={snapshot.lp_index:.4f} "
              f"mean={format_duration_ns(snapshot.mean_per_interval)}")

    bucket = monitor.bucket
    print(f"Aggregate: count={bucket.total_count} mean={format_duration_ns(bucket.mean)} "
          f"min={format_duration_ns(bucket.min)} max={format_duration_ns(bucket.max)} "
          f"stddev={format_duration_ns(bucket.stddev)}")
    for component_id, record in bucket.components.items():
        print(f"  {component_id}: count={record.count} mean={format_duration_ns(record.mean)} "
              f"min={format_duration_ns(record.min)} max={format_duration_ns(record.max)} "
              f"stddev={format_duration_ns(record.stddev)}")


def main(argv: Optional[List[str]] = None):
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.log)

    try:
        config = PerfMonConfig(
            satisfied_threshold_ns=args.threshold_ns,
            reset_interval=args.interval,
            instance_label=args.instance_label,
        )
        LOG.debug("Using %s", config)
        print(f"Parsing packet timing trace from {args.input_file}...")
        trace_parser = TraceParser(args.input_file)
        packets = trace_parser.parse()

        if not packets:
            print("No packets found in trace.", file=sys.stderr)
            sys.exit(1)

        print(f"Found {len(packets)} packet(s) across {len(trace_parser.component_ids)} component(s)")
        monitor = PacketMonitor(trace_parser.component_ids, config)
        exporter = PrometheusMetricsExporter()
        monitor.add_listener(exporter.export_interval)
        intervals = monitor.replay(packets)
    except (OSError, PerfMonError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    bucket_snapshot = monitor.bucket.snapshot()
    exporter.export_bucket(bucket_snapshot)
    print_summary(monitor, intervals)

    if args.print_metrics:
        print(exporter.generate_latest().decode('utf-8'))

    if args.remote_write_url:
        headers = prepare_headers(args.remote_write_header)
        send_metrics_remote_write(
            args.remote_write_url, headers, intervals, config.instance_label,
            bucket=bucket_snapshot, verbose=args.verbose, dry_run=args.dry_run, debug_file=args.debug_file
        )


if __name__ == '__main__':
    main()
