"""Utility functions for reporting performance monitor results."""

import sys
from typing import Dict, List, Optional

from .models import BucketSnapshot, IntervalSnapshot


def format_duration_ns(value: float) -> str:
    """Format a nanosecond duration with a readable unit.

    Sentinel (infinite) values render as '-'.
    """
    if value != value or value in (float('inf'), float('-inf')):
        return '-'
    if value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.3f}s"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.3f}ms"
    if value >= 1_000:
        return f"{value / 1_000:.3f}us"
    return f"{value:.0f}ns"


def prepare_headers(remote_write_headers: Optional[List[str]]) -> Dict[str, str]:
    """Prepare headers dictionary from command-line arguments."""
    headers = {}
    if remote_write_headers:
        for header in remote_write_headers:
            if '=' in header:
                key, value = header.split('=', 1)
                headers[key] = value
    return headers


def send_metrics_remote_write(remote_write_url: str, headers: Dict[str, str],
                              intervals: List[IntervalSnapshot], instance_label: str,
                              bucket: Optional[BucketSnapshot] = None, verbose: bool = False,
                              dry_run: bool = False, debug_file: Optional[str] = None) -> None:
    """Send metrics via remote write endpoint, exiting with status 1 on failure.

    Args:
        remote_write_url: URL of the Prometheus remote write endpoint
        headers: HTTP headers to include in the request
        intervals: Closed SLA intervals to send
        instance_label: Value for the instance label added to all metrics
        bucket: Optional bucket snapshot sent alongside the intervals
        verbose: Print each metric sample
        dry_run: If True, process metrics but skip sending to endpoint
        debug_file: Optional path to save uncompressed payload data before compression
    """
    # Imported lazily so the core works without the remote write stack
    from .remote_write import RemoteWriteClient

    if dry_run:
        print(f"\nDry-run mode: Processing metrics (not sending to {remote_write_url})...")
    else:
        print(f"\nSending metrics to {remote_write_url}...")

    client = RemoteWriteClient(remote_write_url, headers, instance_label, verbose)

    if client.send_snapshots(intervals, bucket=bucket, dry_run=dry_run, debug_file=debug_file):
        if dry_run:
            print(f"Dry-run completed: Processed metrics for {len(intervals)} interval(s)")
        else:
            print(f"Successfully sent metrics for {len(intervals)} interval(s)")
    else:
        print("Failed to process/send metrics", file=sys.stderr)
        sys.exit(1)
