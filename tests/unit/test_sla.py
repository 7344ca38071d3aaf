import threading
from datetime import datetime, timezone

import pytest

from perfmon.exceptions import ConfigurationError
from perfmon.sla import DEFAULT_SATISFIED_THRESHOLD_NS, LatencyBand, SlaClassifier


def test_default_thresholds():
    """Test the default satisfied and tolerated thresholds."""
    classifier = SlaClassifier()
    assert classifier.satisfied_threshold_ns == DEFAULT_SATISFIED_THRESHOLD_NS == 25000
    assert classifier.tolerated_threshold_ns == 100000


@pytest.mark.parametrize(
    "duration, band",
    [
        (0, LatencyBand.SATISFIED),
        (1000, LatencyBand.SATISFIED),
        (1001, LatencyBand.TOLERATED),
        (4000, LatencyBand.TOLERATED),
        (4001, LatencyBand.UNSATISFIED),
    ],
)
def test_classify_band_boundaries(duration, band):
    """Test T, T+1, 4T and 4T+1 boundaries."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    assert classifier.classify(duration) is band


def test_classify_counts_exactly_one_band():
    """Test that every classification lands in exactly one band."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    for duration in (10, 1000, 1500, 4000, 9000, 10 ** 12):
        classifier.classify(duration)
    assert classifier.total_count == 6
    assert classifier.satisfied_count == 2
    assert classifier.tolerated_count == 2
    assert classifier.unsatisfied_count == 2
    assert (classifier.satisfied_count + classifier.tolerated_count
            + classifier.unsatisfied_count) == classifier.total_count
    assert classifier.sum_duration_per_interval == 10 + 1000 + 1500 + 4000 + 9000 + 10 ** 12


def test_invalid_threshold_rejected():
    """Test that non-positive thresholds are configuration errors."""
    with pytest.raises(ConfigurationError):
        SlaClassifier(satisfied_threshold_ns=0)
    with pytest.raises(ConfigurationError):
        SlaClassifier(satisfied_threshold_ns=-5)
    with pytest.raises(ConfigurationError):
        SlaClassifier(satisfied_threshold_ns=2.5)


@pytest.mark.parametrize("duration", [-1, 1.5, True, "100"])
def test_invalid_duration_rejected(duration):
    """Test that negative or non-integer durations raise and are not counted."""
    classifier = SlaClassifier(1000)
    with pytest.raises(ValueError):
        classifier.classify(duration)
    assert classifier.total_count == 0
    assert classifier.sum_duration_per_interval == 0


def test_lp_index_empty_interval_is_one():
    """Test the no-traffic convention."""
    classifier = SlaClassifier()
    assert classifier.compute_lp_index() == 1.0
    assert classifier.compute_mean_per_interval() == 0.0


def test_lp_index_all_satisfied():
    """Test that 10 satisfied packets give an LPIndex of 1.0."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    for _ in range(10):
        classifier.classify(500)
    assert classifier.compute_lp_index() == 1.0


def test_lp_index_half_tolerated():
    """Test that 5 satisfied and 5 tolerated packets give 0.75."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    for _ in range(5):
        classifier.classify(500)
    for _ in range(5):
        classifier.classify(2000)
    assert classifier.compute_lp_index() == pytest.approx(0.75)
    assert classifier.lp_index == pytest.approx(0.75)


def test_lp_index_all_unsatisfied():
    """Test that only unsatisfied packets give 0.0."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    classifier.classify(5000)
    assert classifier.compute_lp_index() == 0.0


def test_mean_per_interval():
    """Test the mean end-to-end duration of the interval."""
    classifier = SlaClassifier()
    classifier.classify(100)
    classifier.classify(300)
    assert classifier.compute_mean_per_interval() == 200.0
    assert classifier.mean_per_interval == 200.0


def test_reset_interval_snapshots_then_zeros():
    """Test that reset_interval captures the closing interval before zeroing."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    for duration in (500, 500, 2000, 9000):
        classifier.classify(duration)

    snapshot = classifier.reset_interval()

    assert snapshot.interval_number == 1
    assert snapshot.total_count == 4
    assert snapshot.satisfied_count == 2
    assert snapshot.tolerated_count == 1
    assert snapshot.unsatisfied_count == 1
    assert snapshot.lp_index == pytest.approx(0.625)
    assert snapshot.mean_per_interval == pytest.approx(3000.0)
    assert classifier.last_snapshot is snapshot

    assert classifier.total_count == 0
    assert classifier.satisfied_count == 0
    assert classifier.tolerated_count == 0
    assert classifier.unsatisfied_count == 0
    assert classifier.sum_duration_per_interval == 0
    # retained for readers between intervals
    assert classifier.lp_index == pytest.approx(0.625)
    assert classifier.mean_per_interval == pytest.approx(3000.0)


def test_reset_interval_twice_without_traffic():
    """Test that a second reset without classifications returns zero counts."""
    classifier = SlaClassifier()
    classifier.classify(100)
    classifier.reset_interval()

    second = classifier.reset_interval()

    assert second.interval_number == 2
    assert second.total_count == 0
    assert second.satisfied_count == 0
    assert second.tolerated_count == 0
    assert second.unsatisfied_count == 0
    assert second.lp_index == 1.0
    assert second.mean_per_interval == 0.0


def test_reset_interval_uses_given_timestamp():
    """Test that replays can stamp snapshots with trace time."""
    classifier = SlaClassifier()
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    snapshot = classifier.reset_interval(stamp)
    assert snapshot.timestamp == stamp
    assert snapshot.to_dict()['timestamp'] == stamp.isoformat()


def test_concurrent_classify_and_reset_never_lose_packets():
    """Test that packets split across intervals are counted exactly once."""
    classifier = SlaClassifier(satisfied_threshold_ns=1000)
    snapshots = []
    done = threading.Event()

    def writer():
        for _ in range(5000):
            classifier.classify(10)

    def resetter():
        while not done.is_set():
            snapshots.append(classifier.reset_interval())

    reset_thread = threading.Thread(target=resetter)
    reset_thread.start()
    writers = [threading.Thread(target=writer) for _ in range(4)]
    for thread in writers:
        thread.start()
    for thread in writers:
        thread.join()
    done.set()
    reset_thread.join()
    snapshots.append(classifier.reset_interval())

    assert sum(snapshot.total_count for snapshot in snapshots) == 20000
    assert sum(snapshot.satisfied_count for snapshot in snapshots) == 20000
