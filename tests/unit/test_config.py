import pytest

from perfmon.config import PerfMonConfig
from perfmon.exceptions import ConfigurationError


def test_default_config():
    """Test the default configuration values."""
    config = PerfMonConfig.default()
    assert config.satisfied_threshold_ns == 25000
    assert config.reset_interval == 1.0
    assert config.reset_interval_ns == 1_000_000_000
    assert config.instance_label == "perfmon"


def test_presets():
    """Test the strict and relaxed presets."""
    assert PerfMonConfig.strict().satisfied_threshold_ns == 10_000
    assert PerfMonConfig.relaxed().satisfied_threshold_ns == 100_000


def test_fluent_overrides():
    """Test method chaining overrides."""
    config = PerfMonConfig().with_threshold(5000).with_interval(0.5)
    assert config.satisfied_threshold_ns == 5000
    assert config.reset_interval_ns == 500_000_000


@pytest.mark.parametrize(
    "kwargs",
    [
        {"satisfied_threshold_ns": 0},
        {"satisfied_threshold_ns": 1.5},
        {"reset_interval": 0},
        {"reset_interval": -1.0},
        {"reset_interval": 1e-10},
        {"reset_interval": float("nan")},
        {"reset_interval": float("inf")},
        {"instance_label": ""},
    ],
)
def test_invalid_config_rejected(kwargs):
    """Test that invalid values raise ConfigurationError."""
    with pytest.raises(ConfigurationError):
        PerfMonConfig(**kwargs)


def test_invalid_overrides_rejected():
    """Test that fluent overrides validate their arguments."""
    config = PerfMonConfig()
    with pytest.raises(ConfigurationError):
        config.with_threshold(-1)
    with pytest.raises(ConfigurationError):
        config.with_interval(0)
    with pytest.raises(ConfigurationError):
        config.with_interval(1e-10)
    with pytest.raises(ConfigurationError):
        config.with_interval(float("nan"))
    assert config.satisfied_threshold_ns == 25000
    assert config.reset_interval == 1.0


def test_sub_second_interval_accepted():
    """Test that fractional intervals convert to whole nanoseconds."""
    assert PerfMonConfig(reset_interval=0.25).reset_interval_ns == 250_000_000
