"""Tests for structured upstream logging and prometheus metrics."""

import logging

import pytest
from prometheus_client import REGISTRY

from travelmaker.utils.logging import StructuredUpstreamLogger
from travelmaker.utils.metrics import PrometheusUpstreamMetrics


def test_success_logged_at_info(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="travelmaker.utils.logging"):
        StructuredUpstreamLogger().log_call("fx.exchangerate_api", "success", 12.5)

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.structured == {
        "service": "fx.exchangerate_api",
        "outcome": "success",
        "latency_ms": 12.5,
        "cache_hit": False,
    }


def test_error_logged_at_warning_with_reason(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="travelmaker.utils.logging"):
        StructuredUpstreamLogger().log_call(
            "geocoding.nominatim", "error", 5.0, error_reason="ConnectError"
        )

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.structured["error_reason"] == "ConnectError"


def test_prometheus_metrics_increment() -> None:
    metrics = PrometheusUpstreamMetrics()
    before = REGISTRY.get_sample_value("cache_hits_total", {"cache": "unit_test"}) or 0.0

    metrics.inc_cache_hit("unit_test")
    metrics.inc_cache_miss("unit_test")
    metrics.inc_error("unit.test", "timeout")
    metrics.record_latency("unit.test", "success", 42.0)

    assert REGISTRY.get_sample_value("cache_hits_total", {"cache": "unit_test"}) == before + 1
    assert REGISTRY.get_sample_value("cache_misses_total", {"cache": "unit_test"}) is not None
    assert (
        REGISTRY.get_sample_value(
            "upstream_errors_total", {"service": "unit.test", "reason": "timeout"}
        )
        is not None
    )
    assert (
        REGISTRY.get_sample_value(
            "upstream_latency_ms_count", {"service": "unit.test", "outcome": "success"}
        )
        is not None
    )
