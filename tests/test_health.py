"""Tests for per-API health accounting."""

import pytest

from malratings.providers.health import ProviderHealthMonitor


def test_summary_reports_outcomes() -> None:
    monitor = ProviderHealthMonitor()
    for _ in range(4):
        monitor.record_failure("MyAnimeList", "HTTP 500")
    monitor.record_success("MyAnimeList", 0.2)

    summary = monitor.summary()["MyAnimeList"]
    assert summary["requests"] == 5
    assert summary["success_rate"] == pytest.approx(0.2)
    assert summary["healthy"] is False
    assert summary["avg_response_time"] == pytest.approx(0.2)
    assert summary["last_error"] == "HTTP 500"
    assert summary["last_failure"] is not None
    assert summary["last_success"] is not None


def test_few_requests_count_as_healthy() -> None:
    monitor = ProviderHealthMonitor()
    monitor.record_failure("Jikan", "Jikan returned HTTP 429")

    summary = monitor.summary()["Jikan"]
    assert summary["healthy"] is True
    assert summary["last_success"] is None
    assert summary["last_error"] == "Jikan returned HTTP 429"


def test_unused_apis_are_absent() -> None:
    assert ProviderHealthMonitor().summary() == {}
