"""Per-API request accounting for the stats report."""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..core.logging import get_logger

logger = get_logger("provider_health")


@dataclass
class ApiHealth:
    """Request outcomes of one remote API."""

    requests: int = 0
    failures: int = 0
    total_response_time: float = 0.0
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error: str | None = None

    @property
    def success_rate(self) -> float:
        if self.requests == 0:
            return 0.0
        return (self.requests - self.failures) / self.requests

    @property
    def avg_response_time(self) -> float:
        successes = self.requests - self.failures
        return self.total_response_time / successes if successes else 0.0

    @property
    def is_healthy(self) -> bool:
        """Healthy while more than half of the requests succeed."""
        if self.requests < 5:
            return True  # Not enough data
        return self.success_rate > 0.5

    def as_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "success_rate": round(self.success_rate, 3),
            "healthy": self.is_healthy,
            "avg_response_time": round(self.avg_response_time, 3),
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_error": self.last_error,
        }


class ProviderHealthMonitor:
    """Tracks MyAnimeList, Shoko and Jikan calls for ``malratings stats``."""

    def __init__(self) -> None:
        self._apis: dict[str, ApiHealth] = {}
        self._lock = threading.Lock()

    def record_success(self, provider: str, response_time: float) -> None:
        with self._lock:
            health = self._apis.setdefault(provider, ApiHealth())
            health.requests += 1
            health.total_response_time += response_time
            health.last_success = datetime.now(timezone.utc)

        logger.debug(
            f"{provider} request succeeded", response_time=round(response_time, 3)
        )

    def record_failure(self, provider: str, error: str) -> None:
        with self._lock:
            health = self._apis.setdefault(provider, ApiHealth())
            health.requests += 1
            health.failures += 1
            health.last_failure = datetime.now(timezone.utc)
            health.last_error = error
            healthy = health.is_healthy
            success_rate = health.success_rate

        logger.warning(f"{provider} request failed", error=error, success_rate=success_rate)
        if not healthy:
            logger.error(f"{provider} unhealthy", success_rate=success_rate)

    def summary(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every API seen so far, keyed by name."""
        with self._lock:
            return {name: health.as_dict() for name, health in self._apis.items()}
