"""Base class for the remote API clients."""

import asyncio
import time
from typing import TYPE_CHECKING, Any

import aiohttp

from .. import __version__
from ..core.exceptions import ApiError

if TYPE_CHECKING:
    from .health import ProviderHealthMonitor


class ApiClient:
    """Shared aiohttp session handling for remote APIs.

    Subclasses call ``_get_json``; it raises ``ApiError`` for non-200
    responses, transport failures, timeouts and undecodable bodies, and
    records the outcome with the health monitor when one is attached.
    """

    API_TIMEOUT = 30
    USER_AGENT = f"malratings/{__version__} (personal MAL ratings)"

    def __init__(
        self,
        name: str,
        health_monitor: "ProviderHealthMonitor | None" = None,
    ) -> None:
        self.name = name
        self.health_monitor = health_monitor
        self._session: aiohttp.ClientSession | None = None

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": self.USER_AGENT, "Accept": "application/json"}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.API_TIMEOUT)
            self._session = aiohttp.ClientSession(
                timeout=timeout, headers=self._default_headers()
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``url`` and decode the JSON body."""
        started = time.monotonic()
        try:
            session = await self._get_session()
            async with session.get(url, params=params, headers=headers) as response:
                if response.status != 200:
                    raise ApiError(
                        f"{self.name} returned HTTP {response.status}",
                        status=response.status,
                        details={"url": url},
                    )
                data = await response.json(content_type=None)
        except ApiError as e:
            self._record_failure(e.message)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self._record_failure(str(e) or type(e).__name__)
            raise ApiError(
                f"{self.name} request failed: {e}", details={"url": url}
            ) from e

        if self.health_monitor:
            self.health_monitor.record_success(self.name, time.monotonic() - started)
        return data

    def _record_failure(self, error: str) -> None:
        if self.health_monitor:
            self.health_monitor.record_failure(self.name, error)
