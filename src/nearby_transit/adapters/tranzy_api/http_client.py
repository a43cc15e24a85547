"""HTTP client for Tranzy open-data requests."""

import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from nearby_transit.adapters.tranzy_api.constants import (
    AGENCY_ID_HEADER,
    API_KEY_HEADER,
    DEFAULT_HEADERS,
    TRANZY_BASE_URL,
    TRANZY_MIN_DELAY_SECONDS,
)
from nearby_transit.adapters.tranzy_api.request_throttle import RequestThrottle
from nearby_transit.domain.errors import DataUnavailableError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from aiohttp import ClientResponse, ClientSession


class TranzyHttpClient:
    """Fetches raw JSON lists from the Tranzy open-data endpoints."""

    def __init__(
        self,
        session: "ClientSession",
        api_key: str,
        base_url: str = TRANZY_BASE_URL,
        timeout_seconds: float = 10,
        min_delay_seconds: float = TRANZY_MIN_DELAY_SECONDS,
    ) -> None:
        """Initialize the client.

        Args:
            session: aiohttp session used for all requests.
            api_key: Tranzy API key.
            base_url: API base URL without trailing slash.
            timeout_seconds: Total timeout per request.
            min_delay_seconds: Minimum delay between two requests.
        """
        self._session = session
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._throttle = RequestThrottle("tranzy", min_delay_seconds)

    def _headers(self, agency_id: str) -> dict[str, str]:
        return {**DEFAULT_HEADERS, API_KEY_HEADER: self._api_key, AGENCY_ID_HEADER: agency_id}

    async def fetch_list(self, path: str, agency_id: str) -> list[dict[str, Any]]:
        """GET an endpoint returning a JSON array.

        Args:
            path: Endpoint path, e.g. ``/opendata/stops``.
            agency_id: Agency the request is scoped to.

        Returns:
            The records of the response; non-object entries are dropped.

        Raises:
            DataUnavailableError: On transport errors, non-200 responses, a body that
                is not JSON or a non-list body.
        """
        url = f"{self._base_url}{path}"
        await self._throttle.acquire()
        try:
            async with self._session.get(
                url, headers=self._headers(agency_id), timeout=self._timeout
            ) as response:
                return await self._handle_response(response, url, path)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"Error fetching {url}: {e}")
            raise DataUnavailableError(path, str(e) or type(e).__name__) from e

    async def _handle_response(
        self, response: "ClientResponse", url: str, path: str
    ) -> list[dict[str, Any]]:
        if response.status != 200:
            await self._log_error_response(response, url)
            raise DataUnavailableError(path, f"HTTP {response.status}")

        try:
            data = await response.json(content_type=None)
        except (ValueError, aiohttp.ContentTypeError) as e:
            logger.error(f"Tranzy API returned a body that is not JSON for {url}: {e}")
            raise DataUnavailableError(path, "malformed response") from e
        if not isinstance(data, list):
            logger.error(f"Tranzy API returned {type(data).__name__} instead of a list for {url}")
            raise DataUnavailableError(path, "malformed response")
        return [record for record in data if isinstance(record, dict)]

    async def _log_error_response(self, response: "ClientResponse", url: str) -> None:
        error_text = await response.text()
        error_body = error_text[:500] if error_text else "(empty response body)"
        if response.status in (401, 403):
            logger.warning(f"Tranzy API rejected the API key ({response.status}) for {url}")
        elif response.status == 429:
            retry_after = response.headers.get("Retry-After", "unknown")
            logger.warning(f"Tranzy API rate limit exceeded for {url} (Retry-After: {retry_after})")
        else:
            logger.error(f"Tranzy API returned status {response.status} for {url}: {error_body}")
