"""
Block data client for Esplora-style REST APIs.

Wraps the two endpoints the announcer needs (chain tip hash and block by
hash) and translates httpx failures into the package's error types.
"""

import logging
from typing import Any

import httpx

from ..exceptions import DecodeError, TransportError
from ..models import BlockRecord

logger = logging.getLogger(__name__)


class MempoolUtility:
    """Client for an Esplora-style block data API such as mempool.space.

    Every call is a live request: no caching and no retries. Retry policy
    belongs to the poller.
    """

    DEFAULT_API_URL: str = "https://mempool.space/api"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the API (without trailing slash)
            request_timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url: str = api_url.rstrip("/")
        self.request_timeout: float = request_timeout
        self._client: httpx.AsyncClient = httpx.AsyncClient(
            transport=transport,
            timeout=request_timeout,
        )

    async def __aenter__(self) -> "MempoolUtility":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _get(self, path: str) -> httpx.Response:
        """Issue a GET request against the API.

        Args:
            path: API path starting with '/'

        Returns:
            The successful response

        Raises:
            TransportError: On network failure, timeout or non-2xx status
            DecodeError: If the path (built from a provider hash) is not a valid URL
        """
        url: str = self.api_url + path
        logger.debug(f"GET {url!r}")
        try:
            response: httpx.Response = await self._client.get(url)
            response.raise_for_status()
        except httpx.InvalidURL as e:
            # InvalidURL is not an HTTPError; the bad value came from a provider body
            raise DecodeError(f"Cannot request {url!r}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{url} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        return response

    async def fetch_tip_hash(self) -> str:
        """Fetch the hash of the current chain tip.

        Returns:
            The tip block hash

        Raises:
            TransportError: If the provider cannot be reached
            DecodeError: If the provider returns an empty body
        """
        response = await self._get("/blocks/tip/hash")
        tip_hash: str = response.text.strip()
        if not tip_hash:
            raise DecodeError("Provider returned an empty tip hash")
        return tip_hash

    async def fetch_block(self, block_hash: str) -> BlockRecord:
        """Fetch a single block by hash.

        Args:
            block_hash: Hash of the block to fetch

        Returns:
            The decoded block record

        Raises:
            TransportError: If the provider cannot be reached
            DecodeError: If the body is not valid JSON or misses fields
        """
        response = await self._get(f"/block/{block_hash}")
        try:
            payload: Any = response.json()
        except ValueError as e:
            raise DecodeError(f"Block {block_hash} response is not valid JSON: {e}") from e
        return BlockRecord.from_api(payload)
