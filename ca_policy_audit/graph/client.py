"""
Async Graph API client — the authenticated session handle for one audit run.
Handles pagination and maps failures onto the auditor's error taxonomy.
Requests are never retried: the first failure surfaces to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Optional

import httpx

from ..auth.authenticator import AuthExpired
from ..config import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_PAGE_SIZE,
    GRAPH_API_VERSION,
    GRAPH_BASE_URL,
    MAX_PAGES_PER_ENDPOINT,
    REQUEST_TIMEOUT_SECONDS,
)
from ..safety.guardian import SafetyGuardian

logger = logging.getLogger("ca_policy_audit.graph")


class RemoteUnavailable(Exception):
    """Raised when the remote source cannot serve a read."""
    pass


class GraphAPIError(RemoteUnavailable):
    """Raised when Graph API answers with an error status."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Graph API Error {status_code} for {url}: {message}")


class GraphClient:
    """
    Async Microsoft Graph API client.
    Features:
      - Safety-validated requests (read-only enforcement)
      - Automatic pagination with @odata.nextLink
      - Scoped lifetime: use as ``async with`` or call ``aclose()``
    """

    def __init__(
        self,
        access_token: str,
        guardian: SafetyGuardian,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def open(self):
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            },
            transport=self._transport,
        )

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Graph session closed")

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def _build_url(self, endpoint: str) -> str:
        """Build full Graph URL from relative endpoint."""
        if endpoint.startswith("http"):
            return endpoint
        return f"{GRAPH_BASE_URL}/{GRAPH_API_VERSION}/{endpoint.lstrip('/')}"

    async def get_all_pages(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """
        Fetch every page of a paginated endpoint into a list.
        Raises on the first failed page; no partial list is returned.
        """
        items = []
        async for item in self.get_all_pages_stream(endpoint, params):
            items.append(item)
        return items

    async def get_all_pages_stream(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> AsyncGenerator[dict, None]:
        """Yield the items of every page, following @odata.nextLink."""
        params = dict(params or {})
        if "$top" not in params:
            params["$top"] = str(DEFAULT_PAGE_SIZE)

        url: Optional[str] = self._build_url(endpoint)
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            self.guardian.validate_request("GET", url)
            data = await self._execute("GET", url, params=params)

            for item in data.get("value", []):
                yield item

            # nextLink carries every query parameter
            url = data.get("@odata.nextLink")
            params = None
            pages += 1

        if url:
            raise RemoteUnavailable(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {endpoint}"
            )

    async def _execute(self, method: str, url: str, params: Optional[dict] = None) -> dict:
        """Execute one request and return its JSON body."""
        if self._client is None:
            raise AuthExpired("Graph session is not open. Authenticate first.")

        try:
            response = await self._client.request(method, url, params=params)
        except httpx.TimeoutException as e:
            raise RemoteUnavailable(f"Timeout on {url}: {e}") from e
        except httpx.TransportError as e:
            raise RemoteUnavailable(f"Connection error on {url}: {e}") from e

        if response.status_code == 401:
            raise AuthExpired(f"Graph rejected the access token for {url}")

        if response.status_code != 200:
            raise GraphAPIError(response.status_code, _error_message(response), url)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailable(f"Non-JSON response from {url}") from e


def _error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text[:200]
