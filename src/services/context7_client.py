"""Async HTTP client for the Context7 documentation API.

Context7 exposes two endpoints the agent needs:

* ``GET /search?query=<name>`` - find libraries matching a free-text name.
  Returns ``{"results": [{"id", "title", "description"?}, ...]}``.
* ``GET /<library_id>?tokens=..&type=txt`` - fetch LLM-ready documentation
  for one library as plain text.

The client does not retry.  A failed or slow upstream call surfaces as a
single :class:`Context7APIError` (non-2xx) or ``httpx.HTTPError``
(transport); callers that need retries must add them above this layer.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.config import CONTEXT7_BASE_URL, CONTEXT7_SOURCE, CONTEXT7_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

SOURCE_HEADER = "X-Context7-Source"


class Context7APIError(Exception):
    """Raised when Context7 answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class Context7Client:
    """Thin wrapper around the Context7 REST API.

    One instance owns one ``httpx.AsyncClient``; call :meth:`aclose` (or use
    the client as an async context manager) when done.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        source: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url or CONTEXT7_BASE_URL
        self._source = source or CONTEXT7_SOURCE
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or CONTEXT7_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> Context7Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────────────

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        logger.error("Context7 %s failed with status %d", what, response.status_code)
        raise Context7APIError(
            f"Context7 {what} failed with status {response.status_code}",
            status_code=response.status_code,
        )

    # ── Public API methods ───────────────────────────────────────────

    async def search_libraries(self, query: str) -> list[dict[str, Any]]:
        """Search Context7 for libraries matching *query*.

        Returns the ``results`` list (empty when the response has none).
        """
        response = await self._client.get("search", params={"query": query})
        self._raise_for_status(response, "search")
        data = response.json()
        return (data or {}).get("results") or []

    async def fetch_documentation(
        self,
        library_id: str,
        *,
        tokens: int,
        topic: str | None = None,
        folders: str | None = None,
    ) -> str:
        """Fetch the plain-text documentation for *library_id*.

        Args:
            library_id: Context7 library path without a leading slash
                        (e.g. ``"vercel/nextjs"``).
            tokens: Maximum number of documentation tokens to return.
            topic: Optional topic to focus on (e.g. ``"routing"``).
            folders: Optional comma-separated folder filter.

        Returns:
            The raw response body.
        """
        params: dict[str, str] = {"tokens": str(tokens), "type": "txt"}
        if topic:
            params["topic"] = topic
        if folders:
            params["folders"] = folders

        response = await self._client.get(
            library_id,
            params=params,
            headers={SOURCE_HEADER: self._source},
        )
        self._raise_for_status(response, "documentation fetch")
        return response.text
