# =============================================================================
# core/api_client.py  —  HTTP Client Adapter for the AgentAudit API
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Performs exactly one HTTP request per call and reduces the outcome to
#   one of three shapes:
#
#     parsed JSON     → the request succeeded
#     None            → "not found" (the gateway answered with an HTML page)
#     TransportError  → raised: network failure, timeout, or an error status
#                       whose body is not an HTML page
#
#   A 2xx response carrying HTML is also "not found".  Misconfigured routes
#   on the API host answer 200 with the website's 404 page, and the tools
#   must treat that as a normal miss rather than a failure.
#
# TIMEOUT:
#   Every request is bounded by Settings.timeout (10 s by default) as a
#   total deadline.  Hitting it cancels the request and raises
#   TransportError, exactly like a refused connection.  There are no
#   retries.
#
# USAGE:
#   async with AgentAuditClient() as client:
#       data = await client.get_json("/skills/crewai")
#
#   Tests pass `transport=httpx.MockTransport(handler)` to stub the API.
# =============================================================================

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from core.errors import TransportError
from core.settings import get_settings

logger = logging.getLogger(__name__)

# Longest slice of an error body quoted back in a TransportError message.
MAX_ERROR_EXCERPT = 200

_HTML_PREFIXES = ("<!DOCTYPE", "<html")


def is_html_document(text: str) -> bool:
    """True if a response body looks like an HTML page rather than JSON."""
    return text.startswith(_HTML_PREFIXES)


class AgentAuditClient:
    """Thin async wrapper around httpx for the AgentAudit REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.timeout
        self._http = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "AgentAuditClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_json(self, path: str) -> Any:
        """GET `path` and return its JSON payload, or None if not found."""
        return await self._request("GET", path)

    async def post_json(
        self,
        path: str,
        body: dict,
        api_key: Optional[str] = None,
    ) -> Any:
        """POST a JSON body to `path`; `api_key` is sent as a Bearer token."""
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        return await self._request("POST", path, json=body, headers=headers)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = await asyncio.wait_for(
                self._http.request(method, url, **kwargs),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise TransportError(f"Request timed out after {self.timeout:g}s: {url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request failed: {str(exc) or type(exc).__name__}") from exc

        text = response.text
        if not response.is_success:
            if is_html_document(text):
                logger.debug("HTML error page for %s (HTTP %d), treating as not found",
                             url, response.status_code)
                return None
            raise TransportError(
                f"HTTP {response.status_code}: {text[:MAX_ERROR_EXCERPT]}",
                status_code=response.status_code,
                body=text,
            )

        if is_html_document(text):
            logger.debug("HTML body on HTTP %d for %s, treating as not found",
                         response.status_code, url)
            return None
        # A malformed body raises json.JSONDecodeError; callers decide what
        # that means for their tool.
        return json.loads(text)
