"""Shared fixtures for the AgentAudit MCP server tests."""

import json
from typing import Callable

import httpx
import pytest

from core.api_client import AgentAuditClient
from core.settings import get_settings

TEST_API_BASE = "https://api.test/api"

HTML_404 = "<!DOCTYPE html><html><body><h1>404 - Not Found</h1></body></html>"


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Run each test against default settings, independent of the shell env."""
    for key in ("AGENTAUDIT_API_BASE", "AGENTAUDIT_TIMEOUT", "AGENTAUDIT_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


def html_response(status_code: int = 404) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=HTML_404.encode(),
        headers={"Content-Type": "text/html"},
    )


@pytest.fixture
def make_client() -> Callable[..., AgentAuditClient]:
    """Build an AgentAuditClient whose requests go to `handler` instead of the network."""

    def _make(handler, timeout: float = 10.0) -> AgentAuditClient:
        return AgentAuditClient(
            base_url=TEST_API_BASE,
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def skills_api(make_client):
    """A stub /skills/{name} endpoint backed by a dict of payloads.

    Unknown names get the website's HTML 404 page, like the real service.
    """

    def _make(records: dict) -> AgentAuditClient:
        def handler(request: httpx.Request) -> httpx.Response:
            prefix = "/api/skills/"
            path = request.url.path
            if path.startswith(prefix):
                name = path[len(prefix):]
                if name in records:
                    return json_response(records[name])
            return html_response(404)

        return make_client(handler)

    return _make
