"""Tests for the tool operations (core/operations.py)."""

import json

import httpx
import pytest

from conftest import html_response, json_response
from core import operations
from core.operations import (
    build_report_body,
    check_package,
    get_stats,
    register,
    render_scan,
    scan_config,
    search_packages,
    submit_report,
)
from core.models import PackageRecord


def _write_config(tmp_path, servers: dict, key: str = "mcpServers") -> str:
    path = tmp_path / "claude_desktop_config.json"
    path.write_text(json.dumps({key: servers}))
    return str(path)


# =============================================================================
# check_package
# =============================================================================
class TestCheckPackage:

    @pytest.mark.asyncio
    async def test_found(self, skills_api):
        client = skills_api({"crewai": {"slug": "crewai", "display_name": "CrewAI",
                                        "latest_risk_score": 75, "latest_result": "unsafe"}})
        async with client:
            text = await check_package("crewai", client=client)
        assert text.startswith("🔴 **CrewAI** (unknown)")
        assert "Verdict: UNSAFE" in text

    @pytest.mark.asyncio
    async def test_non_string_verdict(self, skills_api):
        async with skills_api({"crewai": {"slug": "crewai", "latest_result": 1}}) as client:
            text = await check_package("crewai", client=client)
        assert "  Verdict: 1" in text

    @pytest.mark.asyncio
    async def test_not_found(self, skills_api):
        async with skills_api({}) as client:
            text = await check_package("nonexistent-pkg-xyz", client=client)
        assert text == "❓ **nonexistent-pkg-xyz** (unknown)\n  ⚠️ Package not found in AgentAudit database"


# =============================================================================
# scan_config
# =============================================================================
class TestScanConfig:

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        missing = str(tmp_path / "nope.json")
        text = await scan_config(missing)
        assert text == f"❌ Config not found: {missing}\n\nTry providing the path explicitly."

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{ nope")
        text = await scan_config(str(path))
        assert text.startswith("❌ Failed to parse config: ")

    @pytest.mark.asyncio
    async def test_no_candidates(self, tmp_path):
        path = _write_config(tmp_path, {})
        assert await scan_config(path) == "No packages found in config."

    @pytest.mark.asyncio
    async def test_sorted_by_risk_with_unknown_last(self, tmp_path, skills_api):
        path = _write_config(tmp_path, {"risky": {"args": []}, "quiet": {"args": []}})
        client = skills_api({
            "risky": {"slug": "risky", "latest_risk_score": 80},
            "quiet": {"slug": "quiet", "latest_risk_score": None},
        })
        async with client:
            text = await scan_config(path, client=client)

        assert text.index("**risky**") < text.index("**quiet**")
        assert "📦 2 packages checked | 1 with elevated risk" in text

    @pytest.mark.asyncio
    async def test_one_failure_does_not_sink_the_batch(self, tmp_path, make_client):
        path = _write_config(tmp_path, {"ok": {"args": []}, "broken": {"args": []}, "gone": {"args": []}})

        def handler(request):
            if request.url.path.endswith("/broken"):
                raise httpx.ConnectError("connection reset", request=request)
            if request.url.path.endswith("/gone"):
                return html_response(404)
            return json_response({"slug": "ok", "latest_risk_score": 10})

        async with make_client(handler) as client:
            text = await scan_config(path, client=client)

        assert "📦 3 packages checked | 0 with elevated risk" in text
        assert "⚠️ Request failed: connection reset" in text
        assert "⚠️ Package not found in AgentAudit database" in text
        assert "Risk Score: 10/100" in text

    @pytest.mark.asyncio
    async def test_default_path_from_platform(self, tmp_path, skills_api):
        config_dir = tmp_path / ".config" / "claude"
        config_dir.mkdir(parents=True)
        (config_dir / "claude_desktop_config.json").write_text(
            json.dumps({"mcpServers": {"fetch": {"args": ["-y", "mcp-server-fetch"]}}})
        )
        env = {"HOME": str(tmp_path)}

        async with skills_api({}) as client:
            text = await scan_config(client=client, platform="linux", getenv=env.get)

        assert text.startswith(f"🔍 Scanned {config_dir / 'claude_desktop_config.json'}")
        assert "**mcp-server-fetch**" in text
        assert "**fetch**" in text

    def test_render_scan_layout(self):
        records = [
            PackageRecord(slug="a", display_name="a", risk_score=20),
            PackageRecord(slug="b", display_name="b", risk_score=55),
        ]
        text = render_scan("/cfg.json", records)
        assert text == (
            "🔍 Scanned /cfg.json\n\n"
            "📦 2 packages checked | 1 with elevated risk\n\n\n"
            "🟡 **b** (unknown)\n"
            "  Trust Score: N/A/100\n"
            "  Risk Score: 55/100\n"
            "  Verdict: UNKNOWN\n"
            "  Findings: 0 (from 0 audits)\n"
            "  Details: https://agentaudit.dev/packages/b\n\n"
            "🟢 **a** (unknown)\n"
            "  Trust Score: N/A/100\n"
            "  Risk Score: 20/100\n"
            "  Verdict: UNKNOWN\n"
            "  Findings: 0 (from 0 audits)\n"
            "  Details: https://agentaudit.dev/packages/a"
        )

    @pytest.mark.asyncio
    async def test_loosely_typed_scores_do_not_sink_the_batch(self, tmp_path, skills_api):
        path = _write_config(tmp_path, {"stringy": {"args": []}, "odd": {"args": []}})
        client = skills_api({
            "stringy": {"slug": "stringy", "latest_risk_score": "80", "latest_result": 1},
            "odd": {"slug": "odd", "latest_risk_score": "high", "trust_score": [1]},
        })
        async with client:
            text = await scan_config(path, client=client)

        assert "📦 2 packages checked | 1 with elevated risk" in text
        assert text.index("🔴 **stringy**") < text.index("❓ **odd**")
        assert "Verdict: 1" in text
        assert "Trust Score: N/A/100" in text


# =============================================================================
# search_packages
# =============================================================================
LISTING = [
    {"slug": "crewai", "display_name": "CrewAI", "trust_score": 80, "latest_risk_score": 12,
     "latest_result": "pass"},
    {"slug": "crew-tools", "display_name": "Crew Tools", "trust_score": 40, "latest_risk_score": 72,
     "latest_result": "unsafe"},
    {"slug": "fetch", "display_name": "Fetch"},
]


class TestSearchPackages:

    @pytest.mark.asyncio
    async def test_limit_truncates_but_header_counts_all_matches(self, make_client):
        async with make_client(lambda request: json_response(LISTING)) as client:
            text = await search_packages("crew", limit=1, client=client)

        lines = text.split("\n")
        assert lines[0] == '🔎 2 results for "crew" (showing 1, 3 total in database)'
        match_lines = [line for line in lines[1:] if line]
        assert match_lines == ["🟢 **CrewAI** — Trust: 80/100, Risk: 12/100, Verdict: PASS"]

    @pytest.mark.asyncio
    async def test_loosely_typed_entry(self, make_client):
        listing = [{"slug": "crewai", "latest_risk_score": "75", "trust_score": "n/a", "latest_result": 0}]
        async with make_client(lambda request: json_response(listing)) as client:
            text = await search_packages("crew", client=client)
        assert text.endswith("🔴 **crewai** — Trust: ?/100, Risk: 75/100, Verdict: 0")

    @pytest.mark.asyncio
    async def test_default_limit(self, make_client):
        listing = [{"slug": f"pkg-{i}"} for i in range(15)]
        async with make_client(lambda request: json_response(listing)) as client:
            text = await search_packages("pkg", client=client)
        assert text.count("**pkg-") == 10

    @pytest.mark.asyncio
    async def test_no_matches(self, make_client):
        async with make_client(lambda request: json_response(LISTING)) as client:
            text = await search_packages("zzz", client=client)
        assert text == 'No packages matching "zzz" found in AgentAudit database (3 total packages).'

    @pytest.mark.asyncio
    async def test_list_not_found(self, make_client):
        async with make_client(lambda request: html_response(404)) as client:
            assert await search_packages("x", client=client) == "❌ Failed to fetch package list"

    @pytest.mark.asyncio
    async def test_transport_failure(self, make_client):
        handler = lambda request: httpx.Response(500, text="oops")
        async with make_client(handler) as client:
            assert await search_packages("x", client=client) == "❌ Search failed: HTTP 500: oops"


# =============================================================================
# get_stats
# =============================================================================
class TestGetStats:

    @pytest.mark.asyncio
    async def test_renders_counts(self, make_client):
        health = {"status": "ok", "db": {"skills": 321, "findings": 4567, "agents": 12}}
        async with make_client(lambda request: json_response(health)) as client:
            text = await get_stats(client=client)
        assert "  Status: ok" in text
        assert "  Total Packages: 321" in text
        assert "  Total Findings: 4567" in text
        assert "  Registered Agents: 12" in text

    @pytest.mark.asyncio
    async def test_unreachable(self, make_client):
        async with make_client(lambda request: html_response(502)) as client:
            assert await get_stats(client=client) == "❌ AgentAudit API unreachable"

    @pytest.mark.asyncio
    async def test_error(self, make_client):
        handler = lambda request: httpx.Response(500, text="down")
        async with make_client(handler) as client:
            assert await get_stats(client=client) == "❌ HTTP 500: down"


# =============================================================================
# register / submit_report
# =============================================================================
class TestRegister:

    @pytest.mark.asyncio
    async def test_new_agent(self, make_client):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return json_response({"agent_name": "scout", "api_key": "aa_123", "existing": False}, 201)

        async with make_client(handler) as client:
            text = await register("scout", client=client)

        assert seen == [{"agent_name": "scout"}]
        assert "newly registered" in text
        assert "API Key: aa_123" in text

    @pytest.mark.asyncio
    async def test_existing_agent(self, make_client):
        payload = {"agent_name": "scout", "api_key": "aa_123", "existing": True}
        async with make_client(lambda request: json_response(payload)) as client:
            text = await register("scout", client=client)
        assert "already registered" in text

    @pytest.mark.asyncio
    async def test_remote_error_payload_is_relayed(self, make_client):
        payload = {"error": "agent_name must be 3-64 characters"}
        async with make_client(lambda request: json_response(payload)) as client:
            text = await register("x", client=client)
        assert text == "❌ Registration failed: agent_name must be 3-64 characters"

    @pytest.mark.asyncio
    async def test_error_status_is_relayed(self, make_client):
        handler = lambda request: json_response({"error": "rate limited"}, 429)
        async with make_client(handler) as client:
            text = await register("scout", client=client)
        assert text == "❌ Registration failed: rate limited"

    @pytest.mark.asyncio
    async def test_error_status_without_error_document(self, make_client):
        handler = lambda request: httpx.Response(500, text="upstream exploded")
        async with make_client(handler) as client:
            text = await register("scout", client=client)
        assert text == "❌ Registration failed: HTTP 500: upstream exploded"


class TestSubmitReport:

    FINDING = {"title": "Shell injection", "severity": "high", "description": "exec() on input"}

    def test_body_includes_findings_count(self):
        body = build_report_body("crewai", 55, "warn", findings=[self.FINDING])
        assert body == {
            "package_name": "crewai",
            "risk_score": 55,
            "result": "warn",
            "findings_count": 1,
            "findings": [self.FINDING],
        }

    def test_body_omits_unset_optionals(self):
        body = build_report_body("crewai", 0, "pass")
        assert body == {"package_name": "crewai", "risk_score": 0, "result": "pass", "findings_count": 0}

    @pytest.mark.asyncio
    async def test_submits_with_bearer_and_relays_counts(self, make_client):
        seen = []

        def handler(request):
            seen.append(request)
            return json_response({"report_id": 42, "findings_created": 1, "findings_deduplicated": 0}, 201)

        async with make_client(handler) as client:
            text = await submit_report(
                "aa_123", "crewai", 55, "warn",
                package_type="pip", max_severity="high", findings=[self.FINDING], client=client,
            )

        assert seen[0].url.path == "/api/reports"
        assert seen[0].headers["authorization"] == "Bearer aa_123"
        body = json.loads(seen[0].content)
        assert body["package_type"] == "pip"
        assert body["max_severity"] == "high"
        assert body["findings_count"] == 1
        assert "Report ID: 42" in text
        assert "Findings created: 1" in text
        assert "Findings deduplicated: 0" in text

    @pytest.mark.asyncio
    async def test_unauthorized(self, make_client):
        handler = lambda request: json_response({"error": "Invalid API key"}, 401)
        async with make_client(handler) as client:
            text = await submit_report("bad", "crewai", 10, "pass", client=client)
        assert text == "❌ Report submission failed: Invalid API key"

    @pytest.mark.asyncio
    async def test_long_validation_error_is_not_truncated(self, make_client):
        message = "findings[0].description: " + "x" * 250
        handler = lambda request: json_response({"error": message}, 400)
        async with make_client(handler) as client:
            text = await submit_report("aa_123", "crewai", 10, "pass", client=client)
        assert text == f"❌ Report submission failed: {message}"


# =============================================================================
# client lifecycle
# =============================================================================
class TestOwnedClient:

    @pytest.mark.asyncio
    async def test_operation_opens_its_own_client(self, monkeypatch):
        created = []

        class FakeClient:
            def __init__(self):
                created.append(self)
                self.closed = False

            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc_info):
                self.closed = True

            async def get_json(self, path):
                return {"status": "ok", "db": {}}

        monkeypatch.setattr(operations, "AgentAuditClient", FakeClient)
        text = await get_stats()

        assert "Status: ok" in text
        assert len(created) == 1 and created[0].closed
