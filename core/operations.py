# =============================================================================
# core/operations.py  —  The Six Tool Operations
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Implements every tool the MCP server exposes, as plain async functions
#   that return the final text.  tools/mcp_server.py only adds the MCP
#   decorator and logging on top.
#
#     check_package    → GET /skills/{name}
#     scan_config      → read local config, GET /skills/{name} per candidate
#     search_packages  → GET /skills, filter locally
#     get_stats        → GET /health
#     register         → POST /register
#     submit_report    → POST /reports (Bearer auth)
#
# ERROR BOUNDARY:
#   Each function here is the last stop for errors.  Expected failures
#   (TransportError, bad JSON, unreadable config) become a message starting
#   with "❌"; nothing propagates to the MCP transport.
#
# CLIENT INJECTION:
#   Every operation accepts an optional AgentAuditClient.  When omitted, a
#   fresh one is opened for the duration of the call and closed afterwards.
# =============================================================================

import asyncio
from contextlib import asynccontextmanager
import json
import logging
import os
import sys
from typing import Any, AsyncIterator, Callable, Mapping, Optional

from core.api_client import AgentAuditClient
from core.config_scan import default_config_path, read_candidates
from core.errors import ConfigParseError, TransportError
from core.formatting import (
    format_record,
    format_registration,
    format_search_line,
    format_stats,
    format_submission,
    is_elevated_risk,
)
from core.models import PackageRecord, Registration, StatsSnapshot, SubmissionResult
from core.packages import as_int, lookup_package, match_packages

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10

# Errors an operation turns into "❌ ..." text.
_EXPECTED_ERRORS = (TransportError, json.JSONDecodeError)


@asynccontextmanager
async def _client_scope(client: Optional[AgentAuditClient]) -> AsyncIterator[AgentAuditClient]:
    if client is not None:
        yield client
        return
    async with AgentAuditClient() as owned:
        yield owned


def _remote_error(payload: Any) -> Optional[str]:
    """The service's own error text, if `payload` is an error document."""
    if isinstance(payload, Mapping) and payload.get("error"):
        error = payload["error"]
        return error if isinstance(error, str) else json.dumps(error)
    return None


def _failure_message(exc: Exception) -> str:
    """Text for a failed write call.

    An error status whose body is a JSON error document is relayed as the
    service wrote it, untruncated; anything else keeps the exception text.
    """
    if isinstance(exc, TransportError) and exc.body:
        try:
            error = _remote_error(json.loads(exc.body))
        except json.JSONDecodeError:
            error = None
        if error is not None:
            return error
    return str(exc)


# =============================================================================
# check_package
# =============================================================================
async def check_package(name: str, *, client: Optional[AgentAuditClient] = None) -> str:
    async with _client_scope(client) as api:
        record = await lookup_package(api, name)
    return format_record(record)


# =============================================================================
# scan_config
# =============================================================================
def _risk_sort_key(record: PackageRecord) -> int:
    return -1 if record.risk_score is None else record.risk_score


def render_scan(path: str, records: list[PackageRecord]) -> str:
    """Scan summary header followed by each record, riskiest first."""
    elevated = sum(1 for r in records if is_elevated_risk(r))
    ordered = sorted(records, key=_risk_sort_key, reverse=True)
    sections = [
        f"🔍 Scanned {path}",
        f"📦 {len(records)} packages checked | {elevated} with elevated risk\n",
    ]
    sections.extend(format_record(r) for r in ordered)
    return "\n\n".join(sections)


async def scan_config(
    path: Optional[str] = None,
    *,
    client: Optional[AgentAuditClient] = None,
    platform: str = sys.platform,
    getenv: Callable[[str], Optional[str]] = os.environ.get,
) -> str:
    resolved = os.path.expanduser(path) if path else default_config_path(platform, getenv)

    if not os.path.exists(resolved):
        return f"❌ Config not found: {resolved}\n\nTry providing the path explicitly."

    try:
        candidates = read_candidates(resolved)
    except ConfigParseError as exc:
        return f"❌ Failed to parse config: {exc}"

    if not candidates:
        return "No packages found in config."

    logger.info("Checking %d candidates from %s", len(candidates), resolved)
    async with _client_scope(client) as api:
        records = await asyncio.gather(*(lookup_package(api, name) for name in candidates))
    return render_scan(resolved, list(records))


# =============================================================================
# search_packages
# =============================================================================
async def search_packages(
    query: str,
    limit: Optional[int] = None,
    *,
    client: Optional[AgentAuditClient] = None,
) -> str:
    limit = DEFAULT_SEARCH_LIMIT if limit is None else limit
    try:
        async with _client_scope(client) as api:
            listing = await api.get_json("/skills")
    except _EXPECTED_ERRORS as exc:
        return f"❌ Search failed: {exc}"

    if not isinstance(listing, list):
        return "❌ Failed to fetch package list"

    matches = match_packages(listing, query)
    if not matches:
        return (
            f'No packages matching "{query}" found in AgentAudit database '
            f"({len(listing)} total packages)."
        )

    shown = matches[:limit]
    lines = [
        f'🔎 {len(matches)} results for "{query}" '
        f"(showing {len(shown)}, {len(listing)} total in database)\n"
    ]
    lines.extend(format_search_line(entry) for entry in shown)
    return "\n".join(lines)


# =============================================================================
# get_stats
# =============================================================================
def stats_from_payload(payload: Mapping[str, Any]) -> StatsSnapshot:
    db = payload.get("db")
    if not isinstance(db, Mapping):
        db = {}
    return StatsSnapshot(
        status=str(payload.get("status", "unknown")),
        package_count=as_int(db.get("skills")),
        finding_count=as_int(db.get("findings")),
        agent_count=as_int(db.get("agents")),
    )


async def get_stats(*, client: Optional[AgentAuditClient] = None) -> str:
    try:
        async with _client_scope(client) as api:
            health = await api.get_json("/health")
    except _EXPECTED_ERRORS as exc:
        return f"❌ {exc}"

    if not health or not isinstance(health, Mapping):
        return "❌ AgentAudit API unreachable"
    return format_stats(stats_from_payload(health))


# =============================================================================
# register
# =============================================================================
def registration_from_payload(agent_name: str, payload: Any) -> Registration:
    error = _remote_error(payload)
    if error is not None:
        return Registration(agent_name=agent_name, error=error)
    if not isinstance(payload, Mapping):
        return Registration(agent_name=agent_name, error="Empty response from AgentAudit")
    return Registration(
        agent_name=payload.get("agent_name") or agent_name,
        api_key=payload.get("api_key"),
        existing=bool(payload.get("existing", False)),
    )


async def register(agent_name: str, *, client: Optional[AgentAuditClient] = None) -> str:
    try:
        async with _client_scope(client) as api:
            payload = await api.post_json("/register", {"agent_name": agent_name})
    except _EXPECTED_ERRORS as exc:
        return format_registration(Registration(agent_name=agent_name, error=_failure_message(exc)))
    return format_registration(registration_from_payload(agent_name, payload))


# =============================================================================
# submit_report
# =============================================================================
def build_report_body(
    package_name: str,
    risk_score: int,
    result: str,
    package_type: Optional[str] = None,
    source_url: Optional[str] = None,
    max_severity: Optional[str] = None,
    findings: Optional[list[dict]] = None,
) -> dict:
    """POST /reports body.  Optional fields are left out when unset."""
    findings = findings or []
    body: dict[str, Any] = {
        "package_name": package_name,
        "risk_score": risk_score,
        "result": result,
        "findings_count": len(findings),
    }
    if package_type is not None:
        body["package_type"] = package_type
    if source_url is not None:
        body["source_url"] = source_url
    if max_severity is not None:
        body["max_severity"] = max_severity
    if findings:
        body["findings"] = findings
    return body


def submission_from_payload(payload: Any) -> SubmissionResult:
    error = _remote_error(payload)
    if error is not None:
        return SubmissionResult(error=error)
    if not isinstance(payload, Mapping):
        return SubmissionResult(error="Empty response from AgentAudit")
    report_id = payload.get("report_id", payload.get("id"))
    return SubmissionResult(
        report_id=None if report_id is None else str(report_id),
        findings_created=as_int(payload.get("findings_created")) or 0,
        findings_deduplicated=as_int(payload.get("findings_deduplicated")) or 0,
    )


async def submit_report(
    api_key: str,
    package_name: str,
    risk_score: int,
    result: str,
    package_type: Optional[str] = None,
    source_url: Optional[str] = None,
    max_severity: Optional[str] = None,
    findings: Optional[list[dict]] = None,
    *,
    client: Optional[AgentAuditClient] = None,
) -> str:
    body = build_report_body(
        package_name,
        risk_score,
        result,
        package_type=package_type,
        source_url=source_url,
        max_severity=max_severity,
        findings=findings,
    )
    try:
        async with _client_scope(client) as api:
            payload = await api.post_json("/reports", body, api_key=api_key)
    except _EXPECTED_ERRORS as exc:
        return format_submission(SubmissionResult(error=_failure_message(exc)), package_name)
    return format_submission(submission_from_payload(payload), package_name)
