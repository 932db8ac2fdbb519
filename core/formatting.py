# =============================================================================
# core/formatting.py  —  Text Rendering for Tool Output
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Every tool returns markdown-flavoured text that the assistant shows to
#   the user more or less as-is.  This module owns that layout.
#
#   All functions are pure: same record in, same string out.  The line
#   order and the "only if present" rules in format_record() are relied on
#   by assistants reading the output, so treat them as a contract.
#
# SEVERITY GLYPHS:
#   risk_emoji() maps a 0-100 risk score to one of four glyphs:
#       None   → ❓  (no audit data)
#       >= 70  → 🔴
#       >= 40  → 🟡  ("elevated risk")
#       <  40  → 🟢
# =============================================================================

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core.models import PackageRecord, Registration, StatsSnapshot, SubmissionResult
from core.settings import HEALTH_PAGE_URL, PACKAGE_PAGE_URL, SITE_URL

HIGH_RISK_THRESHOLD = 70
ELEVATED_RISK_THRESHOLD = 40

UNKNOWN_GLYPH = "❓"
HIGH_GLYPH = "🔴"
MEDIUM_GLYPH = "🟡"
LOW_GLYPH = "🟢"


def risk_emoji(score: Optional[int]) -> str:
    """Severity glyph for a risk score."""
    if score is None:
        return UNKNOWN_GLYPH
    if score >= HIGH_RISK_THRESHOLD:
        return HIGH_GLYPH
    if score >= ELEVATED_RISK_THRESHOLD:
        return MEDIUM_GLYPH
    return LOW_GLYPH


def is_elevated_risk(record: PackageRecord) -> bool:
    """True for successful lookups scoring at or above the elevated threshold."""
    return record.error is None and (record.risk_score or 0) >= ELEVATED_RISK_THRESHOLD


def _or_placeholder(value: Any, placeholder: str) -> str:
    return placeholder if value is None else str(value)


def format_audit_date(timestamp: str) -> str:
    """Calendar date (YYYY-MM-DD, UTC) of an ISO-8601 timestamp."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp.split("T")[0]
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def format_record(record: PackageRecord) -> str:
    """Render one PackageRecord as a multi-line report."""
    lines = [f"{risk_emoji(record.risk_score)} **{record.display_name}** ({record.scan_type})"]

    if record.error:
        lines.append(f"  ⚠️ {record.error}")
        return "\n".join(lines)

    audits = "audit" if record.report_count == 1 else "audits"
    lines.append(f"  Trust Score: {_or_placeholder(record.trust_score, 'N/A')}/100")
    lines.append(f"  Risk Score: {_or_placeholder(record.risk_score, 'N/A')}/100")
    lines.append(f"  Verdict: {record.verdict.upper()}")
    lines.append(f"  Findings: {record.finding_count} (from {record.report_count} {audits})")
    if record.source_url:
        lines.append(f"  Source: {record.source_url}")
    if record.last_audited_at:
        lines.append(f"  Last audited: {format_audit_date(record.last_audited_at)}")
    lines.append(f"  Details: {PACKAGE_PAGE_URL}/{record.slug}")
    return "\n".join(lines)


def format_search_line(entry: Mapping[str, Any]) -> str:
    """One-line summary of a raw /skills list entry."""
    name = entry.get("display_name") or entry.get("slug")
    verdict = entry.get("latest_result")
    return (
        f"{risk_emoji(entry.get('latest_risk_score'))} **{name}** — "
        f"Trust: {_or_placeholder(entry.get('trust_score'), '?')}/100, "
        f"Risk: {_or_placeholder(entry.get('latest_risk_score'), '?')}/100, "
        f"Verdict: {'?' if verdict is None else str(verdict).upper()}"
    )


def format_stats(stats: StatsSnapshot) -> str:
    lines = [
        "📊 **AgentAudit Stats**",
        f"  Status: {stats.status}",
        f"  Total Findings: {_or_placeholder(stats.finding_count, '?')}",
        f"  Total Packages: {_or_placeholder(stats.package_count, '?')}",
        f"  Registered Agents: {_or_placeholder(stats.agent_count, '?')}",
        f"  Website: {SITE_URL}",
        f"  API: {HEALTH_PAGE_URL}",
    ]
    return "\n".join(lines)


def format_registration(registration: Registration) -> str:
    if registration.error:
        return f"❌ Registration failed: {registration.error}"

    state = "already registered" if registration.existing else "newly registered"
    lines = [
        f"🔑 **{registration.agent_name}** ({state})",
        f"  API Key: {_or_placeholder(registration.api_key, 'N/A')}",
    ]
    if registration.existing:
        lines.append("  This agent was registered before; the existing key is returned.")
    lines.append("  Pass this key as `api_key` to submit_report. Keep it secret.")
    return "\n".join(lines)


def format_submission(result: SubmissionResult, package_name: str) -> str:
    if result.error:
        return f"❌ Report submission failed: {result.error}"

    lines = [f"✅ Report submitted for **{package_name}**"]
    if result.report_id is not None:
        lines.append(f"  Report ID: {result.report_id}")
    lines.append(f"  Findings created: {result.findings_created}")
    lines.append(f"  Findings deduplicated: {result.findings_deduplicated}")
    lines.append(f"  Details: {PACKAGE_PAGE_URL}/{package_name}")
    return "\n".join(lines)
