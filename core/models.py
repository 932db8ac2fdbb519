# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses are the typed side of the boundary with the AgentAudit
# API.  The remote JSON is loosely shaped (fields may be missing or null);
# the mapping functions in core/packages.py and core/operations.py coalesce
# it into these records, so nothing downstream has to guess.
#
# Every record is frozen: built once per tool call, formatted, discarded.
# Nothing here is cached or persisted.
# =============================================================================

from dataclasses import dataclass
from typing import Optional


# Text used when the API has no record for a package.
NOT_FOUND_MESSAGE = "Package not found in AgentAudit database"


# -----------------------------------------------------------------------------
# PackageRecord — one package lookup, always fully populated
# -----------------------------------------------------------------------------
# `error` is the only field whose presence means something: when set, the
# lookup failed (not found, network error, bad JSON) and the formatter
# prints the error instead of the score lines.
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class PackageRecord:
    """Normalized trust/risk data for a single package or skill."""

    slug: str                                  # Stable identifier, used in the details URL
    display_name: str                          # Human-readable name
    trust_score: Optional[int] = None          # 0-100, higher is better
    risk_score: Optional[int] = None           # 0-100, higher is worse
    verdict: str = "unknown"                   # "pass", "unsafe", "unknown", "error", ...
    finding_count: int = 0
    report_count: int = 0
    scan_type: str = "unknown"                 # e.g. "mcp", "npm", "pip", "skill"
    source_url: Optional[str] = None
    first_audited_at: Optional[str] = None     # ISO timestamp as sent by the API
    last_audited_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def not_found(cls, name: str) -> "PackageRecord":
        return cls(slug=name, display_name=name, verdict="unknown", error=NOT_FOUND_MESSAGE)

    @classmethod
    def failed(cls, name: str, message: str) -> "PackageRecord":
        return cls(slug=name, display_name=name, verdict="error", error=message)


# -----------------------------------------------------------------------------
# StatsSnapshot — aggregate counters from GET /health
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class StatsSnapshot:
    """A single, uncached read of the service's health document."""

    status: str
    package_count: Optional[int] = None
    finding_count: Optional[int] = None
    agent_count: Optional[int] = None


# -----------------------------------------------------------------------------
# Registration — result of POST /register
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Registration:
    """An agent's API credential, or the error the service returned."""

    agent_name: str
    api_key: Optional[str] = None
    existing: bool = False                     # True when the agent was already registered
    error: Optional[str] = None


# -----------------------------------------------------------------------------
# SubmissionResult — result of POST /reports
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SubmissionResult:
    """What the service did with a submitted audit report."""

    report_id: Optional[str] = None
    findings_created: int = 0
    findings_deduplicated: int = 0
    error: Optional[str] = None
