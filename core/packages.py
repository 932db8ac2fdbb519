# =============================================================================
# core/packages.py  —  Package Lookup & Search
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns AgentAudit API payloads into PackageRecords and filters the full
#   package list for the search tool.
#
# lookup_package() NEVER RAISES.  A miss, a network error, or a malformed
#   body all come back as a PackageRecord with `error` set.  That is what
#   lets scan_config fan out dozens of lookups with asyncio.gather and know
#   that one bad package cannot sink the whole batch.
#
# record_from_payload() is the one place where remote field names and
#   missing/null values are dealt with.  Everything after it works with a
#   fully typed record.
# =============================================================================

import json
import logging
import math
from typing import Any, Mapping, Optional
from urllib.parse import quote

from core.api_client import AgentAuditClient
from core.errors import TransportError
from core.models import PackageRecord

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Coercion helpers
# -----------------------------------------------------------------------------
# The API is not strict about types: scores have arrived as strings, verdicts
# as numbers.  These turn whatever came back into the type the record wants,
# or None when there is nothing sensible to keep.
# -----------------------------------------------------------------------------
def as_int(value: Any) -> Optional[int]:
    """An int from an int, float or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def as_str(value: Any) -> Optional[str]:
    """A string for any scalar JSON value; None for null, objects and arrays."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _text(payload: Mapping[str, Any], key: str, default: str) -> str:
    value = as_str(payload.get(key))
    return value if value else default


def _count(payload: Mapping[str, Any], key: str) -> int:
    return max(as_int(payload.get(key)) or 0, 0)


def record_from_payload(name: str, payload: Any) -> PackageRecord:
    """Map a GET /skills/{name} payload onto a PackageRecord.

    Remote → local field names:
        latest_risk_score → risk_score
        latest_result     → verdict
        total_findings    → finding_count
        total_reports     → report_count
    Everything else keeps its name.  `name` stands in for a missing slug
    or display name.  Every value is coerced to the record's field type.
    """
    if not isinstance(payload, Mapping):
        payload = {}
    return PackageRecord(
        slug=_text(payload, "slug", name),
        display_name=_text(payload, "display_name", name),
        trust_score=as_int(payload.get("trust_score")),
        risk_score=as_int(payload.get("latest_risk_score")),
        verdict=_text(payload, "latest_result", "unknown"),
        finding_count=_count(payload, "total_findings"),
        report_count=_count(payload, "total_reports"),
        scan_type=_text(payload, "scan_type", "unknown"),
        source_url=as_str(payload.get("source_url")),
        first_audited_at=as_str(payload.get("first_audited_at")),
        last_audited_at=as_str(payload.get("last_audited_at")),
    )


def listing_entry(entry: Mapping[str, Any]) -> dict:
    """Typed copy of one GET /skills list entry, for the search tool.

    Missing or unusable values are None so the search line shows "?".
    """
    return {
        "slug": as_str(entry.get("slug")),
        "display_name": as_str(entry.get("display_name")),
        "trust_score": as_int(entry.get("trust_score")),
        "latest_risk_score": as_int(entry.get("latest_risk_score")),
        "latest_result": as_str(entry.get("latest_result")),
    }


async def lookup_package(client: AgentAuditClient, name: str) -> PackageRecord:
    """Fetch one package's audit record.  Failures are folded into the record."""
    try:
        payload = await client.get_json(f"/skills/{quote(name, safe='')}")
    except (TransportError, json.JSONDecodeError) as exc:
        logger.warning("Lookup of %r failed: %s", name, exc)
        return PackageRecord.failed(name, str(exc))

    if payload is None:
        return PackageRecord.not_found(name)
    return record_from_payload(name, payload)


def match_packages(entries: list, query: str) -> list[dict]:
    """Typed entries whose slug or display name contains `query`, case-insensitively.

    Order follows the API listing.  Non-object entries are ignored.
    """
    needle = query.lower()
    matches = []
    for raw in entries:
        if not isinstance(raw, Mapping):
            continue
        entry = listing_entry(raw)
        slug = (entry["slug"] or "").lower()
        display_name = (entry["display_name"] or "").lower()
        if needle in slug or needle in display_name:
            matches.append(entry)
    return matches
