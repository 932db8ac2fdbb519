# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Defines the MCP tools an assistant can call to consult AgentAudit before
#   installing a package or MCP server.  Each tool is a thin wrapper around
#   a core/operations.py function: it declares the typed parameters (which
#   FastMCP validates before the function runs), logs the call, and returns
#   the text that function produced.
#
# THE TOOLS:
#   check_package    → trust/risk report for one package
#   scan_config      → check every server in the local MCP config
#   search_packages  → substring search over the AgentAudit database
#   get_stats        → database size and health
#   register         → obtain an API key for an agent
#   submit_report    → upload an audit report (needs the API key)
#
# ERRORS:
#   Bad arguments (wrong types, risk_score outside 0-100, unknown enum
#   values) are rejected by FastMCP's validation and never reach core/.
#   Everything else comes back as text: the core operations already turn
#   network and parse failures into "❌ ..." messages.
#
# RUNNING THIS SERVER:
#     a) python main.py               (loads .env, then serves on stdio)
#     b) python -m tools.mcp_server   (serves on stdio)
# =============================================================================

import logging
from typing import Annotated, Literal, Optional

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from core import operations

logger = logging.getLogger("agentaudit.mcp")

# =============================================================================
# Logging helpers
# =============================================================================
# Logs go to STDERR (configured in main.py); STDOUT is the MCP stream.
#   - CYAN for incoming requests (tool name + parameters)
#   - GREEN for responses
#   - YELLOW for intermediate status messages
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"

_SECRET_PARAMS = {"api_key"}


def _mask(value: object) -> str:
    text = str(value)
    return "***" if len(text) <= 8 else f"{text[:4]}***"


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(
        f"{k}={_mask(v) if k in _SECRET_PARAMS else repr(v)}" for k, v in params.items()
    )
    logger.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, text: str) -> str:
    """Log the first line of the tool response in GREEN, then return it."""
    first_line = text.split("\n", 1)[0]
    logger.info(f"{_GREEN}  ← {tool_name} response ({len(text)} chars): {first_line}{_RESET}")
    return text


# =============================================================================
# Parameter types
# =============================================================================
PackageType = Literal["pip", "npm", "skill", "mcp", "other"]
ReportResult = Literal["pass", "warn", "fail", "error"]
Severity = Literal["critical", "high", "medium", "low", "info"]


class Finding(BaseModel):
    """One security finding inside a submitted audit report."""

    title: str = Field(min_length=1, description="Short summary of the issue")
    severity: Severity = Field(description="How serious the issue is")
    description: str = Field(description="What was found and why it matters")
    file_path: Optional[str] = Field(default=None, description="File the issue was found in")
    pattern_id: Optional[str] = Field(default=None, description="Identifier of the detection rule")
    remediation: Optional[str] = Field(default=None, description="How to fix it")


# =============================================================================
# Create the FastMCP server instance
# =============================================================================
mcp = FastMCP("agentaudit", version="1.1.0")


# =============================================================================
# TOOL 1: check_package
# =============================================================================
@mcp.tool()
async def check_package(
    name: Annotated[
        str,
        Field(min_length=1, description="Package or skill name (e.g. crewai, mcp-server-fetch, @openai/agents)"),
    ],
) -> str:
    """Check a package's trust score, risk score, and audit verdict on AgentAudit.

    Works for npm packages, pip packages, MCP servers, and AI agent skills.
    Packages the database has never audited are reported as not found,
    which is not an error.
    """
    _log_request("check_package", name=name)
    return _log_response("check_package", await operations.check_package(name))


# =============================================================================
# TOOL 2: scan_config
# =============================================================================
@mcp.tool()
async def scan_config(
    path: Annotated[
        Optional[str],
        Field(description="Path to claude_desktop_config.json (auto-detected if omitted)"),
    ] = None,
) -> str:
    """Scan your MCP config file and check every referenced server/package against AgentAudit.

    Results are sorted with the riskiest packages first and the summary
    counts how many have elevated risk (score 40 or above).
    """
    _log_request("scan_config", path=path)
    return _log_response("scan_config", await operations.scan_config(path))


# =============================================================================
# TOOL 3: search_packages
# =============================================================================
@mcp.tool()
async def search_packages(
    query: Annotated[str, Field(min_length=1, description="Search term (partial name match)")],
    limit: Annotated[int, Field(ge=1, le=100, description="Max results (default 10)")] = 10,
) -> str:
    """Search the AgentAudit database for packages by name.

    Returns matching packages with their trust/risk scores and verdicts.
    """
    _log_request("search_packages", query=query, limit=limit)
    return _log_response("search_packages", await operations.search_packages(query, limit))


# =============================================================================
# TOOL 4: get_stats
# =============================================================================
@mcp.tool()
async def get_stats() -> str:
    """Get AgentAudit database statistics: total packages, findings, health status."""
    _log_request("get_stats")
    return _log_response("get_stats", await operations.get_stats())


# =============================================================================
# TOOL 5: register
# =============================================================================
@mcp.tool()
async def register(
    agent_name: Annotated[
        str,
        Field(min_length=1, description="Unique name of the agent that will submit reports"),
    ],
) -> str:
    """Register an agent with AgentAudit and get an API key for submit_report.

    Registering a name that already exists returns the existing key.
    """
    _log_request("register", agent_name=agent_name)
    return _log_response("register", await operations.register(agent_name))


# =============================================================================
# TOOL 6: submit_report
# =============================================================================
@mcp.tool()
async def submit_report(
    api_key: Annotated[str, Field(min_length=1, description="API key from the register tool")],
    package_name: Annotated[str, Field(min_length=1, description="Audited package name")],
    risk_score: Annotated[int, Field(ge=0, le=100, description="Overall risk, 0 (safe) to 100")],
    result: Annotated[ReportResult, Field(description="Audit outcome")],
    package_type: Annotated[Optional[PackageType], Field(description="Ecosystem of the package")] = None,
    source_url: Annotated[Optional[str], Field(description="Repository or registry URL")] = None,
    max_severity: Annotated[Optional[Severity], Field(description="Highest finding severity")] = None,
    findings: Annotated[Optional[list[Finding]], Field(description="Individual findings")] = None,
) -> str:
    """Submit a security audit report for a package to AgentAudit.

    The service deduplicates findings it already knows about; the response
    says how many were created and how many were merged.
    """
    _log_request("submit_report", api_key=api_key, package_name=package_name,
                 risk_score=risk_score, result=result, package_type=package_type,
                 source_url=source_url, max_severity=max_severity,
                 findings=len(findings or []))

    finding_dicts = [f.model_dump(exclude_none=True) for f in findings or []]
    if finding_dicts:
        _log_status(f"Submitting {len(finding_dicts)} findings")
    text = await operations.submit_report(
        api_key,
        package_name,
        risk_score,
        result,
        package_type=package_type,
        source_url=source_url,
        max_severity=max_severity,
        findings=finding_dicts,
    )
    return _log_response("submit_report", text)


# =============================================================================
# Server entry point
# =============================================================================
if __name__ == "__main__":
    mcp.run()
