# =============================================================================
# core/errors.py  —  Exception Taxonomy
# =============================================================================
#
# Three outcomes can come back from the remote side of a tool call:
#   - "not found"    → NOT an exception.  The HTTP adapter returns None and
#                      callers render it as an informational message.
#   - TransportError → network failure, timeout, or a non-2xx response that
#                      is not an HTML gateway page.
#   - ConfigParseError → the local MCP config file is not valid JSON.
#
# Malformed tool arguments never reach this package: FastMCP validates them
# against the tool signatures in tools/mcp_server.py first.
#
# Every operation in core/operations.py catches these and turns them into
# text, so none of them ever escapes to the MCP transport.
# =============================================================================

from typing import Optional


class AgentAuditError(Exception):
    """Base class for every failure this package raises on purpose."""


class TransportError(AgentAuditError):
    """The remote API could not be reached or answered with an error status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigParseError(AgentAuditError):
    """The MCP config file could not be read as a JSON object."""
