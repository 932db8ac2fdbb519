# =============================================================================
# tools/__init__.py
# =============================================================================
# This package holds the FastMCP server (tools/mcp_server.py).
#
# Each tool there declares its parameters for the assistant, logs the call,
# and delegates to core/operations.py.  Tools contain no lookup, parsing,
# or formatting logic of their own.
# =============================================================================
