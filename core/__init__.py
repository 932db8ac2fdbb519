# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL the logic of the AgentAudit tool server: the
# HTTP adapter, record mapping, config scanning, and text formatting.
#
# Nothing in this package imports FastMCP.  The operations in
# core/operations.py are plain async functions returning strings, so they
# can be called and tested without an MCP host.
# =============================================================================
