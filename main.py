# =============================================================================
# main.py  —  Entry Point for the AgentAudit MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py          (or the `agentaudit-mcp` console script)
#
# WHAT HAPPENS:
#   1. Loads environment variables from .env (AGENTAUDIT_API_BASE, ...)
#   2. Configures logging to STDERR
#   3. Starts the FastMCP server on the stdio transport
#
# HOOKING IT UP TO AN MCP HOST:
#   Add an entry like this to claude_desktop_config.json:
#
#     "agentaudit": {
#       "command": "uv",
#       "args": ["run", "--directory", "/path/to/agentaudit-mcp", "python", "main.py"]
#     }
# =============================================================================

import logging
import sys

from dotenv import load_dotenv

# Must run before core.settings.get_settings() is first called.
load_dotenv()

from core.settings import get_settings
from tools.mcp_server import mcp


def configure_logging(level: str) -> None:
    # STDOUT belongs to the MCP protocol; anything printed there corrupts it.
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO; keep that at DEBUG-only noise.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logging.info("Starting AgentAudit MCP server (API: %s, timeout: %gs)",
                 settings.api_base, settings.timeout)
    mcp.run()


if __name__ == "__main__":
    main()
