# =============================================================================
# core/config_scan.py  —  MCP Config File Scanner
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Reads a claude_desktop_config.json-style file and pulls out the names
#   that are plausibly packages worth checking against AgentAudit.
#
#   The config format is owned by the MCP host, not by us, so the scanner
#   works on plain dicts and lists and only assumes this much:
#
#     {
#       "mcpServers": {                 ← or "mcp_servers"
#         "<server key>": {
#           "command": "npx",
#           "args": ["-y", "@scope/some-server", "--port", "8080"]
#         }
#       }
#     }
#
# THE HEURISTIC:
#   An argument is a candidate when it
#     - does not start with "-", "/" or "."  (flags and paths)
#     - starts with a lowercase letter or "@" (npm/pip-looking names)
#     - is not a launcher token ("-y", "node", "npx")
#   and each server key is always a candidate.  Results are de-duplicated
#   keeping the first occurrence.
#
#   It will let some noise through (e.g. a bare "stdio" argument); the
#   lookups simply come back "not found" for those.
# =============================================================================

import json
import os
import re
from typing import Any, Callable, Iterable, Mapping, Optional

from core.errors import ConfigParseError

CONFIG_FILENAME = "claude_desktop_config.json"

_SERVER_MAP_KEYS = ("mcpServers", "mcp_servers")
_PATH_OR_FLAG_PREFIXES = ("-", "/", ".")
_IDENTIFIER_START = re.compile(r"^[a-z@]")
LAUNCHER_TOKENS = frozenset({"-y", "node", "npx"})


# -----------------------------------------------------------------------------
# Default config location
# -----------------------------------------------------------------------------
def default_config_path(
    platform: str,
    getenv: Callable[[str], Optional[str]],
) -> str:
    """Where the Claude desktop app keeps its MCP config on `platform`.

    `platform` is a sys.platform value; `getenv` is usually os.environ.get.
    Neither touches the filesystem.
    """
    home = getenv("HOME") or getenv("USERPROFILE") or ""
    if platform == "darwin":
        return os.path.join(home, "Library", "Application Support", "Claude", CONFIG_FILENAME)
    if platform == "win32":
        return os.path.join(getenv("APPDATA") or "", "Claude", CONFIG_FILENAME)
    return os.path.join(home, ".config", "claude", CONFIG_FILENAME)


# -----------------------------------------------------------------------------
# Token predicates
# -----------------------------------------------------------------------------
def has_path_or_flag_prefix(arg: str) -> bool:
    return arg.startswith(_PATH_OR_FLAG_PREFIXES)


def looks_like_identifier(arg: str) -> bool:
    return bool(_IDENTIFIER_START.match(arg))


def is_launcher_token(arg: str) -> bool:
    return arg in LAUNCHER_TOKENS


def is_package_token(arg: str) -> bool:
    """True if a launch argument looks like a package name."""
    return (
        not has_path_or_flag_prefix(arg)
        and looks_like_identifier(arg)
        and not is_launcher_token(arg)
    )


# -----------------------------------------------------------------------------
# Extraction
# -----------------------------------------------------------------------------
def _server_map(config: Mapping[str, Any]) -> Mapping[str, Any]:
    for key in _SERVER_MAP_KEYS:
        servers = config.get(key)
        if servers is not None:
            return servers if isinstance(servers, Mapping) else {}
    return {}


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def candidates_from_config(config: Mapping[str, Any]) -> list[str]:
    """Candidate package names from an already-parsed config document."""
    found: list[str] = []
    for key, server in _server_map(config).items():
        args = server.get("args") if isinstance(server, Mapping) else None
        if isinstance(args, list):
            found.extend(arg for arg in args if isinstance(arg, str) and is_package_token(arg))
        found.append(key)
    return _dedupe(found)


def extract_candidates(config_text: str) -> list[str]:
    """Parse config JSON text and return its candidate package names.

    Raises:
        ConfigParseError: the text is not JSON, or not a JSON object.
    """
    try:
        config = json.loads(config_text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(config, Mapping):
        raise ConfigParseError(
            f"Expected a JSON object at the top level, got {type(config).__name__}"
        )
    return candidates_from_config(config)


def read_candidates(path: str) -> list[str]:
    """Read the config file at `path` and extract candidates from it."""
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigParseError(f"Could not read {path}: {exc}") from exc
    return extract_candidates(text)
