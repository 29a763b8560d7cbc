"""Runtime settings for graph queries.

Values come from the environment (optionally populated from a ``.env`` file by
the CLI or MCP server) and are read at call time, never at import time.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .folders import FilterConfig, FilterMode
from .store import DEFAULT_JOPLIN_URL

LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %d.", name, raw, default)
        return default
    return max(minimum, value)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    candidate = raw.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    LOGGER.warning("Invalid %s=%r; falling back to %s.", name, raw, default)
    return default


def _env_mode(name: str, default: FilterMode) -> FilterMode:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return FilterMode(raw.strip().lower())
    except ValueError:
        LOGGER.warning("Unknown %s=%r; falling back to %s.", name, raw, default.value)
        return default


@dataclass
class GraphSettings:
    """Settings shared by every graph query."""

    joplin_url: str = DEFAULT_JOPLIN_URL
    joplin_token: Optional[str] = None
    max_nodes: int = 700
    max_degree: int = 2
    include_backlinks: bool = False
    concurrency: int = 8
    filter: FilterConfig = field(default_factory=FilterConfig)

    @classmethod
    def from_env(cls) -> "GraphSettings":
        defaults = cls()
        return cls(
            joplin_url=os.getenv("JOPLIN_URL") or defaults.joplin_url,
            joplin_token=os.getenv("JOPLIN_TOKEN") or None,
            max_nodes=_env_int("NOTEGRAPH_MAX_NODES", defaults.max_nodes, minimum=1),
            max_degree=_env_int("NOTEGRAPH_MAX_DEGREE", defaults.max_degree),
            include_backlinks=_env_bool(
                "NOTEGRAPH_INCLUDE_BACKLINKS", defaults.include_backlinks
            ),
            concurrency=_env_int(
                "NOTEGRAPH_CONCURRENCY", defaults.concurrency, minimum=1
            ),
            filter=FilterConfig.from_names(
                os.getenv("NOTEGRAPH_FILTER_NOTEBOOKS"),
                recurse_into_children=_env_bool("NOTEGRAPH_FILTER_CHILDREN", False),
                mode=_env_mode("NOTEGRAPH_FILTER_MODE", FilterMode.EXCLUDE),
            ),
        )
