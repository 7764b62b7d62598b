"""Environment-driven settings for OrgChart-MCP."""

from __future__ import annotations

import logging
import os
from pathlib import Path

OUTPUT_DIR = Path(os.environ.get("ORGCHART_OUTPUT_DIR", Path.home() / ".orgchart" / "charts"))
GRAPHQL_URL = os.environ.get("ORGCHART_GRAPHQL_URL", "")
GRAPHQL_TOKEN = os.environ.get("ORGCHART_GRAPHQL_TOKEN", "")
DEFAULT_THEME = os.environ.get("ORGCHART_THEME", "light")
LOG_LEVEL = os.environ.get("ORGCHART_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for an entry point (stderr keeps stdio clean)."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
