"""
Vibe Core Library
Shared utilities for all hook scripts.

Hooks talk to Claude Code over stdout, so everything diagnostic goes to
stderr. A hook must never fail the host session: helpers here return empty
values instead of raising on bad input.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("vibe")


def debug_enabled() -> bool:
    """True when VIBE_DEBUG is set to a truthy value."""
    return os.environ.get("VIBE_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def setup_logging(debug: bool = False) -> logging.Logger:
    """Standard logging setup for hook scripts (stderr only)."""
    level = logging.DEBUG if (debug or debug_enabled()) else logging.WARNING
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )
    logger.setLevel(level)
    if level == logging.DEBUG:
        logger.debug("Debug mode enabled")
    return logger


def parse_payload(raw: str) -> dict:
    """Parse a hook JSON payload. Malformed or non-object input -> {}."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError, TypeError):
        return {}
    return data if isinstance(data, dict) else {}


def read_payload(stream: Optional[IO[str]] = None) -> dict:
    """Read and parse the hook payload from stdin."""
    stream = stream or sys.stdin
    try:
        if stream.isatty():
            return {}
        raw = stream.read()
    except (OSError, ValueError):
        return {}
    return parse_payload(raw)


def extract_prompt(data: dict) -> str:
    """Normalize the prompt field (Claude Code sends `prompt`, older hosts `user_prompt`)."""
    prompt = data.get("prompt") or data.get("user_prompt") or ""
    return prompt if isinstance(prompt, str) else ""


def get_project_dir() -> Path:
    """Project directory Claude Code is running in."""
    return Path(os.environ.get("CLAUDE_PROJECT_DIR", ".")).resolve()
