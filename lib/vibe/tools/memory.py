"""
Project memory: a small key/value store for decisions and solutions.

One JSON file per project under <project>/.claude/memory/. Writes go
through a temp file + os.replace under an exclusive lock.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ..config import get_config
from . import ToolResult

logger = logging.getLogger(__name__)

NO_MEMORIES = "No memories saved yet"


@dataclass
class Memory:
    key: str
    value: str
    category: str = "general"
    timestamp: str = ""


def memory_file(project_path: Optional[str] = None) -> Path:
    root = Path(project_path or os.environ.get("CLAUDE_PROJECT_DIR", "."))
    return root / ".claude" / "memory" / get_config().memory.file_name


def _read(path: Path) -> dict[str, Memory]:
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("memory: store unreadable, starting empty: %s", e)
        return {}

    memories = {}
    for item in data.get("memories", []) if isinstance(data, dict) else []:
        try:
            memory = Memory(**item)
        except TypeError:
            continue
        memories[memory.key] = memory
    return memories


def _write(path: Path, memories: dict[str, Memory]) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump({"memories": [asdict(m) for m in memories.values()]}, f, indent=2)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


@contextmanager
def _locked(path: Path) -> Iterator[None]:
    path.parent.mkdir(parents=True, exist_ok=True)
    lock_fd = os.open(str(path.with_suffix(".lock")), os.O_CREAT | os.O_RDWR)
    try:
        fcntl.flock(lock_fd, fcntl.LOCK_EX)
        yield
    finally:
        fcntl.flock(lock_fd, fcntl.LOCK_UN)
        os.close(lock_fd)


def save_memory(
    key: str,
    value: str,
    category: str = "general",
    project_path: Optional[str] = None,
) -> ToolResult:
    """Insert or overwrite one memory."""
    if not key:
        raise ValueError("Memory key is required")

    path = memory_file(project_path)
    with _locked(path):
        memories = _read(path)
        memories[key] = Memory(
            key=key,
            value=value,
            category=category,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        _write(path, memories)

    return ToolResult(f"✓ Saved memory: {key} [{category}]")


def list_memories(
    limit: Optional[int] = None,
    category: Optional[str] = None,
    project_path: Optional[str] = None,
) -> ToolResult:
    """Most recent memories first, one per line."""
    limit = limit or get_config().memory.list_limit
    memories = list(_read(memory_file(project_path)).values())
    if category:
        memories = [m for m in memories if m.category == category]
    if not memories:
        return ToolResult(NO_MEMORIES)

    memories.sort(key=lambda m: m.timestamp, reverse=True)
    return ToolResult(
        "\n".join(f"{m.key} [{m.category}]: {m.value}" for m in memories[:limit])
    )
