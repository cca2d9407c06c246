#!/usr/bin/env python3
"""
HUD Status - mode/phase/agent tracking for the Claude Code statusline.

State lives in one JSON file shared by every hook invocation, so writers
can race. HudStore owns the whole lifecycle:
- load(): missing or corrupt file -> default state
- save(): temp file + os.replace (readers never see a torn file)
- update(): exclusive fcntl lock held across load -> mutate -> save
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from .config import get_config

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_TOTAL = 200000

MODE_ICONS = {
    "idle": "💤",
    "ultrawork": "🚀",
    "spec": "📝",
    "review": "🔍",
    "implementing": "🔨",
    "testing": "🧪",
    "error": "❌",
}

# set_value() addresses these only through dotted children
NESTED_FIELDS = ("phase", "context")
COMPOSITE_FIELDS = NESTED_FIELDS + ("agents",)

# ANSI
HEALTH_COLORS = {
    "good": "\x1b[32m",
    "warning": "\x1b[33m",
    "critical": "\x1b[31m",
    "reset": "\x1b[0m",
}


@dataclass
class Phase:
    current: int = 0
    total: int = 0
    name: str = ""


@dataclass
class AgentInfo:
    name: str
    model: str = "sonnet"
    start_time: float = field(default_factory=time.time)


@dataclass
class ContextUsage:
    used: int = 0
    total: int = DEFAULT_CONTEXT_TOTAL

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.used / self.total * 100)

    @property
    def health(self) -> str:
        pct = self.used / self.total * 100 if self.total > 0 else 0
        if pct >= 90:
            return "critical"
        if pct >= 70:
            return "warning"
        return "good"


@dataclass
class HudState:
    mode: str = "idle"
    feature: Optional[str] = None
    phase: Phase = field(default_factory=Phase)
    agents: list[AgentInfo] = field(default_factory=list)
    context: ContextUsage = field(default_factory=ContextUsage)
    last_update: Optional[str] = None

    # --- mutations -------------------------------------------------------

    def start(self, mode: str = "ultrawork", feature: Optional[str] = None) -> None:
        self.mode = mode
        self.feature = feature
        self.phase = Phase()
        self.agents = []

    def set_phase(self, current: int, total: int, name: str = "") -> None:
        self.phase = Phase(current, total, name)

    def add_agent(self, name: str, model: str = "sonnet") -> None:
        self.agents.append(AgentInfo(name, model))

    def remove_agent(self, name: str) -> None:
        self.agents = [a for a in self.agents if a.name != name]

    def clear_agents(self) -> None:
        self.agents = []

    def set_context(self, used: int, total: int = DEFAULT_CONTEXT_TOTAL) -> None:
        self.context = ContextUsage(used, total)

    def set_value(self, key: str, value: Any) -> None:
        """Set a scalar field, top-level or dotted ('phase.current').

        Composite fields (phase, context, agents) are only reachable through
        their dotted children; replacing them whole would corrupt the file.
        """
        if "." in key:
            parent, child = key.split(".", 1)
            if parent not in NESTED_FIELDS:
                raise KeyError(key)
            target = getattr(self, parent)
            if child not in target.__dataclass_fields__:
                raise KeyError(key)
            setattr(target, child, value)
            return
        if key not in self.__dataclass_fields__ or key in COMPOSITE_FIELDS:
            raise KeyError(key)
        setattr(self, key, value)

    # --- serialization ---------------------------------------------------

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HudState":
        phase = data.get("phase")
        phase = phase if isinstance(phase, dict) else {}
        context = data.get("context")
        context = context if isinstance(context, dict) else {}
        raw_agents = data.get("agents")
        agents = []
        for a in raw_agents if isinstance(raw_agents, list) else []:
            if isinstance(a, dict) and a.get("name"):
                agents.append(
                    AgentInfo(
                        name=a["name"],
                        model=a.get("model", "sonnet"),
                        start_time=a.get("start_time", a.get("startTime", 0.0)),
                    )
                )
        return cls(
            mode=data.get("mode") or "idle",
            feature=data.get("feature"),
            phase=Phase(
                current=int(phase.get("current", 0)),
                total=int(phase.get("total", 0)),
                name=str(phase.get("name", "")),
            ),
            agents=agents,
            context=ContextUsage(
                used=int(context.get("used", 0)),
                total=int(context.get("total", DEFAULT_CONTEXT_TOTAL)),
            ),
            last_update=data.get("last_update") or data.get("lastUpdate"),
        )


class HudStore:
    """Owns reading and writing the HUD state file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_config().hud.state_path
        self.lock_path = self.path.with_suffix(".lock")

    def load(self) -> HudState:
        try:
            with open(self.path) as f:
                data = json.load(f)
            if isinstance(data, dict):
                return HudState.from_dict(data)
        except FileNotFoundError:
            pass
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError, OSError) as e:
            logger.warning("hud: state file unreadable, using defaults: %s", e)
        return HudState()

    def save(self, state: HudState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        state.last_update = datetime.now(timezone.utc).isoformat()

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock_fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR)
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            os.close(lock_fd)

    @contextmanager
    def update(self) -> Iterator[HudState]:
        """Load, hand out for mutation, save - all under one exclusive lock."""
        with self._locked():
            state = self.load()
            yield state
            self.save(state)

    def reset(self) -> HudState:
        with self._locked():
            state = HudState()
            self.save(state)
        return state


# =============================================================================
# FORMATTING
# =============================================================================


def progress_bar(percentage: int, width: int = 20) -> str:
    filled = round(percentage / 100 * width)
    return f"[{'█' * filled}{'░' * (width - filled)}]"


def format_minimal(state: HudState) -> str:
    icon = MODE_ICONS.get(state.mode, "💤")
    phase = f" [{state.phase.current}/{state.phase.total}]" if state.phase.total > 0 else ""
    return f"{icon} {state.mode}{phase}"


def format_focused(state: HudState) -> str:
    icon = MODE_ICONS.get(state.mode, "💤")
    feature = f": {state.feature}" if state.feature else ""
    phase = (
        f" [Phase {state.phase.current}/{state.phase.total}]"
        if state.phase.total > 0
        else ""
    )
    color = HEALTH_COLORS[state.context.health]
    return (
        f"{icon} {state.mode}{feature}{phase} | "
        f"{color}CTX: {state.context.percentage}%{HEALTH_COLORS['reset']}"
    )


def format_full(state: HudState) -> str:
    icon = MODE_ICONS.get(state.mode, "💤")
    rule = "━" * 34
    lines = [rule, f"{icon} VIBE HUD", rule, f"Mode:    {state.mode}"]

    if state.feature:
        lines.append(f"Feature: {state.feature}")

    if state.phase.total > 0:
        progress = round(state.phase.current / state.phase.total * 100)
        lines.append(
            f"Phase:   {state.phase.current}/{state.phase.total} {state.phase.name}".rstrip()
        )
        lines.append(f"         {progress_bar(progress)} {progress}%")

    if state.agents:
        agents = ", ".join(f"{a.name}({a.model})" for a in state.agents)
        lines.append(f"Agents:  {agents}")

    ctx = state.context
    color = HEALTH_COLORS[ctx.health]
    lines.append(
        f"Context: {color}{ctx.percentage}%{HEALTH_COLORS['reset']} ({ctx.used}/{ctx.total})"
    )
    lines.append(rule)
    return "\n".join(lines)


FORMATTERS = {
    "minimal": format_minimal,
    "focused": format_focused,
    "full": format_full,
}


def render(state: HudState, fmt: str = "focused") -> str:
    return FORMATTERS.get(fmt, format_focused)(state)
