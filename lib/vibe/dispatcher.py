"""
UserPromptSubmit dispatcher.

UserPromptSubmit hooks have no matcher, so every registered hook would run
on every prompt. Instead a single dispatcher reads the prompt, evaluates an
ordered rule table and launches only the actions whose pattern matched.

ARCHITECTURE:
  - Rule(pattern=None) always fires; otherwise pattern.search(prompt)
  - All matching rules fire; table order only fixes output order
  - Scripts run concurrently as subprocesses with a hard timeout
  - A failing or timed-out script contributes nothing and never
    affects its siblings
"""

from __future__ import annotations

import json
import logging
import os
import signal
import subprocess
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Pattern, Sequence, Union

from .config import get_config

logger = logging.getLogger(__name__)

# Substituted with the user's prompt when building a script's argv
PROMPT_ARG = "{prompt}"

# Grace period for draining pipes after a killed script
KILL_DRAIN_SECONDS = 2.0


def _kill_group(proc: subprocess.Popen) -> None:
    """Kill a script and everything it spawned (it leads its own session)."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        proc.kill()


@dataclass(frozen=True)
class InvokeExternalScript:
    path: Path
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmitLiteralText:
    text: str


@dataclass(frozen=True)
class Skip:
    """Structurally present but inert (another rule already covers it)."""


Action = Union[InvokeExternalScript, EmitLiteralText, Skip]


@dataclass(frozen=True)
class Rule:
    label: str
    action: Action
    pattern: Optional[Pattern[str]] = None

    def matches(self, prompt: str) -> bool:
        return self.pattern is None or bool(self.pattern.search(prompt))


@dataclass
class ActionResult:
    label: str
    output: str = ""
    error: str = ""
    elapsed_ms: int = 0


@dataclass
class Dispatcher:
    """Routes one prompt to the matching rules' actions."""

    rules: Sequence[Rule]
    timeout: Optional[float] = None
    max_workers: Optional[int] = None
    interpreter: str = sys.executable
    _live: set = field(default_factory=set, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _cancelled: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False
    )

    def __post_init__(self):
        config = get_config().dispatch
        if self.timeout is None:
            self.timeout = config.action_timeout_seconds
        if self.max_workers is None:
            self.max_workers = config.max_workers

    def match(self, prompt: str) -> list[Rule]:
        return [rule for rule in self.rules if rule.matches(prompt)]

    def run(self, prompt: str) -> list[ActionResult]:
        """Execute every matching rule concurrently; results in rule order."""
        matched = [r for r in self.match(prompt) if not isinstance(r.action, Skip)]
        if not matched:
            return []

        scripts = [r for r in matched if isinstance(r.action, InvokeExternalScript)]
        results: dict[int, ActionResult] = {}

        if scripts:
            workers = max(1, min(self.max_workers, len(scripts)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    id(r): executor.submit(self._run_script, r, prompt) for r in scripts
                }
                for key, future in futures.items():
                    results[key] = future.result()

        ordered = []
        for rule in matched:
            if isinstance(rule.action, EmitLiteralText):
                ordered.append(ActionResult(rule.label, output=rule.action.text))
            else:
                ordered.append(results[id(rule)])
        return ordered

    def dispatch(self, prompt: str) -> str:
        """Aggregate output text; empty string means no action taken."""
        outputs = [r.output.rstrip("\n") for r in self.run(prompt)]
        return "\n".join(o for o in outputs if o.strip())

    def build_command(self, action: InvokeExternalScript, prompt: str) -> list[str]:
        args = [prompt if a == PROMPT_ARG else a for a in action.args]
        path = str(action.path)
        if path.endswith(".py"):
            return [self.interpreter, path, *args]
        return [path, *args]

    def _run_script(self, rule: Rule, prompt: str) -> ActionResult:
        """Run one script. Never raises; failures yield an empty output."""
        started = time.time()
        result = ActionResult(rule.label)
        if self._cancelled.is_set():
            result.error = "cancelled"
            return result

        cmd = self.build_command(rule.action, prompt)
        payload = json.dumps({"prompt": prompt})
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=dict(os.environ),
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            # ValueError: prompt with a NUL byte or lone surrogate in argv
            result.error = f"spawn failed: {e}"
            logger.debug("[dispatch] %s %s", rule.label, result.error)
            return result

        with self._lock:
            self._live.add(proc)
        try:
            stdout, _ = proc.communicate(payload, timeout=self.timeout)
            if proc.returncode != 0:
                result.error = f"exit {proc.returncode}"
            elif stdout.strip():
                result.output = stdout
        except subprocess.TimeoutExpired:
            _kill_group(proc)
            try:
                proc.communicate(timeout=KILL_DRAIN_SECONDS)
            except subprocess.TimeoutExpired:
                logger.debug("[dispatch] %s pipes still open after kill", rule.label)
            result.error = f"timed out after {self.timeout:g}s"
        except (OSError, ValueError) as e:
            _kill_group(proc)
            result.error = str(e)
        finally:
            with self._lock:
                self._live.discard(proc)

        if self._cancelled.is_set():
            result.output = ""
            result.error = result.error or "cancelled"

        result.elapsed_ms = int((time.time() - started) * 1000)
        if result.error:
            logger.debug(
                "[dispatch] %s failed after %dms: %s",
                rule.label,
                result.elapsed_ms,
                result.error,
            )
        else:
            logger.debug("[dispatch] %s done in %dms", rule.label, result.elapsed_ms)
        return result

    def cancel(self) -> None:
        """Kill every in-flight script (host is shutting us down)."""
        self._cancelled.set()
        with self._lock:
            live = list(self._live)
        for proc in live:
            _kill_group(proc)
