#!/usr/bin/env python3
"""
HUD Status Manager - real-time status line for Claude Code.

Usage:
  hud_status.py show [minimal|focused|full]
  hud_status.py start [mode] [feature]
  hud_status.py phase <current> <total> [name...]
  hud_status.py agent add <name> [model]
  hud_status.py agent remove <name>
  hud_status.py agent clear
  hud_status.py context <used> [total]
  hud_status.py set <key> <value>        (dotted keys: phase.current)
  hud_status.py done|reset
"""

import _lib_path  # noqa: F401
import argparse
import sys

from vibe.core import setup_logging
from vibe.hud import DEFAULT_CONTEXT_TOTAL, FORMATTERS, HudStore, render


def _coerce(value: str):
    """Numbers stay numbers, everything else is a string."""
    try:
        return int(value)
    except ValueError:
        try:
            return float(value)
        except ValueError:
            return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="VIBE HUD - Real-time status visualization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    show = sub.add_parser("show", aliases=["status"], help="Show current status")
    show.add_argument("format", nargs="?", default="focused", choices=sorted(FORMATTERS))

    start = sub.add_parser("start", help="Start tracking a mode")
    start.add_argument("mode", nargs="?", default="ultrawork")
    start.add_argument("feature", nargs="?", default=None)

    phase = sub.add_parser("phase", help="Update phase progress")
    phase.add_argument("current", type=int)
    phase.add_argument("total", type=int, nargs="?")
    phase.add_argument("name", nargs="*")

    agent = sub.add_parser("agent", help="Manage running agents")
    agent.add_argument("action", choices=["add", "remove", "clear"])
    agent.add_argument("name", nargs="?")
    agent.add_argument("model", nargs="?", default="sonnet")

    context = sub.add_parser("context", help="Update context usage")
    context.add_argument("used", type=int)
    context.add_argument("total", type=int, nargs="?", default=DEFAULT_CONTEXT_TOTAL)

    set_cmd = sub.add_parser("set", help="Set arbitrary state value")
    set_cmd.add_argument("key")
    set_cmd.add_argument("value")

    sub.add_parser("done", aliases=["reset"], help="Reset to idle state")
    return parser


def run(args: argparse.Namespace, store: HudStore) -> str:
    command = args.command

    if command in ("show", "status"):
        return render(store.load(), args.format)

    if command == "start":
        with store.update() as state:
            state.start(args.mode, args.feature)
        feature = f": {args.feature}" if args.feature else ""
        return f"🚀 Started {args.mode}{feature}"

    if command == "phase":
        current = max(args.current, 1)
        total = args.total or current
        name = " ".join(args.name)
        with store.update() as state:
            state.set_phase(current, total, name)
        return f"📍 Phase {current}/{total}" + (f": {name}" if name else "")

    if command == "agent":
        if args.action != "clear" and not args.name:
            return "✗ Agent name required"
        with store.update() as state:
            if args.action == "add":
                state.add_agent(args.name, args.model)
            elif args.action == "remove":
                state.remove_agent(args.name)
            else:
                state.clear_agents()
        if args.action == "add":
            return f"🤖 Agent added: {args.name} ({args.model})"
        if args.action == "remove":
            return f"🤖 Agent removed: {args.name}"
        return "🤖 All agents cleared"

    if command == "context":
        total = args.total or DEFAULT_CONTEXT_TOTAL
        with store.update() as state:
            state.set_context(args.used, total)
            pct = state.context.percentage
        return f"📊 Context: {pct}%"

    if command == "set":
        try:
            with store.update() as state:
                state.set_value(args.key, _coerce(args.value))
        except KeyError:
            return f"✗ Unknown key: {args.key}"
        return f"✓ Updated {args.key}"

    if command in ("done", "reset"):
        store.reset()
        return "💤 HUD reset"

    return ""


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    output = run(args, HudStore())
    if output:
        print(output)
    sys.exit(0)


if __name__ == "__main__":
    main()
