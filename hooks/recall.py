#!/usr/bin/env python3
"""UserPromptSubmit action: surface recent project memories ("what was decided?")."""

import _lib_path  # noqa: F401
import sys

from vibe.core import get_project_dir, setup_logging
from vibe.tools import list_memories
from vibe.tools.memory import NO_MEMORIES


def main():
    setup_logging()
    try:
        result = list_memories(project_path=str(get_project_dir()))
        if result.text == NO_MEMORIES:
            print("[RECALL]", result.text)
            sys.exit(0)
        lines = result.text.split("\n")
        print(f"[RECALL] ✓ Found {len(lines)} memories:", " | ".join(lines[:7]))
    except OSError as e:
        print("[RECALL] Error:", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
