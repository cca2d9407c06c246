#!/usr/bin/env python3
"""UserPromptSubmit action: complexity summary for the current project."""

import _lib_path  # noqa: F401
import sys

from vibe.core import get_project_dir, setup_logging
from vibe.tools import analyze_complexity


def main():
    setup_logging()
    try:
        result = analyze_complexity(str(get_project_dir()))
        print("[COMPLEXITY]", " | ".join(result.text.split("\n")[:5]))
    except OSError as e:
        print("[COMPLEXITY] Error:", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
