#!/usr/bin/env python3
"""UserPromptSubmit action: quick quality scan when a code review is requested."""

import _lib_path  # noqa: F401
import sys

from vibe.core import get_project_dir, setup_logging
from vibe.tools import validate_code_quality


def main():
    setup_logging()
    try:
        result = validate_code_quality(str(get_project_dir()))
        print("[CODE REVIEW]", " | ".join(result.text.split("\n")[:5]))
    except OSError as e:
        print("[CODE REVIEW] Error:", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
