#!/usr/bin/env python3
"""UserPromptSubmit action: record a solution memory when a bug is fixed or a PR merged."""

import _lib_path  # noqa: F401
import sys
import time
from datetime import datetime, timezone

from vibe.core import get_project_dir, setup_logging
from vibe.tools import save_memory


def main():
    setup_logging()
    try:
        result = save_memory(
            key=f"solution-{int(time.time() * 1000)}",
            value=f"Solution documented at {datetime.now(timezone.utc).isoformat()}",
            category="solution",
            project_path=str(get_project_dir()),
        )
        print("[COMPOUND]", result.text)
    except (OSError, ValueError) as e:
        print("[COMPOUND] ✗ Error:", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
