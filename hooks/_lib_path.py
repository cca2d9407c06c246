#!/usr/bin/env python3
"""Makes the `vibe` package importable from hook scripts. Import this first.

Hooks are launched as bare scripts by Claude Code, so the repo's lib/
directory is not on sys.path unless the project was pip-installed.
"""

import sys
from pathlib import Path

HOOKS_DIR = Path(__file__).resolve().parent
LIB_DIR = HOOKS_DIR.parent / "lib"

if str(LIB_DIR) not in sys.path:
    sys.path.insert(0, str(LIB_DIR))
