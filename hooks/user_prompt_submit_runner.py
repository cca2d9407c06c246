#!/usr/bin/env python3
"""
UserPromptSubmit Runner: reads the prompt once, fires only the matching hooks.

UserPromptSubmit has no matcher support, so without this runner every hook
script (including the ones that call GPT/Gemini) would start on every prompt.
The rule table lives in _prompt_rules.py.

CONTRACT:
  stdin   {"prompt": "..."}  (malformed/missing -> no output, exit 0)
  stdout  plain lines merged into the session context; empty = no action
  exit    always 0 - this runner must never stall or break the session
"""

import _lib_path  # noqa: F401
import signal
import sys
import time

from vibe.core import extract_prompt, logger, read_payload, setup_logging
from vibe.dispatcher import Dispatcher

from _prompt_rules import RULES

SLOW_DISPATCH_MS = 5000


def main():
    """Main entry point."""
    setup_logging()
    start = time.time()

    prompt = extract_prompt(read_payload())
    if not prompt.strip():
        sys.exit(0)

    dispatcher = Dispatcher(RULES)

    def _terminate(signum, frame):
        dispatcher.cancel()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _terminate)

    try:
        output = dispatcher.dispatch(prompt)
    except Exception:
        logger.exception("[ups-runner] dispatch crashed")
        output = ""

    if output:
        print(output)

    elapsed = (time.time() - start) * 1000
    if elapsed > SLOW_DISPATCH_MS:
        logger.warning("[ups-runner] Slow: %.1fms", elapsed)

    sys.exit(0)


if __name__ == "__main__":
    main()
