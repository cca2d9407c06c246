#!/usr/bin/env python3
"""
Keyword Detector & Combiner - magic keyword detection for prompts.

Usage:
  keyword_detector.py "implement login ralph ultrawork"
  USER_PROMPT="plan the migration" keyword_detector.py
  echo '{"prompt": "ulw explore"}' | keyword_detector.py

With no input at all, prints the available keywords and combinations.
"""

import _lib_path  # noqa: F401
import os
import sys

from vibe.core import extract_prompt, read_payload, setup_logging
from vibe.keywords import render_help, resolve


def read_input(argv: list[str]) -> str:
    text = " ".join(argv).strip()
    if text:
        return text
    text = os.environ.get("USER_PROMPT", "").strip()
    if text:
        return text
    return extract_prompt(read_payload()).strip()


def main():
    setup_logging()
    text = read_input(sys.argv[1:])

    if not text:
        print(render_help())
        sys.exit(0)

    output = resolve(text).render()
    if output:
        print(output)
    sys.exit(0)


if __name__ == "__main__":
    main()
