"""Vibe hook runtime.

Prompt dispatch, magic-keyword resolution, and GPT/Gemini orchestration
for Claude Code UserPromptSubmit hooks.
"""

__version__ = "0.4.0"
