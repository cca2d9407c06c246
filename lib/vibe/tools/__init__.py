"""
Tools used by dispatched hook actions.

Every tool returns a ToolResult whose text is printed into the session.
"""

from dataclasses import dataclass


@dataclass
class ToolResult:
    text: str


from .analysis import analyze_complexity, validate_code_quality  # noqa: E402
from .memory import list_memories, save_memory  # noqa: E402

__all__ = [
    "ToolResult",
    "analyze_complexity",
    "validate_code_quality",
    "list_memories",
    "save_memory",
]
