#!/usr/bin/env python3
"""
Code analysis tools used by the code-review and complexity hooks.

Cyclomatic complexity comes from radon; nesting and size checks walk the
AST directly. Python files only. Files that fail to parse are skipped.
"""

import ast
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from radon.complexity import cc_visit_ast
from radon.visitors import Function

from . import ToolResult

# =============================================================================
# CONFIGURATION
# =============================================================================

MAX_FUNCTION_LINES = 60
MAX_NESTING_DEPTH = 4
MAX_PARAMETERS = 6
MAX_FILE_LINES = 500
COMPLEXITY_WARN = 10

SKIP_DIRS = {
    ".git",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    "build",
    "dist",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
}

_NESTING_NODES = (
    ast.If,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.Try,
    ast.With,
    ast.AsyncWith,
)


@dataclass
class FunctionMetrics:
    """Complexity numbers for one function."""

    path: str
    name: str
    lineno: int
    lines: int
    complexity: int
    max_depth: int
    params: int


@dataclass
class FileReport:
    path: str
    lines: int
    functions: list[FunctionMetrics] = field(default_factory=list)
    bare_excepts: list[int] = field(default_factory=list)


def iter_python_files(target: Path) -> Iterator[Path]:
    if target.is_file():
        if target.suffix == ".py":
            yield target
        return
    for path in sorted(target.rglob("*.py")):
        if any(part in SKIP_DIRS for part in path.parts):
            continue
        yield path


def _cyclomatic(tree: ast.AST) -> dict[int, int]:
    """Radon complexity per function, keyed by def line. Closures included."""
    scores: dict[int, int] = {}
    pending = [b for b in cc_visit_ast(tree) if isinstance(b, Function)]
    while pending:
        block = pending.pop()
        scores[block.lineno] = block.complexity
        pending.extend(block.closures)
    return scores


def _max_depth(node: ast.AST, depth: int = 0) -> int:
    deepest = depth
    for child in ast.iter_child_nodes(node):
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        next_depth = depth + 1 if isinstance(child, _NESTING_NODES) else depth
        deepest = max(deepest, _max_depth(child, next_depth))
    return deepest


def _param_count(node: ast.AST) -> int:
    args = node.args
    names = [a.arg for a in args.posonlyargs + args.args + args.kwonlyargs]
    return len([n for n in names if n not in ("self", "cls")])


def analyze_file(path: Path, root: Optional[Path] = None) -> Optional[FileReport]:
    """Parse one file. Returns None when it can't be read or parsed."""
    try:
        source = path.read_text(encoding="utf-8")
        tree = ast.parse(source, filename=str(path))
    except (OSError, SyntaxError, UnicodeDecodeError, ValueError):
        return None

    display = str(path.relative_to(root)) if root and path.is_relative_to(root) else str(path)
    report = FileReport(path=display, lines=len(source.splitlines()))

    complexity = _cyclomatic(tree)
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            end = getattr(node, "end_lineno", node.lineno) or node.lineno
            report.functions.append(
                FunctionMetrics(
                    path=display,
                    name=node.name,
                    lineno=node.lineno,
                    lines=end - node.lineno + 1,
                    complexity=complexity.get(node.lineno, 1),
                    max_depth=_max_depth(node),
                    params=_param_count(node),
                )
            )
        elif isinstance(node, ast.ExceptHandler) and node.type is None:
            report.bare_excepts.append(node.lineno)

    return report


def collect_reports(target_path: str = ".") -> list[FileReport]:
    root = Path(target_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Path not found: {target_path}")
    base = root if root.is_dir() else root.parent
    reports = []
    for path in iter_python_files(root):
        report = analyze_file(path, base)
        if report is not None:
            reports.append(report)
    return reports


def analyze_complexity(target_path: str = ".", limit: int = 20) -> ToolResult:
    """Per-function complexity, most complex first."""
    reports = collect_reports(target_path)
    functions = [f for r in reports for f in r.functions]
    if not functions:
        return ToolResult("No Python functions found")

    functions.sort(key=lambda f: (f.complexity, f.max_depth, f.lines), reverse=True)
    average = sum(f.complexity for f in functions) / len(functions)
    high = [f for f in functions if f.complexity >= COMPLEXITY_WARN]

    lines = [
        f"Analyzed {len(functions)} functions in {len(reports)} files, "
        f"avg complexity {average:.1f}, {len(high)} above {COMPLEXITY_WARN}"
    ]
    for f in functions[:limit]:
        lines.append(
            f"{f.path}:{f.lineno} {f.name} complexity={f.complexity} "
            f"depth={f.max_depth} lines={f.lines}"
        )
    return ToolResult("\n".join(lines))


def validate_code_quality(target_path: str = ".", limit: int = 20) -> ToolResult:
    """Rule-based quality findings."""
    reports = collect_reports(target_path)
    issues: list[str] = []

    for report in reports:
        if report.lines > MAX_FILE_LINES:
            issues.append(f"{report.path}: file has {report.lines} lines (>{MAX_FILE_LINES})")
        for lineno in report.bare_excepts:
            issues.append(f"{report.path}:{lineno} bare except")
        for f in report.functions:
            where = f"{f.path}:{f.lineno} {f.name}"
            if f.lines > MAX_FUNCTION_LINES:
                issues.append(f"{where} is {f.lines} lines (>{MAX_FUNCTION_LINES})")
            if f.max_depth > MAX_NESTING_DEPTH:
                issues.append(f"{where} nests {f.max_depth} deep (>{MAX_NESTING_DEPTH})")
            if f.params > MAX_PARAMETERS:
                issues.append(f"{where} takes {f.params} parameters (>{MAX_PARAMETERS})")

    if not issues:
        return ToolResult(f"✓ No quality issues in {len(reports)} files")

    header = f"✗ {len(issues)} quality issues in {len(reports)} files"
    return ToolResult("\n".join([header, *issues[:limit]]))
