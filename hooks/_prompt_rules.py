"""
Default UserPromptSubmit dispatch table.

RULES INDEX (output order):
  keyword          always   - magic keyword detection (keyword_detector.py)
  skip             pattern  - ultrawork/ralph words, already handled by keyword
  compound         pattern  - bug fixed / PR merged -> save solution memory
  code-review      pattern  - code review request -> quality scan
  complexity       pattern  - complexity analysis request
  recall           pattern  - "what was decided" -> recent memories
  e2e-echo         pattern  - literal E2E testing hint
  gpt-architecture pattern  - architecture review via GPT
  gemini-uiux      pattern  - UI/UX feedback via Gemini
  gpt-debug        pattern  - bug hunting via GPT
  gemini-analysis  pattern  - static code analysis via Gemini
  test-gpt         pattern  - manual provider smoke test
  test-gemini      pattern  - manual provider smoke test

External LLM calls only ever fire behind an explicit pattern, so ordinary
prompts never cost a provider round-trip.
"""

import re

from _lib_path import HOOKS_DIR
from vibe.dispatcher import (
    PROMPT_ARG,
    EmitLiteralText,
    InvokeExternalScript,
    Rule,
    Skip,
)


def _pattern(expr: str) -> re.Pattern:
    return re.compile(expr, re.IGNORECASE)


def _script(name: str, *args: str) -> InvokeExternalScript:
    return InvokeExternalScript(HOOKS_DIR / name, tuple(args))


def _llm(provider: str, system_prompt: str) -> InvokeExternalScript:
    return _script("llm_orchestrate.py", provider, "orchestrate", system_prompt, PROMPT_ARG)


E2E_HINT = (
    "[E2E MODE] Use /vibe.utils --e2e for Playwright-based browser testing. "
    "Supports visual regression and video recording."
)

RULES: list[Rule] = [
    # Always on (lightweight)
    Rule("keyword", _script("keyword_detector.py", PROMPT_ARG)),
    Rule(
        "skip",
        Skip(),
        _pattern(r"ultrawork|ulw|울트라워크|ralph|ralplan"),
    ),
    # Scripted checks
    Rule(
        "compound",
        _script("compound.py"),
        _pattern(
            r"버그.*(해결|수정|고침)|문제.*(해결|수정)|bug.*(fixed|resolved|solved)"
            r"|issue.*(fixed|resolved)|PR.*(merged|머지)"
        ),
    ),
    Rule(
        "code-review",
        _script("code_review.py"),
        _pattern(r"코드\s*리뷰|code\s*review|PR\s*리뷰|리뷰.*해줘|review.*code"),
    ),
    Rule(
        "complexity",
        _script("complexity.py"),
        _pattern(r"복잡도.*분석|복잡도.*확인|complexity.*analyz|코드.*복잡도"),
    ),
    Rule(
        "recall",
        _script("recall.py"),
        _pattern(r"뭐였지|이전에.*결정|저번에.*결정|previous.*decision|what was.*decided"),
    ),
    # Literal hints
    Rule(
        "e2e-echo",
        EmitLiteralText(E2E_HINT),
        _pattern(r"e2e.*테스트|e2e.*test|playwright|브라우저.*테스트|browser.*test"),
    ),
    # External LLM (GPT/Gemini) - pattern required
    Rule(
        "gpt-architecture",
        _llm("gpt", "You are a software architect. Analyze and review the architecture."),
        _pattern(r"아키텍처.*(검토|리뷰|분석)|architecture.*(review|analyz)|설계.*검토|구조.*분석.*해"),
    ),
    Rule(
        "gemini-uiux",
        _llm("gemini", "You are a UI/UX expert. Analyze and provide feedback."),
        _pattern(r"(UI|UX).*(리뷰|검토|피드백|개선)|사용자.*경험.*검토|디자인.*리뷰|design.*feedback"),
    ),
    Rule(
        "gpt-debug",
        _llm("gpt", "You are a debugging expert. Find bugs and suggest fixes."),
        _pattern(r"디버깅.*해|버그.*찾아|find.*bug|debug.*this.*code"),
    ),
    Rule(
        "gemini-analysis",
        _llm("gemini", "You are a code analysis expert. Review and analyze the code."),
        _pattern(r"코드.*정적.*분석|코드.*분석.*해줘|analyze.*code.*quality"),
    ),
    # Provider smoke tests
    Rule(
        "test-gpt",
        _llm(
            "gpt",
            "You are a helpful assistant. Answer the user's question clearly and concisely.",
        ),
        _pattern(r"^test-gpt"),
    ),
    Rule(
        "test-gemini",
        _llm(
            "gemini",
            "You are a helpful assistant. Answer the user's question clearly and concisely.",
        ),
        _pattern(r"^test-gemini"),
    ),
]
