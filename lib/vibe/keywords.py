"""
Magic keyword detection and combination.

Users steer the session by dropping directive words into a prompt:
"implement login ralph ultrawork". Each canonical keyword carries an
instruction line and a set of flags; aliases ("ulw") resolve to their
canonical entry. Some pairs have a synergy whose single line replaces the
two individual lines.

Output shape:
    [RALPH+ULTRAWORK] Maximum persistence AND parallel execution...
    [PLAN MODE] Enter planning interview mode...
    [FLAGS] persistence, verification, parallel, ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class KeywordEntry:
    name: str
    description: str = ""
    flags: tuple[str, ...] = ()
    output: str = ""
    alias_of: Optional[str] = None

    @property
    def is_alias(self) -> bool:
        return self.alias_of is not None


@dataclass(frozen=True)
class SynergyEntry:
    members: frozenset[str]
    name: str
    output: str

    @property
    def key(self) -> str:
        return "+".join(sorted(self.members))


def synergy(first: str, second: str, name: str, output: str) -> SynergyEntry:
    if first == second:
        raise ValueError(f"Synergy needs two distinct keywords, got {first!r} twice")
    return SynergyEntry(frozenset((first, second)), name, output)


class KeywordRegistry:
    """Canonical keywords, aliases and pairwise synergies.

    Construction validates that every alias chain ends at exactly one
    canonical entry and that synergies only reference canonical names.
    """

    def __init__(
        self, entries: Iterable[KeywordEntry], synergies: Iterable[SynergyEntry] = ()
    ):
        self.entries: dict[str, KeywordEntry] = {}
        for entry in entries:
            key = entry.name.lower()
            if key in self.entries:
                raise ValueError(f"Duplicate keyword: {entry.name}")
            self.entries[key] = entry

        self._canonical = {name: self._resolve_chain(name) for name in self.entries}

        self.synergies: dict[frozenset[str], SynergyEntry] = {}
        for syn in synergies:
            members = frozenset(m.lower() for m in syn.members)
            for member in members:
                entry = self.entries.get(member)
                if entry is None or entry.is_alias:
                    raise ValueError(
                        f"Synergy {syn.name!r} references non-canonical keyword {member!r}"
                    )
            self.synergies[members] = syn

        self._patterns = [
            (re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE), name)
            for name in self.entries
        ]

    def _resolve_chain(self, name: str) -> KeywordEntry:
        seen = []
        entry = self.entries[name]
        while entry.is_alias:
            seen.append(entry.name.lower())
            target = entry.alias_of.lower()
            if target in seen or target == name:
                raise ValueError(f"Alias cycle: {' -> '.join(seen + [target])}")
            if target not in self.entries:
                raise ValueError(f"Alias {entry.name!r} points at unknown {target!r}")
            entry = self.entries[target]
        return entry

    def canonical(self, name: str) -> KeywordEntry:
        return self._canonical[name.lower()]

    def synergy_for(self, first: str, second: str) -> Optional[SynergyEntry]:
        """Order-independent synergy lookup."""
        return self.synergies.get(frozenset((first.lower(), second.lower())))

    def canonical_entries(self) -> list[KeywordEntry]:
        return [e for e in self.entries.values() if not e.is_alias]

    def find(self, text: str) -> list[tuple[int, KeywordEntry, str]]:
        """Every whole-word hit as (position, canonical entry, matched name)."""
        hits = []
        for pattern, name in self._patterns:
            match = pattern.search(text)
            if match:
                hits.append((match.start(), self._canonical[name], name))
        hits.sort(key=lambda h: h[0])
        return hits


@dataclass
class Resolution:
    """Keywords detected in one prompt, with synergies applied."""

    keywords: list[KeywordEntry] = field(default_factory=list)
    synergies: list[tuple[SynergyEntry, str, str]] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [k.name for k in self.keywords]

    @property
    def flags(self) -> list[str]:
        seen: dict[str, None] = {}
        for keyword in self.keywords:
            for flag in keyword.flags:
                seen.setdefault(flag, None)
        return list(seen)

    def lines(self) -> list[str]:
        # Synergy text takes the slot of its first member; second member is dropped
        slot: dict[str, Optional[SynergyEntry]] = {}
        for syn, first, second in self.synergies:
            slot[first] = syn
            slot[second] = None

        lines = []
        for keyword in self.keywords:
            if keyword.name in slot:
                syn = slot[keyword.name]
                if syn is not None:
                    lines.append(syn.output)
            elif keyword.output:
                lines.append(keyword.output)

        flags = self.flags
        if flags:
            lines.append(f"[FLAGS] {', '.join(flags)}")
        return lines

    def render(self) -> str:
        return "\n".join(self.lines())


def detect_keywords(text: str, registry: KeywordRegistry) -> list[KeywordEntry]:
    """Canonical keywords in order of first appearance, deduplicated."""
    detected: dict[str, KeywordEntry] = {}
    for _, entry, _ in registry.find(text or ""):
        detected.setdefault(entry.name, entry)
    return list(detected.values())


def combine(keywords: list[KeywordEntry], registry: KeywordRegistry) -> Resolution:
    """Pair up synergies greedily; a keyword joins at most one synergy."""
    resolution = Resolution(keywords=list(keywords))
    if len(keywords) < 2:
        return resolution

    used: set[str] = set()
    for i, first in enumerate(keywords):
        if first.name in used:
            continue
        for second in keywords[i + 1 :]:
            if second.name in used:
                continue
            syn = registry.synergy_for(first.name, second.name)
            if syn is not None:
                resolution.synergies.append((syn, first.name, second.name))
                used.update((first.name, second.name))
                break
    return resolution


def resolve(text: str, registry: Optional[KeywordRegistry] = None) -> Resolution:
    registry = registry or DEFAULT_REGISTRY
    return combine(detect_keywords(text, registry), registry)


def render_help(registry: Optional[KeywordRegistry] = None) -> str:
    registry = registry or DEFAULT_REGISTRY
    keywords = "\n".join(
        f"  {e.name:<12} - {e.description}" for e in registry.canonical_entries()
    )
    combos = "\n".join(f"  {s.key:<20} - {s.name}" for s in registry.synergies.values())
    return (
        "VIBE Keyword Detector\n\n"
        f"Available magic keywords:\n{keywords}\n\n"
        f"Keyword combinations:\n{combos}\n\n"
        "Usage:\n"
        '  keyword_detector.py "implement login ralph ultrawork"'
    )


# =============================================================================
# DEFAULT REGISTRY
# =============================================================================

MAGIC_KEYWORDS: tuple[KeywordEntry, ...] = (
    # Persistence (keep going until done)
    KeywordEntry(
        name="ralph",
        description="Continue until task is verified complete",
        flags=("persistence", "verification"),
        output=(
            "[RALPH MODE] Self-referential completion loop activated. Will continue "
            "until ALL tasks verified complete. NO early stopping."
        ),
    ),
    # Parallel + auto-continue
    KeywordEntry(
        name="ultrawork",
        description="Maximum parallel execution, no pause",
        flags=("parallel", "auto_continue", "no_confirmation"),
        output=(
            "[ULTRAWORK MODE] Use PARALLEL Task calls. Auto-continue through ALL "
            "phases. Auto-retry on errors up to 3 times. Do NOT ask for "
            "confirmation between phases."
        ),
    ),
    KeywordEntry(name="ulw", alias_of="ultrawork"),
    KeywordEntry(name="울트라워크", alias_of="ultrawork"),
    KeywordEntry(
        name="plan",
        description="Planning interview mode",
        flags=("planning", "interview"),
        output=(
            "[PLAN MODE] Enter planning interview mode. Gather requirements "
            "before implementation."
        ),
    ),
    KeywordEntry(
        name="ralplan",
        description="Iterative planning with persistence",
        flags=("persistence", "planning", "iteration"),
        output=(
            "[RALPLAN MODE] Iterative planning with consensus. Will refine plan "
            "until approved, then execute with Ralph persistence."
        ),
    ),
    KeywordEntry(
        name="verify",
        description="Strict verification after each step",
        flags=("verification", "strict"),
        output=(
            "[VERIFY MODE] Strict verification enabled. Every change must be "
            "verified before proceeding."
        ),
    ),
    KeywordEntry(
        name="explore",
        description="Deep codebase exploration",
        flags=("exploration", "thorough"),
        output=(
            "[EXPLORE MODE] Deep exploration enabled. Use multiple Explore agents "
            "for thorough codebase analysis."
        ),
    ),
    KeywordEntry(
        name="quick",
        description="Fast execution, minimal verification",
        flags=("fast", "minimal_verification"),
        output=(
            "[QUICK MODE] Fast execution mode. Minimal verification, single round "
            "reviews."
        ),
    ),
)

KEYWORD_SYNERGIES: tuple[SynergyEntry, ...] = (
    synergy(
        "ralph",
        "ultrawork",
        "Ralph Ultrawork",
        "[RALPH+ULTRAWORK] Maximum persistence AND parallel execution. Will NOT "
        "stop until ALL phases complete with verification.",
    ),
    synergy(
        "ralph",
        "verify",
        "Ralph Verify",
        "[RALPH+VERIFY] Persistent completion with strict verification at each step.",
    ),
    synergy(
        "ultrawork",
        "explore",
        "Ultrawork Explore",
        "[ULTRAWORK+EXPLORE] Parallel exploration agents for maximum coverage.",
    ),
)

DEFAULT_REGISTRY = KeywordRegistry(MAGIC_KEYWORDS, KEYWORD_SYNERGIES)
