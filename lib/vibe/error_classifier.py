"""Provider error classification.

Maps a provider error message to what the orchestrator should do next.

Evaluation order is part of the contract: skip patterns are tested first and
win outright, so "HTTP 503 ... rate limit" skips to the fallback provider
instead of retrying. Only when no skip pattern matches are retry patterns
consulted. Anything else is a plain failure.
"""

from __future__ import annotations

import re
from enum import Enum


class ErrorClass(str, Enum):
    SKIP_TO_FALLBACK = "skip_to_fallback"
    RETRYABLE = "retryable"
    FAIL = "fail"


# Auth/quota problems won't clear up by retrying the same provider
SKIP_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"rate.?limit", re.IGNORECASE),
    re.compile(r"quota", re.IGNORECASE),
    re.compile(r"unauthorized", re.IGNORECASE),
    re.compile(r"forbidden", re.IGNORECASE),
    re.compile(r"401"),
    re.compile(r"403"),
    re.compile(r"429"),
)

# Transient: server-side 5xx, overload, network hiccups
RETRY_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"overload", re.IGNORECASE),
    re.compile(r"5\d\d"),
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"ECONNRESET", re.IGNORECASE),
    re.compile(r"ETIMEDOUT", re.IGNORECASE),
)


def should_skip_retry(message: str) -> bool:
    return any(p.search(message) for p in SKIP_PATTERNS)


def should_retry(message: str) -> bool:
    return any(p.search(message) for p in RETRY_PATTERNS)


def classify(message: str) -> ErrorClass:
    """Classify an error message. Skip patterns always take precedence."""
    message = message or ""
    if should_skip_retry(message):
        return ErrorClass.SKIP_TO_FALLBACK
    if should_retry(message):
        return ErrorClass.RETRYABLE
    return ErrorClass.FAIL
