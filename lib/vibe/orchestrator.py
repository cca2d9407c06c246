"""
Provider orchestration with bounded retry and ordered failover.

A call walks a fixed two-provider chain: the requested provider first, the
other one second. Within a provider, attempts are sequential:

    attempt fails -> classify(error)
        SKIP_TO_FALLBACK  abandon provider now
        RETRYABLE         sleep base * 2^(attempt-1), retry until max_attempts
        FAIL              abandon provider now

Providers are never called in parallel. run() never raises; every outcome is
returned as text because it executes inside a hook pipeline that must not be
interrupted.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from .config import RetryConfig, get_config
from .error_classifier import ErrorClass, classify
from .providers import (
    Provider,
    ProviderAPIError,
    ProviderClient,
    ProviderMode,
    get_client,
    strip_prefix,
)

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


@dataclass
class RetryState:
    """Attempt counter for one provider in the chain."""

    attempt: int = 1
    max_attempts: int = 3
    base_delay_ms: int = 2000

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def backoff_ms(self) -> int:
        """Delay after the current (failed) attempt."""
        return backoff_delay_ms(self.attempt, self.base_delay_ms)


def backoff_delay_ms(attempt: int, base_delay_ms: int = 2000) -> int:
    return base_delay_ms * 2 ** (attempt - 1)


@dataclass(frozen=True)
class ProviderCall:
    provider: Provider
    mode: ProviderMode
    system_prompt: str
    prompt: str


@dataclass
class ProviderOutcome:
    """Result of running one provider until success or abandonment."""

    provider: Provider
    success: bool
    text: str = ""
    error: str = ""
    error_class: Optional[ErrorClass] = None
    attempts: int = 0


def build_chain(provider: Provider) -> list[Provider]:
    """Requested provider first, the other known provider second."""
    return [provider, provider.fallback]


def parse_json_text(text: str) -> object:
    """Parse JSON from model response, handling markdown code blocks."""
    text = text.strip()

    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])

    return json.loads(text)


@dataclass
class ProviderOrchestrator:
    """Runs a prompt against the provider chain.

    clients: optional per-provider overrides (tests inject fakes here).
    sleep: called with seconds between retries; defaults to an interruptible
        wait on the cancel event.
    """

    clients: Mapping[Provider, ProviderClient] = field(default_factory=dict)
    retry: Optional[RetryConfig] = None
    sleep: Optional[Callable[[float], None]] = None
    _cancel: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False
    )

    def __post_init__(self):
        if self.retry is None:
            self.retry = get_config().retry

    def cancel(self) -> None:
        """Abort a pending backoff and stop walking the chain."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _client(self, provider: Provider) -> ProviderClient:
        return self.clients.get(provider) or get_client(provider)

    def _wait(self, seconds: float) -> None:
        if self.sleep is not None:
            self.sleep(seconds)
        else:
            self._cancel.wait(seconds)

    def _attempt(self, call: ProviderCall) -> str:
        text = self._client(call.provider).call(call.prompt, call.system_prompt, call.mode)
        if call.mode is ProviderMode.JSON_STRICT:
            try:
                parse_json_text(text or "")
            except (json.JSONDecodeError, ValueError) as e:
                raise ProviderAPIError(f"Invalid JSON response: {getattr(e, 'msg', e)}")
        return text

    def call_with_retry(self, call: ProviderCall) -> ProviderOutcome:
        """Bounded retry against a single provider."""
        state = RetryState(
            max_attempts=self.retry.max_attempts,
            base_delay_ms=self.retry.base_delay_ms,
        )
        name = call.provider.value.upper()

        while True:
            try:
                text = self._attempt(call)
                return ProviderOutcome(
                    call.provider, success=True, text=text, attempts=state.attempt
                )
            except Exception as e:  # client bugs count as provider failures too
                error = str(e) or e.__class__.__name__

            error_class = classify(error)
            outcome = ProviderOutcome(
                call.provider,
                success=False,
                error=error,
                error_class=error_class,
                attempts=state.attempt,
            )

            if error_class is not ErrorClass.RETRYABLE or state.exhausted:
                return outcome

            delay = state.backoff_ms()
            logger.warning(
                "[%s] Retry %d/%d after %dms...",
                name,
                state.attempt,
                state.max_attempts,
                delay,
            )
            self._wait(delay / 1000)
            if self.cancelled:
                outcome.error = CANCELLED
                return outcome
            state.attempt += 1

    def run(
        self,
        provider: Provider,
        mode: ProviderMode,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Execute the chain and return display text. Never raises."""
        system_prompt = system_prompt or get_config().default_system_prompt
        clean_prompt = strip_prefix(provider, prompt)
        chain = build_chain(provider)

        last_error = "no providers attempted"
        for index, current in enumerate(chain):
            if self.cancelled:
                last_error = CANCELLED
                break

            outcome = self.call_with_retry(
                ProviderCall(current, mode, system_prompt, clean_prompt)
            )
            if outcome.success:
                return format_success(current, outcome.text)

            last_error = outcome.error
            if outcome.error == CANCELLED:
                break
            if index < len(chain) - 1:
                logger.warning(
                    "[%s] Failed: %s. Falling back to %s...",
                    current.value.upper(),
                    outcome.error,
                    chain[index + 1].label,
                )

        return format_failure(last_error)


def format_success(provider: Provider, text: str) -> str:
    return f"{provider.label} response: {text}"


def format_failure(error: str) -> str:
    return f"[LLM] Error: All providers failed. Last error: {error}"
