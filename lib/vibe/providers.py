"""
Provider clients: GPT and Gemini behind one call interface.

The set of providers is closed. Callers name a provider through the
`Provider` enum and get a client from `get_client()`; there is no
string-keyed module loading, so an unknown provider can only appear at the
CLI boundary where `Provider.parse()` rejects it.

Every failure is raised as ProviderAPIError with a message that carries the
signal the error classifier looks for (HTTP status, "timeout", "Network").
"""

from __future__ import annotations

import json
import os
import re
from enum import Enum
from typing import Optional, Protocol

import requests

from .config import ProviderSettings, get_config


class ProviderAPIError(Exception):
    """Raised when a provider call fails"""

    pass


class Provider(str, Enum):
    GPT = "gpt"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str) -> Optional["Provider"]:
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None

    @property
    def fallback(self) -> "Provider":
        return Provider.GEMINI if self is Provider.GPT else Provider.GPT

    @property
    def settings(self) -> ProviderSettings:
        config = get_config()
        return config.gpt if self is Provider.GPT else config.gemini

    @property
    def label(self) -> str:
        return self.settings.label or self.value.upper()


class ProviderMode(str, Enum):
    PLAIN = "plain"
    JSON_STRICT = "json"

    @classmethod
    def parse(cls, value: str) -> "ProviderMode":
        value = (value or "").strip().lower()
        if value in ("json", "orchestrate-json"):
            return cls.JSON_STRICT
        return cls.PLAIN


# Leading address prefixes users type to aim a prompt at one provider
PREFIX_PATTERNS: dict[Provider, re.Pattern] = {
    Provider.GPT: re.compile(r"^(gpt[-.\s]|지피티-|vibe-gpt-)\s*", re.IGNORECASE),
    Provider.GEMINI: re.compile(
        r"^(gemini[-.\s]|제미나이-|vibe-gemini-)\s*", re.IGNORECASE
    ),
}


def strip_prefix(provider: Provider, prompt: str) -> str:
    """Remove a provider-specific leading prefix like 'gpt-' or 'gemini '."""
    return PREFIX_PATTERNS[provider].sub("", prompt or "", count=1).strip()


class ProviderClient(Protocol):
    def call(self, prompt: str, system_prompt: str, mode: ProviderMode) -> str: ...


def _api_key(settings: ProviderSettings) -> str:
    key = os.getenv(settings.api_key_env, "").strip()
    if not key:
        raise ProviderAPIError(f"Unauthorized: {settings.api_key_env} is not set")
    return key


def _error_message(response: requests.Response) -> str:
    """Pull the provider's own error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:300] or response.reason or ""
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("status") or json.dumps(error)[:300]
    if isinstance(error, str):
        return error
    return json.dumps(body)[:300]


def _post(url: str, headers: dict, payload: dict, timeout: float, params=None) -> dict:
    try:
        response = requests.post(
            url, headers=headers, json=payload, params=params, timeout=timeout
        )
    except requests.exceptions.Timeout:
        raise ProviderAPIError(f"Request timeout after {timeout:g}s")
    except requests.exceptions.ConnectionError as e:
        raise ProviderAPIError(f"Network error: {e}")
    except requests.exceptions.RequestException as e:
        raise ProviderAPIError(f"API request failed: {e}")

    if not response.ok:
        raise ProviderAPIError(f"HTTP {response.status_code}: {_error_message(response)}")

    try:
        return response.json()
    except ValueError as e:
        raise ProviderAPIError(f"Invalid JSON response: {getattr(e, 'msg', e)}")


class GptClient:
    """OpenAI chat-completions client."""

    def __init__(self, settings: ProviderSettings | None = None):
        self.settings = settings or Provider.GPT.settings

    def call(self, prompt: str, system_prompt: str, mode: ProviderMode) -> str:
        headers = {
            "Authorization": f"Bearer {_api_key(self.settings)}",
            "Content-Type": "application/json",
        }
        data = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        if mode is ProviderMode.JSON_STRICT:
            data["response_format"] = {"type": "json_object"}

        url = f"{self.settings.base_url.rstrip('/')}/chat/completions"
        result = _post(url, headers, data, self.settings.timeout_seconds)

        try:
            return result["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderAPIError(f"Unexpected response structure: {e}")


class GeminiClient:
    """Google Generative Language generateContent client."""

    def __init__(self, settings: ProviderSettings | None = None):
        self.settings = settings or Provider.GEMINI.settings

    def call(self, prompt: str, system_prompt: str, mode: ProviderMode) -> str:
        headers = {
            "x-goog-api-key": _api_key(self.settings),
            "Content-Type": "application/json",
        }
        data = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if mode is ProviderMode.JSON_STRICT:
            data["generationConfig"] = {"responseMimeType": "application/json"}

        url = (
            f"{self.settings.base_url.rstrip('/')}/models/"
            f"{self.settings.model}:generateContent"
        )
        result = _post(url, headers, data, self.settings.timeout_seconds)

        try:
            parts = result["candidates"][0]["content"]["parts"]
            return "".join(p.get("text", "") for p in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderAPIError(f"Unexpected response structure: {e}")


def get_client(provider: Provider) -> ProviderClient:
    """Client for a provider. Branches cover every Provider member."""
    if provider is Provider.GPT:
        return GptClient()
    if provider is Provider.GEMINI:
        return GeminiClient()
    raise ValueError(f"Unhandled provider: {provider!r}")
