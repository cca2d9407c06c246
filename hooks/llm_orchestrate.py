#!/usr/bin/env python3
"""
LLM orchestration hook (GPT/Gemini).

Usage:
  llm_orchestrate.py <provider> <mode> "prompt"
  llm_orchestrate.py <provider> <mode> "system prompt" "prompt"
  echo '{"prompt": "..."}' | llm_orchestrate.py <provider> <mode>

  provider: gpt | gemini
  mode:     orchestrate | orchestrate-json  (also: plain | json)

Features:
  - Exponential backoff retry (3 attempts by default)
  - Auto fallback: gemini -> gpt, gpt -> gemini
  - Rate-limit/auth errors skip straight to the fallback provider

Always exits 0; failures are reported as a single text line.
"""

import _lib_path  # noqa: F401
import signal
import sys

from vibe.config import get_config
from vibe.core import extract_prompt, read_payload, setup_logging
from vibe.orchestrator import ProviderOrchestrator
from vibe.providers import Provider, ProviderMode


def parse_args(argv: list[str]) -> tuple[str, str, str, str]:
    """(provider, mode, system_prompt, prompt); empty prompt means read stdin."""
    provider = argv[0] if len(argv) > 0 else "gemini"
    mode = argv[1] if len(argv) > 1 else "orchestrate"
    system_prompt = get_config().default_system_prompt
    arg4 = argv[2].strip() if len(argv) > 2 else ""
    rest = " ".join(argv[3:]).strip()

    if rest:
        return provider, mode, arg4 or system_prompt, rest
    return provider, mode, system_prompt, arg4


def main():
    setup_logging()
    provider_name, mode_name, system_prompt, prompt = parse_args(sys.argv[1:])

    provider = Provider.parse(provider_name)
    if provider is None:
        print(f"[LLM] Error: Unknown provider '{provider_name}' (expected gpt or gemini)")
        sys.exit(0)

    if not prompt:
        payload = read_payload()
        if not payload:
            print(f"[{provider.value.upper()}] Error: Invalid JSON input")
            sys.exit(0)
        prompt = extract_prompt(payload)

    if not prompt.strip():
        print(f"[{provider.value.upper()}] Error: Empty prompt")
        sys.exit(0)

    orchestrator = ProviderOrchestrator()

    def _terminate(signum, frame):
        orchestrator.cancel()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _terminate)

    print(orchestrator.run(provider, ProviderMode.parse(mode_name), prompt, system_prompt))
    sys.exit(0)


if __name__ == "__main__":
    main()
