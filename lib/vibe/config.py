"""Vibe hook configuration management.

Loads config from ~/.claude/config/vibe.json with sensible defaults.
Provides typed access to all configuration values.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

CONFIG_PATH = Path.home() / ".claude" / "config" / "vibe.json"

# Singleton cache
_config_cache: VibeConfig | None = None


@dataclass
class RetryConfig:
    """Per-provider retry budget."""

    max_attempts: int = 3
    base_delay_ms: int = 2000


@dataclass
class DispatchConfig:
    """UserPromptSubmit dispatch limits."""

    action_timeout_seconds: float = 30.0
    max_workers: int = 8


@dataclass
class ProviderSettings:
    """Connection settings for one LLM provider."""

    model: str = ""
    label: str = ""
    api_key_env: str = ""
    base_url: str = ""
    timeout_seconds: float = 120.0


def _gpt_defaults() -> ProviderSettings:
    return ProviderSettings(
        model="gpt-5.2",
        label="GPT-5.2",
        api_key_env="OPENAI_API_KEY",
        base_url="https://api.openai.com/v1",
    )


def _gemini_defaults() -> ProviderSettings:
    return ProviderSettings(
        model="gemini-3-flash",
        label="Gemini-3",
        api_key_env="GEMINI_API_KEY",
        base_url="https://generativelanguage.googleapis.com/v1beta",
    )


@dataclass
class HudConfig:
    """Status HUD storage."""

    state_file: str = "~/.claude/.vibe-hud/state.json"

    @property
    def state_path(self) -> Path:
        return Path(self.state_file).expanduser()


@dataclass
class MemoryConfig:
    """Project memory storage."""

    file_name: str = "vibe_memories.json"
    list_limit: int = 10


@dataclass
class VibeConfig:
    """Complete hook runtime configuration."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    gpt: ProviderSettings = field(default_factory=_gpt_defaults)
    gemini: ProviderSettings = field(default_factory=_gemini_defaults)
    hud: HudConfig = field(default_factory=HudConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    default_system_prompt: str = "You are a helpful assistant."


def _load_nested(data: dict[str, Any], key: str, cls: type, base: Any = None) -> Any:
    """Load nested config section with defaults."""
    section = data.get(key, {})
    defaults = asdict(base) if base is not None else {}
    if isinstance(section, dict):
        # Filter to only valid fields for the dataclass
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in section.items() if k in valid_fields}
        return cls(**{**defaults, **filtered})
    return cls(**defaults)


def config_path() -> Path:
    """Resolve the config file, honouring VIBE_CONFIG."""
    override = os.environ.get("VIBE_CONFIG", "").strip()
    return Path(override).expanduser() if override else CONFIG_PATH


def load_config(path: Path | None = None, force_reload: bool = False) -> VibeConfig:
    """Load hook configuration from JSON file.

    Args:
        path: Override config path (default: VIBE_CONFIG or ~/.claude/config/vibe.json)
        force_reload: Bypass cache and reload from disk

    Returns:
        VibeConfig instance with all settings
    """
    global _config_cache

    if _config_cache is not None and not force_reload:
        return _config_cache

    path = path or config_path()

    if not path.exists():
        _config_cache = VibeConfig()
        return _config_cache

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        _config_cache = VibeConfig()
        return _config_cache

    if not isinstance(data, dict):
        _config_cache = VibeConfig()
        return _config_cache

    config = VibeConfig(
        retry=_load_nested(data, "retry", RetryConfig),
        dispatch=_load_nested(data, "dispatch", DispatchConfig),
        gpt=_load_nested(data, "gpt", ProviderSettings, _gpt_defaults()),
        gemini=_load_nested(data, "gemini", ProviderSettings, _gemini_defaults()),
        hud=_load_nested(data, "hud", HudConfig),
        memory=_load_nested(data, "memory", MemoryConfig),
        default_system_prompt=data.get(
            "default_system_prompt", VibeConfig.default_system_prompt
        ),
    )

    _config_cache = config
    return config


def get_config() -> VibeConfig:
    """Get cached config (loads on first call)."""
    return load_config()


def clear_cache() -> None:
    """Clear config cache (for testing)."""
    global _config_cache
    _config_cache = None


def save_config(config: VibeConfig, path: Path | None = None) -> Path:
    """Save hook configuration to JSON file.

    Returns:
        Path where config was saved
    """
    global _config_cache
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(asdict(config), f, indent=2)

    _config_cache = config
    return path
