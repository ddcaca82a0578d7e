"""Configuration management for aicommits."""

from __future__ import annotations

import copy
import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigError

CONFIG_DIR_NAME = ".aicommits"
CONFIG_FILE_NAME = "config.json"

DEFAULT_ACTIVE_PROVIDER = "openai"
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_TOKEN_TIMEOUT = 30.0

DEFAULT_PROVIDERS: Dict[str, Dict[str, Any]] = {
    "openai": {
        "enabled": True,
        "model": "gpt-4.1-nano",
        "endpoint": "https://api.openai.com/v1/chat/completions",
        "max_length": 50,
        "generate": 1,
        "temperature": 0.7,
        "top_p": 1,
        "frequency_penalty": 0,
        "presence_penalty": 0,
        "max_tokens": 200,
    },
    "gemini-api": {
        "enabled": True,
        "model": "gemini-2.5-flash",
        "max_length": 50,
        "generate": 1,
        "temperature": 0.7,
        "max_tokens": 200,
    },
    "vertex": {
        "enabled": True,
        "model": "gemini-2.0-flash-lite",
        "project": None,
        "location": "us-central1",
        "max_length": 50,
        "temperature": 0.7,
        "max_tokens": 200,
    },
}

_TRUTHY = {"1", "true", "yes", "on"}


def _default_providers() -> Dict[str, Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_PROVIDERS)


@dataclass
class Config:
    """Runtime configuration for aicommits.

    The core only reads it; per-provider dicts are handed to providers as
    their ``ProviderConfig``.
    """

    active_provider: Optional[str] = DEFAULT_ACTIVE_PROVIDER
    providers: Dict[str, Dict[str, Any]] = field(default_factory=_default_providers)
    commitlint: bool = True
    debug: bool = False
    git_repo_path: str = "."

    def get(self, key: Optional[str] = None) -> Any:
        """Look up a dotted key path, e.g. ``providers.openai.model``.

        Returns ``None`` when any segment is missing.
        """
        current: Any = self.to_dict()
        if not key:
            return current
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def provider_config(self, name: str) -> Optional[Dict[str, Any]]:
        """Return a copy of one provider's settings, or ``None``."""
        settings = self.providers.get(name)
        if settings is None:
            return None
        return dict(settings)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration to a dict for persistence."""
        return asdict(self)


_CONFIG_STATE: Dict[str, Optional[Config]] = {"active": None}


def request_timeout() -> float:
    """HTTP request timeout in seconds (``AICOMMITS_REQUEST_TIMEOUT``)."""
    return _float_env("AICOMMITS_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)


def token_timeout() -> float:
    """gcloud token fetch timeout in seconds (``AICOMMITS_TOKEN_TIMEOUT``)."""
    return _float_env("AICOMMITS_TOKEN_TIMEOUT", DEFAULT_TOKEN_TIMEOUT)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _ensure_path(path_like: Optional[Path]) -> Path:
    if path_like is None:
        return Path.cwd().resolve(strict=False)
    return Path(path_like).expanduser().resolve(strict=False)


def _config_file(repo_root: Optional[Path] = None) -> Path:
    return _ensure_path(repo_root) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def _merge_providers(
    base: Dict[str, Dict[str, Any]], extra: Dict[str, Any]
) -> Dict[str, Dict[str, Any]]:
    merged = copy.deepcopy(base)
    for name, settings in extra.items():
        if not isinstance(settings, dict):
            raise ConfigError(f"Settings for provider '{name}' must be an object")
        merged.setdefault(name, {}).update(settings)
    return merged


def save_config(config: Config, repo_root: Optional[Path] = None) -> Path:
    """Persist configuration JSON within the repository."""
    cfg_path = _config_file(repo_root)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    # Repo path is derived from the location of the file itself.
    data.pop("git_repo_path", None)
    cfg_path.write_text(json.dumps(data, indent=2))
    return cfg_path


def load_persisted_config(repo_root: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """Return the raw persisted settings, or ``None`` when no file exists."""
    cfg_path = _config_file(repo_root)
    if not cfg_path.exists():
        return None
    try:
        data = json.loads(cfg_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a JSON object")
    return data


def load_config(
    *,
    repo_root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Config:
    """Build configuration from defaults, config file, environment and overrides."""

    overrides = dict(overrides or {})
    root = _ensure_path(repo_root)
    persisted = load_persisted_config(root) or {}

    providers = _merge_providers(DEFAULT_PROVIDERS, persisted.get("providers") or {})
    if overrides.get("providers"):
        providers = _merge_providers(providers, overrides["providers"])

    active_provider = (
        overrides.get("active_provider")
        or os.environ.get("AICOMMITS_PROVIDER")
        or persisted.get("active_provider", DEFAULT_ACTIVE_PROVIDER)
    )

    debug_env = os.environ.get("AICOMMITS_DEBUG")
    if overrides.get("debug") is not None:
        debug = bool(overrides["debug"])
    elif debug_env:
        debug = debug_env.lower() in _TRUTHY
    else:
        debug = bool(persisted.get("debug", False))

    if overrides.get("commitlint") is not None:
        commitlint = bool(overrides["commitlint"])
    else:
        commitlint = bool(persisted.get("commitlint", True))

    config = Config(
        active_provider=active_provider,
        providers=providers,
        commitlint=commitlint,
        debug=debug,
        git_repo_path=str(root),
    )
    set_active_config(config)
    return config


def set_active_config(config: Config) -> None:
    _CONFIG_STATE["active"] = config


def get_active_config() -> Config:
    active = _CONFIG_STATE.get("active")
    if active is None:
        return load_config()
    return active


def clear_active_config() -> None:
    _CONFIG_STATE["active"] = None
