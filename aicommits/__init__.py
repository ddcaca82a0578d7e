"""aicommits - AI-generated commit messages for your staged changes."""

from importlib import import_module

__version__ = "0.2.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "load_config",
    # Providers
    "ProviderRegistry", "BaseProvider",
    # Pipeline
    "CommitPipeline", "PipelineState", "PipelineResult", "Session",
    # Helpers
    "sanitize_message", "build_system_prompt",
    # Exceptions
    "AICommitsError", "ConfigError", "LLMError", "GitError",
]


def __getattr__(name: str):
    """Lazy attribute loader so ``import aicommits`` does not read the environment."""
    mapping = {
        "Config": ("aicommits.config", "Config"),
        "load_config": ("aicommits.config", "load_config"),
        "ProviderRegistry": ("aicommits.providers", "ProviderRegistry"),
        "BaseProvider": ("aicommits.providers.base", "BaseProvider"),
        "CommitPipeline": ("aicommits.pipeline", "CommitPipeline"),
        "PipelineState": ("aicommits.pipeline", "PipelineState"),
        "PipelineResult": ("aicommits.pipeline", "PipelineResult"),
        "Session": ("aicommits.session", "Session"),
        "sanitize_message": ("aicommits.messages", "sanitize_message"),
        "build_system_prompt": ("aicommits.prompts", "build_system_prompt"),
        "AICommitsError": ("aicommits.exceptions", "AICommitsError"),
        "ConfigError": ("aicommits.exceptions", "ConfigError"),
        "LLMError": ("aicommits.exceptions", "LLMError"),
        "GitError": ("aicommits.exceptions", "GitError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        value = getattr(import_module(mod_name), attr)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'aicommits' has no attribute {name!r}")
