"""Exception hierarchy for aicommits."""

from __future__ import annotations


class AICommitsError(Exception):
    """Base exception for all aicommits errors."""


class ConfigError(AICommitsError):
    """Configuration could not be loaded or resolved."""


class NotFoundError(ConfigError):
    """No provider is registered under the requested name."""


class DisabledError(ConfigError):
    """The requested provider is disabled in configuration."""


class ConfigInvalidError(ConfigError):
    """Provider configuration failed validation.

    ``errors`` keeps every validation message, not only the first one.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class LLMError(AICommitsError):
    """Errors raised while talking to an AI backend."""


class AuthError(LLMError):
    """Missing or unusable credentials (including gcloud CLI problems)."""


class NetworkError(LLMError):
    """Transport level failure before a response body was received."""


class ParseError(LLMError):
    """Response body was not valid JSON."""


class APIError(LLMError):
    """Well-formed response carrying a backend-reported error payload."""


class EmptyResultError(LLMError):
    """No candidate messages were produced, or none survived sanitization."""


class GitError(AICommitsError):
    """Git command failed."""


class NothingStagedError(GitError):
    """There are no staged changes to describe."""
