"""Process-level state: provider registry, token cache and HTTP client."""

from __future__ import annotations

from typing import Optional

from .commitlint import get_commitlint_rules
from .config import Config, get_active_config
from .credentials import CredentialCache, GcloudTokenProvider, TokenProvider
from .git import GitRepo
from .http import HttpTransport
from .pipeline import CommitPipeline, Selector, StateListener
from .providers import ProviderRegistry, build_default_registry


class Session:
    """Owns the shared collaborators for the lifetime of the tool.

    Use as an async context manager so the HTTP client is closed on exit.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        http: Optional[HttpTransport] = None,
        token_provider: Optional[TokenProvider] = None,
        registry: Optional[ProviderRegistry] = None,
    ) -> None:
        self.config = config or get_active_config()
        self.http = http or HttpTransport()
        self.credentials = CredentialCache(token_provider or GcloudTokenProvider())
        self.registry = registry or build_default_registry(self.http, self.credentials)

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def pipeline(
        self,
        selector: Selector,
        repo: Optional[GitRepo] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> CommitPipeline:
        git_repo = repo or GitRepo(self.config.git_repo_path)
        return CommitPipeline(
            registry=self.registry,
            config=self.config,
            diff_source=git_repo,
            commit_writer=git_repo,
            selector=selector,
            rules_lookup=get_commitlint_rules,
            on_state_change=on_state_change,
        )
