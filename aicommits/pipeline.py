"""Commit workflow: staged diff -> provider -> selection -> commit.

Every step awaits the previous one; no step starts before its predecessor's
result is known. The first error stops the run with no compensating work.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, Tuple, Union

from .config import Config
from .exceptions import AICommitsError, EmptyResultError, GitError, NothingStagedError
from .git import StagedDiff
from .providers import ProviderRegistry
from .providers.base import NO_CANDIDATES_MESSAGE

logger = logging.getLogger(__name__)

NOTHING_STAGED_MESSAGE = (
    "No staged changes found. Stage your changes with 'git add' first."
)


class PipelineState(str, Enum):
    IDLE = "idle"
    COLLECTING_DIFF = "collecting_diff"
    RESOLVING_PROVIDER = "resolving_provider"
    GENERATING_MESSAGES = "generating_messages"
    AWAITING_SELECTION = "awaiting_selection"
    COMMITTING = "committing"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {PipelineState.DONE, PipelineState.ERROR, PipelineState.CANCELLED}
)

_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.COLLECTING_DIFF, PipelineState.ERROR}),
    PipelineState.COLLECTING_DIFF: frozenset(
        {PipelineState.RESOLVING_PROVIDER, PipelineState.ERROR}
    ),
    PipelineState.RESOLVING_PROVIDER: frozenset(
        {PipelineState.GENERATING_MESSAGES, PipelineState.ERROR}
    ),
    PipelineState.GENERATING_MESSAGES: frozenset(
        {PipelineState.AWAITING_SELECTION, PipelineState.ERROR}
    ),
    PipelineState.AWAITING_SELECTION: frozenset(
        {PipelineState.COMMITTING, PipelineState.CANCELLED, PipelineState.ERROR}
    ),
    PipelineState.COMMITTING: frozenset({PipelineState.DONE, PipelineState.ERROR}),
}


class DiffSource(Protocol):
    async def get_staged_diff(self) -> Optional[StagedDiff]:
        ...


class CommitWriter(Protocol):
    async def create_commit(self, message: str) -> None:
        ...


Selector = Callable[[list[str]], Awaitable[Optional[str]]]
RulesLookup = Callable[[Union[str, Path]], Tuple[Optional[str], bool]]
StateListener = Callable[[PipelineState, "PipelineRun"], None]


@dataclass
class PipelineRun:
    """Ephemeral state of one invocation."""

    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    diff: Optional[StagedDiff] = None
    provider_name: Optional[str] = None
    messages: list[str] = field(default_factory=list)
    selected: Optional[str] = None
    error: Optional[AICommitsError] = None

    def transition(self, new_state: PipelineState) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise RuntimeError(
                f"Invalid pipeline transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("pipeline: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class PipelineResult:
    state: PipelineState
    message: Optional[str] = None
    messages: list[str] = field(default_factory=list)
    files: tuple[str, ...] = ()
    error: Optional[AICommitsError] = None
    history: list[PipelineState] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def cancelled(self) -> bool:
        return self.state is PipelineState.CANCELLED


class CommitPipeline:
    """Drive one commit from staged diff to ``git commit``.

    Collaborators are injected so the same pipeline runs against real git
    and HTTP or against test doubles.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: Config,
        diff_source: DiffSource,
        commit_writer: CommitWriter,
        selector: Selector,
        rules_lookup: Optional[RulesLookup] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.diff_source = diff_source
        self.commit_writer = commit_writer
        self.selector = selector
        self.rules_lookup = rules_lookup
        self.on_state_change = on_state_change
        self._run: Optional[PipelineRun] = None
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def current_run(self) -> Optional[PipelineRun]:
        return self._run

    def cancel(self) -> bool:
        """Cancel a pending selection.

        Returns True if the run was awaiting selection; at any other point
        the request is ignored.
        """
        run = self._run
        if run is None or run.state is not PipelineState.AWAITING_SELECTION:
            return False
        if self._cancel_event is not None:
            self._cancel_event.set()
        return True

    async def run(self) -> PipelineResult:
        if self._run is not None and not self._run.finished:
            raise RuntimeError("A pipeline run is already in progress")
        run = PipelineRun()
        self._run = run
        self._cancel_event = asyncio.Event()
        try:
            await self._execute(run, self._cancel_event)
        except AICommitsError as e:
            logger.debug("pipeline failed in %s: %s", run.state.value, e)
            run.error = e
            self._enter(run, PipelineState.ERROR)
        finally:
            self._cancel_event = None
            if not run.finished:
                # Anything else escaping a step still ends the run.
                logger.debug("pipeline aborted in %s", run.state.value)
                run.transition(PipelineState.ERROR)
        return PipelineResult(
            state=run.state,
            message=run.selected if run.state is PipelineState.DONE else None,
            messages=list(run.messages),
            files=run.diff.files if run.diff else (),
            error=run.error,
            history=list(run.history),
        )

    def _enter(self, run: PipelineRun, state: PipelineState) -> None:
        run.transition(state)
        if self.on_state_change is not None:
            self.on_state_change(state, run)

    async def _execute(self, run: PipelineRun, cancel_event: asyncio.Event) -> None:
        self._enter(run, PipelineState.COLLECTING_DIFF)
        is_git_repo = getattr(self.diff_source, "is_git_repo", None)
        if is_git_repo is not None and not await is_git_repo():
            raise GitError("Not in a git repository")
        diff = await self.diff_source.get_staged_diff()
        if diff is None:
            raise NothingStagedError(NOTHING_STAGED_MESSAGE)
        run.diff = diff

        self._enter(run, PipelineState.RESOLVING_PROVIDER)
        provider, resolved = self.registry.get_active_provider(self.config)
        run.provider_name = self.config.active_provider
        provider_config = dict(resolved)
        rules = await self._lookup_rules()
        if rules is not None:
            provider_config["commitlint_rules"] = rules

        self._enter(run, PipelineState.GENERATING_MESSAGES)
        messages = await provider.generate_commit_message(diff.diff_text, provider_config)
        if not messages:
            raise EmptyResultError(NO_CANDIDATES_MESSAGE)
        run.messages = list(messages)

        self._enter(run, PipelineState.AWAITING_SELECTION)
        selected = await self._await_selection(run.messages, cancel_event)
        if selected is None or not selected.strip():
            self._enter(run, PipelineState.CANCELLED)
            return
        run.selected = selected

        self._enter(run, PipelineState.COMMITTING)
        await self.commit_writer.create_commit(selected)
        self._enter(run, PipelineState.DONE)

    async def _lookup_rules(self) -> Optional[str]:
        if not self.config.commitlint or self.rules_lookup is None:
            return None
        # The lookup may shell out to the commitlint CLI; keep it off the loop.
        rules, resolved = await asyncio.to_thread(
            self.rules_lookup, self.config.git_repo_path
        )
        if rules:
            logger.debug("injecting commitlint rules (resolved=%s)", resolved)
        return rules or None

    async def _await_selection(
        self, messages: list[str], cancel_event: asyncio.Event
    ) -> Optional[str]:
        selection = asyncio.ensure_future(self.selector(list(messages)))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({selection, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not selection.done():
                selection.cancel()
            cancelled.cancel()
        if not selection.done() or selection.cancelled():
            return None
        return selection.result()
