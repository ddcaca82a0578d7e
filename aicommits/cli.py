"""Command-line interface for aicommits."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import load_config
from .exceptions import AICommitsError
from .git import GitRepo, find_git_repo_root
from .pipeline import PipelineResult, PipelineRun, PipelineState
from .session import Session
from .ui import AutoSelector, TerminalSelector

RESET = "\033[0m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
CYAN = "\033[96m"

STATUS_LINES = {
    PipelineState.COLLECTING_DIFF: "Reading staged changes...",
    PipelineState.RESOLVING_PROVIDER: "Resolving provider...",
    PipelineState.GENERATING_MESSAGES: "Generating commit messages...",
    PipelineState.COMMITTING: "Creating commit...",
}


class CLI:
    """argparse front end that drives a single pipeline run."""

    def __init__(self) -> None:
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="aicommits",
            description="Generate a commit message for your staged changes with AI",
        )
        parser.add_argument(
            "--provider",
            help="Provider to use for this run (openai, gemini-api, vertex)",
        )
        parser.add_argument(
            "--repo-path",
            default=".",
            help="Path to the git repository (default: current directory)",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Commit with the first generated message without prompting",
        )
        parser.add_argument(
            "--no-commitlint",
            action="store_true",
            help="Do not inject commitlint rules into the prompt",
        )
        parser.add_argument(
            "--list-providers",
            action="store_true",
            help="List registered providers and exit",
        )
        parser.add_argument(
            "--debug",
            action="store_true",
            help="Enable debug logging",
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {__version__}"
        )
        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        parsed = self.parser.parse_args(args)

        logging.basicConfig(
            level=logging.DEBUG if parsed.debug else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )

        repo_root = self._resolve_repo_root(parsed.repo_path)
        overrides: dict = {}
        if parsed.provider:
            overrides["active_provider"] = parsed.provider
        if parsed.no_commitlint:
            overrides["commitlint"] = False
        if parsed.debug:
            overrides["debug"] = True

        try:
            config = load_config(repo_root=repo_root, overrides=overrides)
        except AICommitsError as e:
            self._print_error(str(e))
            return 1

        if parsed.list_providers:
            return asyncio.run(self._list_providers(config))

        selector = AutoSelector() if parsed.yes else TerminalSelector()
        result, sha = asyncio.run(self._commit(config, selector))
        return self._report(result, sha)

    def _resolve_repo_root(self, repo_path: str) -> Path:
        base = Path(repo_path).expanduser().resolve(strict=False)
        return find_git_repo_root(base) or base

    async def _list_providers(self, config) -> int:
        async with Session(config) as session:
            for name in session.registry.list():
                marker = "*" if name == config.active_provider else " "
                provider_cfg = config.provider_config(name) or {}
                state = "enabled" if provider_cfg.get("enabled") else "disabled"
                print(f"{marker} {name:<12} {state:<9} {provider_cfg.get('model', '')}")
        return 0

    async def _commit(
        self, config, selector
    ) -> tuple[PipelineResult, Optional[str]]:
        repo = GitRepo(config.git_repo_path)
        async with Session(config) as session:
            pipeline = session.pipeline(
                selector, repo=repo, on_state_change=self._on_state_change
            )
            result = await pipeline.run()
        sha = await repo.get_last_commit_sha() if result.committed else None
        return result, sha

    def _on_state_change(self, state: PipelineState, run: PipelineRun) -> None:
        if state is PipelineState.RESOLVING_PROVIDER and run.diff is not None:
            count = len(run.diff.files)
            noun = "file" if count == 1 else "files"
            print(f"Detected {count} staged {noun}", file=sys.stderr)
        line = STATUS_LINES.get(state)
        if line:
            print(f"{CYAN}{line}{RESET}", file=sys.stderr)

    def _report(self, result: PipelineResult, sha: Optional[str] = None) -> int:
        if result.committed:
            ref = f" [{sha[:7]}]" if sha else ""
            print(f"{GREEN}✓ Committed{ref}:{RESET} {result.message}")
            return 0
        if result.cancelled:
            print(f"{YELLOW}Commit cancelled{RESET}")
            return 0
        self._print_error(str(result.error) if result.error else "Unknown error")
        return 1

    def _print_error(self, message: str) -> None:
        print(f"{RED}Error:{RESET} {message}", file=sys.stderr)


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
