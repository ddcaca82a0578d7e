"""Git operations for aicommits."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import GitError

logger = logging.getLogger(__name__)

# Lock files are noise for message generation.
EXCLUDE_PATHSPECS = (
    ":(exclude)package-lock.json",
    ":(exclude)pnpm-lock.yaml",
    ":(exclude)*.lock",
)
DIFF_ARGS = ("diff", "--cached", "--diff-algorithm=minimal")


@dataclass(frozen=True)
class StagedDiff:
    """Staged changes captured for one pipeline run."""

    files: tuple[str, ...]
    diff_text: str


def find_git_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the top-level directory of the repository holding ``start_path``."""
    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        result = None
    if result is not None and result.returncode == 0 and result.stdout.strip():
        return Path(result.stdout.strip())
    # Fall back to looking for a .git entry upwards.
    return next((p for p in (path, *path.parents) if (p / ".git").exists()), None)


class GitRepo:
    """Async Git plumbing: staged diff capture and commit creation."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        self.repo_path = Path(repo_path or ".")

    async def _run_git(self, args: list[str]) -> tuple[int, str, str]:
        """Run git and return ``(returncode, stdout, stderr)``."""
        logger.debug("git %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                "git",
                *args,
                cwd=str(self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise GitError("Git command not found. Please install Git.") from exc
        stdout, stderr = await proc.communicate()
        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )

    async def is_git_repo(self) -> bool:
        try:
            code, _out, _err = await self._run_git(["rev-parse", "--is-inside-work-tree"])
        except GitError:
            return False
        return code == 0

    async def get_staged_diff(self) -> Optional[StagedDiff]:
        """Return staged files and diff text, or ``None`` when nothing is staged."""
        code, files_output, _err = await self._run_git(
            [*DIFF_ARGS, "--name-only", "--", ".", *EXCLUDE_PATHSPECS]
        )
        if code != 0:
            raise GitError("Failed to get staged files")

        files: list[str] = []
        for line in files_output.splitlines():
            path = line.strip()
            if path and path not in files:
                files.append(path)
        if not files:
            return None

        code, diff_output, _err = await self._run_git(
            [*DIFF_ARGS, "--", ".", *EXCLUDE_PATHSPECS]
        )
        if code != 0:
            raise GitError("Failed to get staged diff")
        return StagedDiff(files=tuple(files), diff_text=diff_output)

    async def create_commit(self, message: str) -> None:
        """Create a commit with exactly ``message``."""
        code, stdout, stderr = await self._run_git(["commit", "-m", message])
        if code != 0:
            output = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
            raise GitError(f"Git commit failed: {output}")

    async def get_last_commit_sha(self) -> Optional[str]:
        code, stdout, _err = await self._run_git(["log", "-1", "--pretty=%H"])
        if code != 0:
            return None
        return stdout.strip() or None
