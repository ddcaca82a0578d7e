import asyncio
import subprocess

import pytest

from aicommits.exceptions import GitError
from aicommits.git import DIFF_ARGS, EXCLUDE_PATHSPECS, GitRepo, find_git_repo_root


class _Proc:
    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.returncode = returncode
        self._out = stdout
        self._err = stderr

    async def communicate(self):
        return self._out, self._err


def _fake_exec(monkeypatch, responses):
    """Replay ``responses`` in order and record each git argv."""
    calls: list[tuple] = []

    async def fake(*args, **kwargs):
        calls.append(args)
        return responses.pop(0)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    return calls


@pytest.mark.asyncio
async def test_get_staged_diff_returns_files_and_diff(monkeypatch, tmp_path):
    # Given git reports staged files and a diff
    calls = _fake_exec(
        monkeypatch,
        [
            _Proc(stdout=b"src/a.py\nsrc/b.py\nsrc/a.py\n"),
            _Proc(stdout=b"diff --git a/src/a.py b/src/a.py\n"),
        ],
    )

    # When
    staged = await GitRepo(str(tmp_path)).get_staged_diff()

    # Then lock files are excluded and duplicate names collapse
    assert staged.files == ("src/a.py", "src/b.py")
    assert staged.diff_text.startswith("diff --git")
    assert calls[0] == ("git", *DIFF_ARGS, "--name-only", "--", ".", *EXCLUDE_PATHSPECS)
    assert calls[1] == ("git", *DIFF_ARGS, "--", ".", *EXCLUDE_PATHSPECS)


@pytest.mark.asyncio
async def test_get_staged_diff_none_when_nothing_staged(monkeypatch, tmp_path):
    calls = _fake_exec(monkeypatch, [_Proc(stdout=b"\n")])
    assert await GitRepo(str(tmp_path)).get_staged_diff() is None
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_get_staged_diff_failure(monkeypatch, tmp_path):
    _fake_exec(monkeypatch, [_Proc(returncode=128, stderr=b"fatal")])
    with pytest.raises(GitError) as ei:
        await GitRepo(str(tmp_path)).get_staged_diff()
    assert str(ei.value) == "Failed to get staged files"


@pytest.mark.asyncio
async def test_create_commit_passes_message_verbatim(monkeypatch, tmp_path):
    calls = _fake_exec(monkeypatch, [_Proc()])
    await GitRepo(str(tmp_path)).create_commit("feat(api): add endpoint")
    assert calls[0] == ("git", "commit", "-m", "feat(api): add endpoint")


@pytest.mark.asyncio
async def test_create_commit_failure_includes_output(monkeypatch, tmp_path):
    _fake_exec(monkeypatch, [_Proc(returncode=1, stdout=b"husky > commit-msg\n", stderr=b"subject-case\n")])
    with pytest.raises(GitError) as ei:
        await GitRepo(str(tmp_path)).create_commit("Feat: Bad")
    assert str(ei.value) == "Git commit failed: husky > commit-msg\nsubject-case"


@pytest.mark.asyncio
async def test_git_missing(monkeypatch, tmp_path):
    async def fake(*args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    repo = GitRepo(str(tmp_path))
    with pytest.raises(GitError) as ei:
        await repo.create_commit("x")
    assert "Git command not found" in str(ei.value)
    assert await repo.is_git_repo() is False


@pytest.mark.asyncio
async def test_last_commit_sha(monkeypatch, tmp_path):
    _fake_exec(monkeypatch, [_Proc(stdout=b"abc123\n")])
    assert await GitRepo(str(tmp_path)).get_last_commit_sha() == "abc123"


def test_find_git_repo_root_falls_back_to_walk(monkeypatch, tmp_path):
    # Given git itself is unavailable
    def fake_run(*args, **kwargs):
        raise FileNotFoundError()

    monkeypatch.setattr(subprocess, "run", fake_run)
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "pkg" / "sub"
    nested.mkdir(parents=True)

    # When/Then the parent with .git is found
    assert find_git_repo_root(nested) == tmp_path.resolve()


def test_find_git_repo_root_uses_rev_parse(monkeypatch, tmp_path):
    class _R:
        returncode = 0
        stdout = f"{tmp_path}\n"

    monkeypatch.setattr(subprocess, "run", lambda *args, **kwargs: _R())
    assert find_git_repo_root(tmp_path / "sub") == tmp_path
