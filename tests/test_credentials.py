import asyncio
import gc

import pytest

from aicommits import credentials as cred_mod
from aicommits.credentials import (
    GCLOUD_NOT_AUTHENTICATED_MESSAGE,
    GCLOUD_NOT_FOUND_MESSAGE,
    TOKEN_TTL_SECONDS,
    CredentialCache,
    GcloudTokenProvider,
)
from aicommits.exceptions import AuthError


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeTokens:
    def __init__(self, tokens=None, error: Exception | None = None) -> None:
        self.tokens = list(tokens or ["tok-1", "tok-2", "tok-3"])
        self.error = error
        self.calls = 0
        self.gate: asyncio.Event | None = None

    def is_available(self) -> bool:
        return True

    async def fetch_token(self) -> str:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.tokens.pop(0)


@pytest.mark.asyncio
async def test_cache_hit_within_ttl():
    # Given a cache with a controllable clock
    clock = _Clock()
    tokens = _FakeTokens()
    cache = CredentialCache(tokens, clock=clock)

    # When called twice inside the TTL
    first = await cache.get_or_refresh()
    clock.now += TOKEN_TTL_SECONDS - 1
    second = await cache.get_or_refresh()

    # Then one fetch served both
    assert first == second == "tok-1"
    assert tokens.calls == 1
    assert cache.expires_at == 1000.0 + TOKEN_TTL_SECONDS


@pytest.mark.asyncio
async def test_cache_refreshes_after_expiry():
    clock = _Clock()
    tokens = _FakeTokens()
    cache = CredentialCache(tokens, clock=clock)

    assert await cache.get_or_refresh() == "tok-1"
    clock.now += TOKEN_TTL_SECONDS
    assert await cache.get_or_refresh() == "tok-2"
    assert tokens.calls == 2


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_fetch():
    # Given a fetch that blocks until released
    tokens = _FakeTokens()
    tokens.gate = asyncio.Event()
    cache = CredentialCache(tokens, clock=_Clock())

    # When many callers miss at once
    waiters = [asyncio.ensure_future(cache.get_or_refresh()) for _ in range(5)]
    await asyncio.sleep(0)
    tokens.gate.set()
    results = await asyncio.gather(*waiters)

    # Then all receive the same token from a single fetch
    assert results == ["tok-1"] * 5
    assert tokens.calls == 1


@pytest.mark.asyncio
async def test_failure_is_shared_and_not_cached():
    tokens = _FakeTokens(error=AuthError("boom"))
    tokens.gate = asyncio.Event()
    cache = CredentialCache(tokens, clock=_Clock())

    waiters = [asyncio.ensure_future(cache.get_or_refresh()) for _ in range(3)]
    await asyncio.sleep(0)
    tokens.gate.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, AuthError) for r in results)
    assert tokens.calls == 1
    assert cache.expires_at is None

    # Next call starts a fresh fetch
    tokens.error = None
    tokens.gate = None
    assert await cache.get_or_refresh() == "tok-1"
    assert tokens.calls == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch():
    tokens = _FakeTokens()
    tokens.gate = asyncio.Event()
    cache = CredentialCache(tokens, clock=_Clock())

    impatient = asyncio.ensure_future(cache.get_or_refresh())
    patient = asyncio.ensure_future(cache.get_or_refresh())
    await asyncio.sleep(0)
    impatient.cancel()
    await asyncio.sleep(0)
    tokens.gate.set()

    assert await patient == "tok-1"
    assert impatient.cancelled()


def test_clear_drops_token():
    cache = CredentialCache(_FakeTokens(), clock=_Clock())
    cache._credential = cred_mod.Credential(token="t", expires_at=5000.0)
    cache.clear()
    assert cache.expires_at is None


class _Proc:
    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr

    async def communicate(self):
        return self._stdout, self._stderr


def _patch_exec(monkeypatch, proc, seen=None):
    async def fake_exec(*args, **kwargs):
        if seen is not None:
            seen.append(args)
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)


@pytest.mark.asyncio
async def test_gcloud_returns_trimmed_token(monkeypatch):
    monkeypatch.setattr(cred_mod.shutil, "which", lambda name: "/usr/bin/gcloud")
    seen: list = []
    _patch_exec(monkeypatch, _Proc(stdout=b"ya29.token\n"), seen)

    token = await GcloudTokenProvider(timeout=5).fetch_token()

    assert token == "ya29.token"
    assert seen[0] == ("gcloud", "auth", "application-default", "print-access-token")


@pytest.mark.asyncio
async def test_gcloud_missing_binary(monkeypatch):
    monkeypatch.setattr(cred_mod.shutil, "which", lambda name: None)
    provider = GcloudTokenProvider(timeout=5)

    assert provider.is_available() is False
    with pytest.raises(AuthError) as ei:
        await provider.fetch_token()
    assert str(ei.value) == GCLOUD_NOT_FOUND_MESSAGE


@pytest.mark.asyncio
async def test_gcloud_not_authenticated(monkeypatch):
    monkeypatch.setattr(cred_mod.shutil, "which", lambda name: "/usr/bin/gcloud")
    stderr = b"ERROR: Your default credentials were not found."
    _patch_exec(monkeypatch, _Proc(returncode=1, stderr=stderr))

    with pytest.raises(AuthError) as ei:
        await GcloudTokenProvider(timeout=5).fetch_token()
    assert str(ei.value) == GCLOUD_NOT_AUTHENTICATED_MESSAGE


@pytest.mark.asyncio
async def test_gcloud_other_failure(monkeypatch):
    monkeypatch.setattr(cred_mod.shutil, "which", lambda name: "/usr/bin/gcloud")
    _patch_exec(monkeypatch, _Proc(returncode=2, stderr=b"quota exceeded\n"))

    with pytest.raises(AuthError) as ei:
        await GcloudTokenProvider(timeout=5).fetch_token()
    assert str(ei.value) == "Failed to get access token: quota exceeded"


@pytest.mark.asyncio
async def test_gcloud_empty_token(monkeypatch):
    monkeypatch.setattr(cred_mod.shutil, "which", lambda name: "/usr/bin/gcloud")
    _patch_exec(monkeypatch, _Proc(stdout=b"  \n"))

    with pytest.raises(AuthError) as ei:
        await GcloudTokenProvider(timeout=5).fetch_token()
    assert str(ei.value) == "Empty token received from gcloud"


def test_timeout_from_environment(monkeypatch):
    monkeypatch.setenv("AICOMMITS_TOKEN_TIMEOUT", "7.5")
    assert GcloudTokenProvider().timeout == 7.5


@pytest.mark.asyncio
async def test_failed_fetch_abandoned_by_all_waiters_is_not_reported():
    # Given a loop that records unhandled exception reports
    loop = asyncio.get_running_loop()
    reports: list = []
    loop.set_exception_handler(lambda _loop, context: reports.append(context))
    tokens = _FakeTokens(error=AuthError("boom"))
    tokens.gate = asyncio.Event()
    cache = CredentialCache(tokens, clock=_Clock())

    # When the only waiter gives up before the fetch fails
    waiter = asyncio.ensure_future(cache.get_or_refresh())
    await asyncio.sleep(0)
    inflight = cache._inflight
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    tokens.gate.set()
    for _ in range(5):
        await asyncio.sleep(0)

    # Then the failure was consumed rather than logged as never retrieved
    assert inflight.done()
    del inflight
    gc.collect()
    loop.set_exception_handler(None)
    assert reports == []
    assert cache.expires_at is None
