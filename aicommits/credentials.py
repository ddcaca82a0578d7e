"""Access-token cache for the Vertex provider.

Tokens come from ``gcloud auth application-default print-access-token``,
which uses ``GOOGLE_APPLICATION_CREDENTIALS`` when set and otherwise the
user's application-default login. Tokens live 60 minutes; the cache keeps
them for 55 so a token never expires between lookup and use.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .config import token_timeout
from .exceptions import AuthError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 55 * 60

GCLOUD_NOT_FOUND_MESSAGE = (
    "gcloud CLI not found. Install from: https://cloud.google.com/sdk/install\n"
    "Or run: brew install google-cloud-sdk"
)
GCLOUD_NOT_AUTHENTICATED_MESSAGE = (
    "gcloud not authenticated. Run one of:\n"
    "  gcloud auth application-default login\n"
    "  export GOOGLE_APPLICATION_CREDENTIALS=/path/to/service-account.json"
)


class TokenProvider(Protocol):
    """Source of short-lived OAuth access tokens."""

    def is_available(self) -> bool:
        ...

    async def fetch_token(self) -> str:
        ...


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: float


class GcloudTokenProvider:
    """Fetch access tokens by shelling out to the gcloud CLI."""

    ARGS = ("auth", "application-default", "print-access-token")

    def __init__(self, executable: str = "gcloud", timeout: Optional[float] = None) -> None:
        self.executable = executable
        self.timeout = timeout if timeout is not None else token_timeout()

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def fetch_token(self) -> str:
        if not self.is_available():
            raise AuthError(GCLOUD_NOT_FOUND_MESSAGE)
        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                *self.ARGS,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AuthError(GCLOUD_NOT_FOUND_MESSAGE) from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise AuthError(
                f"Failed to get access token: gcloud did not respond within {self.timeout:g}s"
            ) from e

        if proc.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip()
            lowered = error_msg.lower()
            if "not authenticated" in lowered or "credentials" in lowered:
                raise AuthError(GCLOUD_NOT_AUTHENTICATED_MESSAGE)
            raise AuthError(f"Failed to get access token: {error_msg}")

        token = stdout.decode(errors="replace").strip()
        if not token:
            raise AuthError("Empty token received from gcloud")
        return token


def _consume_exception(future: "asyncio.Future[str]") -> None:
    # Every waiter may have been cancelled before a failed fetch finishes.
    if not future.cancelled():
        future.exception()


class CredentialCache:
    """Single-flight, time-bounded cache holding at most one access token.

    Concurrent callers that miss the cache share one in-flight fetch. A
    failed fetch clears the cache and is not remembered, so the next call
    starts over.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        ttl: float = TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.token_provider = token_provider
        self.ttl = ttl
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._inflight: Optional[asyncio.Future[str]] = None

    @property
    def expires_at(self) -> Optional[float]:
        return self._credential.expires_at if self._credential else None

    def is_available(self) -> bool:
        return self.token_provider.is_available()

    def clear(self) -> None:
        self._credential = None

    async def get_or_refresh(self) -> str:
        credential = self._credential
        if credential is not None and self._clock() < credential.expires_at:
            logger.debug("access token cache hit")
            return credential.token

        if self._inflight is None:
            logger.debug("access token cache miss; fetching")
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(_consume_exception)
        else:
            logger.debug("joining in-flight access token fetch")
        # A cancelled waiter must not cancel the fetch other callers share.
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> str:
        try:
            token = await self.token_provider.fetch_token()
        except Exception:
            self.clear()
            raise
        finally:
            self._inflight = None
        self._credential = Credential(token=token, expires_at=self._clock() + self.ttl)
        return token
