from collections.abc import Generator

import pytest

_ENV_KEYS = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "AICOMMITS_OPENAI_API_KEY",
    "AICOMMITS_GEMINI_API_KEY",
    "AICOMMITS_PROVIDER",
    "AICOMMITS_DEBUG",
    "AICOMMITS_REQUEST_TIMEOUT",
    "AICOMMITS_TOKEN_TIMEOUT",
    "GOOGLE_APPLICATION_CREDENTIALS",
)


@pytest.fixture(autouse=True)
def reset_config(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    # Ensure no developer credentials or overrides leak into tests
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    from aicommits.config import clear_active_config

    clear_active_config()
    yield
    clear_active_config()
