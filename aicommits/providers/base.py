from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..exceptions import APIError, EmptyResultError, ParseError
from ..http import HttpTransport
from ..messages import process_messages

logger = logging.getLogger(__name__)

NO_CANDIDATES_MESSAGE = "No commit messages were generated. Try again."
NO_VALID_CANDIDATES_MESSAGE = "No valid commit messages were generated. Try again."

ProviderConfig = Mapping[str, Any]


@dataclass(frozen=True)
class ProviderCapabilities:
    supports_streaming: bool = False
    supports_multiple_generations: bool = False
    max_generations: int = 1


def is_number(value: Any) -> bool:
    """True for ints and floats; bools are rejected even though they subclass int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_secret(
    config: ProviderConfig, plugin_env: str, generic_env: str, field: str = "api_key"
) -> Optional[str]:
    """Resolve a credential: config field, then plugin env var, then generic env var."""
    value = config.get(field)
    if value:
        return str(value)
    for env_name in (plugin_env, generic_env):
        env_value = os.environ.get(env_name)
        if env_value:
            return env_value
    return None


class BaseProvider(ABC):
    """Abstract base for one AI backend.

    A provider is stateless apart from injected collaborators: everything
    request specific comes from the ``config`` mapping passed per call.
    Subclasses own the request body, the auth headers, the location of
    candidate texts in the response and their own validation rules.
    """

    name: str = ""
    display_name: str = ""

    def __init__(self, http: HttpTransport) -> None:
        self.http = http

    async def generate_commit_message(self, diff: str, config: ProviderConfig) -> list[str]:
        """Return sanitized candidate commit messages for ``diff``.

        Raises:
            AuthError: Credentials are missing.
            NetworkError: The request did not complete.
            ParseError: The body was not JSON.
            APIError: The backend reported an error.
            EmptyResultError: No candidates, or none survived sanitization.
        """
        headers = await self.get_auth_headers(config)
        url = self.build_url(config)
        body = self.build_request_body(diff, config)
        logger.debug("%s: requesting model=%s", self.name, config.get("model"))
        response_body = await self.http.post(url, headers, body)
        return self.parse_response(response_body)

    def parse_response(self, response_body: str) -> list[str]:
        try:
            response = json.loads(response_body)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Failed to parse {self.display_name} API response: {e}") from e
        if not isinstance(response, dict):
            raise ParseError(
                f"Failed to parse {self.display_name} API response: "
                f"expected a JSON object, got {type(response).__name__}"
            )

        error = response.get("error")
        if error:
            detail = error.get("message") if isinstance(error, dict) else None
            raise APIError(f"{self.display_name} API Error: {detail or error!r}")

        candidates = self.extract_candidates(response)
        logger.debug("%s: %d raw candidate(s)", self.name, len(candidates))
        if not candidates:
            raise EmptyResultError(NO_CANDIDATES_MESSAGE)
        processed = process_messages(candidates)
        if not processed:
            raise EmptyResultError(NO_VALID_CANDIDATES_MESSAGE)
        return processed

    @abstractmethod
    def build_url(self, config: ProviderConfig) -> str:
        raise NotImplementedError

    @abstractmethod
    def build_request_body(self, diff: str, config: ProviderConfig) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def extract_candidates(self, response: Mapping[str, Any]) -> list[str]:
        """Pull raw candidate texts out of a decoded response."""
        raise NotImplementedError

    @abstractmethod
    def validate_config(self, config: ProviderConfig) -> tuple[bool, list[str]]:
        raise NotImplementedError

    @abstractmethod
    async def get_auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        raise NotImplementedError

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities()

    # Checks shared by every backend
    def _validate_common(self, config: ProviderConfig) -> list[str]:
        errors: list[str] = []
        model = config.get("model")
        if not isinstance(model, str) or not model:
            errors.append("model is required and must be a non-empty string")
        max_length = config.get("max_length")
        if max_length is not None and (not is_number(max_length) or max_length <= 0):
            errors.append("max_length must be a positive number")
        temperature = config.get("temperature")
        if temperature is not None and (
            not is_number(temperature) or temperature < 0 or temperature > 2
        ):
            errors.append("temperature must be a number between 0 and 2")
        max_tokens = config.get("max_tokens")
        if max_tokens is not None and (not is_number(max_tokens) or max_tokens <= 0):
            errors.append("max_tokens must be a positive number")
        return errors

    def _validate_generate(self, config: ProviderConfig, upper: int) -> list[str]:
        generate = config.get("generate")
        if generate is not None and (not is_number(generate) or generate < 1 or generate > upper):
            return [f"generate must be a number between 1 and {upper}"]
        return []


def extract_gemini_candidates(response: Mapping[str, Any]) -> list[str]:
    """Collect ``candidates[].content.parts[].text`` skipping empty parts."""
    texts: list[str] = []
    for candidate in response.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict):
            continue
        for part in content.get("parts") or []:
            if isinstance(part, dict):
                text = part.get("text")
                if isinstance(text, str) and text:
                    texts.append(text)
    return texts


def build_gemini_body(
    prompt: str, diff: str, config: ProviderConfig, candidate_count: int
) -> dict[str, Any]:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": f"{prompt}\n\n{diff}"}],
            }
        ],
        "generationConfig": {
            "temperature": config.get("temperature", 0.7),
            "maxOutputTokens": config.get("max_tokens", 200),
            "candidateCount": candidate_count,
        },
    }


def commitlint_rules(config: ProviderConfig) -> Optional[str]:
    rules = config.get("commitlint_rules")
    return rules if isinstance(rules, str) else None


def resolve_max_length(config: ProviderConfig) -> int:
    return config.get("max_length") or 50

