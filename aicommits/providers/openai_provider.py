from __future__ import annotations

from typing import Any, Mapping

from ..exceptions import AuthError
from ..prompts import build_system_prompt
from .base import (
    BaseProvider,
    ProviderCapabilities,
    ProviderConfig,
    commitlint_rules,
    resolve_max_length,
    resolve_secret,
)

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
PLUGIN_KEY_ENV = "AICOMMITS_OPENAI_API_KEY"
GENERIC_KEY_ENV = "OPENAI_API_KEY"
MAX_GENERATIONS = 5

API_KEY_MISSING = (
    "API key not found. Set 'providers.openai.api_key' in config or environment "
    f"variable {PLUGIN_KEY_ENV} or {GENERIC_KEY_ENV}"
)


class OpenAIProvider(BaseProvider):
    """OpenAI / OpenAI-compatible chat completions backend."""

    name = "openai"
    display_name = "OpenAI"

    def get_api_key(self, config: ProviderConfig) -> str | None:
        return resolve_secret(config, PLUGIN_KEY_ENV, GENERIC_KEY_ENV)

    def build_url(self, config: ProviderConfig) -> str:
        return config.get("endpoint") or DEFAULT_ENDPOINT

    def build_request_body(self, diff: str, config: ProviderConfig) -> dict[str, Any]:
        prompt = build_system_prompt(resolve_max_length(config), commitlint_rules(config))
        return {
            "model": config.get("model") or "gpt-4.1-nano",
            "messages": [
                {"role": "system", "content": prompt},
                {"role": "user", "content": diff},
            ],
            "temperature": config.get("temperature", 0.7),
            "top_p": config.get("top_p", 1),
            "frequency_penalty": config.get("frequency_penalty", 0),
            "presence_penalty": config.get("presence_penalty", 0),
            "max_tokens": config.get("max_tokens", 200),
            "stream": False,
            "n": config.get("generate") or 1,
        }

    def extract_candidates(self, response: Mapping[str, Any]) -> list[str]:
        texts: list[str] = []
        for choice in response.get("choices") or []:
            if not isinstance(choice, dict):
                continue
            message = choice.get("message")
            if not isinstance(message, dict):
                continue
            content = message.get("content")
            if isinstance(content, str):
                texts.append(content)
        return texts

    def validate_config(self, config: ProviderConfig) -> tuple[bool, list[str]]:
        errors = self._validate_common(config)
        errors += self._validate_generate(config, MAX_GENERATIONS)
        if not self.get_api_key(config):
            errors.append(API_KEY_MISSING)
        return not errors, errors

    async def get_auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        api_key = self.get_api_key(config)
        if not api_key:
            raise AuthError(f"OpenAI {API_KEY_MISSING}")
        return {"Authorization": f"Bearer {api_key}"}

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_streaming=True,
            supports_multiple_generations=True,
            max_generations=MAX_GENERATIONS,
        )
