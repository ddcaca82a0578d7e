"""Google Gemini API (AI Studio) backend using a static API key."""

from __future__ import annotations

from typing import Any, Mapping

from ..exceptions import AuthError
from ..prompts import build_system_prompt
from .base import (
    BaseProvider,
    ProviderCapabilities,
    ProviderConfig,
    build_gemini_body,
    commitlint_rules,
    extract_gemini_candidates,
    resolve_max_length,
    resolve_secret,
)

ENDPOINT_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
PLUGIN_KEY_ENV = "AICOMMITS_GEMINI_API_KEY"
GENERIC_KEY_ENV = "GEMINI_API_KEY"
# candidateCount tops out at 8
MAX_GENERATIONS = 8

API_KEY_MISSING = (
    "API key not found. Set 'providers[\"gemini-api\"].api_key' in config or "
    f"environment variable {PLUGIN_KEY_ENV} or {GENERIC_KEY_ENV}"
)


class GeminiAPIProvider(BaseProvider):
    name = "gemini-api"
    display_name = "Gemini"

    def get_api_key(self, config: ProviderConfig) -> str | None:
        return resolve_secret(config, PLUGIN_KEY_ENV, GENERIC_KEY_ENV)

    def build_url(self, config: ProviderConfig) -> str:
        endpoint = config.get("endpoint")
        if endpoint:
            return endpoint
        return ENDPOINT_TEMPLATE.format(model=config.get("model") or "gemini-2.5-flash")

    def build_request_body(self, diff: str, config: ProviderConfig) -> dict[str, Any]:
        prompt = build_system_prompt(resolve_max_length(config), commitlint_rules(config))
        return build_gemini_body(prompt, diff, config, config.get("generate") or 1)

    def extract_candidates(self, response: Mapping[str, Any]) -> list[str]:
        return extract_gemini_candidates(response)

    def validate_config(self, config: ProviderConfig) -> tuple[bool, list[str]]:
        errors = self._validate_common(config)
        errors += self._validate_generate(config, MAX_GENERATIONS)
        if not self.get_api_key(config):
            errors.append(API_KEY_MISSING)
        return not errors, errors

    async def get_auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        api_key = self.get_api_key(config)
        if not api_key:
            raise AuthError(f"Gemini {API_KEY_MISSING}")
        return {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_streaming=True,
            supports_multiple_generations=True,
            max_generations=MAX_GENERATIONS,
        )
