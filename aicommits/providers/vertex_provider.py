"""Vertex AI backend authenticated with gcloud application-default tokens."""

from __future__ import annotations

from typing import Any, Mapping

from ..credentials import CredentialCache
from ..http import HttpTransport
from ..prompts import build_system_prompt
from .base import (
    BaseProvider,
    ProviderCapabilities,
    ProviderConfig,
    build_gemini_body,
    commitlint_rules,
    extract_gemini_candidates,
    resolve_max_length,
)

ENDPOINT_TEMPLATE = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:generateContent"
)
DEFAULT_LOCATION = "us-central1"
# Not user selectable
CANDIDATE_COUNT = 3

GCLOUD_REQUIRED = (
    "gcloud CLI is required for Vertex AI authentication. "
    "Install from: https://cloud.google.com/sdk/install"
)


class VertexProvider(BaseProvider):
    name = "vertex"
    display_name = "Vertex AI"

    def __init__(self, http: HttpTransport, credentials: CredentialCache) -> None:
        super().__init__(http)
        self.credentials = credentials

    def build_url(self, config: ProviderConfig) -> str:
        location = config.get("location") or DEFAULT_LOCATION
        return ENDPOINT_TEMPLATE.format(
            location=location,
            project=config.get("project"),
            model=config.get("model") or "gemini-2.0-flash-lite",
        )

    def build_request_body(self, diff: str, config: ProviderConfig) -> dict[str, Any]:
        prompt = build_system_prompt(resolve_max_length(config), commitlint_rules(config))
        return build_gemini_body(prompt, diff, config, CANDIDATE_COUNT)

    def extract_candidates(self, response: Mapping[str, Any]) -> list[str]:
        return extract_gemini_candidates(response)

    def validate_config(self, config: ProviderConfig) -> tuple[bool, list[str]]:
        errors = self._validate_common(config)
        project = config.get("project")
        if not isinstance(project, str) or not project:
            errors.append("project is required and must be a non-empty string")
        location = config.get("location")
        if not isinstance(location, str) or not location:
            errors.append("location is required and must be a non-empty string")
        if not self.credentials.is_available():
            errors.append(GCLOUD_REQUIRED)
        return not errors, errors

    async def get_auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        token = await self.credentials.get_or_refresh()
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_streaming=False,
            supports_multiple_generations=True,
            max_generations=CANDIDATE_COUNT,
        )
