from __future__ import annotations

"""Custom endpoint: reuses the OpenAI-compatible chat completion format."""

from .openai_client import OpenAIClient


class CustomClient(OpenAIClient):
    name = "custom"

    def listing_request(self, config):
        # Unknown servers may not expose /models; readiness is decided from
        # the presence of an endpoint and a key instead.
        return None

    def check_credential(self, credential: str) -> str | None:
        return None
