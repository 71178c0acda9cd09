from __future__ import annotations

"""Anthropic Messages API wire format.

Requests are plain JSON over `requests`, same as every other vendor here; the
official SDK is not needed for two endpoints.
"""

from typing import Any, Dict

from .base import GenerationRequest, ProviderAdapter, SSEAdapterMixin, WireRequest, endpoint_for


class AnthropicClient(SSEAdapterMixin, ProviderAdapter):
    name = "anthropic"
    API_VERSION = "2023-06-01"  # required header
    KEY_PREFIX = "sk-ant-"
    MIN_KEY_LENGTH = 20

    def _headers(self, credential: str | None) -> Dict[str, str]:
        return {
            "x-api-key": credential or "",
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def build_request(self, request: GenerationRequest, stream: bool = False) -> WireRequest:
        config = request.config
        payload: Dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_output_tokens,
            "messages": [{"role": "user", "content": request.full_prompt}],
        }
        if stream:
            payload["stream"] = True
        return WireRequest(
            url=f"{endpoint_for(config)}/v1/messages",
            headers=self._headers(config.credential),
            body=payload,
        )

    def extract_content(self, data: Dict[str, Any]) -> str:
        return data["content"][0]["text"]

    def delta_from_event(self, event: Dict[str, Any]) -> tuple[str, bool]:
        if event.get("__done__") or event.get("type") == "message_stop":
            return "", True
        if event.get("type") == "content_block_delta":
            return (event.get("delta") or {}).get("text") or "", False
        return "", False

    def listing_request(self, config) -> WireRequest:
        headers = self._headers(config.credential)
        headers.pop("Content-Type")
        return WireRequest(url=f"{endpoint_for(config)}/v1/models", method="GET", headers=headers)

    def check_credential(self, credential: str) -> str | None:
        if credential.startswith(self.KEY_PREFIX) and len(credential) > self.MIN_KEY_LENGTH:
            return None
        return (
            "Invalid Anthropic API key format. Keys start with "
            f"'{self.KEY_PREFIX}' and are longer than {self.MIN_KEY_LENGTH} characters."
        )
