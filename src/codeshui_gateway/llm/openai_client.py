from __future__ import annotations

from typing import Any, Dict

from .base import GenerationRequest, ProviderAdapter, SSEAdapterMixin, WireRequest, endpoint_for


class OpenAIClient(SSEAdapterMixin, ProviderAdapter):
    """Wire format of the OpenAI Chat Completion endpoint.

    Any endpoint speaking the same REST dialect (see `CustomClient`) reuses
    this adapter with a different base URL.
    """

    name = "openai"
    DEFAULT_SYSTEM_PROMPT = "You are a helpful coding assistant."
    KEY_PREFIX = "sk-"
    MIN_KEY_LENGTH = 20

    def _headers(self, credential: str | None) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credential or ''}",
            "Content-Type": "application/json",
        }

    def build_request(self, request: GenerationRequest, stream: bool = False) -> WireRequest:
        config = request.config
        payload: Dict[str, Any] = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": request.system_prompt or self.DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": request.prompt},
            ],
            "temperature": config.temperature,
            "max_tokens": config.max_output_tokens,
        }
        if stream:
            payload["stream"] = True
        return WireRequest(
            url=f"{endpoint_for(config)}/chat/completions",
            headers=self._headers(config.credential),
            body=payload,
        )

    def extract_content(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]

    def delta_from_event(self, event: Dict[str, Any]) -> tuple[str, bool]:
        if event.get("__done__"):
            return "", True
        choices = event.get("choices") or [{}]
        delta = (choices[0] or {}).get("delta") or {}
        return delta.get("content") or "", False

    def listing_request(self, config) -> WireRequest:
        return WireRequest(
            url=f"{endpoint_for(config)}/models",
            method="GET",
            headers={"Authorization": f"Bearer {config.credential or ''}"},
        )

    def check_credential(self, credential: str) -> str | None:
        if credential.startswith(self.KEY_PREFIX) and len(credential) > self.MIN_KEY_LENGTH:
            return None
        return (
            "Invalid OpenAI API key format. Keys start with "
            f"'{self.KEY_PREFIX}' and are longer than {self.MIN_KEY_LENGTH} characters."
        )
