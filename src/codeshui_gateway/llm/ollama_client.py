from __future__ import annotations

from typing import Any, Dict

from .base import GenerationRequest, ProviderAdapter, WireRequest, endpoint_for


class OllamaClient(ProviderAdapter):
    """Local Ollama server: `/api/generate` with newline-delimited JSON streaming."""

    name = "ollama"

    def build_request(self, request: GenerationRequest, stream: bool = False) -> WireRequest:
        config = request.config
        payload = {
            "model": config.model,
            "prompt": request.full_prompt,
            "stream": stream,
            "options": {
                "temperature": config.temperature,
                "top_p": 0.9,
                "top_k": 40,
            },
        }
        return WireRequest(
            url=f"{endpoint_for(config)}/api/generate",
            headers={"Content-Type": "application/json"},
            body=payload,
        )

    def extract_content(self, data: Dict[str, Any]) -> str:
        return data["response"]

    def delta_from_event(self, event: Dict[str, Any]) -> tuple[str, bool]:
        return event.get("response") or "", bool(event.get("done"))

    def listing_request(self, config) -> WireRequest:
        return WireRequest(url=f"{endpoint_for(config)}/api/tags", method="GET")
