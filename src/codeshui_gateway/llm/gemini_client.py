from __future__ import annotations

"""Google Generative Language (Gemini) REST wire format.

The key travels in the query string; there is no auth header.
"""

from typing import Any, Dict
from urllib.parse import quote

from .base import GenerationRequest, ProviderAdapter, WireRequest, endpoint_for


class GeminiClient(ProviderAdapter):
    name = "google"
    API_PATH = "/v1beta"
    MIN_KEY_LENGTH = 20

    def build_request(self, request: GenerationRequest, stream: bool = False) -> WireRequest:
        config = request.config
        method = "streamGenerateContent" if stream else "generateContent"
        url = (
            f"{endpoint_for(config)}{self.API_PATH}/models/{config.model}:{method}"
            f"?key={quote(config.credential or '', safe='')}"
        )
        payload = {
            "contents": [{"parts": [{"text": request.full_prompt}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_output_tokens,
            },
        }
        return WireRequest(url=url, headers={"Content-Type": "application/json"}, body=payload)

    def extract_content(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]

    def parse_line(self, line: str) -> Dict[str, Any] | None:
        # streamGenerateContent answers with one JSON array; each element sits
        # on its own line with the array punctuation around it.
        line = line.strip()
        if line.startswith(("[", ",")):
            line = line[1:]
        if line.endswith(("]", ",")):
            line = line[:-1]
        return super().parse_line(line)

    def delta_from_event(self, event: Dict[str, Any]) -> tuple[str, bool]:
        candidates = event.get("candidates") or [{}]
        candidate = candidates[0] or {}
        parts = (candidate.get("content") or {}).get("parts") or [{}]
        text = (parts[0] or {}).get("text") or ""
        return text, bool(candidate.get("finishReason"))

    def listing_request(self, config) -> WireRequest:
        return WireRequest(
            url=f"{endpoint_for(config)}{self.API_PATH}/models?key={quote(config.credential or '', safe='')}",
            method="GET",
        )

    def check_credential(self, credential: str) -> str | None:
        if len(credential) > self.MIN_KEY_LENGTH:
            return None
        return f"Invalid Google API key format. Keys are longer than {self.MIN_KEY_LENGTH} characters."
