from __future__ import annotations

"""Common interface for all vendor adapters.

Each adapter is a stateless strategy object that knows one vendor's wire
format: how to build a request, how to read a buffered response, how to decode
that vendor's streaming framing and how to check a credential cheaply. The
rest of the gateway only ever talks to this interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, Optional

from .errors import DecodeError, NotReadyError, VendorError
from .registry import PROVIDERS

if TYPE_CHECKING:
    from ..settings import GatewayConfig


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    config: GatewayConfig
    system_prompt: Optional[str] = None

    @property
    def full_prompt(self) -> str:
        """Prompt with the system prompt folded in front of it."""
        if self.system_prompt:
            return f"{self.system_prompt}\n\n{self.prompt}"
        return self.prompt


@dataclass(frozen=True)
class GenerationResult:
    content: str
    usage: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"content": self.content}
        if self.usage is not None:
            data["usage"] = self.usage
        return data


@dataclass(frozen=True)
class StreamChunk:
    delta: str
    is_final: bool = False


@dataclass(frozen=True)
class WireRequest:
    url: str
    method: str = "POST"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


class ProviderAdapter(ABC):
    """Abstract base class for one vendor's wire format."""

    name: str = ""

    @abstractmethod
    def build_request(self, request: GenerationRequest, stream: bool = False) -> WireRequest:
        """Translate a logical request into this vendor's HTTP call."""
        ...

    @abstractmethod
    def extract_content(self, data: Dict[str, Any]) -> str:
        """Return the generated text from a buffered response body."""
        ...

    @abstractmethod
    def delta_from_event(self, event: Dict[str, Any]) -> tuple[str, bool]:
        """Return (text, is_terminal) for one decoded streaming event."""
        ...

    def listing_request(self, config: GatewayConfig) -> WireRequest | None:  # noqa: D401
        """Cheap metadata call used to probe a configuration (None: no probe)."""
        return None

    def check_credential(self, credential: str) -> str | None:
        """Return a reason string when the credential looks malformed."""
        return None

    def parse_response(self, data: Any, model: str = "") -> GenerationResult:
        try:
            content = self.extract_content(data)
        except (KeyError, IndexError, TypeError) as exc:
            raise VendorError(
                self.name,
                model,
                None,
                body=json.dumps(data)[: VendorError.BODY_LIMIT] if data is not None else "",
                reason=f"response is missing generated content ({exc!r})",
            ) from exc
        if not isinstance(content, str):
            raise VendorError(self.name, model, None, reason="generated content is not text")
        usage = data.get("usage") if isinstance(data, dict) else None
        return GenerationResult(content=content, usage=usage)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    def parse_line(self, line: str) -> Dict[str, Any] | None:
        """Turn one framed line into an event; None for lines carrying nothing.

        Raises `DecodeError` for lines that should carry JSON but do not.
        """
        line = line.strip()
        if not line:
            return None
        try:
            event = json.loads(line)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid JSON line: {line[:80]!r}") from exc
        if not isinstance(event, dict):
            raise DecodeError("streaming event is not an object")
        return event

    def decode_stream(self, lines: Iterable[str]) -> Iterator[StreamChunk]:
        for line in lines:
            try:
                event = self.parse_line(line)
                if event is None:
                    continue
                delta, terminal = self.delta_from_event(event)
            except (DecodeError, AttributeError, IndexError, KeyError, TypeError) as exc:
                logging.debug("[stream] %s skipped line: %s", self.name, exc)
                continue
            if delta:
                yield StreamChunk(delta=delta)
            if terminal:
                yield StreamChunk(delta="", is_final=True)
                return
        yield StreamChunk(delta="", is_final=True)


class SSEAdapterMixin:
    """Server-Sent-Events framing shared by the OpenAI-style vendors."""

    DONE = "[DONE]"

    def parse_line(self, line: str) -> Dict[str, Any] | None:
        line = line.rstrip("\r")
        if not line.startswith("data:"):
            return None
        payload = line[len("data:"):]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == self.DONE:
            return {"__done__": True}
        return super().parse_line(payload)  # type: ignore[misc]


def endpoint_for(config: "GatewayConfig") -> str:
    """Configured endpoint, falling back to the vendor's default one."""
    descriptor = PROVIDERS.get(config.provider)
    endpoint = config.endpoint or (descriptor.default_endpoint if descriptor else None)
    if not endpoint:
        raise NotReadyError(f"No endpoint configured for provider '{config.provider}'")
    return endpoint.rstrip("/")
