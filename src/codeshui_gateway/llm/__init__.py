from __future__ import annotations

"""Vendor adapters and the translation helpers built on them."""

from typing import Any, Dict

from .anthropic_client import AnthropicClient
from .base import GenerationRequest, GenerationResult, ProviderAdapter, StreamChunk, WireRequest
from .custom_client import CustomClient
from .errors import (
    ConfigInvalid,
    CredentialMalformed,
    CredentialMissing,
    DecodeError,
    GatewayError,
    NotReadyError,
    TransportError,
    VendorError,
)
from .gemini_client import GeminiClient
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient
from .registry import PROVIDERS, RELAYED_PROVIDERS, ProviderDescriptor, get_descriptor, is_known_model

__all__ = [
    "get_adapter",
    "to_wire_request",
    "from_wire_response",
    "AnthropicClient",
    "CustomClient",
    "GeminiClient",
    "OllamaClient",
    "OpenAIClient",
    "GenerationRequest",
    "GenerationResult",
    "ProviderAdapter",
    "StreamChunk",
    "WireRequest",
    "PROVIDERS",
    "RELAYED_PROVIDERS",
    "ProviderDescriptor",
    "get_descriptor",
    "is_known_model",
    "ConfigInvalid",
    "CredentialMalformed",
    "CredentialMissing",
    "DecodeError",
    "GatewayError",
    "NotReadyError",
    "TransportError",
    "VendorError",
]

_ADAPTERS: Dict[str, ProviderAdapter] = {
    "ollama": OllamaClient(),
    "openai": OpenAIClient(),
    "anthropic": AnthropicClient(),
    "google": GeminiClient(),
    "custom": CustomClient(),
}


def get_adapter(provider: str) -> ProviderAdapter:
    """Return the wire-format adapter for the given provider."""
    try:
        return _ADAPTERS[provider]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {provider}") from None


def to_wire_request(vendor: str, request: GenerationRequest, stream: bool = False) -> WireRequest:
    return get_adapter(vendor).build_request(request, stream=stream)


def from_wire_response(vendor: str, data: Any, model: str = "") -> GenerationResult:
    return get_adapter(vendor).parse_response(data, model=model)
