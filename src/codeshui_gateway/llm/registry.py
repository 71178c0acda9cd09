from __future__ import annotations

"""Static table of the vendors the gateway knows how to talk to."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ProviderDescriptor:
    display_name: str
    description: str
    models: Tuple[str, ...]
    requires_credential: bool
    default_endpoint: Optional[str] = None


PROVIDERS: Dict[str, ProviderDescriptor] = {
    "ollama": ProviderDescriptor(
        display_name="Ollama (Local)",
        description="Run models locally with Ollama",
        models=("llama3.1:8b", "codellama", "llama2", "mistral", "deepseek-coder", "neural-chat", "wizard-coder"),
        requires_credential=False,
        default_endpoint="http://127.0.0.1:11434",
    ),
    "openai": ProviderDescriptor(
        display_name="OpenAI",
        description="GPT-4, GPT-3.5 Turbo, and more",
        models=("gpt-4", "gpt-4-turbo", "gpt-3.5-turbo", "gpt-3.5-turbo-16k"),
        requires_credential=True,
        default_endpoint="https://api.openai.com/v1",
    ),
    "anthropic": ProviderDescriptor(
        display_name="Anthropic",
        description="Claude 3 and Claude 2",
        models=("claude-3-opus", "claude-3-sonnet", "claude-3-haiku", "claude-2.1"),
        requires_credential=True,
        default_endpoint="https://api.anthropic.com",
    ),
    "google": ProviderDescriptor(
        display_name="Google AI",
        description="Gemini Pro and other models",
        models=("gemini-pro", "gemini-pro-vision", "text-bison"),
        requires_credential=True,
        default_endpoint="https://generativelanguage.googleapis.com",
    ),
    "custom": ProviderDescriptor(
        display_name="Custom API",
        description="Connect to any compatible API",
        models=("custom",),
        requires_credential=True,
    ),
}

# Vendors whose calls go through the relay (and the only ones it accepts).
RELAYED_PROVIDERS: Tuple[str, ...] = ("anthropic", "openai", "google")


def get_descriptor(provider: str) -> ProviderDescriptor:
    try:
        return PROVIDERS[provider]
    except KeyError:
        raise ValueError(f"Unknown LLM provider: {provider}") from None


def is_known_model(provider: str, model: str) -> bool:
    """`custom` has no fixed catalog; any non-empty model name is accepted."""
    if provider == "custom":
        return bool(model)
    return model in get_descriptor(provider).models
