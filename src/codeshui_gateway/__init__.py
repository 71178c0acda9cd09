from __future__ import annotations

"""LLM provider gateway for the CodeShui code builder."""

from .config_store import STORAGE_KEY, ConfigStore, JsonFileStorage, MemoryStorage
from .llm import (
    PROVIDERS,
    GenerationRequest,
    GenerationResult,
    StreamChunk,
    from_wire_response,
    to_wire_request,
)
from .llm.streaming import decode
from .prober import ProbeResult, probe
from .settings import GatewayConfig, RelaySettings
from .transport import Gateway, HostContext, Route, route

__all__ = [
    "ConfigStore",
    "Gateway",
    "GatewayConfig",
    "GenerationRequest",
    "GenerationResult",
    "HostContext",
    "JsonFileStorage",
    "MemoryStorage",
    "PROVIDERS",
    "ProbeResult",
    "RelaySettings",
    "Route",
    "STORAGE_KEY",
    "StreamChunk",
    "decode",
    "from_wire_response",
    "probe",
    "route",
    "to_wire_request",
]
