from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .llm.registry import PROVIDERS

DEFAULT_PROVIDER = "ollama"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 4000
MIN_TEMPERATURE, MAX_TEMPERATURE = 0.0, 2.0

# camelCase names used by the persisted blob and the browser front-end
_STORAGE_KEYS = {
    "provider": "provider",
    "endpoint": "url",
    "credential": "apiKey",
    "model": "model",
    "temperature": "temperature",
    "max_output_tokens": "maxTokens",
}


@dataclass(frozen=True)
class GatewayConfig:
    """The active provider/model/credentials tuple.

    Immutable: a call takes the current value once and keeps using it
    even if the store is edited while the call is in flight.
    """

    provider: str = DEFAULT_PROVIDER
    endpoint: Optional[str] = None
    credential: Optional[str] = None
    model: str = PROVIDERS[DEFAULT_PROVIDER].models[0]
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self):
        if not self.endpoint and isinstance(self.provider, str) and self.provider in PROVIDERS:
            object.__setattr__(self, "endpoint", PROVIDERS[self.provider].default_endpoint)

    def merged(self, **changes: Any) -> "GatewayConfig":
        return replace(self, **changes)

    def to_storage(self) -> Dict[str, Any]:
        data = {}
        for attr, key in _STORAGE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_storage(cls, data: Dict[str, Any]) -> "GatewayConfig":
        """Build a config from a persisted blob without validating it."""
        kwargs = {attr: data[key] for attr, key in _STORAGE_KEYS.items() if key in data}
        return cls(**kwargs)


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name, "")
    if value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
]


@dataclass
class RelaySettings:
    """Process settings read from the environment (and `.env`)."""

    port: int = 3001
    relay_url: str = "http://localhost:3001"
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    allowed_origin_regex: str = r"https://.*\.(netlify\.app|render\.com)"
    storage_path: Path = Path.home() / ".codeshui" / "storage.json"
    direct_access: bool = True
    request_timeout: float = 60.0
    probe_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        defaults = cls()
        return cls(
            port=int(os.getenv("PORT", defaults.port)),
            relay_url=os.getenv("CODESHUI_RELAY_URL", defaults.relay_url).rstrip("/"),
            allowed_origins=_env_list("CODESHUI_ALLOWED_ORIGINS", defaults.allowed_origins),
            allowed_origin_regex=os.getenv("CODESHUI_ALLOWED_ORIGIN_REGEX", defaults.allowed_origin_regex),
            storage_path=Path(os.getenv("CODESHUI_STORAGE_PATH", str(defaults.storage_path))).expanduser(),
            direct_access=_env_flag("CODESHUI_DIRECT_ACCESS", defaults.direct_access),
            request_timeout=float(os.getenv("CODESHUI_REQUEST_TIMEOUT", defaults.request_timeout)),
            probe_timeout=float(os.getenv("CODESHUI_PROBE_TIMEOUT", defaults.probe_timeout)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
