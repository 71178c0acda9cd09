from __future__ import annotations

"""Persisted, validated gateway configuration.

The store keeps one `GatewayConfig` as a JSON blob under a single well-known
key of a key-value storage (a JSON file on disk by default). Loading never
fails: missing or corrupt data degrades to the built-in default. Every save
schedules a connectivity probe whose outcome drives the `ready` flag.
"""

import json
import logging
import math
import os
import tempfile
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .communication.message_bus import CONFIG_SAVED, PROBE_COMPLETED, MessageBus
from .llm import PROVIDERS, is_known_model
from .llm.errors import ConfigInvalid
from .prober import ProbeResult, probe
from .settings import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_TEMPERATURE,
    MIN_TEMPERATURE,
    GatewayConfig,
)
from .transport import HostContext

STORAGE_KEY = "codeshui-llm-config"


class MemoryStorage:
    """In-process key-value storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value


class JsonFileStorage:
    """Key-value storage backed by one JSON object on disk."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logging.warning("[config] unreadable storage file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str):
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def repair(config: GatewayConfig) -> GatewayConfig:
    """Bring a config back in line with the provider registry."""
    descriptor = PROVIDERS.get(config.provider) if isinstance(config.provider, str) else None
    if descriptor is None:
        raise ConfigInvalid(f"unknown provider {config.provider!r}")

    changes: Dict[str, Any] = {}
    if not isinstance(config.model, str) or not is_known_model(config.provider, config.model):
        changes["model"] = descriptor.models[0]
    if not isinstance(config.endpoint, str) or not config.endpoint:
        changes["endpoint"] = descriptor.default_endpoint
    if not isinstance(config.credential, str) or not config.credential:
        changes["credential"] = None

    try:
        temperature = float(config.temperature)
    except (TypeError, ValueError):
        temperature = DEFAULT_TEMPERATURE
    if not math.isfinite(temperature):
        temperature = DEFAULT_TEMPERATURE
    temperature = min(max(temperature, MIN_TEMPERATURE), MAX_TEMPERATURE)
    if temperature != config.temperature:
        changes["temperature"] = temperature

    try:
        max_tokens = int(config.max_output_tokens)
    except (TypeError, ValueError, OverflowError):
        max_tokens = DEFAULT_MAX_TOKENS
    if max_tokens <= 0:
        max_tokens = DEFAULT_MAX_TOKENS
    if max_tokens != config.max_output_tokens:
        changes["max_output_tokens"] = max_tokens

    return config.merged(**changes) if changes else config


def parse_config(raw: Optional[str]) -> GatewayConfig:
    if not raw:
        raise ConfigInvalid("no stored configuration")
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigInvalid(f"stored configuration is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigInvalid("stored configuration is not an object")
    return repair(GatewayConfig.from_storage(data))


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

CONFIG_FIELDS = frozenset(f.name for f in fields(GatewayConfig))


class ConfigStore:
    """Owner of the process-wide active configuration.

    `config` is an immutable snapshot; callers read it once per call.
    """

    def __init__(
        self,
        storage=None,
        host: Optional[HostContext] = None,
        session=None,
        executor: Optional[Executor] = None,
        bus: Optional[MessageBus] = None,
        probe_timeout: float = 10.0,
        probe_on_start: bool = True,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.host = host or HostContext()
        self.session = session
        self.bus = bus or MessageBus()
        self.probe_timeout = probe_timeout
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="codeshui-probe")
        self._lock = threading.Lock()
        self._generation = 0

        self.ready = False
        self.last_probe: Optional[ProbeResult] = None
        self.pending_probe: Optional[Future] = None
        self._config = self.load()
        if probe_on_start:
            self.refresh()

    @classmethod
    def from_settings(cls, settings, **kwargs: Any) -> "ConfigStore":
        """Store persisted to `settings.storage_path` with the host context it describes."""
        kwargs.setdefault("storage", JsonFileStorage(settings.storage_path))
        kwargs.setdefault("host", HostContext.from_settings(settings))
        kwargs.setdefault("probe_timeout", settings.probe_timeout)
        return cls(**kwargs)

    @property
    def config(self) -> GatewayConfig:
        return self._config

    def available_models(self) -> List[str]:
        return list(PROVIDERS[self._config.provider].models)

    def load(self) -> GatewayConfig:
        try:
            return parse_config(self.storage.get_item(STORAGE_KEY))
        except ConfigInvalid as exc:
            logging.info("[config] using default configuration: %s", exc)
            return GatewayConfig()

    def save(self, **partial: Any) -> GatewayConfig:
        """Merge `partial` over the current config, persist it and re-probe.

        Switching provider without naming an endpoint or model resets them to
        the new provider's defaults.
        """
        unknown = set(partial) - CONFIG_FIELDS
        if unknown:
            raise TypeError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")
        current = self._config
        provider = partial.get("provider", current.provider)
        descriptor = PROVIDERS.get(provider)
        if descriptor is None:
            raise ValueError(f"Unknown LLM provider: {provider}")
        if provider != current.provider:
            partial.setdefault("endpoint", descriptor.default_endpoint)
            partial.setdefault("model", descriptor.models[0])

        updated = repair(current.merged(**partial))
        self._config = updated
        self._persist(updated)
        logging.info("[config] provider=%s model=%s", updated.provider, updated.model)
        self.bus.publish(CONFIG_SAVED, updated)
        self.refresh()
        return updated

    def _persist(self, config: GatewayConfig):
        try:
            self.storage.set_item(STORAGE_KEY, json.dumps(config.to_storage()))
        except (OSError, TypeError, ValueError) as exc:
            logging.error("[config] failed to persist configuration: %s", exc)

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------
    def refresh(self) -> Future:
        """Probe the current config in the background; returns the future."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.ready = False
        future = self._executor.submit(self._run_probe, generation, self._config)
        self.pending_probe = future
        return future

    def _run_probe(self, generation: int, config: GatewayConfig) -> ProbeResult:
        result = probe(config, self.host, session=self.session, timeout=self.probe_timeout)
        with self._lock:
            if generation != self._generation:
                logging.debug("[probe] discarding stale result for provider=%s", config.provider)
                return result
            self.ready = result.ok
            self.last_probe = result
        self.bus.publish(PROBE_COMPLETED, result)
        return result

    def wait_for_probe(self, timeout: Optional[float] = None) -> Optional[ProbeResult]:
        if self.pending_probe is None:
            return None
        return self.pending_probe.result(timeout=timeout)

    def close(self):
        if self._owns_executor:
            self._executor.shutdown(wait=False)
