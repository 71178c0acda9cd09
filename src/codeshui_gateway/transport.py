from __future__ import annotations

"""Routing of generation calls: straight to the vendor, or through the relay.

Browsers cannot call most vendor APIs cross-origin, so credentialed vendors
always go through the relay process; only the local Ollama server (when direct
network access is permitted) and custom endpoints are called directly.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional

import requests

from .llm import (
    PROVIDERS,
    RELAYED_PROVIDERS,
    GenerationRequest,
    GenerationResult,
    StreamChunk,
    WireRequest,
    from_wire_response,
    get_adapter,
    to_wire_request,
)
from .llm.errors import CredentialMalformed, CredentialMissing, NotReadyError, TransportError, VendorError
from .llm.streaming import decode
from .settings import GatewayConfig

RELAY_PATH = "/api/llm-proxy"
RELAY_STREAM_PATH = "/api/llm-stream"


@dataclass(frozen=True)
class HostContext:
    """Where the gateway runs.

    `is_local_host` means "direct network access is permitted": true for a
    developer machine or a backend service, false for a page served from a
    public host where cross-origin and private-network rules apply.
    """

    is_local_host: bool = False
    relay_url: str = "http://localhost:3001"

    @classmethod
    def from_settings(cls, settings) -> "HostContext":
        return cls(is_local_host=settings.direct_access, relay_url=settings.relay_url)


class Route(str, Enum):
    DIRECT = "direct"
    RELAY = "relay"


def route(config: GatewayConfig, host: HostContext) -> Route:
    if config.provider == "ollama":
        if host.is_local_host:
            return Route.DIRECT
        raise TransportError("Ollama only works on localhost. Please use localhost for full Ollama functionality.")
    if config.provider == "custom":
        return Route.DIRECT
    if config.provider in RELAYED_PROVIDERS:
        return Route.RELAY
    raise ValueError(f"Unknown LLM provider: {config.provider}")


def send(
    session,
    wire: WireRequest,
    provider: str,
    model: str,
    timeout: float,
    stream: bool = False,
) -> requests.Response:
    """Perform one HTTP call; non-2xx answers become `VendorError`."""
    try:
        resp = session.request(
            wire.method,
            wire.url,
            headers=wire.headers,
            json=wire.body,
            timeout=timeout,
            stream=stream,
        )
    except requests.RequestException as exc:
        raise TransportError(f"{provider} request failed: {exc}") from exc
    if not resp.ok:
        body = resp.text
        resp.close()
        logging.error("[transport] provider=%s model=%s status=%s", provider, model, resp.status_code)
        raise VendorError(provider, model, resp.status_code, body=body, reason=resp.reason or "")
    return resp


def read_json(resp: requests.Response, provider: str, model: str) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise VendorError(
            provider, model, resp.status_code, body=resp.text, reason="response is not valid JSON"
        ) from exc


def relay_payload(request: GenerationRequest) -> Dict[str, Any]:
    config = request.config
    return {
        "provider": config.provider,
        "apiKey": config.credential,
        "model": config.model,
        "prompt": request.full_prompt,
        "temperature": config.temperature,
        "maxTokens": config.max_output_tokens,
    }


def require_credential(config: GatewayConfig, host: HostContext):
    """Refuse calls whose credential is absent or, off-host, visibly malformed."""
    descriptor = PROVIDERS[config.provider]
    if not descriptor.requires_credential:
        return
    if not config.credential:
        raise CredentialMissing(descriptor.display_name)
    if not host.is_local_host:
        malformed = get_adapter(config.provider).check_credential(config.credential)
        if malformed:
            raise CredentialMalformed(descriptor.display_name, malformed)


class Gateway:
    """`generate` / `stream` entry points used by the UI collaborators."""

    def __init__(
        self,
        store,
        host: Optional[HostContext] = None,
        session=None,
        timeout: float = 60.0,
        require_ready: bool = True,
    ):
        self.store = store
        self.host = host or store.host
        self.session = session or requests.Session()
        self.timeout = timeout
        self.require_ready = require_ready

    def _snapshot(self) -> GatewayConfig:
        if self.require_ready and not self.store.ready:
            probe = self.store.last_probe
            detail = f": {probe.reason}" if probe is not None and probe.reason else ""
            raise NotReadyError(f"LLM is not connected{detail}")
        return self.store.config

    def _relay_wire(self, request: GenerationRequest, path: str) -> WireRequest:
        return WireRequest(
            url=f"{self.host.relay_url.rstrip('/')}{path}",
            headers={"Content-Type": "application/json"},
            body=relay_payload(request),
        )

    # ------------------------------------------------------------------
    # Buffered generation
    # ------------------------------------------------------------------
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> GenerationResult:
        request = GenerationRequest(prompt=prompt, system_prompt=system_prompt, config=self._snapshot())
        return self.execute(request)

    def execute(self, request: GenerationRequest) -> GenerationResult:
        config = request.config
        require_credential(config, self.host)
        path = route(config, self.host)
        logging.info("[generate] provider=%s model=%s route=%s", config.provider, config.model, path.value)

        if path is Route.RELAY:
            resp = send(self.session, self._relay_wire(request, RELAY_PATH), config.provider, config.model, self.timeout)
            data = read_json(resp, config.provider, config.model)
            if not isinstance(data, dict) or not isinstance(data.get("content"), str):
                raise VendorError(config.provider, config.model, resp.status_code, body=resp.text,
                                  reason="relay response is missing content")
            return GenerationResult(content=data["content"], usage=data.get("usage"))

        wire = to_wire_request(config.provider, request)
        resp = send(self.session, wire, config.provider, config.model, self.timeout)
        return from_wire_response(config.provider, read_json(resp, config.provider, config.model), config.model)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    def stream(self, prompt: str, system_prompt: Optional[str] = None) -> Iterator[StreamChunk]:
        """Return a lazy chunk iterator; config and routing are fixed right away."""
        request = GenerationRequest(prompt=prompt, system_prompt=system_prompt, config=self._snapshot())
        config = request.config
        require_credential(config, self.host)
        path = route(config, self.host)
        if path is Route.RELAY:
            wire = self._relay_wire(request, RELAY_STREAM_PATH)
        else:
            wire = to_wire_request(config.provider, request, stream=True)
        logging.info("[stream] provider=%s model=%s route=%s", config.provider, config.model, path.value)
        return self._iter_stream(wire, config)

    def _iter_stream(self, wire: WireRequest, config: GatewayConfig) -> Iterator[StreamChunk]:
        resp = send(self.session, wire, config.provider, config.model, self.timeout, stream=True)
        try:
            yield from decode(config.provider, resp.iter_content(chunk_size=None))
        finally:
            # also reached when the consumer closes the iterator early
            resp.close()
