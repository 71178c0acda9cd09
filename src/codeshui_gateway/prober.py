from __future__ import annotations

"""Connectivity probing.

A probe answers "is this configuration usable" without generating anything.
When direct network access is permitted it performs a cheap listing call;
otherwise it can only check the shape of the configuration, and says so in
`ProbeResult.verified`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .llm import PROVIDERS, get_adapter
from .llm.errors import GatewayError
from .settings import GatewayConfig
from .transport import HostContext, send

LOOPBACK_MARKERS = ("localhost", "127.0.0.1", "[::1]")


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    reason: Optional[str] = None
    verified: bool = False

    def __bool__(self) -> bool:
        return self.ok


def probe(
    config: GatewayConfig,
    host: HostContext,
    session=None,
    timeout: float = 10.0,
) -> ProbeResult:
    """Never raises: every failure becomes a negative result with a reason."""
    try:
        return _probe(config, host, session, timeout)
    except Exception as exc:
        logging.error("[probe] provider=%s failed: %s", config.provider, exc)
        return ProbeResult(False, reason=f"Connection test failed: {exc}")


def _probe(config: GatewayConfig, host: HostContext, session, timeout: float) -> ProbeResult:
    descriptor = PROVIDERS.get(config.provider)
    if descriptor is None:
        return ProbeResult(False, reason=f"Unsupported provider: {config.provider}")

    if config.provider == "custom":
        if config.endpoint and config.credential:
            return ProbeResult(True, reason="Custom API configured; connection not verified")
        return ProbeResult(False, reason="Custom API requires both URL and API key")

    adapter = get_adapter(config.provider)

    if descriptor.requires_credential:
        if not config.credential:
            return ProbeResult(False, reason=f"{descriptor.display_name} API key required")
        if not host.is_local_host:
            malformed = adapter.check_credential(config.credential)
            if malformed:
                return ProbeResult(False, reason=malformed)
            return ProbeResult(True, reason="API key format looks valid; connection not verified")
    else:
        if not config.endpoint:
            return ProbeResult(False, reason=f"{descriptor.display_name} URL is not configured")
        if not host.is_local_host:
            # a remote page cannot reach a private address; only the URL shape can be checked
            if any(marker in config.endpoint for marker in LOOPBACK_MARKERS):
                return ProbeResult(True, reason="Ollama URL points at this machine; connection not verified")
            return ProbeResult(False, reason="Ollama only works with a localhost URL")

    return _live_probe(adapter, config, session, timeout)


def _live_probe(adapter, config: GatewayConfig, session, timeout: float) -> ProbeResult:
    wire = adapter.listing_request(config)
    if wire is None:
        return ProbeResult(False, reason=f"{config.provider} cannot be probed")
    try:
        resp = send(session or requests, wire, config.provider, config.model, timeout)
    except GatewayError as exc:
        logging.info("[probe] provider=%s not reachable: %s", config.provider, exc)
        return ProbeResult(False, reason=str(exc))
    resp.close()
    logging.info("[probe] provider=%s model=%s connected", config.provider, config.model)
    return ProbeResult(True, reason=f"Successfully connected to {config.provider}", verified=True)
