from __future__ import annotations

"""Error kinds raised by the gateway.

Everything derives from `GatewayError` so the UI layer (and the relay) can
catch one type and render a message; nothing here is meant to crash the host.
"""


class GatewayError(RuntimeError):
    """Base class for every gateway failure."""


class ConfigInvalid(GatewayError):
    """Persisted configuration could not be used. Recovered by `load()`."""


class NotReadyError(GatewayError):
    """A call was attempted while the active configuration is not ready."""


class CredentialMissing(GatewayError):
    def __init__(self, provider: str):
        super().__init__(f"{provider} API key required")
        self.provider = provider


class CredentialMalformed(GatewayError):
    def __init__(self, provider: str, reason: str):
        super().__init__(reason)
        self.provider = provider


class TransportError(GatewayError):
    """Network-level failure reaching a vendor or the relay."""


class VendorError(GatewayError):
    """Non-success answer (or unusable body) from a vendor or the relay."""

    BODY_LIMIT = 4000

    def __init__(
        self,
        provider: str,
        model: str,
        status: int | None,
        body: str = "",
        reason: str = "",
    ):
        self.provider = provider
        self.model = model
        self.status = status
        self.reason = reason
        self.body = (body or "")[: self.BODY_LIMIT]
        status_line = f"{status} {reason}".strip() if status is not None else reason or "invalid response"
        super().__init__(f"{provider} request failed ({model}): {status_line}")


class DecodeError(GatewayError):
    """A streaming line could not be decoded. Never leaves the decoder."""
