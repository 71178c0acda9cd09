from datetime import datetime, timezone
from typing import List, Optional

import requests
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load env first so settings below see it
load_dotenv(".env", override=False)

from .llm import RELAYED_PROVIDERS, PROVIDERS, GenerationRequest, get_adapter, to_wire_request  # noqa: E402
from .llm.errors import TransportError, VendorError  # noqa: E402
from .settings import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, GatewayConfig, RelaySettings  # noqa: E402
from .transport import read_json, send  # noqa: E402
from .utils.logger import setup_logger  # noqa: E402

AVAILABLE_ENDPOINTS = ["/health", "/api/llm-proxy", "/api/llm-stream", "/api/test-connection"]
PROXY_REQUIRED = ["provider", "apiKey", "model", "prompt"]
TEST_REQUIRED = ["provider", "apiKey", "model"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "x-api-key", "anthropic-version"]


class ProxyRequest(BaseModel):
    provider: Optional[str] = None
    apiKey: Optional[str] = None
    model: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = None
    maxTokens: Optional[int] = None


class ConnectionTestRequest(BaseModel):
    provider: Optional[str] = None
    apiKey: Optional[str] = None
    model: Optional[str] = None


class RelayCORSMiddleware(CORSMiddleware):
    """CORS handling whose pre-flight answers are always 200 with no body.

    Origins outside the allow-list get no Access-Control-Allow-Origin header,
    so the browser still refuses the real request.
    """

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validate(req: BaseModel, required: List[str], error: str) -> Optional[JSONResponse]:
    if any(not getattr(req, name) for name in required):
        return JSONResponse(status_code=400, content={"error": error, "required": required})
    if req.provider not in RELAYED_PROVIDERS:
        return JSONResponse(
            status_code=400,
            content={"error": f"Unsupported provider: {req.provider}", "supported": list(RELAYED_PROVIDERS)},
        )
    return None


def _config_from(req: BaseModel) -> GatewayConfig:
    # The relay always talks to the vendor's public endpoint.
    temperature = getattr(req, "temperature", None)
    max_tokens = getattr(req, "maxTokens", None)
    return GatewayConfig(
        provider=req.provider,
        endpoint=PROVIDERS[req.provider].default_endpoint,
        credential=req.apiKey,
        model=req.model,
        temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or DEFAULT_MAX_TOKENS,
    )


def _vendor_error(exc: VendorError, prefix: str) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status or 502,
        content={
            "error": f"{prefix}: {exc.reason}".rstrip(": "),
            "details": exc.body,
            "provider": exc.provider,
            "model": exc.model,
        },
    )


def create_app(settings: Optional[RelaySettings] = None, session=None) -> FastAPI:
    settings = settings or RelaySettings.from_env()
    session = session or requests.Session()
    logger = setup_logger(level=settings.log_level)

    app = FastAPI(title="CodeShui LLM Relay", version="0.1.0")
    app.state.settings = settings
    app.state.session = session

    app.add_middleware(
        RelayCORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=settings.allowed_origin_regex or None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=ALLOWED_HEADERS,
    )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Endpoint not found", "available": AVAILABLE_ENDPOINTS},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": _timestamp()}

    @app.post("/api/llm-proxy")
    def llm_proxy(req: ProxyRequest):
        invalid = _validate(req, PROXY_REQUIRED, "Missing required fields")
        if invalid is not None:
            return invalid

        config = _config_from(req)
        logger.info("[relay] proxying request to %s with model: %s", config.provider, config.model)
        request = GenerationRequest(prompt=req.prompt, config=config)
        try:
            wire = to_wire_request(config.provider, request)
            resp = send(session, wire, config.provider, config.model, settings.request_timeout)
            result = get_adapter(config.provider).parse_response(
                read_json(resp, config.provider, config.model), model=config.model
            )
        except VendorError as exc:
            logger.error("[relay] %s (%s)", exc, exc.body[:200])
            return _vendor_error(exc, "API request failed")
        except TransportError as exc:
            logger.error("[relay] proxy error: %s", exc)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "details": str(exc), "timestamp": _timestamp()},
            )
        logger.info("[relay] successfully proxied response from %s", config.provider)
        return result.to_dict()

    @app.post("/api/llm-stream")
    def llm_stream(req: ProxyRequest):
        invalid = _validate(req, PROXY_REQUIRED, "Missing required fields")
        if invalid is not None:
            return invalid

        config = _config_from(req)
        logger.info("[relay] streaming request to %s with model: %s", config.provider, config.model)
        request = GenerationRequest(prompt=req.prompt, config=config)
        try:
            wire = to_wire_request(config.provider, request, stream=True)
            resp = send(session, wire, config.provider, config.model, settings.request_timeout, stream=True)
        except VendorError as exc:
            return _vendor_error(exc, "API request failed")
        except TransportError as exc:
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "details": str(exc), "timestamp": _timestamp()},
            )

        def body():
            try:
                yield from resp.iter_content(chunk_size=None)
            finally:
                resp.close()

        media_type = resp.headers.get("Content-Type", "text/event-stream")
        return StreamingResponse(body(), media_type=media_type)

    @app.post("/api/test-connection")
    def test_connection(req: ConnectionTestRequest):
        logger.info(
            "[relay] test connection provider=%s model=%s has_api_key=%s",
            req.provider,
            req.model,
            bool(req.apiKey),
        )
        invalid = _validate(req, TEST_REQUIRED, "Missing required fields for connection test")
        if invalid is not None:
            return invalid

        config = _config_from(req)
        wire = get_adapter(config.provider).listing_request(config)
        try:
            resp = send(session, wire, config.provider, config.model, settings.probe_timeout)
        except VendorError as exc:
            return _vendor_error(exc, "Connection test failed")
        except TransportError as exc:
            logger.error("[relay] connection test error: %s", exc)
            return JSONResponse(status_code=500, content={"error": "Connection test failed", "details": str(exc)})
        resp.close()
        return {
            "success": True,
            "message": f"Successfully connected to {config.provider}",
            "provider": config.provider,
            "model": config.model,
        }

    return app


app = create_app()
