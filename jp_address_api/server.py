"""FastAPI application exposing the address parse pipeline over HTTP."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from jp_address_api import __version__
from jp_address_api.config import ServiceConfig, default_config
from jp_address_api.exposition import CONTENT_TYPE, render_metrics
from jp_address_api.metrics import MetricsRegistry, default_metrics
from jp_address_api.parser import AddressParser
from jp_address_api.pipeline import handle_parse_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "japanese-address-parser-api"
LOG_EXTRA_KEYS = ("event", "method", "request_id", "reason", "error")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in LOG_EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: ServiceConfig = default_config) -> None:
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    if config.log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level)


configure_logging()


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "result": None, "error": message, "processing_time_ms": 0},
    )


async def _read_body(request: Request, limit: int) -> Optional[bytes]:
    """Read the request body, or return None as soon as it exceeds ``limit`` bytes."""
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def create_app(
    config: ServiceConfig | None = None,
    *,
    metrics: MetricsRegistry | None = None,
    parser: Optional[Any] = None,
    parse: Optional[Callable[[str], Any]] = None,
) -> FastAPI:
    """
    Build the application.

    ``parser`` is any object with an async ``parse(text)`` method (and
    optionally ``aclose()``); ``parse`` overrides it with a bare callable.
    Each app gets its own registry unless one is passed in.
    """
    config = config or default_config
    metrics = metrics or MetricsRegistry()
    parser = parser if parser is not None else AddressParser()
    parse_fn = parse or parser.parse

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # Startup
        yield
        # Shutdown
        closer = getattr(parser, "aclose", None)
        if closer is not None:
            await closer()

    app = FastAPI(
        title="Japanese Address Parser API",
        description="Parses free-text Japanese addresses into prefecture, city, town and remainder.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.metrics = metrics
    app.state.parse = parse_fn

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        logger.debug(
            "request_started method=%s path=%s",
            request.method,
            request.url.path,
            extra={"event": "request_started", "method": request.method, "request_id": request_id},
        )
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > config.max_request_size:
            response: Response = _error_response(413, "Request body too large")
        else:
            response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "request_completed method=%s path=%s status=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"event": "request_completed", "method": request.method, "request_id": request_id},
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/parse")
    async def parse_get(request: Request) -> JSONResponse:
        """Parse the ``address`` query parameter."""
        result = await handle_parse_request(
            request.query_params.get("address"),
            method="GET",
            parse=app.state.parse,
            metrics=app.state.metrics,
            config=app.state.config,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(content=result)

    @app.post("/parse")
    async def parse_post(request: Request) -> JSONResponse:
        """Parse ``{"address": "..."}`` from the JSON body."""
        # Malformed bodies are rejected before the pipeline and are not counted.
        raw = await _read_body(request, config.max_request_size)
        if raw is None:
            return _error_response(413, "Request body too large")
        try:
            body = json.loads(raw)
        except ValueError:
            return _error_response(400, "Invalid JSON body")
        if not isinstance(body, dict) or not isinstance(body.get("address"), str):
            return _error_response(422, "Request body must be an object with a string 'address' field")
        try:
            body["address"].encode("utf-8")
        except UnicodeEncodeError:
            # JSON allows lone surrogate escapes; they cannot be echoed back.
            return _error_response(422, "Address is not valid UTF-8 text")

        result = await handle_parse_request(
            body["address"],
            method="POST",
            parse=app.state.parse,
            metrics=app.state.metrics,
            config=app.state.config,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(content=result)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health endpoint for monitoring."""
        registry: MetricsRegistry = app.state.metrics
        uptime = max(0, int(registry.clock() - registry.start_time))
        logger.info("health_check status=healthy", extra={"event": "health_check"})
        return JSONResponse(
            content={
                "status": "healthy",
                "service": SERVICE_NAME,
                "version": __version__,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime_seconds": uptime,
            }
        )

    @app.get("/metrics")
    async def metrics_route() -> Response:
        """Prometheus text exposition of the parse metrics."""
        registry: MetricsRegistry = app.state.metrics
        snapshot = registry.snapshot()
        logger.info(
            "metrics_requested total_requests=%d successful_parses=%d failed_parses=%d",
            snapshot.total_requests,
            snapshot.successful_parses,
            snapshot.failed_parses,
            extra={"event": "metrics_requested"},
        )
        body = render_metrics(snapshot, now=registry.clock())
        return Response(content=body, media_type=CONTENT_TYPE)

    return app


app = create_app(metrics=default_metrics)

# Run with: uvicorn jp_address_api.server:app --reload
