"""
This module contains the FastAPI web server exposing the torrent listing,
FileBot suggestions and batch renames to the presentation layer.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from qbit_renamer import __version__
from qbit_renamer.api.client import QBittorrentClient
from qbit_renamer.core import BatchRenameApplier, SuggestionEngine, TorrentEnricher
from qbit_renamer.exceptions import (
    AuthenticationError,
    ExternalToolError,
    InvalidPathError,
    NotFoundError,
    NoValidInputError,
    OperationTimeoutError,
    QbitRenamerError,
    ValidationError,
)
from qbit_renamer.models.config import AppConfig
from qbit_renamer.utils.process import terminate_all_processes
from qbit_renamer.utils.timeouts import run_with_timeout

from .rate_limiter import ClientRateLimiter
from .schemas import RenameRequest, SuggestRequest

log = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; img-src 'self' data:"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}

# Checked in order, so subclasses must come before their bases
ERROR_STATUS = (
    (ValidationError, 400),
    (InvalidPathError, 400),
    (NotFoundError, 400),
    (NoValidInputError, 400),
    (AuthenticationError, 502),
    (ExternalToolError, 502),
    (OperationTimeoutError, 504),
)

FILEBOT_ERROR_DETAILS = "FileBot process failed. Check server logs."


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def status_for(error: QbitRenamerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


def create_app(
    config: AppConfig, api_client: Optional[QBittorrentClient] = None
) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        config: The validated application configuration.
        api_client: An existing client to share; one is created if omitted.
    """
    client = api_client or QBittorrentClient(config)
    enricher = TorrentEnricher(client)
    engine = SuggestionEngine(client, config)
    applier = BatchRenameApplier(client, config)
    limiter = ClientRateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"qBittorrent daemon: {config.qbittorrent_url}")
        yield
        terminate_all_processes()
        await client.close()

    app = FastAPI(
        title="qbit-renamer API",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def guard_requests(request: Request, call_next):
        """Applies rate limiting and the body size limit, then security headers."""
        response = None
        if request.url.path.startswith("/api/"):
            address = request.client.host if request.client else "unknown"
            length = request.headers.get("content-length", "")
            if not await limiter.acquire(address):
                response = error_response(429, config.rate_limit_message)
                response.headers["Retry-After"] = str(limiter.retry_after(address))
            elif length.isdigit() and int(length) > config.max_request_bytes:
                response = error_response(413, "Request entity too large")

        if response is None:
            try:
                response = await call_next(request)
            except Exception as e:
                log.error(f"Unhandled error: {e}", exc_info=e)
                response = error_response(500, "Internal server error")
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.exception_handler(QbitRenamerError)
    async def handle_app_error(request: Request, exc: QbitRenamerError):
        status_code = status_for(exc)
        if status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc}")
        if isinstance(exc, ExternalToolError):
            return error_response(status_code, str(exc), details=FILEBOT_ERROR_DETAILS)
        return error_response(status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if not errors:
            return error_response(400, "Validation error")
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "body"
        return error_response(400, f'Validation error: "{field}" {first.get("msg", "")}')

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(404, "Not found")
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        log.error(f"Unhandled error: {exc}", exc_info=exc)
        return error_response(500, "Internal server error")

    @app.get("/api/torrents")
    async def list_torrents():
        """Lists all torrents, enriched with properties and files where available."""
        try:
            return await run_with_timeout(
                enricher.list_enriched_torrents(), config.list_timeout, "Torrent listing"
            )
        except QbitRenamerError:
            raise
        except Exception as e:
            log.error(f"Error fetching torrents: {e}")
            return error_response(500, "Failed to fetch torrents")

    @app.post("/api/filebot/suggest")
    async def suggest_renames(body: SuggestRequest):
        """Runs FileBot in test mode and returns its suggestions and raw output."""
        try:
            report = await run_with_timeout(
                engine.generate(body.torrentHash, body.type),
                config.suggest_timeout,
                "Suggestion generation",
            )
        except QbitRenamerError:
            raise
        except Exception as e:
            log.error(f"Error generating suggestions: {e}")
            return error_response(500, "Failed to generate suggestions")
        return report.to_response()

    @app.post("/api/torrents/rename")
    async def rename_files(body: RenameRequest):
        """
        Applies a batch of renames. Partial failure is reported in the body
        with HTTP 200; only request-level problems produce an error status.
        """
        try:
            result = await applier.apply_renames(body.torrentHash, body.renames)
        except QbitRenamerError:
            raise
        except Exception as e:
            log.error(f"Error renaming files: {e}")
            return error_response(500, "Failed to rename files")
        return result.to_response()

    return app


def start_server(config: AppConfig, host: Optional[str] = None, port: Optional[int] = None):
    """
    Initializes and starts the uvicorn server for the HTTP API.
    """
    host = host or config.host
    port = port or config.port
    log.info(f"Server running on port {port}")
    log.info(f"Access the API at http://{host}:{port}/api/torrents")
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
