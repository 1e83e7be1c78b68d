"""
Gateway application assembly and entry point.

Builds the FastAPI app, wires the shared key pool, semaphore and pool
client into app state, and installs the CORS and error envelope handling.

No app is built at import time; serve with the `imagen-gateway` script or
`uvicorn --factory imagen_gateway.main:create_app`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagen_gateway.clients.gemini import GeminiImageClient, GeminiTransport
from imagen_gateway.clients.gemini_pool import GeminiPoolClient
from imagen_gateway.clients.key_pool import KeyPool
from imagen_gateway.core.config import Settings, get_settings, validate_config
from imagen_gateway.core.dependencies import bearer_scheme, require_proxy_token
from imagen_gateway.core.errors import (
    ENDPOINT_PATH,
    AuthError,
    EndpointNotFound,
    ProxyError,
    error_body,
)
from imagen_gateway.core.invalid_keys import InvalidKeyStore
from imagen_gateway.core.logging_config import setup_logging
from imagen_gateway.core.semaphore import FairSemaphore
from imagen_gateway.routers import images
from imagen_gateway.services.image_proxy import ImageProxyService

logger = logging.getLogger(__name__)

CORS_ALLOW_ORIGIN = {"Access-Control-Allow-Origin": "*"}

PREFLIGHT_HEADERS = {
    **CORS_ALLOW_ORIGIN,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def proxy_error_response(exc: ProxyError) -> JSONResponse:
    return JSONResponse(error_body(exc.message, exc.error_type), status_code=exc.status_code)


def build_image_service(
    settings: Settings,
    transport: GeminiTransport | None = None,
) -> ImageProxyService:
    """Create the key pool, upstream clients and semaphore from settings."""
    invalid_store = InvalidKeyStore(settings.invalid_keys_file)
    pool = KeyPool(settings.gemini_keys_list, invalid_store)

    client = GeminiImageClient(
        base_url=settings.gemini_base_url,
        timeout_s=settings.upstream_timeout_s,
        transport=transport,
    )
    pool_client = GeminiPoolClient(
        client=client,
        pool=pool,
        max_retries=settings.max_retries,
        retry_delay_s=settings.retry_delay_s,
        invalid_key_consumes_attempt=settings.invalid_key_consumes_attempt,
    )
    return ImageProxyService(pool_client, FairSemaphore(settings.max_concurrent))


def create_app(
    settings: Settings | None = None,
    transport: GeminiTransport | None = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Settings override (defaults to environment)
        transport: Upstream transport override (for testing)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        validate_config(settings)
        logger.info(
            "gateway_started",
            extra={"endpoint": f"POST {ENDPOINT_PATH}", "port": settings.port},
        )
        yield
        await app.state.image_service.close()

    app = FastAPI(title="Imagen Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.image_service = build_image_service(settings, transport)

    @app.middleware("http")
    async def cors_and_unexpected_errors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=PREFLIGHT_HEADERS)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_handling_error",
                extra={"method": request.method, "path": request.url.path},
            )
            response = JSONResponse(
                error_body("Internal server error", "api_error"), status_code=500
            )

        response.headers.update(CORS_ALLOW_ORIGIN)
        return response

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                extra={"status_code": exc.status_code, "error_type": exc.error_type},
            )
        return proxy_error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code in (404, 405):
            # bearer check comes before the route match
            try:
                await require_proxy_token(await bearer_scheme(request), settings)
            except AuthError as auth_error:
                return proxy_error_response(auth_error)
            return proxy_error_response(EndpointNotFound())
        return JSONResponse(
            error_body(str(exc.detail), "api_error"),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    app.include_router(images.router)
    return app


def run() -> None:
    """Console entry point: run the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        validate_config(settings)
    except ValueError as e:
        logger.error(f"Failed to start proxy server: {e}")
        raise SystemExit(1) from e

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
