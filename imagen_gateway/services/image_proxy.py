"""
Image proxy service.

Composes request validation, the concurrency gate and the pool client into
one request lifecycle, and turns terminal upstream failures into
client-facing errors.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from imagen_gateway.clients.exceptions import (
    NoKeysAvailableError,
    UpstreamRetriesExhaustedError,
)
from imagen_gateway.clients.gemini_pool import GeminiPoolClient
from imagen_gateway.clients.outcomes import (
    GenericUpstreamError,
    InvalidCredential,
    RateLimited,
    RuntimeUnauthorized,
    ServerError,
)
from imagen_gateway.core.errors import NoValidKeysError, ProxyError, RequestValidationFailed
from imagen_gateway.core.semaphore import FairSemaphore
from imagen_gateway.schemas.images import ImageGenerationRequest

logger = logging.getLogger(__name__)

# Headers that describe the upstream wire encoding rather than the payload
STRIPPED_RESPONSE_HEADERS = frozenset(
    {"content-encoding", "content-length", "transfer-encoding", "connection"}
)


def validate_image_request(body: Any) -> dict[str, Any]:
    """
    Check that the body carries model and prompt.

    Returns:
        The body unchanged, for pass-through

    Raises:
        RequestValidationFailed: If the body is not an object or lacks fields
    """
    if not isinstance(body, dict):
        raise RequestValidationFailed("Request body must be a JSON object")
    try:
        ImageGenerationRequest.model_validate(body)
    except ValidationError:
        raise RequestValidationFailed("Missing required fields: model and prompt") from None
    return body


def error_from_exhausted(exc: UpstreamRetriesExhaustedError) -> ProxyError:
    """Map the last failed attempt to the error reported to the client."""
    outcome = exc.last_outcome
    if isinstance(outcome, RateLimited):
        return ProxyError(outcome.message, status_code=429, error_type="rate_limit_error")
    if isinstance(outcome, RuntimeUnauthorized):
        return ProxyError(outcome.message, status_code=401, error_type="upstream_auth_error")
    if isinstance(outcome, InvalidCredential):
        return ProxyError(
            outcome.message, status_code=outcome.status_code, error_type="invalid_api_key"
        )
    if isinstance(outcome, (ServerError, GenericUpstreamError)):
        return ProxyError(
            outcome.message, status_code=outcome.status_code, error_type="upstream_error"
        )
    # Transport failure or nothing captured
    return ProxyError(exc.message, status_code=500, error_type="api_error")


def passthrough_headers(headers: list[tuple[str, str]]) -> list[tuple[str, str]]:
    """Upstream response headers minus the ones the gateway re-computes."""
    return [
        (name, value)
        for name, value in headers
        if name.lower() not in STRIPPED_RESPONSE_HEADERS
    ]


class ImageProxyService:
    """
    Request lifecycle for POST /v1/images/generations.

    Usage:
        service = ImageProxyService(pool_client, FairSemaphore(10))
        result = await service.generate(body)
    """

    def __init__(self, pool_client: GeminiPoolClient, semaphore: FairSemaphore):
        self.pool_client = pool_client
        self.semaphore = semaphore

    @property
    def pool(self):
        return self.pool_client.pool

    async def generate(self, body: Any):
        """
        Validate, gate and forward one image generation request.

        Returns:
            UpstreamSuccess from the first successful attempt

        Raises:
            RequestValidationFailed: Missing model/prompt (no permit taken)
            NoValidKeysError: Key pool empty
            ProxyError: Terminal upstream failure after retries
        """
        request = validate_image_request(body)

        if self.pool.is_empty:
            raise NoValidKeysError()

        async with self.semaphore:
            logger.debug(
                "image_request_started",
                extra={
                    "model": request["model"],
                    "in_use": self.semaphore.in_use,
                    "waiting": self.semaphore.waiting,
                },
            )
            try:
                return await self.pool_client.generate_image(request)
            except NoKeysAvailableError as e:
                raise NoValidKeysError(e.message) from e
            except UpstreamRetriesExhaustedError as e:
                raise error_from_exhausted(e) from e

    async def close(self) -> None:
        await self.pool_client.close()
        logger.info("image_proxy_closed", extra=self.pool.get_pool_stats())
