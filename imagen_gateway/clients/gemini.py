"""
Gemini image generation client (OpenAI-compatible images endpoint).

Translates OpenAI-style image requests for Google's endpoint and classifies
each upstream response into an AttemptOutcome. Retries and key rotation
live in the pool client.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from imagen_gateway.clients.exceptions import UpstreamTransportError
from imagen_gateway.clients.outcomes import (
    AttemptOutcome,
    TransportFailure,
    UpstreamSuccess,
    classify_status,
)
from imagen_gateway.core.logging_config import key_suffix

logger = logging.getLogger(__name__)

# OpenAI-style alias -> Gemini model id. Unmapped names pass through.
MODEL_MAPPING: dict[str, str] = {
    "imagen-3": "imagen-3.0-generate-002",
    "imagen-4": "imagen-4.0-generate-preview-06-06",
    "imagen-4-ultra": "imagen-4.0-ultra-generate-preview-06-06",
}

# Request fields the Gemini endpoint rejects
UNSUPPORTED_FIELDS: tuple[str, ...] = ("seed",)

DEFAULT_RESPONSE_FORMAT = "b64_json"


def map_model_name(model: str) -> str:
    """Translate an OpenAI-style model alias to the Gemini model id."""
    return MODEL_MAPPING.get(model, model)


@dataclass
class UpstreamResponse:
    """Raw upstream HTTP response. Headers keep upstream order and repeats."""

    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    content: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class GeminiTransport(ABC):
    """
    Abstract transport layer for Gemini API calls.

    This interface allows mocking HTTP requests in tests without
    requiring actual network calls or complex patching.
    """

    @abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float = 120.0,
    ) -> UpstreamResponse:
        """
        Execute HTTP request and return the raw response.

        Raises:
            UpstreamTransportError: If the upstream could not be reached
        """
        pass

    async def close(self) -> None:
        """Close transport resources."""
        pass


class HttpxTransport(GeminiTransport):
    """
    Production transport using httpx for actual HTTP requests.
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        """
        Args:
            client: Preconfigured httpx client (created lazily when omitted)
        """
        self._client: httpx.AsyncClient | None = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return self._client

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float = 120.0,
    ) -> UpstreamResponse:
        """Execute HTTP request, mapping network failures to UpstreamTransportError."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                json=json,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTransportError(f"Request timed out: {e!r}") from e
        except httpx.RequestError as e:
            raise UpstreamTransportError(f"Request failed: {e!r}") from e

        return UpstreamResponse(
            status_code=response.status_code,
            headers=response.headers.multi_items(),
            content=response.content,
        )

    async def close(self) -> None:
        """Close httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class GeminiImageClient:
    """
    Single-attempt client for the Gemini images endpoint.

    The API key is supplied per call so one client serves the whole pool.
    """

    def __init__(
        self,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai",
        timeout_s: float = 120.0,
        transport: GeminiTransport | None = None,
    ):
        """
        Initialize Gemini image client.

        Args:
            base_url: Gemini OpenAI-compatible API base URL
            timeout_s: Per-call timeout in seconds
            transport: Custom transport (for testing)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

        if transport is not None:
            self.transport = transport
        else:
            self.transport = HttpxTransport()

        logger.info(
            "gemini_client_initialized",
            extra={"base_url": self.base_url, "timeout_s": timeout_s},
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/images/generations"

    def _build_headers(self, api_key: str) -> dict[str, str]:
        """Build request headers with authentication."""
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Translate an inbound request into the upstream body.

        Copies the request, drops unsupported fields, maps the model name and
        defaults response_format to b64_json. Everything else passes through.
        """
        payload = dict(request)

        for name in UNSUPPORTED_FIELDS:
            if name in payload:
                payload.pop(name)
                logger.info("unsupported_field_dropped", extra={"field": name})

        payload["model"] = map_model_name(request["model"])

        if not payload.get("response_format"):
            payload["response_format"] = DEFAULT_RESPONSE_FORMAT

        return payload

    async def call(self, request: dict[str, Any], api_key: str) -> AttemptOutcome:
        """
        Issue one upstream call with the given key.

        Args:
            request: Validated inbound request (model, prompt, pass-through fields)
            api_key: Gemini API key used as bearer token

        Returns:
            UpstreamSuccess, or the failure outcome for this attempt
        """
        payload = self.build_payload(request)
        suffix = key_suffix(api_key)

        logger.debug(
            "gemini_generate_image",
            extra={"model": payload["model"], "key_suffix": suffix},
        )

        try:
            response = await self.transport.request(
                method="POST",
                url=self.url,
                headers=self._build_headers(api_key),
                json=payload,
                timeout=self.timeout_s,
            )
        except UpstreamTransportError as e:
            logger.warning(
                "gemini_transport_error",
                extra={"key_suffix": suffix, "error": e.message},
            )
            return TransportFailure(error=e.message, key_suffix=suffix)

        if response.is_success:
            return UpstreamSuccess(
                status_code=response.status_code,
                headers=response.headers,
                content=response.content,
            )

        logger.warning(
            "gemini_api_error",
            extra={
                "status_code": response.status_code,
                "key_suffix": suffix,
                "body": response.text[:500],
            },
        )
        return classify_status(response.status_code, response.text, suffix)

    async def close(self) -> None:
        """Close client resources."""
        await self.transport.close()
        logger.debug("gemini_client_closed")

    def __repr__(self) -> str:
        return f"GeminiImageClient(base_url={self.base_url!r}, timeout_s={self.timeout_s})"
