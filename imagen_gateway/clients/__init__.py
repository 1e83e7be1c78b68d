"""
Upstream API clients.

This package contains the Gemini images client, the key pool and the
retrying pool client, with a pluggable transport for tests.
"""

from imagen_gateway.clients.exceptions import (
    GeminiClientError,
    NoKeysAvailableError,
    UpstreamRetriesExhaustedError,
    UpstreamTransportError,
)
from imagen_gateway.clients.gemini import (
    GeminiImageClient,
    GeminiTransport,
    HttpxTransport,
    UpstreamResponse,
)
from imagen_gateway.clients.gemini_pool import GeminiPoolClient
from imagen_gateway.clients.key_pool import KeyPool
from imagen_gateway.clients.outcomes import (
    AttemptFailure,
    AttemptOutcome,
    GenericUpstreamError,
    InvalidCredential,
    RateLimited,
    RuntimeUnauthorized,
    ServerError,
    TransportFailure,
    UpstreamSuccess,
)

__all__ = [
    # Gemini Client
    "GeminiImageClient",
    "GeminiTransport",
    "HttpxTransport",
    "UpstreamResponse",
    "GeminiPoolClient",
    # Key Pool
    "KeyPool",
    # Attempt outcomes
    "AttemptOutcome",
    "AttemptFailure",
    "UpstreamSuccess",
    "RateLimited",
    "InvalidCredential",
    "RuntimeUnauthorized",
    "ServerError",
    "GenericUpstreamError",
    "TransportFailure",
    # Exceptions
    "GeminiClientError",
    "NoKeysAvailableError",
    "UpstreamRetriesExhaustedError",
    "UpstreamTransportError",
]
