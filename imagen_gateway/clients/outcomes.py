"""
Typed result of a single upstream call.

AttemptOutcome is a closed union: one success case and one dataclass per
failure class the retry loop distinguishes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class UpstreamSuccess:
    """2xx response, forwarded to the caller untouched."""

    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    content: bytes = b""


@dataclass(frozen=True)
class _HttpFailure:
    status_code: int
    body: str
    key_suffix: str

    @property
    def message(self) -> str:
        return self.body or f"Upstream returned HTTP {self.status_code}"


@dataclass(frozen=True)
class RateLimited(_HttpFailure):
    """429: upstream overload for this key, retried with exponential backoff."""


@dataclass(frozen=True)
class InvalidCredential(_HttpFailure):
    """400/403: the key is permanently unusable."""


@dataclass(frozen=True)
class RuntimeUnauthorized(_HttpFailure):
    """401: treated as transient, the key stays in the pool."""


@dataclass(frozen=True)
class ServerError(_HttpFailure):
    """5xx from upstream."""


@dataclass(frozen=True)
class GenericUpstreamError(_HttpFailure):
    """Any other non-2xx status."""

    @property
    def message(self) -> str:
        return f"Upstream API error ({self.status_code}): {self.body}"


@dataclass(frozen=True)
class TransportFailure:
    """The upstream could not be reached (connection error, timeout, ...)."""

    error: str
    key_suffix: str
    status_code: None = None

    @property
    def message(self) -> str:
        return f"Upstream request failed: {self.error}"


AttemptFailure = Union[
    RateLimited,
    InvalidCredential,
    RuntimeUnauthorized,
    ServerError,
    GenericUpstreamError,
    TransportFailure,
]

AttemptOutcome = Union[UpstreamSuccess, AttemptFailure]


def classify_status(status_code: int, body: str, key_suffix: str) -> AttemptFailure:
    """Map a non-2xx upstream status to its failure outcome."""
    if status_code in (400, 403):
        return InvalidCredential(status_code, body, key_suffix)
    if status_code == 429:
        return RateLimited(status_code, body, key_suffix)
    if status_code == 401:
        return RuntimeUnauthorized(status_code, body, key_suffix)
    if status_code >= 500:
        return ServerError(status_code, body, key_suffix)
    return GenericUpstreamError(status_code, body, key_suffix)
