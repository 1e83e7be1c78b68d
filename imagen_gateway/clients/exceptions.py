"""
Domain-specific exceptions for the Gemini upstream client.

Per-attempt failures are returned as AttemptOutcome values (see
outcomes.py); only terminal conditions are raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imagen_gateway.clients.outcomes import AttemptFailure


class GeminiClientError(Exception):
    """Base exception for Gemini upstream client errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UpstreamTransportError(GeminiClientError):
    """Raised by a transport when the upstream could not be reached at all."""

    def __init__(self, message: str = "Upstream request failed"):
        super().__init__(message)


class NoKeysAvailableError(GeminiClientError):
    """Raised when the active key pool is empty."""

    def __init__(self, message: str = "No valid API keys available"):
        super().__init__(message, status_code=503)


class UpstreamRetriesExhaustedError(GeminiClientError):
    """
    Raised when every attempt for a request failed.

    Carries the last observed failure outcome (None if nothing was captured).
    """

    def __init__(self, last_outcome: AttemptFailure | None = None, attempts: int = 0):
        message = last_outcome.message if last_outcome is not None else "Max retries exceeded"
        super().__init__(message, status_code=getattr(last_outcome, "status_code", None))
        self.last_outcome = last_outcome
        self.attempts = attempts
