"""
Client-facing gateway errors.

Each error knows its HTTP status and the `type` string of the
{"error": {"message", "type"}} envelope.
"""

from __future__ import annotations

ENDPOINT_PATH = "/v1/images/generations"


class ProxyError(Exception):
    """Base exception for errors reported to gateway clients."""

    status_code: int = 500
    error_type: str = "api_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_type: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type


class AuthError(ProxyError):
    """Missing, malformed or unknown proxy bearer token."""

    status_code = 401
    error_type = "auth_error"

    def __init__(self, message: str = "Invalid or missing API key"):
        super().__init__(message)


class RequestValidationFailed(ProxyError):
    """Malformed request body or missing required fields."""

    status_code = 400
    error_type = "invalid_request_error"


class EndpointNotFound(ProxyError):
    status_code = 404
    error_type = "invalid_request_error"

    def __init__(self, message: str = f"Not Found. Endpoint should be POST {ENDPOINT_PATH}"):
        super().__init__(message)


class NoValidKeysError(ProxyError):
    """Every configured upstream key is invalid."""

    status_code = 503
    error_type = "no_valid_keys"

    def __init__(self, message: str = "No valid API keys available"):
        super().__init__(message)


def error_body(message: str, error_type: str) -> dict:
    """Build the JSON error envelope."""
    return {"error": {"message": message, "type": error_type}}
