"""
FastAPI dependencies shared by the routers.
"""

import hmac

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from imagen_gateway.core.config import Settings
from imagen_gateway.core.errors import AuthError
from imagen_gateway.services.image_proxy import ImageProxyService

bearer_scheme = HTTPBearer(auto_error=False)


def is_token_allowed(token: str | None, allowed_tokens: list[str]) -> bool:
    """Constant-time check of a bearer token against the configured set."""
    if not token:
        return False
    candidate = token.encode("utf-8")
    return any(
        hmac.compare_digest(candidate, allowed.encode("utf-8")) for allowed in allowed_tokens
    )


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was built with."""
    return request.app.state.settings


def get_image_service(request: Request) -> ImageProxyService:
    """Dependency to get the image proxy service from app state."""
    return request.app.state.image_service


async def require_proxy_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> str | None:
    """
    Verify the proxy bearer token.

    Open access when no AUTH_TOKENS are configured.

    Raises:
        AuthError: Missing, malformed or unknown token
    """
    if not settings.auth_enabled:
        return None

    if credentials is None:
        raise AuthError("Missing or malformed Authorization header")

    if not is_token_allowed(credentials.credentials, settings.auth_tokens_list):
        raise AuthError("Invalid API key")

    return credentials.credentials
