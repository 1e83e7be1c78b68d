"""
Image generation router.

Single OpenAI-compatible endpoint forwarding to Gemini. Successful upstream
responses are passed through; failures use the error envelope.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from imagen_gateway.core.dependencies import get_image_service, require_proxy_token
from imagen_gateway.core.errors import ENDPOINT_PATH
from imagen_gateway.schemas.images import ErrorResponse
from imagen_gateway.services.image_proxy import ImageProxyService, passthrough_headers

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    ENDPOINT_PATH,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_image(
    request: Request,
    service: ImageProxyService = Depends(get_image_service),
    _token: str | None = Depends(require_proxy_token),
):
    """
    Generate images through the Gemini key pool.

    **Body:** `model` and `prompt` required; other fields are forwarded
    as sent, except `seed` which Gemini does not accept.

    **Returns:** upstream status, headers and body unchanged

    **Errors:**
    - 400: Missing model or prompt
    - 401: Missing or unknown proxy token
    - 503: No valid upstream keys left
    - upstream status: last upstream error after retries
    """
    body = await request.json()
    result = await service.generate(body)

    response = Response(content=result.content, status_code=result.status_code)
    # append keeps repeated upstream headers such as set-cookie
    for name, value in passthrough_headers(result.headers):
        response.headers.append(name, value)
    return response
