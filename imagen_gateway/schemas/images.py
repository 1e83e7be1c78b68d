"""
Pydantic schemas for the image generation endpoint.
"""

from pydantic import BaseModel, ConfigDict, Field


class ImageGenerationRequest(BaseModel):
    """
    OpenAI-style image generation request.

    Only model and prompt are checked; every other field (n, size,
    response_format, ...) is kept as sent and forwarded upstream.
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model: str = Field(..., min_length=1, description="Model name or alias")
    prompt: str = Field(..., min_length=1, description="Text prompt")


class ErrorDetail(BaseModel):
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error envelope returned for every failure."""

    error: ErrorDetail
