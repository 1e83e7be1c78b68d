"""
API routers.
"""

from imagen_gateway.routers import images

__all__ = [
    "images",
]
