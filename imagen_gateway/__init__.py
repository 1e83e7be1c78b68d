"""
Imagen Gateway: OpenAI-compatible image generation proxy for Gemini/Imagen.
"""

__version__ = "0.1.0"
