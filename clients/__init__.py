"""API Clients for the storyboard generator."""

from .gemini_client import GeminiClient, GeminiTransportError

__all__ = [
    "GeminiClient",
    "GeminiTransportError",
]
