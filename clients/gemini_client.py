"""Google Gemini API client for storyboard text and image generation."""

import asyncio
import logging
import os
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class GeminiTransportError(Exception):
    """Raised when a Gemini request still fails after every retry attempt."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GeminiClient:
    """Client for Google Gemini API (REST-based, no SDK dependency).

    Every request is retried with exponential backoff: up to MAX_ATTEMPTS
    tries, sleeping INITIAL_BACKOFF * 2**attempt seconds between them.
    The final failure is raised, never swallowed.
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    TEXT_MODEL = "gemini-2.5-flash"
    IMAGE_MODEL = "gemini-2.5-flash-image-preview"

    MAX_ATTEMPTS = 3
    INITIAL_BACKOFF = 1.0
    TIMEOUT = 120.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        initial_backoff: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        # Missing key is only an error once a request is made
        if not self.api_key:
            logger.warning("GEMINI_API_KEY not found - requests will fail until one is supplied")

        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.text_model = text_model or self.TEXT_MODEL
        self.image_model = image_model or self.IMAGE_MODEL
        self.max_attempts = max_attempts or self.MAX_ATTEMPTS
        self.initial_backoff = (
            self.INITIAL_BACKOFF if initial_backoff is None else initial_backoff
        )
        self.timeout = timeout or self.TIMEOUT
        self._transport = transport

    def _require_api_key(self):
        """Raise error if API key is missing (called before actual API use)."""
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not found in environment")

    def model_url(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    async def send(self, url: str, payload: dict) -> dict:
        """POST a JSON payload with bounded exponential-backoff retry.

        Args:
            url: Endpoint URL (the API key is appended as a query parameter)
            payload: JSON request body

        Returns:
            Decoded JSON response body

        Raises:
            GeminiTransportError: If every attempt fails (network error or
                non-2xx status), or the final response is not JSON
        """
        self._require_api_key()
        params = {"key": self.api_key}

        last_error: Optional[GeminiTransportError] = None
        last_cause: Optional[Exception] = None
        for attempt in range(self.max_attempts):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(url, params=params, json=payload)
                    response.raise_for_status()
                break
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = GeminiTransportError(
                    f"API request failed: {status}", status=status
                )
                last_cause = e
            except httpx.HTTPError as e:
                last_error = GeminiTransportError(f"API request failed: {e}")
                last_cause = e

            if attempt < self.max_attempts - 1:
                wait_time = self.initial_backoff * (2 ** attempt)
                logger.warning(
                    "%s, retry %d/%d in %.1fs",
                    last_error, attempt + 1, self.max_attempts - 1, wait_time,
                )
                await asyncio.sleep(wait_time)
        else:
            raise last_error from last_cause

        try:
            return response.json()
        except ValueError as e:
            raise GeminiTransportError(
                "API response was not valid JSON", status=response.status_code
            ) from e

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> Optional[str]:
        """Send a single-turn text prompt and return the reply text.

        Returns:
            Stripped text of the first candidate's first text part, or None
            if the reply carries no text at all
        """
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        data = await self.send(self.model_url(model or self.text_model), payload)

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates:
            return None
        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return None
        for part in parts:
            text = part.get("text") if isinstance(part, dict) else None
            if isinstance(text, str) and text:
                return text.strip()
        return None

    async def generate_content(
        self,
        contents: list[dict],
        model: Optional[str] = None,
        response_modalities: Optional[list[str]] = None,
    ) -> dict:
        """Send an ordered multi-turn request asking for text and image output.

        Args:
            contents: Wire-format turns ({"role", "parts"}), sent in order
            model: Model name (defaults to the image model)
            response_modalities: Requested reply modalities

        Returns:
            Raw response JSON; interpreting candidates is left to the caller
        """
        payload = {
            "contents": contents,
            "generationConfig": {
                "responseModalities": response_modalities or ["TEXT", "IMAGE"],
            },
        }
        return await self.send(self.model_url(model or self.image_model), payload)
