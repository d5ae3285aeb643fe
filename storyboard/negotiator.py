"""Scene count negotiation: one text-only exchange deciding how many scenes to draw."""

import logging
import re

from clients.gemini_client import GeminiClient, GeminiTransportError

from .config import DEFAULT_SCENE_COUNT, MAX_SCENES, MIN_SCENES
from .errors import NegotiationError
from .models import CreativeDirection
from .prompts import build_negotiation_prompt

logger = logging.getLogger(__name__)

_FIRST_NUMBER = re.compile(r"\d+")


def parse_scene_count(text: str) -> int:
    """Read the first run of digits anywhere in the reply.

    No digits -> DEFAULT_SCENE_COUNT. The result is clamped to
    [MIN_SCENES, MAX_SCENES].
    """
    match = _FIRST_NUMBER.search(text or "")
    count = int(match.group(0)) if match else DEFAULT_SCENE_COUNT
    return max(MIN_SCENES, min(count, MAX_SCENES))


class SceneCountNegotiator:
    """Asks the model how many scenes a script needs.

    Sends a single-turn request with no history. Recording the exchange
    into the conversation is the caller's job.
    """

    def __init__(self, client: GeminiClient):
        self.client = client

    async def negotiate(self, script: str, direction: CreativeDirection) -> int:
        """Return the scene count for *script*, always within [1, 15].

        Raises:
            NegotiationError: If the request fails or the reply has no text.
                A reply with text but no usable number falls back to the
                default count instead.
        """
        prompt = build_negotiation_prompt(script, direction)
        try:
            text = await self.client.generate_text(prompt)
        except (GeminiTransportError, ValueError) as e:
            raise NegotiationError(f"Text prompt error: {e}") from e

        if not text:
            raise NegotiationError("AI failed to determine scene count.")

        count = parse_scene_count(text)
        logger.info("AI decided on %d scenes (reply: %r)", count, text[:80])
        return count
