"""Scene generation: one image+text call per scene, plus isolated image edits."""

import logging
from typing import Any, Optional

from clients.gemini_client import GeminiClient

from .config import FALLBACK_CAPTION
from .errors import EmptyResponseError, RefusalError
from .models import ConversationTurn, InlineImage, PanelResult, TextPart
from .session import ConversationSession

logger = logging.getLogger(__name__)


def extract_content(response: dict[str, Any]) -> dict[str, Any]:
    """Return the first candidate's content, or raise if there is nothing usable.

    Raises:
        EmptyResponseError: No candidate, no content, or no parts (this is
            also how a safety block looks), or any of them has the wrong shape
    """
    if not isinstance(response, dict):
        raise EmptyResponseError()
    candidates = response.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise EmptyResponseError()

    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    if not isinstance(content, dict):
        raise EmptyResponseError()
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts:
        raise EmptyResponseError()
    return content


def normalize_content(
    content: dict[str, Any],
    fallback_caption: Optional[str] = None,
) -> PanelResult:
    """Pick the first text part and the first image part out of a reply.

    Raises:
        RefusalError: Parts are present but none is an image. The model's
            text, when present, becomes the refusal reason.
    """
    turn = ConversationTurn.from_wire(content)
    text = turn.text
    image = turn.image

    if image is None:
        if text:
            raise RefusalError(text)
        raise RefusalError()

    caption = text or fallback_caption or FALLBACK_CAPTION
    return PanelResult(image=image, caption=caption, text=text)


class SceneGenerator:
    """Issues generation calls and normalizes the heterogeneous reply shape.

    Two modes share the same normalization:
    - continuation: sends the whole session history; the reply is appended
      to the history only on success
    - edit: sends one isolated user turn (instruction + base image) and never
      touches any session
    """

    def __init__(self, client: GeminiClient):
        self.client = client

    async def generate_scene(
        self,
        session: ConversationSession,
        fallback_caption: Optional[str] = None,
    ) -> PanelResult:
        response = await self.client.generate_content(session.to_contents())
        content = extract_content(response)
        result = normalize_content(content, fallback_caption)
        session.append_model_turn(content)
        return result

    async def generate_edit(
        self,
        instruction_prompt: str,
        base_image: InlineImage,
        fallback_caption: Optional[str] = None,
    ) -> PanelResult:
        turn = ConversationTurn.user(TextPart(instruction_prompt), base_image)
        logger.debug("Sending isolated edit request (%s base image)", base_image.mime_type)
        response = await self.client.generate_content([turn.to_wire()])
        content = extract_content(response)
        return normalize_content(content, fallback_caption)
