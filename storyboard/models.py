"""Data model for a storyboard run: conversation turns, panels and run state."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .config import DEFAULT_STYLE, FAILED_ORIGINAL_CAPTION, PLACEHOLDER_IMAGE_URL


# ---------------------------------------------------------------------------
# Creative direction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreativeDirection:
    """Character/style constraints injected into every generation prompt."""
    style: str = DEFAULT_STYLE
    character: Optional[str] = None

    def __post_init__(self):
        character = (self.character or "").strip() or None
        style = (self.style or "").strip() or DEFAULT_STYLE
        object.__setattr__(self, "character", character)
        object.__setattr__(self, "style", style)


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextPart:
    text: str

    def to_wire(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineImage:
    """Inline image payload, kept base64-encoded exactly as the API sent it."""
    mime_type: str
    data: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "image/png") -> "InlineImage":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("utf-8"))

    @property
    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_wire(self) -> dict[str, Any]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


Part = Union[TextPart, InlineImage]


def parse_part(wire: dict[str, Any]) -> Optional[Part]:
    """Turn one wire-format part into a TextPart or InlineImage.

    Accepts both the camelCase and snake_case spellings. Parts of any other
    kind (function calls, thought signatures...) or shape return None.
    """
    if not isinstance(wire, dict):
        return None
    inline = wire.get("inlineData") or wire.get("inline_data")
    if isinstance(inline, dict):
        mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
        data = inline.get("data", "")
        if not isinstance(data, str):
            return None
        return InlineImage(mime_type=str(mime_type), data=data)
    text = wire.get("text")
    if isinstance(text, str):
        return TextPart(text)
    return None


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

USER_ROLE = "user"
MODEL_ROLE = "model"


@dataclass
class ConversationTurn:
    role: str
    parts: list[Part]
    # Model reply content exactly as received; replayed as-is
    raw: Optional[dict[str, Any]] = None

    @classmethod
    def user(cls, *parts: Part) -> "ConversationTurn":
        return cls(role=USER_ROLE, parts=list(parts))

    @classmethod
    def model_text(cls, text: str) -> "ConversationTurn":
        return cls(role=MODEL_ROLE, parts=[TextPart(text)])

    @classmethod
    def from_wire(cls, content: dict[str, Any], role: str = MODEL_ROLE) -> "ConversationTurn":
        wire_parts = content.get("parts")
        if not isinstance(wire_parts, list):
            wire_parts = []
        parts = [p for p in (parse_part(w) for w in wire_parts) if p is not None]
        return cls(role=content.get("role") or role, parts=parts, raw=content)

    @property
    def text(self) -> Optional[str]:
        """First non-empty text part, if any."""
        for part in self.parts:
            if isinstance(part, TextPart) and part.text:
                return part.text
        return None

    @property
    def image(self) -> Optional[InlineImage]:
        """First inline image part, if any."""
        for part in self.parts:
            if isinstance(part, InlineImage):
                return part
        return None

    def to_wire(self) -> dict[str, Any]:
        if self.raw is not None:
            wire = dict(self.raw)
            wire.setdefault("role", self.role)
            return wire
        return {"role": self.role, "parts": [p.to_wire() for p in self.parts]}


# ---------------------------------------------------------------------------
# Panels
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PanelResult:
    """Normalized successful generation reply."""
    image: InlineImage
    caption: str
    # Text the model actually returned (None when the caption is a fallback)
    text: Optional[str] = None


@dataclass
class Panel:
    """One storyboard scene. Its identity is its position in the storyboard."""
    caption: str
    original_caption: str
    image: Optional[InlineImage] = None
    failed: bool = False
    failure_reason: Optional[str] = None

    @classmethod
    def from_result(cls, result: PanelResult) -> "Panel":
        return cls(
            caption=result.caption,
            original_caption=result.caption,
            image=result.image,
        )

    @classmethod
    def failure(cls, scene_number: int, reason: str) -> "Panel":
        return cls(
            caption=f"Scene {scene_number} Failed: {reason}",
            original_caption=FAILED_ORIGINAL_CAPTION,
            failed=True,
            failure_reason=reason,
        )

    @property
    def image_url(self) -> str:
        if self.image is None:
            return PLACEHOLDER_IMAGE_URL
        return self.image.data_url


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

class RunStatus(str, Enum):
    IDLE = "idle"
    COUNT_NEGOTIATION = "count_negotiation"
    SCENE_LOOP = "scene_loop"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class RunState:
    """Everything belonging to one storyboard run. Replaced wholesale per run."""
    script: str
    direction: CreativeDirection
    scene_count: int = 0
    history: list[ConversationTurn] = field(default_factory=list)
    storyboard: list[Panel] = field(default_factory=list)
    current_scene: int = 0
    status: RunStatus = RunStatus.IDLE
    error: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self.status in (RunStatus.COUNT_NEGOTIATION, RunStatus.SCENE_LOOP)

    @property
    def failed_scenes(self) -> list[int]:
        return [i for i, panel in enumerate(self.storyboard) if panel.failed]


@dataclass(frozen=True)
class PlaybackFrame:
    index: int
    label: str
    caption: str
    image_url: str
    animation: str
