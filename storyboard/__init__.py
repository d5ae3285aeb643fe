"""
storyboard — script-to-storyboard generation over a multi-turn Gemini conversation.

High-level API::

    from storyboard import StoryboardController, CreativeDirection

    controller = StoryboardController()
    state  = await controller.start_run(script, CreativeDirection(style="Watercolor"))
    result = await controller.request_modification("Make it rain", index=0)
    shown  = await controller.slideshow().play(print)
"""

from .models import (
    CreativeDirection,
    ConversationTurn,
    InlineImage,
    Panel,
    PanelResult,
    PlaybackFrame,
    RunState,
    RunStatus,
    TextPart,
)
from .errors import (
    StoryboardError,
    ValidationError,
    NegotiationError,
    RunInProgressError,
    SceneGenerationError,
    EmptyResponseError,
    RefusalError,
)
from .negotiator import SceneCountNegotiator, parse_scene_count
from .session import ConversationSession
from .scene_generator import SceneGenerator
from .controller import (
    ModificationResult,
    NullRenderer,
    StoryboardController,
    StoryboardRenderer,
)
from .slideshow import Slideshow, build_playback_frames
from .exporter import export_storyboard

__all__ = [
    "CreativeDirection",
    "ConversationTurn",
    "InlineImage",
    "Panel",
    "PanelResult",
    "PlaybackFrame",
    "RunState",
    "RunStatus",
    "TextPart",
    "StoryboardError",
    "ValidationError",
    "NegotiationError",
    "RunInProgressError",
    "SceneGenerationError",
    "EmptyResponseError",
    "RefusalError",
    "SceneCountNegotiator",
    "parse_scene_count",
    "ConversationSession",
    "SceneGenerator",
    "ModificationResult",
    "NullRenderer",
    "StoryboardController",
    "StoryboardRenderer",
    "Slideshow",
    "build_playback_frames",
    "export_storyboard",
]
