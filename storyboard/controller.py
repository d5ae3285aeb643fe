"""Storyboard Run Controller

RUN STATE MACHINE:
    Idle -> CountNegotiation -> SceneLoop(1..N) -> Complete
                     |
                     +-> Failed  (only a negotiation failure aborts a run)

1. VALIDATE:  Reject an empty script before any network call
2. NEGOTIATE: Ask the model how many scenes (1-15) the script needs
3. SEED:      Record the negotiation prompt/answer as the first history pair
4. LOOP:      For each scene append a prompt, generate, record a panel
5. COMPLETE:  After scene N, however many individual scenes failed

RULES:
- One run at a time; a new run replaces the previous RunState wholesale
- Scenes are generated strictly in order (each depends on the history so far)
- A failed scene becomes a failed panel and the loop moves on
- Modifications are isolated single-turn edits that never touch the history,
  serialized per panel
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from clients.gemini_client import GeminiClient, GeminiTransportError

from . import config
from .errors import (
    NegotiationError,
    RunInProgressError,
    SceneGenerationError,
    ValidationError,
)
from .models import CreativeDirection, Panel, RunState, RunStatus
from .negotiator import SceneCountNegotiator
from .prompts import build_modification_prompt, build_negotiation_prompt, build_scene_prompt
from .scene_generator import SceneGenerator
from .session import ConversationSession
from .slideshow import Slideshow

logger = logging.getLogger(__name__)


class StoryboardRenderer:
    """Receives run events for display. Every hook is a no-op by default."""

    def on_progress(self, message: str, current: int, total: int):
        pass

    def on_panel(self, index: int, panel: Panel):
        pass

    def on_panel_updated(self, index: int, panel: Panel):
        pass

    def on_error(self, message: str):
        pass


NullRenderer = StoryboardRenderer


@dataclass
class ModificationResult:
    index: int
    success: bool
    panel: Panel
    error: Optional[str] = None


def _failure_reason(error: Exception) -> str:
    if isinstance(error, SceneGenerationError):
        return error.reason
    return str(error)


def build_default_client() -> GeminiClient:
    return GeminiClient(
        api_key=config.GEMINI_API_KEY,
        base_url=config.GEMINI_BASE_URL,
        text_model=config.GEMINI_TEXT_MODEL,
        image_model=config.GEMINI_IMAGE_MODEL,
        max_attempts=config.MAX_ATTEMPTS,
        initial_backoff=config.BASE_DELAY_SECONDS,
        timeout=config.REQUEST_TIMEOUT_SECONDS,
    )


class StoryboardController:
    """Drives storyboard runs and side-channel modifications.

    Usage:
        controller = StoryboardController(renderer=my_renderer)
        state = await controller.start_run(script, CreativeDirection(style="Watercolor"))
        controller.open_modification(1)
        await controller.request_modification("Make it nighttime")
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        renderer: Optional[StoryboardRenderer] = None,
        direction_provider: Optional[Callable[[], CreativeDirection]] = None,
    ):
        """Initialize the controller.

        Args:
            client: GeminiClient for all API calls (built from config if omitted)
            renderer: Receives progress, panels and errors (optional)
            direction_provider: Returns the creative direction currently
                selected by the user; consulted again for every modification
        """
        self.client = client or build_default_client()
        self.negotiator = SceneCountNegotiator(self.client)
        self.generator = SceneGenerator(self.client)
        self.renderer = renderer or NullRenderer()
        self.direction_provider = direction_provider

        self.state: Optional[RunState] = None
        self.edit_target: Optional[int] = None
        self._edit_locks: dict[int, asyncio.Lock] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # ==================== RUN ====================

    async def start_run(
        self,
        script: str,
        direction: Optional[CreativeDirection] = None,
    ) -> RunState:
        """Build a complete storyboard for *script*.

        Returns:
            The new RunState. On a negotiation failure (or any unexpected
            error) its status is FAILED and the error was sent to the renderer.

        Raises:
            ValidationError: Empty script (nothing is sent, state untouched)
            RunInProgressError: Another run has not finished yet
        """
        script = (script or "").strip()
        if not script:
            message = "Please enter a script first."
            self.renderer.on_error(message)
            raise ValidationError(message)
        if self._running:
            raise RunInProgressError("A storyboard is already being generated.")

        direction = direction or self._current_direction()
        state = RunState(script=script, direction=direction)
        self.state = state
        self.edit_target = None
        self._edit_locks = {}

        self._running = True
        try:
            await self._run(state)
        except Exception as e:
            logger.exception("Unexpected error during storyboard run")
            self._handle_failure(
                state, str(e) or "An unknown error occurred during the process."
            )
        finally:
            self._running = False
        return state

    async def _run(self, state: RunState):
        state.status = RunStatus.COUNT_NEGOTIATION
        self.renderer.on_progress("Asking AI to determine scene breaks...", 0, 0)

        try:
            scene_count = await self.negotiator.negotiate(state.script, state.direction)
        except NegotiationError as e:
            return self._handle_failure(state, str(e))

        state.scene_count = scene_count
        session = ConversationSession(state.history)
        session.seed(build_negotiation_prompt(state.script, state.direction), str(scene_count))

        state.status = RunStatus.SCENE_LOOP
        for scene_number in range(1, scene_count + 1):
            state.current_scene = scene_number
            self.renderer.on_progress(
                f"Generating Scene {scene_number} of {scene_count}...",
                scene_number,
                scene_count,
            )
            panel = await self._generate_panel(session, scene_number, scene_count)
            state.storyboard.append(panel)
            self.renderer.on_panel(scene_number - 1, panel)

        state.status = RunStatus.COMPLETE
        failed = len(state.failed_scenes)
        logger.info(
            "Storyboard complete: %d scenes, %d failed", scene_count, failed
        )

    async def _generate_panel(
        self,
        session: ConversationSession,
        scene_number: int,
        scene_count: int,
    ) -> Panel:
        session.append_user_turn(build_scene_prompt(scene_number, scene_count))
        try:
            result = await self.generator.generate_scene(session)
        except (SceneGenerationError, GeminiTransportError) as e:
            reason = _failure_reason(e)
            logger.warning("Scene %d failed: %s", scene_number, reason)
            return Panel.failure(scene_number, reason)

        logger.info("Scene %d of %d ready", scene_number, scene_count)
        return Panel.from_result(result)

    def _handle_failure(self, state: RunState, message: str):
        state.status = RunStatus.FAILED
        state.error = message
        logger.error("Storyboard generation failed: %s", message)
        self.renderer.on_error(message)

    # ==================== MODIFICATION ====================

    def _current_direction(self) -> CreativeDirection:
        if self.direction_provider is not None:
            return self.direction_provider()
        if self.state is not None:
            return self.state.direction
        return CreativeDirection()

    def _editable_panel(self, index: Optional[int]) -> Optional[Panel]:
        if self.state is None or index is None:
            return None
        if not 0 <= index < len(self.state.storyboard):
            return None
        panel = self.state.storyboard[index]
        if panel.failed or panel.image is None:
            return None
        return panel

    def open_modification(self, index: int) -> Optional[Panel]:
        """Point the edit target at panel *index*; unset it if that panel can't be edited."""
        panel = self._editable_panel(index)
        self.edit_target = index if panel is not None else None
        return panel

    def close_modification(self):
        self.edit_target = None

    async def request_modification(
        self,
        instruction: str,
        index: Optional[int] = None,
        direction: Optional[CreativeDirection] = None,
    ) -> Optional[ModificationResult]:
        """Apply *instruction* to one panel's image as an isolated edit.

        Uses *index* if given, otherwise the current edit target. The
        creative direction is re-read at call time. On success only the
        panel's image changes; its caption and original caption stay as
        they were.

        Returns:
            ModificationResult, or None when there is no editable panel at
            the target (nothing is sent in that case)
        """
        if index is None:
            index = self.edit_target
        panel = self._editable_panel(index)
        if panel is None:
            logger.info("No editable panel at index %s, modification ignored", index)
            return None

        instruction = (instruction or "").strip()
        if not instruction:
            raise ValidationError("Please describe the modification.")

        prompt = build_modification_prompt(instruction, direction or self._current_direction())
        state = self.state
        lock = self._edit_locks.setdefault(index, asyncio.Lock())

        async with lock:
            logger.info("Modifying scene %d: %s", index + 1, instruction)
            try:
                result = await self.generator.generate_edit(
                    prompt,
                    panel.image,
                    fallback_caption=panel.original_caption,
                )
            except (SceneGenerationError, GeminiTransportError, ValueError) as e:
                message = f"Modification Failed: {_failure_reason(e)}"
                logger.warning("Scene %d: %s", index + 1, message)
                return ModificationResult(index=index, success=False, panel=panel, error=message)

            if self.state is not state:
                message = "Modification Failed: the storyboard was replaced by a new run."
                logger.warning("Scene %d: %s", index + 1, message)
                return ModificationResult(index=index, success=False, panel=panel, error=message)

            panel.image = result.image

        self.renderer.on_panel_updated(index, panel)
        return ModificationResult(index=index, success=True, panel=panel)

    # ==================== PLAYBACK ====================

    def slideshow(self, interval: float = config.SLIDESHOW_INTERVAL_SECONDS) -> Slideshow:
        storyboard = self.state.storyboard if self.state is not None else []
        return Slideshow(storyboard, interval=interval)
