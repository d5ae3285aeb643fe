"""
Slideshow playback of a finished storyboard.

Failed panels are skipped but keep their shot numbers, so the labels
always match the storyboard grid. Each frame gets a random Ken Burns
animation for visual variety.
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Optional

from .config import KEN_BURNS_ANIMATIONS, SLIDESHOW_INTERVAL_SECONDS
from .models import Panel, PlaybackFrame


def build_playback_frames(
    storyboard: list[Panel],
    rng: Optional[random.Random] = None,
) -> list[PlaybackFrame]:
    """One frame per non-failed panel, in storyboard order."""
    rng = rng or random.Random()
    frames = []
    for index, panel in enumerate(storyboard):
        if panel.failed:
            continue
        frames.append(PlaybackFrame(
            index=index,
            label=f"SHOT {index + 1}",
            caption=panel.original_caption,
            image_url=panel.image_url,
            animation=rng.choice(KEN_BURNS_ANIMATIONS),
        ))
    return frames


class Slideshow:
    """Timed playback. ``stop()`` only ends the timer, never a network call."""

    def __init__(
        self,
        storyboard: list[Panel],
        interval: float = SLIDESHOW_INTERVAL_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.frames = build_playback_frames(storyboard, rng)
        self.interval = interval
        self.playing = False
        self._stop_event = asyncio.Event()

    async def play(self, on_frame: Callable[[PlaybackFrame], None]) -> int:
        """Show each frame for ``interval`` seconds.

        Returns:
            Number of frames shown before playback finished or was stopped.
        """
        self._stop_event.clear()
        self.playing = True
        shown = 0
        try:
            for frame in self.frames:
                on_frame(frame)
                shown += 1
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                    break
                except asyncio.TimeoutError:
                    continue
        finally:
            self.playing = False
        return shown

    def stop(self):
        self._stop_event.set()
