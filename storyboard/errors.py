"""Exceptions raised while building a storyboard."""

from .config import DEFAULT_REFUSAL_MESSAGE, EMPTY_RESPONSE_MESSAGE


class StoryboardError(Exception):
    """Base class for storyboard failures."""
    pass


class ValidationError(StoryboardError):
    """Raised when a run is requested with unusable input (e.g. an empty script)."""
    pass


class NegotiationError(StoryboardError):
    """Raised when the scene count could not be obtained. Fatal to the run."""
    pass


class RunInProgressError(StoryboardError):
    """Raised when a new run is started while another is still generating."""
    pass


class SceneGenerationError(StoryboardError):
    """A single generation reply could not be turned into a panel.

    Recovered locally: the scene becomes a failed panel (or the edit is
    reported inline) and the rest of the storyboard is unaffected.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class EmptyResponseError(SceneGenerationError):
    """Reply had no candidate, no content or no parts (empty or blocked)."""

    def __init__(self, reason: str = EMPTY_RESPONSE_MESSAGE):
        super().__init__(reason)


class RefusalError(SceneGenerationError):
    """Reply had parts but no image; reason is the model's own text if any."""

    def __init__(self, reason: str = DEFAULT_REFUSAL_MESSAGE):
        super().__init__(reason)
