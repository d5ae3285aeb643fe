"""Conversation session: the append-only turn history that gives the model memory."""

from typing import Any, Optional

from .models import ConversationTurn, TextPart


class ConversationSession:
    """Owns the ordered ConversationHistory of one run.

    The API keeps no server-side state, so the whole history is resent on
    every scene request. Turns are only ever appended, in call order.
    """

    def __init__(self, history: Optional[list[ConversationTurn]] = None):
        # Shares the list with RunState.history when one is passed in
        self.history = history if history is not None else []

    def __len__(self) -> int:
        return len(self.history)

    def seed(self, user_prompt: str, model_reply: str):
        """Record the negotiation exchange as the opening user/model pair."""
        self.history.append(ConversationTurn.user(TextPart(user_prompt)))
        self.history.append(ConversationTurn.model_text(model_reply))

    def append_user_turn(self, prompt: str):
        self.history.append(ConversationTurn.user(TextPart(prompt)))

    def append_model_turn(self, content: dict[str, Any]):
        """Append the model's reply content verbatim (text and images)."""
        self.history.append(ConversationTurn.from_wire(content))

    def to_contents(self) -> list[dict[str, Any]]:
        """Full history in request wire format."""
        return [turn.to_wire() for turn in self.history]
