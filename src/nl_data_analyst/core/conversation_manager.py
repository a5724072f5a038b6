"""
ConversationManager - Pure Python session log.

Holds the ordered chat for the loaded dataset with zero Streamlit dependencies.
The log is append-only: messages are frozen once added and there is no update
operation. It is cleared in full when a new dataset is loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import uuid4

from nl_data_analyst.core.analysis_response import AnalysisResponse
from nl_data_analyst.core.result_classifier import ClassifiedResult

__all__ = ["AssistantTurn", "ChatMessage", "ConversationManager"]


@dataclass(frozen=True)
class AssistantTurn:
    """Structured answer plus the classified execution result."""

    response: AnalysisResponse
    result: ClassifiedResult


@dataclass(frozen=True)
class ChatMessage:
    """Represents a single message in the conversation transcript."""

    id: str
    role: Literal["user", "assistant"]
    timestamp: datetime
    payload: str | AssistantTurn
    error: bool = False

    @property
    def turn(self) -> AssistantTurn | None:
        return self.payload if isinstance(self.payload, AssistantTurn) else None

    @property
    def text(self) -> str:
        """Plain text of the message (the summary for structured turns)."""
        if isinstance(self.payload, AssistantTurn):
            return self.payload.response.final_summary
        return self.payload


class ConversationManager:
    """
    Manages the session log for one dataset.

    Pure Python class; the Streamlit app keeps one instance in session state.
    """

    def __init__(self) -> None:
        """Initialize empty conversation manager."""
        self._messages: list[ChatMessage] = []

    def _append(
        self,
        role: Literal["user", "assistant"],
        payload: str | AssistantTurn,
        error: bool = False,
    ) -> ChatMessage:
        message = ChatMessage(
            id=str(uuid4()),
            role=role,
            timestamp=datetime.now(),
            payload=payload,
            error=error,
        )
        self._messages.append(message)
        return message

    def add_user_message(self, text: str) -> ChatMessage:
        """
        Append the user's question.

        Args:
            text: Question as typed

        Returns:
            The appended message
        """
        return self._append("user", text)

    def add_assistant_turn(self, response: AnalysisResponse, result: ClassifiedResult) -> ChatMessage:
        """Append a structured assistant answer."""
        return self._append("assistant", AssistantTurn(response=response, result=result))

    def add_fault_message(self, text: str) -> ChatMessage:
        """Append an assistant message marking a failed turn."""
        return self._append("assistant", text, error=True)

    def get_transcript(self) -> tuple[ChatMessage, ...]:
        """
        Get full conversation transcript.

        Returns:
            Messages in chronological order
        """
        return tuple(self._messages)

    def last_user_message_before(self, message_id: str) -> ChatMessage | None:
        """
        Find the question that led to a given assistant message.

        Args:
            message_id: ID of an assistant message

        Returns:
            Closest preceding user message, or None if the ID is unknown or no
            user message precedes it
        """
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                for earlier in reversed(self._messages[:index]):
                    if earlier.role == "user":
                        return earlier
                return None
        return None

    def clear(self) -> None:
        """Drop every message."""
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
