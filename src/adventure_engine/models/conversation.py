"""Conversation models for the narrator loop.

Messages mirror the OpenAI chat-completions wire shape so the history can
be sent as-is to any OpenAI-compatible endpoint.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A tool invocation issued by the model.

    ``arguments`` is the raw JSON string exactly as received; parsing is
    the orchestrator's job.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = ""

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ChatMessage(BaseModel):
    """One role-tagged entry of the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str | None = None
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> ChatMessage:
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)

    def to_openai(self) -> dict[str, Any]:
        """Serialize to the chat-completions message format."""
        payload: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        return payload


class ChatResponse(BaseModel):
    """The assistant message returned by one narrative-service request."""

    model_config = ConfigDict(frozen=True)

    message: ChatMessage
    finish_reason: str | None = None
    model: str | None = None


class ConversationHistory:
    """Append-only, ordered message list sent with every request."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> ChatMessage | None:
        return self._messages[-1] if self._messages else None

    def to_openai(self) -> list[dict[str, Any]]:
        return [message.to_openai() for message in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)


__all__ = [
    "MessageRole",
    "ToolCallRequest",
    "ChatMessage",
    "ChatResponse",
    "ConversationHistory",
]
