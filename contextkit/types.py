"""Message and content block types for conversation history."""

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union


@dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock:
    """A tool invocation requested by the assistant."""

    id: str = ""
    name: str = ""
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class ToolResultBlock:
    """The output of a tool invocation."""

    tool_use_id: str = ""
    content: Any = ""
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            data["is_error"] = True
        return data


@dataclass(frozen=True)
class ThinkingBlock:
    """Model reasoning. Never counted as message text."""

    thinking: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "thinking", "thinking": self.thinking}


@dataclass(frozen=True)
class UnknownBlock:
    """A block whose shape was not recognized. Contributes no text."""

    raw: Any = None

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.raw, dict):
            return dict(self.raw)
        return {"type": "unknown"}


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, ThinkingBlock, UnknownBlock]
_BLOCK_TYPES = (TextBlock, ToolUseBlock, ToolResultBlock, ThinkingBlock, UnknownBlock)


def block_from_dict(data: Any) -> ContentBlock:
    """
    Build a content block from its dict form.

    Anything that isn't a dict with a known ``type`` becomes an UnknownBlock.
    """
    if not isinstance(data, dict):
        return UnknownBlock(raw=data)

    block_type = data.get("type")
    if block_type == "text" and isinstance(data.get("text"), str):
        return TextBlock(text=data["text"])
    if block_type == "tool_use":
        tool_input = data.get("input")
        return ToolUseBlock(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=str(data.get("tool_use_id") or ""),
            content=data.get("content", ""),
            is_error=bool(data.get("is_error", False)),
        )
    if block_type == "thinking":
        return ThinkingBlock(thinking=str(data.get("thinking") or ""))
    return UnknownBlock(raw=data)


def serialize_block(block: ContentBlock) -> str:
    """Canonical compact JSON form of a block, used for token accounting."""
    return json.dumps(block.to_dict(), ensure_ascii=False, separators=(",", ":"), default=str)


@dataclass(frozen=True)
class Message:
    """
    A single conversation message.

    Messages are owned by the caller's session store and are never mutated
    here; compression returns the same instances it was given.
    """

    role: str
    content: Union[str, tuple[ContentBlock, ...]] = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Freeze block lists into tuples, parsing any raw block dicts."""
        if isinstance(self.content, (list, tuple)):
            blocks = tuple(
                block if isinstance(block, _BLOCK_TYPES) else block_from_dict(block)
                for block in self.content
            )
            object.__setattr__(self, "content", blocks)

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        """Content blocks, or an empty tuple for plain string content."""
        if isinstance(self.content, tuple):
            return self.content
        return ()

    def text(self) -> str:
        """Text content only: the string itself, or text blocks joined by newlines."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(block.text for block in self.blocks if isinstance(block, TextBlock))

    def has_tool_blocks(self) -> bool:
        """Check if the message carries a tool_use or tool_result block."""
        return any(isinstance(block, (ToolUseBlock, ToolResultBlock)) for block in self.blocks)

    def tool_uses(self) -> list[ToolUseBlock]:
        """Get all tool use blocks."""
        return [block for block in self.blocks if isinstance(block, ToolUseBlock)]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Build a message from a session-store dict."""
        raw_content = data.get("content", "")
        if isinstance(raw_content, str):
            content: Union[str, tuple[ContentBlock, ...]] = raw_content
        elif isinstance(raw_content, (list, tuple)):
            content = tuple(block_from_dict(item) for item in raw_content)
        else:
            content = ""

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp)
            except ValueError:
                timestamp = None
        elif isinstance(timestamp, (int, float)):
            try:
                timestamp = datetime.fromtimestamp(timestamp)
            except (OverflowError, OSError, ValueError):
                timestamp = None
        if not isinstance(timestamp, datetime):
            timestamp = datetime.now()

        return cls(
            role=str(data.get("role", "user")),
            content=content,
            id=str(data.get("id") or uuid.uuid4().hex),
            timestamp=timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert back to the session-store dict shape."""
        if isinstance(self.content, str):
            content: Any = self.content
        else:
            content = [block.to_dict() for block in self.content]
        return {
            "id": self.id,
            "role": self.role,
            "content": content,
            "timestamp": self.timestamp.isoformat(),
        }


MessageLike = Union[Message, dict[str, Any]]


def as_message(message: MessageLike) -> Message:
    """Coerce a dict into a Message; Message instances pass through."""
    if isinstance(message, Message):
        return message
    return Message.from_dict(message)


def as_messages(messages: list[MessageLike]) -> list[Message]:
    """Coerce a list of messages."""
    return [as_message(message) for message in messages]


def summary_message_id() -> str:
    """Identifier for a synthesized summary message."""
    return f"summary-{int(time.time() * 1000)}"
