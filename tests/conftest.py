"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from contextkit.config import ContextConfig
from contextkit.context import ContextManager
from contextkit.types import Message, TextBlock, ToolUseBlock


def make_message(role: str, text: str, msg_id: str) -> Message:
    """Build a plain-text message with a fixed id."""
    return Message(role=role, content=text, id=msg_id, timestamp=datetime(2024, 1, 1))


@pytest.fixture
def msg():
    """Factory for plain-text messages."""
    return make_message


@pytest.fixture
def tool_msg():
    """Factory for assistant messages carrying a tool call."""

    def _make(name: str, msg_id: str, text: str = "") -> Message:
        blocks = []
        if text:
            blocks.append(TextBlock(text=text))
        blocks.append(ToolUseBlock(id=f"call_{msg_id}", name=name, input={"path": "README.md"}))
        return Message(role="assistant", content=blocks, id=msg_id, timestamp=datetime(2024, 1, 1))

    return _make


@pytest.fixture
def conversation():
    """Alternating user/assistant messages of 14 tokens each (40 chars + overhead)."""

    def _make(count: int, prefix: str = "m") -> list[Message]:
        roles = ("user", "assistant")
        return [make_message(roles[i % 2], "x" * 40, f"{prefix}{i}") for i in range(count)]

    return _make


@pytest.fixture
def small_config():
    """A 1000 token window."""
    return ContextConfig(max_tokens=1000, keep_recent_messages=2)


@pytest.fixture
def manager(small_config):
    """Context manager over a small window."""
    return ContextManager(small_config)
