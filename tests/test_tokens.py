"""Tests for token estimation."""

import pytest

from contextkit.tokens import TokenEstimator
from contextkit.types import Message, TextBlock, ThinkingBlock, ToolUseBlock, UnknownBlock


def test_estimate_empty():
    """Test that empty text costs nothing."""
    estimator = TokenEstimator()
    assert estimator.estimate("") == 0
    assert estimator.estimate(None) == 0


def test_estimate_ascii():
    """Test ~4 characters per token for non-CJK text."""
    estimator = TokenEstimator()
    assert estimator.estimate("hello") == 2
    assert estimator.estimate("abcd") == 1


def test_estimate_cjk():
    """Test that CJK characters cost 1.5 tokens each."""
    estimator = TokenEstimator()
    assert estimator.estimate("你好") == 3
    assert estimator.estimate("hi你") == 2


def test_estimate_custom_rate():
    """Test a configured tokens_per_char."""
    estimator = TokenEstimator(tokens_per_char=1.0)
    assert estimator.estimate("abcd") == 4


@pytest.mark.parametrize("text", ["a", " ", "\n", "你", "some longer sentence"])
def test_estimate_non_empty_is_positive(text):
    """Test that any non-empty text costs at least one token."""
    assert TokenEstimator().estimate(text) > 0


def test_estimate_message_adds_overhead():
    """Test the per-message role overhead."""
    estimator = TokenEstimator()
    assert estimator.estimate_message(Message(role="user", content="hello")) == 6
    assert estimator.estimate_message(Message(role="user", content="")) == 4


def test_estimate_message_blocks():
    """Test flattening of block content."""
    estimator = TokenEstimator()
    message = Message(
        role="assistant",
        content=[TextBlock(text="abcd"), ThinkingBlock(thinking="ignored entirely")],
    )
    # "abcd\n" is 5 characters
    assert estimator.flatten(message) == "abcd\n"
    assert estimator.estimate_message(message) == 6


def test_estimate_message_tool_blocks_serialized():
    """Test that tool blocks are counted through their JSON form."""
    estimator = TokenEstimator()
    message = Message(
        role="assistant",
        content=[ToolUseBlock(id="c1", name="read_file", input={"path": "a.py"}), UnknownBlock(raw=3)],
    )
    flat = estimator.flatten(message)
    assert '"name":"read_file"' in flat
    assert flat.endswith("\n")
    assert estimator.estimate_message(message) == estimator.estimate(flat) + 4


def test_count_tokens():
    """Test the token count breakdown."""
    estimator = TokenEstimator(max_tokens=1000, reserve_ratio=0.2)
    count = estimator.count_tokens([Message(role="user", content="hello")], system_prompt="hello")
    assert count.system_prompt == 2
    assert count.messages == 6
    assert count.total == 8
    assert count.tool_output_reserve == 200
    assert count.available == 792


def test_count_tokens_available_floored():
    """Test that available never goes negative."""
    estimator = TokenEstimator(max_tokens=10, reserve_ratio=0.2)
    count = estimator.count_tokens([Message(role="user", content="x" * 400)])
    assert count.total == 104
    assert count.available == 0


def test_count_tokens_empty():
    """Test counting with no messages and no prompt."""
    count = TokenEstimator().count_tokens([])
    assert count.total == 0
    assert count.available == 200000 - 40000
