"""Heuristic token estimation."""

import math
import re
from dataclasses import dataclass
from typing import Optional

from contextkit.types import (
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    serialize_block,
)

_CJK_CHARS_PATTERN = re.compile(r"[\u4e00-\u9fff]")

CJK_TOKENS_PER_CHAR = 1.5
MESSAGE_OVERHEAD_TOKENS = 4


@dataclass
class TokenCount:
    """Token usage breakdown for a request."""

    total: int
    system_prompt: int
    messages: int
    tool_output_reserve: int
    available: int


class TokenEstimator:
    """
    Approximate token counts from character counts.

    CJK ideographs cost 1.5 tokens each; every other character costs
    ``tokens_per_char``. No real tokenizer is involved.
    """

    def __init__(
        self,
        tokens_per_char: float = 0.25,
        max_tokens: int = 200000,
        reserve_ratio: float = 0.2,
    ):
        self.tokens_per_char = tokens_per_char
        self.max_tokens = max_tokens
        self.reserve_ratio = reserve_ratio

    def estimate(self, text: Optional[str]) -> int:
        """Estimate tokens in a piece of text."""
        if not text:
            return 0
        cjk_count = len(_CJK_CHARS_PATTERN.findall(text))
        other_count = len(text) - cjk_count
        return math.ceil(cjk_count * CJK_TOKENS_PER_CHAR + other_count * self.tokens_per_char)

    def flatten(self, message: Message) -> str:
        """
        Flatten message content into the text that gets counted.

        Text blocks contribute their text, tool blocks their compact JSON
        form; anything else contributes an empty entry.
        """
        if isinstance(message.content, str):
            return message.content
        if not isinstance(message.content, tuple):
            return ""

        parts = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append(block.text)
            elif isinstance(block, (ToolUseBlock, ToolResultBlock)):
                parts.append(serialize_block(block))
            else:
                parts.append("")
        return "\n".join(parts)

    def estimate_message(self, message: Message) -> int:
        """Estimate tokens for one message, including role tagging overhead."""
        return self.estimate(self.flatten(message)) + MESSAGE_OVERHEAD_TOKENS

    def estimate_messages(self, messages: list[Message]) -> int:
        """Sum of per-message estimates."""
        return sum(self.estimate_message(msg) for msg in messages)

    def count_tokens(self, messages: list[Message], system_prompt: Optional[str] = None) -> TokenCount:
        """Count tokens for messages plus an optional system prompt."""
        system_prompt_tokens = self.estimate(system_prompt)
        messages_tokens = self.estimate_messages(messages)
        tool_output_reserve = math.floor(self.max_tokens * self.reserve_ratio)
        total = system_prompt_tokens + messages_tokens
        available = self.max_tokens - total - tool_output_reserve

        return TokenCount(
            total=total,
            system_prompt=system_prompt_tokens,
            messages=messages_tokens,
            tool_output_reserve=tool_output_reserve,
            available=max(0, available),
        )
