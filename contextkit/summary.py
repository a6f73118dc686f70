"""Extractive conversation summaries."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from contextkit.tokens import TokenEstimator
from contextkit.types import Message

logger = logging.getLogger(__name__)

MAX_SUMMARY_LINES = 10
USER_LINE_LIMIT = 100
ASSISTANT_LINE_LIMIT = 80
ASSISTANT_MIN_TEXT = 50


@dataclass
class ConversationSummary:
    """A condensed record of messages removed from the context."""

    content: str
    message_count: int
    original_tokens: int
    summary_tokens: int
    created_at: datetime = field(default_factory=datetime.now)


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class SummaryGenerator:
    """
    Builds a bullet-style synopsis from messages.

    No model is called: user requests, tool invocations and longer
    assistant replies are each reduced to one line and only the last
    ten lines are kept.
    """

    def __init__(self, estimator: TokenEstimator):
        self.estimator = estimator

    def key_points(self, messages: list[Message]) -> list[str]:
        """Extract one line per notable event, in message order."""
        points: list[str] = []
        for msg in messages:
            text = msg.text()
            if msg.role == "user":
                if text:
                    points.append(f"user: {truncate_text(text, USER_LINE_LIMIT)}")
            elif msg.role == "assistant":
                for tool_use in msg.tool_uses():
                    points.append(f"executed tool: {tool_use.name or 'unknown tool'}")
                if len(text) > ASSISTANT_MIN_TEXT:
                    points.append(f"assistant: {truncate_text(text, ASSISTANT_LINE_LIMIT)}")
        return points

    def summarize(self, messages: list[Message]) -> ConversationSummary:
        """Summarize messages into a ConversationSummary."""
        points = self.key_points(messages)
        content = "\n".join(points[-MAX_SUMMARY_LINES:])

        summary = ConversationSummary(
            content=content,
            message_count=len(messages),
            original_tokens=self.estimator.estimate_messages(messages),
            summary_tokens=self.estimator.estimate(content),
        )
        logger.debug(
            f"Summarized {summary.message_count} messages: "
            f"{summary.original_tokens} -> {summary.summary_tokens} tokens"
        )
        return summary
