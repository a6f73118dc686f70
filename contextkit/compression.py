"""Compression strategies for conversation history."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from contextkit.scoring import ImportanceScorer, ScoredMessage
from contextkit.summary import ConversationSummary, SummaryGenerator
from contextkit.tokens import TokenEstimator
from contextkit.types import Message, summary_message_id

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "[conversation summary]"


class CompressionStrategy(str, Enum):
    """How to reduce a message list to a token budget."""

    REMOVE_OLD = "remove_old"
    SUMMARIZE = "summarize"
    TRUNCATE = "truncate"
    SMART = "smart"


class CompressionOptions(BaseModel):
    """Fully resolved options for one compression pass."""

    strategy: CompressionStrategy = Field(default=CompressionStrategy.SMART)
    target_tokens: int = Field(default=120000, description="Token budget for the result")
    keep_recent_messages: int = Field(default=10, description="Non-system tail always kept")
    keep_system_messages: bool = Field(default=True)
    generate_summary: bool = Field(default=True)

    @field_validator("target_tokens", "keep_recent_messages")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate counts."""
        if v < 0:
            raise ValueError(f"Value cannot be negative, got {v}")
        return v


@dataclass
class CompressionResult:
    """Outcome of a compression pass."""

    messages: list[Message]
    removed_count: int
    saved_tokens: int
    original_tokens: int
    compressed_tokens: int
    summary: Optional[ConversationSummary] = None


class CompressionEngine:
    """
    Reduces message lists with one of four strategies.

    Summaries produced by the summarize and smart strategies are appended
    to ``summaries``, a list owned by whoever constructed the engine.
    """

    def __init__(
        self,
        estimator: TokenEstimator,
        scorer: ImportanceScorer,
        summarizer: SummaryGenerator,
        summaries: list[ConversationSummary],
    ):
        self.estimator = estimator
        self.scorer = scorer
        self.summarizer = summarizer
        self.summaries = summaries

    def compress(self, messages: list[Message], options: CompressionOptions) -> CompressionResult:
        """
        Compress messages according to options.strategy.

        Args:
            messages: Full message history, oldest first
            options: Resolved compression options

        Returns:
            CompressionResult with retained messages in original order
        """
        scored = self.scorer.score_all(messages)
        original_tokens = sum(item.estimated_tokens for item in scored)

        handlers = {
            CompressionStrategy.REMOVE_OLD: self._remove_old,
            CompressionStrategy.SUMMARIZE: self._summarize,
            CompressionStrategy.TRUNCATE: self._truncate,
            CompressionStrategy.SMART: self._smart,
        }
        kept, summary = handlers[CompressionStrategy(options.strategy)](scored, options)

        final_messages = self._assemble(kept, summary)
        compressed_tokens = self.estimator.estimate_messages(final_messages)
        removed_count = len(messages) - len(final_messages)
        if summary is not None and options.strategy == CompressionStrategy.SMART:
            # The summary message stands in for many originals
            removed_count += 1

        logger.info(
            f"Compressed with {CompressionStrategy(options.strategy).value}: "
            f"{len(messages)} -> {len(final_messages)} messages, "
            f"{original_tokens} -> {compressed_tokens} tokens"
        )

        return CompressionResult(
            messages=final_messages,
            summary=summary,
            removed_count=removed_count,
            saved_tokens=original_tokens - compressed_tokens,
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
        )

    def _partition(
        self, scored: list[ScoredMessage], options: CompressionOptions
    ) -> tuple[list[ScoredMessage], list[ScoredMessage], list[ScoredMessage]]:
        """
        Split into (system, recent, old).

        With keep_system_messages off the strategies that partition, smart
        included, drop system messages outright; they are never summarized.
        """
        system = [item for item in scored if item.role == "system"] if options.keep_system_messages else []
        non_system = [item for item in scored if item.role != "system"]
        keep = options.keep_recent_messages
        if keep == 0:
            return system, [], non_system
        return system, non_system[-keep:], non_system[:-keep]

    def _remove_old(
        self, scored: list[ScoredMessage], options: CompressionOptions
    ) -> tuple[list[ScoredMessage], None]:
        """Keep system messages and whatever part of the recent tail fits the budget."""
        system, recent, _ = self._partition(scored, options)
        kept = list(system)
        current = sum(item.estimated_tokens for item in system)

        for item in recent:
            if current + item.estimated_tokens <= options.target_tokens:
                kept.append(item)
                current += item.estimated_tokens

        return kept, None

    def _truncate(
        self, scored: list[ScoredMessage], options: CompressionOptions
    ) -> tuple[list[ScoredMessage], None]:
        """Keep the newest messages that fit, plus system messages."""
        kept: list[ScoredMessage] = []
        current = 0
        exhausted = False

        for item in reversed(scored):
            fits = not exhausted and current + item.estimated_tokens <= options.target_tokens
            if fits or (options.keep_system_messages and item.role == "system"):
                kept.append(item)
                current += item.estimated_tokens
            else:
                exhausted = True

        return kept, None

    def _summarize(
        self, scored: list[ScoredMessage], options: CompressionOptions
    ) -> tuple[list[ScoredMessage], Optional[ConversationSummary]]:
        """Keep system messages and the recent tail; summarize everything older."""
        system, recent, old = self._partition(scored, options)
        summary = self._summarize_old(old, options)
        return system + recent, summary

    def _smart(
        self, scored: list[ScoredMessage], options: CompressionOptions
    ) -> tuple[list[ScoredMessage], Optional[ConversationSummary]]:
        """
        Keep system messages, the recent tail and the most important older
        messages that fit what is left of the budget. The rest is summarized.
        """
        system, recent, old = self._partition(scored, options)

        system_tokens = sum(item.estimated_tokens for item in system)
        recent_tokens = sum(item.estimated_tokens for item in recent)
        available_for_old = options.target_tokens - system_tokens - recent_tokens

        # sorted() is stable, so equal scores keep their original order
        candidates = sorted((item for item in old if item.is_important), key=lambda item: -item.score)

        selected: list[ScoredMessage] = []
        old_tokens = 0
        for item in candidates:
            if old_tokens + item.estimated_tokens <= available_for_old:
                selected.append(item)
                old_tokens += item.estimated_tokens

        selected_positions = {item.position for item in selected}
        unselected = [item for item in old if item.position not in selected_positions]
        summary = self._summarize_old(unselected, options)

        return system + selected + recent, summary

    def _summarize_old(
        self, old: list[ScoredMessage], options: CompressionOptions
    ) -> Optional[ConversationSummary]:
        if not old or not options.generate_summary:
            return None
        summary = self.summarizer.summarize([item.message for item in old])
        self.summaries.append(summary)
        return summary

    def _assemble(
        self, kept: list[ScoredMessage], summary: Optional[ConversationSummary]
    ) -> list[Message]:
        """
        Restore original order and place the summary message, if any,
        right before the first retained non-system message.
        """
        ordered = [item.message for item in sorted(kept, key=lambda item: item.position)]
        if summary is None:
            return ordered

        summary_msg = self.summary_message(summary)
        insert_at = next(
            (i for i, msg in enumerate(ordered) if msg.role != "system"),
            len(ordered),
        )
        ordered.insert(insert_at, summary_msg)
        return ordered

    @staticmethod
    def summary_message(summary: ConversationSummary) -> Message:
        """Wrap a summary in a synthesized system message."""
        return Message(
            id=summary_message_id(),
            role="system",
            content=f"{SUMMARY_HEADER}\n{summary.content}",
            timestamp=datetime.now(),
        )
