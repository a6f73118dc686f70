"""Context window management for LLM conversations."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from contextkit.compression import (
    CompressionEngine,
    CompressionOptions,
    CompressionResult,
    CompressionStrategy,
)
from contextkit.config import ContextConfig, FragmentConfig
from contextkit.fragments import FileFragment, FragmentExtractor
from contextkit.scoring import ImportanceScorer, ScoredMessage
from contextkit.summary import ConversationSummary, SummaryGenerator
from contextkit.tokens import TokenCount, TokenEstimator
from contextkit.types import MessageLike, as_message, as_messages

logger = logging.getLogger(__name__)


@dataclass
class ContextWindowState:
    """Snapshot of context window usage."""

    max_tokens: int
    used_tokens: int
    usage_percent: float
    near_limit: bool
    needs_compression: bool
    tool_output_reserve: int


@dataclass
class ManagedContext:
    """Messages to send next, and the compression pass that produced them, if any."""

    messages: list[Any]
    compressed: bool
    result: Optional[CompressionResult] = None


class ContextManager:
    """
    Manages the LLM context window.

    One instance per session. The summary history is the only mutable
    state and is not safe to share across threads.
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        fragment_config: Optional[FragmentConfig] = None,
        **overrides: Any,
    ):
        """
        Initialize context manager.

        Args:
            config: Context configuration (defaults if omitted)
            fragment_config: Fragment extraction defaults
            **overrides: Individual ContextConfig fields, e.g. max_tokens=1000
        """
        base = config or ContextConfig()
        if overrides:
            base = ContextConfig(**{**base.model_dump(), **overrides})
        self.config = base
        self.fragment_config = fragment_config or FragmentConfig()
        self.summaries: list[ConversationSummary] = []
        self._build_components()

    def _build_components(self) -> None:
        self.estimator = TokenEstimator(
            tokens_per_char=self.config.tokens_per_char,
            max_tokens=self.config.max_tokens,
            reserve_ratio=self.config.tool_output_reserve_ratio,
        )
        self.scorer = ImportanceScorer(self.estimator)
        self.summarizer = SummaryGenerator(self.estimator)
        self.engine = CompressionEngine(self.estimator, self.scorer, self.summarizer, self.summaries)
        self.extractor = FragmentExtractor(
            max_fragments=self.fragment_config.max_fragments,
            max_lines_per_fragment=self.fragment_config.max_lines_per_fragment,
        )

    def estimate_tokens(self, text: Optional[str]) -> int:
        """Estimate tokens in text."""
        return self.estimator.estimate(text)

    def estimate_message_tokens(self, message: MessageLike) -> int:
        """Estimate tokens for a single message."""
        return self.estimator.estimate_message(as_message(message))

    def count_tokens(self, messages: list[MessageLike], system_prompt: Optional[str] = None) -> TokenCount:
        """Count tokens for a request."""
        return self.estimator.count_tokens(as_messages(messages), system_prompt)

    def get_context_window_state(
        self, messages: list[MessageLike], system_prompt: Optional[str] = None
    ) -> ContextWindowState:
        """Compute window usage against the space left after the tool output reserve."""
        token_count = self.count_tokens(messages, system_prompt)
        effective_max = self.config.max_tokens - token_count.tool_output_reserve

        if effective_max > 0:
            usage_percent = token_count.total / effective_max
        else:
            usage_percent = float("inf") if token_count.total > 0 else 0.0

        over_threshold = usage_percent >= self.config.compression_threshold
        return ContextWindowState(
            max_tokens=self.config.max_tokens,
            used_tokens=token_count.total,
            usage_percent=usage_percent,
            near_limit=over_threshold,
            needs_compression=over_threshold,
            tool_output_reserve=token_count.tool_output_reserve,
        )

    def needs_compression(self, messages: list[MessageLike], system_prompt: Optional[str] = None) -> bool:
        """Check if the context has crossed the compression threshold."""
        return self.get_context_window_state(messages, system_prompt).needs_compression

    def score_message(self, message: MessageLike, index: int, total_messages: int) -> ScoredMessage:
        """Score one message."""
        return self.scorer.score(as_message(message), index, total_messages)

    def score_messages(self, messages: list[MessageLike]) -> list[ScoredMessage]:
        """Score a message list."""
        return self.scorer.score_all(as_messages(messages))

    def resolve_options(
        self,
        strategy: Optional[CompressionStrategy | str] = None,
        target_tokens: Optional[int] = None,
        keep_recent_messages: Optional[int] = None,
        keep_system_messages: bool = True,
        generate_summary: bool = True,
    ) -> CompressionOptions:
        """Fill unset compression options from configuration."""
        return CompressionOptions(
            strategy=strategy if strategy is not None else self.config.default_compression_strategy,
            target_tokens=target_tokens if target_tokens is not None else self.config.default_target_tokens,
            keep_recent_messages=(
                keep_recent_messages if keep_recent_messages is not None else self.config.keep_recent_messages
            ),
            keep_system_messages=keep_system_messages,
            generate_summary=generate_summary,
        )

    def compress_messages(
        self,
        messages: list[MessageLike],
        options: Optional[CompressionOptions] = None,
        **option_overrides: Any,
    ) -> CompressionResult:
        """
        Compress history to reduce token usage.

        Args:
            messages: Message history, oldest first
            options: Fully resolved options; built from config when omitted
            **option_overrides: Fields passed to resolve_options()

        Returns:
            CompressionResult
        """
        if options is None:
            options = self.resolve_options(**option_overrides)
        return self.engine.compress(as_messages(messages), options)

    def generate_summary(self, messages: list[MessageLike]) -> ConversationSummary:
        """Summarize messages without recording the summary."""
        return self.summarizer.summarize(as_messages(messages))

    def extract_fragments(
        self,
        file_text: str,
        path: str,
        query: str,
        max_fragments: Optional[int] = None,
        max_lines_per_fragment: Optional[int] = None,
    ) -> list[FileFragment]:
        """Extract the fragments of a file most relevant to query."""
        return self.extractor.extract(file_text, path, query, max_fragments, max_lines_per_fragment)

    def auto_manage_context(
        self, messages: list[MessageLike], system_prompt: Optional[str] = None
    ) -> ManagedContext:
        """Compress with the default strategy if the window is over threshold."""
        if not self.needs_compression(messages, system_prompt):
            return ManagedContext(messages=messages, compressed=False)

        logger.info(f"Context over threshold with {len(messages)} messages, compressing")
        result = self.compress_messages(messages)
        return ManagedContext(messages=result.messages, compressed=True, result=result)

    def get_summaries(self) -> list[ConversationSummary]:
        """Summaries produced so far, oldest first."""
        return list(self.summaries)

    def clear_summaries(self) -> None:
        """Drop the summary history."""
        self.summaries.clear()

    def get_config(self) -> ContextConfig:
        """Copy of the current configuration."""
        return self.config.model_copy()

    def update_config(self, **changes: Any) -> None:
        """Apply configuration changes, re-validating them."""
        self.config = ContextConfig(**{**self.config.model_dump(), **changes})
        self._build_components()
