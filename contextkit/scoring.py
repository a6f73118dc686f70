"""Message importance scoring."""

from dataclasses import dataclass
from enum import Enum

from contextkit.tokens import TokenEstimator
from contextkit.types import Message

BASE_SCORE = 50
ROLE_WEIGHTS = {
    "system": 40,
    "user": 20,
    "assistant": 10,
}
RECENCY_WEIGHT = 20
TOOL_CONTENT_WEIGHT = 15


class Importance(str, Enum):
    """Discrete importance tier."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: int) -> "Importance":
        """Map a 0-100 score onto a tier."""
        if score >= 80:
            return cls.CRITICAL
        if score >= 60:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        return cls.LOW


@dataclass
class ScoredMessage:
    """A message with its score from one scoring pass."""

    message: Message
    position: int
    score: int
    importance: Importance
    estimated_tokens: int

    @property
    def role(self) -> str:
        return self.message.role

    @property
    def is_important(self) -> bool:
        """Critical or high tier."""
        return self.importance in (Importance.CRITICAL, Importance.HIGH)


class ImportanceScorer:
    """Scores messages by role, position and content type."""

    def __init__(self, estimator: TokenEstimator):
        self.estimator = estimator

    def score(self, message: Message, index: int, total_count: int) -> ScoredMessage:
        """
        Score a single message.

        Args:
            message: Message to score
            index: Position of the message in the scored list
            total_count: Length of the scored list

        Returns:
            ScoredMessage with score clamped to [0, 100]
        """
        score = BASE_SCORE
        score += ROLE_WEIGHTS.get(message.role, 0)

        # Later positions score higher; wall-clock time is ignored
        if total_count > 0:
            score += int((index / total_count) * RECENCY_WEIGHT)

        if message.has_tool_blocks():
            score += TOOL_CONTENT_WEIGHT

        score = max(0, min(100, score))

        return ScoredMessage(
            message=message,
            position=index,
            score=score,
            importance=Importance.from_score(score),
            estimated_tokens=self.estimator.estimate_message(message),
        )

    def score_all(self, messages: list[Message]) -> list[ScoredMessage]:
        """Score every message, preserving input order."""
        total = len(messages)
        return [self.score(msg, i, total) for i, msg in enumerate(messages)]
