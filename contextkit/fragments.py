"""Relevant fragment extraction from file text."""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

KEYWORD_SCORE = 10
DEFINITION_SCORE = 5
BOUNDARY_LOOKBACK = 10
BOUNDARY_LOOKAHEAD = 20

STOP_WORDS = frozenset(
    [
        "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can", "need", "dare",
        "ought", "used", "to", "of", "in", "for", "on", "with", "at", "by",
        "from", "as", "into", "through", "during", "before", "after", "above",
        "below", "between", "under", "again", "further", "then", "once",
        "的", "是", "在", "有", "和", "与", "或", "但", "如果", "这", "那",
        "什么", "怎么", "如何", "为什么", "哪里",
    ]
)

_KEYWORD_SEPARATORS = re.compile(r"[\s,.\-_:;!?()\[\]{}'\"]+")
_CJK_RUN_PATTERN = re.compile(r"[\u4e00-\u9fff]+")

# Heuristic, language-spanning; brace-less languages are only partly covered
DEFINITION_PATTERNS = [
    re.compile(r"^\s*(export\s+)?(async\s+)?function\s+\w+"),
    re.compile(r"^\s*(export\s+)?(abstract\s+)?class\s+\w+"),
    re.compile(r"^\s*(export\s+)?interface\s+\w+"),
    re.compile(r"^\s*(export\s+)?type\s+\w+"),
    re.compile(r"^\s*(export\s+)?const\s+\w+\s*="),
    re.compile(r"^\s*(public|private|protected)\s+(async\s+)?\w+\s*\("),
    re.compile(r"^\s*(async\s+)?def\s+\w+"),
    re.compile(r"^\s*class\s+\w+"),
]


@dataclass
class FileFragment:
    """A contiguous excerpt of a file. Line numbers are 1-based and inclusive."""

    path: str
    content: str
    start_line: int
    end_line: int
    relevance_score: int


def extract_keywords(query: str) -> list[str]:
    """Lowercased query keywords with stop words removed, in first-seen order."""
    keywords: dict[str, None] = {}
    for token in _KEYWORD_SEPARATORS.split(query.lower()):
        if not token or token in STOP_WORDS:
            continue
        if _CJK_RUN_PATTERN.fullmatch(token) or (len(token) > 2 and token.isalnum()):
            keywords.setdefault(token, None)
    return list(keywords)


def is_definition_line(line: str) -> bool:
    """Check if a line looks like a function, class, interface or type definition."""
    return any(pattern.search(line) for pattern in DEFINITION_PATTERNS)


class FragmentExtractor:
    """Picks the parts of a file most relevant to a query."""

    def __init__(self, max_fragments: int = 3, max_lines_per_fragment: int = 50):
        self.max_fragments = max_fragments
        self.max_lines_per_fragment = max_lines_per_fragment

    def score_lines(self, lines: list[str], keywords: list[str]) -> list[tuple[int, int]]:
        """
        Score every line against the keywords.

        Returns:
            (line_index, score) pairs for lines scoring above zero, best
            first; ties keep file order.
        """
        scored = []
        for i, line in enumerate(lines):
            lowered = line.lower()
            score = sum(KEYWORD_SCORE for keyword in keywords if keyword in lowered)
            if is_definition_line(line):
                score += DEFINITION_SCORE
            if score > 0:
                scored.append((i, score))
        scored.sort(key=lambda pair: -pair[1])
        return scored

    def snap_to_boundaries(self, lines: list[str], start: int, end: int) -> tuple[int, int]:
        """
        Move a window onto definition boundaries.

        The start moves up to the nearest definition line within
        BOUNDARY_LOOKBACK lines. The end moves down until braces opened
        since the start are closed, at most BOUNDARY_LOOKAHEAD lines past
        the original end.
        """
        snapped_start = start
        for i in range(start, max(0, start - BOUNDARY_LOOKBACK) - 1, -1):
            if is_definition_line(lines[i]):
                snapped_start = i
                break

        brace_balance = 0
        snapped_end = end
        for i in range(snapped_start, min(len(lines) - 1, end + BOUNDARY_LOOKAHEAD) + 1):
            brace_balance += lines[i].count("{") - lines[i].count("}")
            if i >= end and brace_balance <= 0:
                snapped_end = i
                break

        return snapped_start, snapped_end

    def extract(
        self,
        file_text: str,
        path: str,
        query: str,
        max_fragments: int | None = None,
        max_lines_per_fragment: int | None = None,
    ) -> list[FileFragment]:
        """
        Extract up to max_fragments non-overlapping fragments relevant to query.

        Falls back to the head of the file when no line matches.
        """
        if not file_text:
            return []

        if max_fragments is None:
            max_fragments = self.max_fragments
        if max_fragments <= 0:
            return []
        max_lines = max_lines_per_fragment
        if max_lines is None:
            max_lines = self.max_lines_per_fragment

        lines = file_text.split("\n")
        keywords = extract_keywords(query)
        candidates = self.score_lines(lines, keywords)
        half_window = max_lines // 2

        fragments: list[FileFragment] = []
        claimed: set[int] = set()

        for line_index, score in candidates:
            if len(fragments) >= max_fragments:
                break
            if line_index in claimed:
                continue

            start = max(0, line_index - half_window)
            end = min(len(lines) - 1, line_index + half_window)
            start, end = self.snap_to_boundaries(lines, start, end)

            window = range(start, end + 1)
            if any(i in claimed for i in window):
                continue
            claimed.update(window)

            fragments.append(
                FileFragment(
                    path=path,
                    content="\n".join(lines[start : end + 1]),
                    start_line=start + 1,
                    end_line=end + 1,
                    relevance_score=score,
                )
            )

        if not fragments:
            logger.debug(f"No relevant lines in {path}, returning file head")
            end = min(max_lines, len(lines))
            fragments.append(
                FileFragment(
                    path=path,
                    content="\n".join(lines[:end]),
                    start_line=1,
                    end_line=end,
                    relevance_score=0,
                )
            )

        return fragments
