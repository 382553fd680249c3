"""Word counts and text concatenation over ticket fields."""

from __future__ import annotations

from collections.abc import Iterable

from jira_insights.core.models import CommentModel


def count_words(text: str | None) -> int:
    """Count whitespace-delimited tokens, line by line.

    Blank and whitespace-only lines contribute zero tokens, so joining two
    texts with a newline adds their counts.
    """
    if not text:
        return 0
    return sum(len(line.split()) for line in text.splitlines())


def comment_word_count(comments: Iterable[CommentModel]) -> int:
    return sum(count_words(c.body) for c in comments)


def concat_and_remove_newlines(*texts: str | None) -> str:
    """Join texts with single spaces, replacing embedded newlines by spaces.

    ``None`` parts are skipped.
    """
    parts = [t.replace("\r\n", " ").replace("\n", " ") for t in texts if t]
    return " ".join(parts)


def concatenate_comments(comments: Iterable[CommentModel]) -> str:
    return "\n".join(c.body for c in comments if c.body)
