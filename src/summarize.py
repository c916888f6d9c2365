"""Plain-text excerpts for feed item descriptions."""

import re

from .markup import strip_tags

MAX_SUMMARY_LENGTH = 150
ELLIPSIS = "..."

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_QUOTE_MARKER_RE = re.compile(r"^>+", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")


def summarize(html: str) -> str:
    """Derive a short plain-text excerpt from an HTML fragment.

    Truncation is by character count and may split a word.

    Args:
        html: HTML fragment produced by the markup transformer

    Returns:
        At most 150 characters of text, plus an ellipsis when truncated
    """
    text = strip_tags(html or "")
    text = _MARKDOWN_LINK_RE.sub(r"\1", text)
    text = _QUOTE_MARKER_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    if len(text) > MAX_SUMMARY_LENGTH:
        text = text[:MAX_SUMMARY_LENGTH] + ELLIPSIS
    return text
