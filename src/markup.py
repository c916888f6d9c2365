"""Discord message markup to feed HTML conversion."""

import re
from collections.abc import Callable
from dataclasses import dataclass

from .models import TransformResult

TITLE_MAX_LENGTH = 50

# Line-oriented patterns treat \r and the Unicode line separators as breaks
_LINE_CHAR = r"[^\n\r\u2028\u2029]"
_LINE_START = r"(?:^|(?<=[\r\u2028\u2029]))"
_LINE_END = r"(?=[\n\r\u2028\u2029]|\Z)"

_TAG_RE = re.compile(r"<[^>]+>")
_H1_RE = re.compile(rf"<h1>({_LINE_CHAR}*?)</h1>")
_WRAPPED_HEADING_RE = re.compile(
    rf"<p>\s*(<h[1-6]>{_LINE_CHAR}*?</h[1-6]>)\s*</p>"
)

_ANCHOR = r'<a href="\1" target="_blank">\1</a>'


@dataclass(frozen=True)
class RewriteRule:
    """One regex substitution in the markup pipeline."""

    name: str
    pattern: re.Pattern
    replacement: str | Callable[[re.Match], str]

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# Order matters: mentions are removed before links are built, and headings
# are converted before line grouping wraps everything else in <p>.
REWRITE_RULES: tuple[RewriteRule, ...] = (
    RewriteRule("custom_emoji", re.compile(r"<:[^:]+:\d+>"), ""),
    RewriteRule("mention", re.compile(r"@\S+"), ""),
    RewriteRule("spoiler_pipes", re.compile(r"\|{2,}"), ""),
    RewriteRule("channel_reference", re.compile(r"<#[0-9]+>"), ""),
    RewriteRule(
        "youtube_link",
        re.compile(
            r"(https?://(?:www\.)?(?:youtube\.com/watch\?v=|youtu\.be/)[\w\-]+)",
            re.ASCII,
        ),
        _ANCHOR,
    ),
    RewriteRule(
        "discord_link",
        re.compile(r"(https?://discord\.com/channels/\d+/\d+(?:/\d+)?)", re.ASCII),
        _ANCHOR,
    ),
    RewriteRule(
        "heading_2",
        re.compile(rf"{_LINE_START}##\s*({_LINE_CHAR}+){_LINE_END}", re.MULTILINE),
        r"<h2>\1</h2>",
    ),
    RewriteRule(
        "heading_1",
        re.compile(rf"{_LINE_START}#\s*({_LINE_CHAR}+){_LINE_END}", re.MULTILINE),
        r"<h1>\1</h1>",
    ),
    RewriteRule("bold", re.compile(rf"\*\*({_LINE_CHAR}+?)\*\*"), r"<b>\1</b>"),
    RewriteRule(
        "highlight",
        re.compile(rf"``({_LINE_CHAR}+?)``"),
        r'<span class="highlight">\1</span>',
    ),
)


def strip_tags(html: str) -> str:
    """Remove every ``<...>`` tag from an HTML fragment."""
    return _TAG_RE.sub("", html)


def group_lines(text: str) -> str:
    """Wrap lines in paragraphs and runs of ``- `` lines in a list."""
    result = []
    in_list = False

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if line.startswith("- "):
            if not in_list:
                in_list = True
                result.append("<ul>")
            result.append(f"<li>{line[2:]}</li>")
        else:
            if in_list:
                result.append("</ul>")
                in_list = False
            if line:
                result.append(f"<p>{line}</p>")

    if in_list:
        result.append("</ul>")

    return "\n".join(result)


def extract_title(html: str) -> str:
    """Use the first <h1> when present, else the start of the plain text."""
    match = _H1_RE.search(html)
    if match:
        return match.group(1)
    return strip_tags(html)[:TITLE_MAX_LENGTH]


def transform(raw_text: str) -> TransformResult:
    """Convert a Discord message body to a feed title and HTML fragment.

    Args:
        raw_text: Message body as typed in Discord

    Returns:
        TransformResult with the derived title and the HTML content
    """
    text = raw_text or ""
    for rule in REWRITE_RULES:
        text = rule.apply(text)

    html = group_lines(text)
    html = _WRAPPED_HEADING_RE.sub(r"\1", html)

    return TransformResult(title=extract_title(html), content=html)
