"""Text helpers for turning markdown into searchable plain text."""

from __future__ import annotations

import re

_FENCED_CODE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]+`")
_HTML_TAG = re.compile(r"<[^>]+>")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_HEADING = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_EMPHASIS = re.compile(r"[*_]{1,2}([^*_]+)[*_]{1,2}")
_RULE = re.compile(r"^(-{3,}|_{3,}|\*{3,})$", re.MULTILINE)
_BULLET = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
_NUMBERED = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")
_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def extract_plain_text(markdown: str) -> str:
    """Strip markdown syntax, keeping the words a reader would see.

    Code blocks and inline code are dropped entirely, links keep their label
    and images disappear.
    """
    if not markdown:
        return ""

    text = _FENCED_CODE.sub("", markdown)
    text = _INLINE_CODE.sub("", text)
    text = _HTML_TAG.sub("", text)
    text = _IMAGE.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _HEADING.sub("", text)
    text = _EMPHASIS.sub(r"\1", text)
    text = _RULE.sub("", text)
    text = _BULLET.sub("", text)
    text = _NUMBERED.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_title(markdown: str, fallback: str) -> str:
    """Return the first level-one heading, or ``fallback`` when there is none."""
    match = _TITLE.search(markdown or "")
    if match is None:
        return fallback
    return match.group(1).strip() or fallback


def truncate(text: str, limit: int) -> str:
    return text[:limit] if limit >= 0 else text

