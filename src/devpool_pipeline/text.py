"""Text normalization for issue and comment bodies."""

from __future__ import annotations

import re

import markdown

_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\s]")
_HTML_TAG_RE = re.compile(r"<[^>]+>")
_MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]

BOILERPLATE_PHRASES: tuple[str, ...] = (
    "/start",
    "/stop",
    "- Be sure to open a draft pull request as soon as possible to communicate updates "
    "on your progress.",
    "- Be sure to provide timely updates to us when requested, or you will be automatically "
    "unassigned from the task.",
)


def clean_text(text: str | None) -> str:
    """Drop non-printable characters and double quotes for CSV storage."""

    if not text:
        return ""
    text = _NON_PRINTABLE_RE.sub("", text)
    return text.replace('"', '""')


def clean_markdown(text: str | None) -> str:
    """Render markdown to HTML and strip every tag, leaving plain text."""

    if not text:
        return ""
    html = markdown.markdown(text, extensions=_MARKDOWN_EXTENSIONS)
    return _HTML_TAG_RE.sub("", html)


def remove_specific_words(text: str | None) -> str:
    """Blank out bot commands and assignment boilerplate.

    The whole text is discarded when any phrase in `BOILERPLATE_PHRASES` occurs,
    otherwise it is returned unchanged.
    """

    if not text:
        return ""
    if any(phrase in text for phrase in BOILERPLATE_PHRASES):
        return ""
    return text


def normalize_markdown(text: str | None, *, drop_boilerplate: bool = False) -> str:
    """Markdown stage of the pipeline, optionally preceded by the boilerplate filter."""

    if drop_boilerplate:
        text = remove_specific_words(text)
    return clean_markdown(text)
