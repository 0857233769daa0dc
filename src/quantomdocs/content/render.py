"""Markdown rendering to HTML."""

from __future__ import annotations

import logging

from markdown_it import MarkdownIt

LOGGER = logging.getLogger(__name__)


class MarkdownRenderer:
    """Pure ``raw text -> HTML`` renderer backed by markdown-it-py."""

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True, "breaks": True})
            .enable("table")
            .enable("strikethrough")
        )

    def render_markdown(self, content: str) -> str:
        return self._md.render(content)

    def render_mdx(self, content: str) -> str:
        """Render MDX by falling back to plain markdown.

        JSX components are not evaluated; they pass through as raw HTML.
        """
        LOGGER.warning("MDX rendering not implemented, falling back to Markdown")
        return self.render_markdown(content)

    def render(self, content: str, file_type: str) -> str:
        if file_type == "mdx":
            return self.render_mdx(content)
        return self.render_markdown(content)
