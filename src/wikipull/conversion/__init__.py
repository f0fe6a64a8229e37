"""Content conversion for wikipull (rendered HTML to Markdown)."""

from .markdown import HtmlToMarkdown

__all__ = ["HtmlToMarkdown"]
