"""Rendered wiki HTML to Markdown conversion."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

import html2text
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Interface chrome that wiki renderers leave inside the content container
NOISE_SELECTORS = (
    "script",
    "style",
    "noscript",
    "button",
    "nav",
    "aside",
    "[aria-hidden='true']",
)

GITHUB_BLOB_SHA = re.compile(r"https://github\.com/([^/\s]+)/([^/\s]+)/blob/[0-9a-f]{7,40}/")
CODE_PLACEHOLDER = "WIKIPULLBLOCK"


class HtmlToMarkdown:
    """
    Converts a rendered wiki content container to clean Markdown.

    Uses html2text with settings suited to generated documentation, then
    removes the leftovers wiki UIs typically add ("Link copied!" toasts,
    "Ask Devin about ..." prompts, text before the first heading).

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert(html_string, "https://deepwiki.com/owner/repo/1-overview")
    """

    def __init__(
        self,
        body_width: int = 0,
        ignore_images: bool = False,
        strip_preamble: bool = True,
        link_base: str | None = None,
    ):
        """
        Initialize the Markdown converter.

        Args:
            body_width: Max line width (0 = no wrapping)
            ignore_images: Skip image conversion
            strip_preamble: Drop text above the first heading
            link_base: Base for root-relative links (default: the page URL)
        """
        self._strip_preamble = strip_preamble
        self._link_base = link_base

        self._converter = html2text.HTML2Text()
        self._converter.body_width = body_width
        self._converter.inline_links = True
        self._converter.wrap_links = False
        self._converter.protect_links = False
        self._converter.ignore_images = ignore_images
        self._converter.unicode_snob = True
        self._converter.escape_snob = False
        self._converter.mark_code = False
        self._converter.default_image_alt = ""
        self._converter.single_line_break = False

    def _prepare_html(self, html: str) -> tuple[str, list[str]]:
        """Drop interface chrome and lift code blocks out as fences.

        Returns the cleaned HTML, with each block replaced by a placeholder
        paragraph, and the fenced blocks in placeholder order.
        """
        soup = BeautifulSoup(html, "html.parser")

        for selector in NOISE_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

        blocks: list[str] = []

        def lift(element, language: str, source: str) -> None:
            placeholder = soup.new_tag("p")
            placeholder.string = f"{CODE_PLACEHOLDER}{len(blocks)}"
            blocks.append(f"```{language}\n{source.strip()}\n```")
            element.replace_with(placeholder)

        for pre in soup.select("pre"):
            if pre.parent is None:
                continue
            code = pre.find("code")
            classes = code.get("class", []) if code else []
            language = next((cls[len("language-") :] for cls in classes if cls.startswith("language-")), "")
            lift(pre, language, pre.get_text())

        return str(soup), blocks

    def _clean_output(self, markdown: str, blocks: list[str]) -> str:
        """Clean up the converted Markdown."""
        markdown = re.sub(r"\s*Link copied!", "", markdown)
        lines = [line.rstrip() for line in markdown.split("\n")]
        lines = [line for line in lines if not line.strip().startswith("Ask Devin about")]

        if self._strip_preamble:
            first_heading = next((i for i, line in enumerate(lines) if line.lstrip().startswith("#")), 0)
            lines = lines[first_heading:]

        markdown = "\n".join(lines)
        markdown = GITHUB_BLOB_SHA.sub(r"https://github.com/\1/\2/", markdown)
        markdown = re.sub(
            rf"{CODE_PLACEHOLDER}(\d+)",
            lambda match: blocks[int(match.group(1))],
            markdown,
        )

        # Remove excessive blank lines
        markdown = re.sub(r"\n{3,}", "\n\n", markdown)
        return markdown.strip() + "\n" if markdown.strip() else ""

    def _fix_relative_links(self, markdown: str, base_url: str) -> str:
        """Ensure all links are absolute."""

        def replace_link(match: re.Match[str]) -> str:
            text = match.group(1)
            url = match.group(2)

            if url.startswith(("#", "http://", "https://", "mailto:", "tel:")):
                result: str = match.group(0)
                return result

            return f"[{text}]({urljoin(base_url, url)})"

        return re.sub(r"\[([^\]]+)\]\(([^)\s]+)\)", replace_link, markdown)

    def convert(self, html: str, url: str) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML of the content container
            url: Page URL for resolving relative links

        Returns:
            Markdown string (empty when the container had no text)
        """
        try:
            self._converter.baseurl = url
            prepared, blocks = self._prepare_html(html)
            markdown = self._converter.handle(prepared)
            markdown = self._clean_output(markdown, blocks)
            return self._fix_relative_links(markdown, self._link_base or url)

        except Exception as e:
            logger.error(f"Failed to convert HTML to Markdown: {e}")
            # Return plain text as fallback
            soup = BeautifulSoup(html, "html.parser")
            text: str = soup.get_text(separator="\n").strip()
            return text + "\n" if text else ""
