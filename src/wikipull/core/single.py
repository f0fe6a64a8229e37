"""Convert only the page the target currently shows."""

from __future__ import annotations

import logging
from pathlib import Path

from ..archive import ArchiveAssembler
from ..discovery import is_supported_url
from ..errors import ConversionError, EmptyOutputError, UnsupportedLocationError
from ..models.config import WikipullConfig
from ..naming import single_page_file_name
from ..navigation import Target
from ..readiness import ReadinessProber
from .protocols import ContentAgent

logger = logging.getLogger(__name__)


async def convert_single_page(target: Target, agent: ContentAgent, config: WikipullConfig) -> Path:
    """
    Convert the current page and save it as one Markdown file.

    The file is named after the document and page titles and is never
    written over an existing one.

    Args:
        target: Tab showing the page
        agent: Agent client for that tab
        config: Run configuration (hosts, readiness thresholds, output directory)

    Returns:
        Path of the saved ``.md`` file

    Raises:
        UnsupportedLocationError: The target is not on a supported site
        ConversionError: The agent could not extract the content
        EmptyOutputError: The conversion produced no text
    """
    current_url = await target.current_url()
    if not is_supported_url(current_url, config.scope.supported_hosts):
        raise UnsupportedLocationError("Please open a DeepWiki or Devin page before converting.")

    probe = await ReadinessProber(agent, config.readiness).probe(current_url)
    if probe.timed_out:
        logger.warning(f"Content of {current_url} still looks incomplete, converting anyway")

    result = await agent.convert_current()
    if not result.ok:
        raise ConversionError(result.error or "Conversion failed")
    if len(result.markdown.strip()) < config.empty_output.minimum_length:
        raise EmptyOutputError(f"Conversion of {current_url} produced no content")

    filename = single_page_file_name(result.head_title, result.title_hint)
    return ArchiveAssembler(config.output.directory).save(result.markdown.encode("utf-8"), filename)
