"""Project scope rules for supported documentation sites."""

import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Optional
from urllib.parse import urljoin, urlparse

from ..models.pages import PageDescriptor

logger = logging.getLogger(__name__)

# Path segments that introduce a project, e.g. /wiki/{owner}/{repo}
PROJECT_MARKERS = ("deepwiki", "wiki", "docs")


def _host_matches(hostname: str, hosts: Sequence[str]) -> bool:
    return any(host in hostname for host in hosts)


def is_supported_url(url: Optional[str], hosts: Sequence[str]) -> bool:
    """
    Check whether a batch may be started from ``url``.

    Args:
        url: Address the target currently shows
        hosts: Host substrings that are supported

    Returns:
        True if the address is on a supported site
    """
    if not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    return _host_matches(parsed.hostname, hosts)


def project_prefix(url: str, topic_hosts: Sequence[str] = ()) -> Optional[str]:
    """
    Derive the path prefix shared by all pages of the project at ``url``.

    On topic sites the owner is the project (``/wiki/{owner}``); elsewhere
    the repository is (``/wiki/{owner}/{repo}``). Without a marker segment
    the first two segments are used.

    Returns:
        A path starting with ``/``, or None if the URL cannot be parsed
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        logger.warning(f"Failed to derive project prefix: {e}")
        return None

    segments = [segment for segment in parsed.path.split("/") if segment]
    is_topic_site = _host_matches(parsed.hostname or "", topic_hosts)

    marker_index = next(
        (i for i, segment in enumerate(segments) if segment.lower() in PROJECT_MARKERS),
        None,
    )

    if marker_index is not None:
        after_marker = len(segments) - (marker_index + 1)
        depth = 1 if is_topic_site else 2
        keep = marker_index + 1 + min(depth, after_marker)
        return "/" + "/".join(segments[:keep])

    if segments:
        return "/" + "/".join(segments[:2])
    return "/"


def filter_pages_to_project(
    pages: Sequence[PageDescriptor],
    current_url: str,
    topic_hosts: Sequence[str] = (),
) -> list[PageDescriptor]:
    """
    Keep the discovered pages that belong to the current project.

    Pages must share the current page's origin. On topic sites only
    links to the current page itself are kept (topics are panels of
    that page); elsewhere pages must lie under the project prefix.

    Args:
        pages: Discovered pages in navigation order
        current_url: Address the target currently shows
        topic_hosts: Hosts whose projects are single pages of topics

    Returns:
        The pages in scope, order preserved
    """
    base = urlparse(current_url)
    if not base.scheme or not base.netloc:
        logger.warning(f"Invalid current URL for filtering: {current_url!r}")
        return list(pages)

    is_topic_site = _host_matches(base.hostname or "", topic_hosts)
    current_path = base.path.rstrip("/")
    prefix = project_prefix(current_url, topic_hosts)

    kept = []
    for page in pages:
        parsed = urlparse(urljoin(current_url, page.url))
        if (parsed.scheme, parsed.netloc) != (base.scheme, base.netloc):
            continue
        if is_topic_site:
            if parsed.path.rstrip("/") == current_path:
                kept.append(page)
        elif not prefix or parsed.path.startswith(prefix):
            kept.append(page)

    logger.debug(
        f"Scope filter for {current_url} (prefix {prefix}): kept {len(kept)}, dropped {len(pages) - len(kept)}"
    )
    return kept


def number_pages(pages: Sequence[PageDescriptor]) -> list[PageDescriptor]:
    """Assign zero-padded order prefixes (``01``, ``02``, ...) in list order."""
    width = max(2, len(str(len(pages))))
    return [replace(page, order_prefix=str(i).zfill(width)) for i, page in enumerate(pages, start=1)]
