"""Client for the agent running inside the target's document."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

from ..conversion import HtmlToMarkdown
from ..delivery import DeliveryQueue
from ..models.pages import ConversionResult, DiscoveryResult, ReadinessSnapshot, TopicSelection

logger = logging.getLogger(__name__)


class PageAgent:
    """
    Request/response client for the in-page agent of one target.

    Every request goes through the delivery queue, so a request issued
    while the document reloads waits for the next agent instead of being
    lost. The agent returns the content container's HTML; conversion to
    Markdown happens here.

    Example:
        agent = PageAgent(delivery, target.target_id, topic_hosts=["devin.ai"])
        discovery = await agent.discover_pages()
        for page in discovery.pages:
            print(page.title, page.url)
    """

    def __init__(
        self,
        delivery: DeliveryQueue,
        target_id: str,
        converter: Optional[HtmlToMarkdown] = None,
        topic_hosts: Sequence[str] = (),
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the agent client.

        Args:
            delivery: Queue routing requests to the target
            target_id: Identifier of the target
            converter: HTML to Markdown converter
            topic_hosts: Hosts whose pages are lists of in-page topics
            timeout: Per-request timeout (default: the queue's)
        """
        self._delivery = delivery
        self._target_id = target_id
        self._converter = converter or HtmlToMarkdown()
        self._topic_hosts = list(topic_hosts)
        self._timeout = timeout

    @property
    def target_id(self) -> str:
        return self._target_id

    async def _request(self, action: str, **params: Any) -> dict[str, Any]:
        response = await self._delivery.send(self._target_id, {"action": action, **params}, timeout=self._timeout)
        if not isinstance(response, dict):
            logger.debug(f"Unexpected {action} response: {response!r}")
            return {}
        return response

    async def discover_pages(self) -> DiscoveryResult:
        """List the pages linked from the site's navigation."""
        result = DiscoveryResult.from_payload(await self._request("extractAllPages", topicHosts=self._topic_hosts))
        if result.ok:
            logger.debug(f"Discovered {len(result.pages)} candidate pages")
        return result

    async def read_snapshot(self) -> ReadinessSnapshot:
        """Report the current address, content metrics and content signature."""
        return ReadinessSnapshot.from_payload(await self._request("readiness"))

    async def select_topic(self, index: Optional[int], title: str) -> TopicSelection:
        """Click the topic control matching ``title`` (exact, then substring), else ``index``."""
        return TopicSelection.from_payload(await self._request("selectTopic", index=index, title=title))

    async def convert_current(self) -> ConversionResult:
        """Convert the currently displayed content to Markdown."""
        response = await self._request("extractContent")
        if not response.get("success"):
            return ConversionResult(ok=False, error=response.get("error") or "Conversion failed")

        markdown = self._converter.convert(response.get("html") or "", response.get("currentUrl") or "")
        return ConversionResult(
            ok=True,
            markdown=markdown,
            title_hint=response.get("title") or None,
            head_title=response.get("headTitle") or None,
        )
