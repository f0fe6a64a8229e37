"""Protocol for the in-page collaborator the core drives."""

from typing import Optional, Protocol

from ..models.pages import ConversionResult, DiscoveryResult, ReadinessSnapshot, TopicSelection


class ContentAgent(Protocol):
    """
    Client for the agent living inside the target's current document.

    Every call is routed through the delivery queue, so it survives the
    agent being replaced by a reload. Calls may raise ``DeliveryError``.
    """

    async def discover_pages(self) -> DiscoveryResult:
        """List the pages linked from the site's navigation."""
        ...

    async def convert_current(self) -> ConversionResult:
        """Convert the currently displayed content to Markdown."""
        ...

    async def read_snapshot(self) -> ReadinessSnapshot:
        """Report the current address, content metrics and content signature."""
        ...

    async def select_topic(self, index: Optional[int], title: str) -> TopicSelection:
        """Activate an in-page topic control by title, falling back to index."""
        ...
