"""Value types exchanged between the orchestrator and the in-page agent.

The ``from_payload`` constructors accept the camelCase dictionaries the
agent script returns and tolerate missing keys.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class PageDescriptor:
    """One page of a project, as produced by discovery."""

    url: str
    title: str
    topic_index: Optional[int] = None
    order_prefix: Optional[str] = None

    @property
    def is_topic(self) -> bool:
        """True when the page is an in-page panel selected by index."""
        return self.topic_index is not None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PageDescriptor":
        topic_index = payload.get("topicIndex")
        return cls(
            url=str(payload.get("url") or ""),
            title=str(payload.get("title") or "Untitled Page"),
            topic_index=topic_index if isinstance(topic_index, int) and not isinstance(topic_index, bool) else None,
        )


@dataclass(frozen=True)
class ConvertedPage:
    """A successfully converted page, ready to be archived."""

    file_name: str
    content: str
    source_url: Optional[str] = None


@dataclass(frozen=True)
class ReadinessMetrics:
    """How much content the target currently shows. Never stored."""

    has_content: bool = False
    text_length: int = 0
    structural_count: int = 0
    has_diagram: bool = False

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "ReadinessMetrics":
        if not payload:
            return cls()
        return cls(
            has_content=bool(payload.get("hasContainer")),
            text_length=_int(payload.get("textLength")),
            structural_count=_int(payload.get("meaningfulCount")),
            has_diagram=bool(payload.get("hasMermaid")),
        )


@dataclass(frozen=True)
class ContentSignature:
    """Fingerprint of the visible content panel, used to detect topic changes."""

    heading: str = ""
    snippet: str = ""
    text_length: int = 0
    fragment: str = ""

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> Optional["ContentSignature"]:
        if not payload:
            return None
        return cls(
            heading=str(payload.get("heading") or ""),
            snippet=str(payload.get("snippet") or ""),
            text_length=_int(payload.get("textLength")),
            fragment=str(payload.get("hash") or ""),
        )


@dataclass(frozen=True)
class ReadinessSnapshot:
    """One observation of the target: where it is and what it shows."""

    current_url: str
    metrics: ReadinessMetrics
    signature: Optional[ContentSignature] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "ReadinessSnapshot":
        payload = payload or {}
        return cls(
            current_url=str(payload.get("currentUrl") or ""),
            metrics=ReadinessMetrics.from_payload(payload.get("metrics")),
            signature=ContentSignature.from_payload(payload.get("signature")),
        )


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a readiness probe. A timeout is a soft failure."""

    ready: bool
    timed_out: bool
    metrics: Optional[ReadinessMetrics] = None
    current_url: Optional[str] = None
    polls: int = 0


@dataclass(frozen=True)
class ConversionResult:
    ok: bool
    markdown: str = ""
    title_hint: Optional[str] = None
    error: Optional[str] = None
    head_title: Optional[str] = None


@dataclass(frozen=True)
class TopicSelection:
    ok: bool
    selected_title: Optional[str] = None
    selected_index: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "TopicSelection":
        payload = payload or {}
        index = payload.get("selectedIndex")
        return cls(
            ok=bool(payload.get("success")),
            selected_title=payload.get("selectedTitle"),
            selected_index=index if isinstance(index, int) else None,
            error=payload.get("error"),
        )


@dataclass(frozen=True)
class DiscoveryResult:
    """Pages found in the target's navigation, before project filtering."""

    ok: bool
    pages: list[PageDescriptor] = field(default_factory=list)
    head_title: Optional[str] = None
    current_title: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> "DiscoveryResult":
        payload = payload or {}
        if not payload.get("success"):
            return cls(ok=False, error=payload.get("error") or "Failed to extract sidebar links.")
        pages = [
            PageDescriptor.from_payload(item)
            for item in payload.get("pages") or []
            if isinstance(item, dict) and item.get("url")
        ]
        return cls(
            ok=True,
            pages=pages,
            head_title=payload.get("headTitle") or None,
            current_title=payload.get("currentTitle") or None,
        )
