"""Wikipull configuration, status and page models."""

from .config import (
    BrowserConfig,
    EmptyOutputConfig,
    OutputConfig,
    ReadinessConfig,
    ScopeConfig,
    TimingConfig,
    WikipullConfig,
)
from .events import IDLE_STATUS, BatchEventType, StatusRecord
from .pages import (
    ContentSignature,
    ConversionResult,
    ConvertedPage,
    DiscoveryResult,
    PageDescriptor,
    ProbeResult,
    ReadinessMetrics,
    ReadinessSnapshot,
    TopicSelection,
)

__all__ = [
    # Config
    "BrowserConfig",
    "EmptyOutputConfig",
    "OutputConfig",
    "ReadinessConfig",
    "ScopeConfig",
    "TimingConfig",
    "WikipullConfig",
    # Status
    "BatchEventType",
    "IDLE_STATUS",
    "StatusRecord",
    # Pages
    "ContentSignature",
    "ConversionResult",
    "ConvertedPage",
    "DiscoveryResult",
    "PageDescriptor",
    "ProbeResult",
    "ReadinessMetrics",
    "ReadinessSnapshot",
    "TopicSelection",
]
