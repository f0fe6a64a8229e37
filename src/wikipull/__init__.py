"""
wikipull - Convert a whole DeepWiki or Devin wiki to markdown in one ZIP.

Usage:
    from wikipull import BatchOrchestrator, BrowserSession, WikipullConfig

    config = WikipullConfig(url="https://deepwiki.com/owner/repo")

    async with BrowserSession(config) as session:
        await session.open(config.url)
        orchestrator = BatchOrchestrator(session.target, session.agent, session.delivery, config)
        session.on_close(orchestrator.handle_target_closed)

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()
        print(outcome, orchestrator.last_archive)
"""

__version__ = "1.0.0"

from .archive import ArchiveAssembler
from .browser import BrowserSession, PageAgent, PlaywrightTarget
from .core import BatchOrchestrator, BatchState, PageProcessor, StartResult
from .delivery import DeliveryQueue
from .errors import (
    BatchAlreadyRunningError,
    BatchRejectedError,
    DeliveryError,
    PageError,
    TargetClosedError,
    WikipullError,
)
from .models.config import (
    BrowserConfig,
    EmptyOutputConfig,
    OutputConfig,
    ReadinessConfig,
    ScopeConfig,
    TimingConfig,
    WikipullConfig,
)
from .models.events import BatchEventType, StatusRecord
from .navigation import NavigationCoordinator
from .readiness import ReadinessProber

__all__ = [
    "__version__",
    # Core
    "BatchOrchestrator",
    "BatchState",
    "PageProcessor",
    "StartResult",
    "DeliveryQueue",
    "NavigationCoordinator",
    "ReadinessProber",
    "ArchiveAssembler",
    # Browser
    "BrowserSession",
    "PageAgent",
    "PlaywrightTarget",
    # Config
    "WikipullConfig",
    "ScopeConfig",
    "ReadinessConfig",
    "EmptyOutputConfig",
    "TimingConfig",
    "BrowserConfig",
    "OutputConfig",
    # Events
    "BatchEventType",
    "StatusRecord",
    # Errors
    "WikipullError",
    "BatchRejectedError",
    "BatchAlreadyRunningError",
    "PageError",
    "DeliveryError",
    "TargetClosedError",
]
