"""Batch conversion core: run state, page processing and orchestration."""

from .orchestrator import BatchOrchestrator, StatusObserver
from .processor import PageProcessor, StatusEmitter, is_suspiciously_empty
from .protocols import ContentAgent
from .run import BatchRun, BatchState, StartResult
from .single import convert_single_page

__all__ = [
    "BatchOrchestrator",
    "BatchRun",
    "BatchState",
    "ContentAgent",
    "PageProcessor",
    "StartResult",
    "StatusEmitter",
    "StatusObserver",
    "convert_single_page",
    "is_suspiciously_empty",
]
