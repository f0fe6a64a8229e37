"""Run-wide state of a batch conversion."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..models.events import BatchEventType, StatusRecord
from ..models.pages import ConvertedPage, PageDescriptor


class BatchState(str, Enum):
    """States of the batch orchestrator.

    Every terminal state is followed by an immediate reset to ``IDLE``.
    """

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERRORED = "errored"


@dataclass
class BatchRun:
    """
    Everything one batch run owns.

    Created by ``BatchOrchestrator.start_batch`` and mutated only by the
    orchestrator and the page processor. The page list is fixed for the
    duration of the run; the counters only grow.
    """

    target_id: str
    original_location: str
    pages: tuple[PageDescriptor, ...]
    folder_name: str

    running: bool = True
    cancel_requested: bool = False
    processed: int = 0
    failed: int = 0
    outputs: list[ConvertedPage] = field(default_factory=list)
    used_file_names: set[str] = field(default_factory=set)
    current_title: str = ""

    @property
    def total(self) -> int:
        return len(self.pages)

    def status(
        self,
        type: BatchEventType,
        message: str = "",
        level: str = "info",
        running: Optional[bool] = None,
    ) -> StatusRecord:
        """Build a status record carrying this run's counters."""
        return StatusRecord(
            type=type,
            running=self.running if running is None else running,
            processed=self.processed,
            failed=self.failed,
            total=self.total,
            cancel_requested=self.cancel_requested,
            message=message,
            level=level,
        )


@dataclass(frozen=True)
class StartResult:
    """Returned by ``start_batch`` once the run is under way."""

    total: int
    folder_name: str
