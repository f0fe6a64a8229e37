"""Status records broadcast during a batch run."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class BatchEventType(str, Enum):
    """Types of status records emitted by the orchestrator."""

    IDLE = "idle"

    # Lifecycle
    STARTED = "started"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    ZIPPING = "zipping"
    COMPLETED = "completed"
    ERROR = "error"

    # Per page
    PROCESSING = "processing"
    PAGE_PROCESSED = "pageProcessed"
    PAGE_WARNING = "pageWarning"
    PAGE_FAILED = "pageFailed"


TERMINAL_EVENTS = frozenset({BatchEventType.COMPLETED, BatchEventType.CANCELLED, BatchEventType.ERROR})


@dataclass(frozen=True)
class StatusRecord:
    """
    Snapshot of batch progress, broadcast on every transition.

    The orchestrator keeps the most recent record so an observer that
    attaches late can ask for the current status without having seen
    the event stream.

    Example:
        def on_status(record: StatusRecord) -> None:
            if record.type == BatchEventType.PAGE_FAILED:
                print(f"Error: {record.message}")
            elif record.is_terminal:
                print(f"Done: {record.processed}/{record.total}")

        orchestrator.subscribe(on_status)
    """

    type: BatchEventType
    running: bool = False
    processed: int = 0
    failed: int = 0
    total: int = 0
    cancel_requested: bool = False
    message: str = ""
    level: str = "info"

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def progress_percent(self) -> Optional[float]:
        """Share of pages attempted so far, if a total is known."""
        if self.total > 0:
            return ((self.processed + self.failed) / self.total) * 100
        return None

    @property
    def is_error(self) -> bool:
        return self.type in (BatchEventType.ERROR, BatchEventType.PAGE_FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a JSON-friendly dictionary."""
        return {
            "type": self.type.value,
            "running": self.running,
            "processed": self.processed,
            "failed": self.failed,
            "total": self.total,
            "cancelRequested": self.cancel_requested,
            "message": self.message,
            "level": self.level,
            "timestamp": self.timestamp.isoformat(),
        }


IDLE_STATUS = StatusRecord(type=BatchEventType.IDLE, message="Batch converter ready.")
