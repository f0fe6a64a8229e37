"""Content readiness probing."""

from .prober import (
    ReadinessProber,
    SnapshotSource,
    content_looks_substantial,
    is_content_ready,
    is_topic_ready,
)

__all__ = [
    "ReadinessProber",
    "SnapshotSource",
    "content_looks_substantial",
    "is_content_ready",
    "is_topic_ready",
]
