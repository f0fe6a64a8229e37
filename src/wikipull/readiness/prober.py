"""Poll the target until rendered content is worth converting."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from ..models.config import ReadinessConfig
from ..models.pages import ContentSignature, ProbeResult, ReadinessMetrics, ReadinessSnapshot
from ..navigation.urls import urls_roughly_match

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """Anything that can observe the target's current content."""

    async def read_snapshot(self) -> ReadinessSnapshot: ...


def content_looks_substantial(
    metrics: ReadinessMetrics,
    min_text_length: int,
    min_structural_count: int,
) -> bool:
    """True when the metrics cross any of the content thresholds."""
    return (
        metrics.text_length >= min_text_length
        or metrics.structural_count >= min_structural_count
        or metrics.has_diagram
    )


def is_content_ready(
    snapshot: ReadinessSnapshot,
    expected_url: str,
    min_text_length: int,
    min_structural_count: int,
) -> bool:
    """Ready when the target is at the expected address and shows enough content."""
    return (
        urls_roughly_match(expected_url, snapshot.current_url)
        and snapshot.metrics.has_content
        and content_looks_substantial(snapshot.metrics, min_text_length, min_structural_count)
    )


def is_topic_ready(
    snapshot: ReadinessSnapshot,
    expected_title: str,
    previous: Optional[ContentSignature],
    policy: ReadinessConfig,
) -> bool:
    """
    Readiness for in-page topic panels, where the address does not change.

    The panel must have changed (its heading matches the expected title,
    or its text differs materially from the previous signature) and show
    some content.
    """
    metrics = snapshot.metrics
    if not metrics.has_content:
        return False

    signature = snapshot.signature or ContentSignature()
    expected = expected_title.strip().lower()
    heading = signature.heading.lower()
    title_matched = bool(expected) and (heading == expected or expected in heading)

    previous_snippet = previous.snippet if previous else ""
    previous_length = previous.text_length if previous else 0
    snippet_changed = bool(signature.snippet) and signature.snippet != previous_snippet
    length_changed = abs(signature.text_length - previous_length) > policy.signature_change_threshold

    if not (title_matched or snippet_changed or length_changed):
        return False

    return (
        content_looks_substantial(metrics, policy.min_text_length, policy.min_structural_count)
        or metrics.structural_count >= policy.min_topic_structural_count
    )


class ReadinessProber:
    """
    Decide whether a page has rendered enough content to convert.

    Client-side documentation apps keep rendering after the document
    reports complete, so the prober polls snapshots at a fixed interval
    until a threshold is crossed or the deadline passes. A timeout is
    returned, not raised: callers use the last metrics to decide on retry.

    Example:
        prober = ReadinessProber(agent, ReadinessConfig())
        result = await prober.probe("https://deepwiki.com/owner/repo/2-setup")
        if result.timed_out:
            logger.warning(f"Converting anyway: {result.metrics}")
    """

    def __init__(self, source: SnapshotSource, policy: Optional[ReadinessConfig] = None) -> None:
        self._source = source
        self._policy = policy or ReadinessConfig()

    @property
    def policy(self) -> ReadinessConfig:
        return self._policy

    async def probe(
        self,
        expected_url: str,
        min_text_length: Optional[int] = None,
        min_structural_count: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ProbeResult:
        """
        Wait until the page at ``expected_url`` shows enough content.

        Args:
            expected_url: Address the target should be at
            min_text_length: Text threshold (default from policy)
            min_structural_count: Structural element threshold (default from policy)
            timeout: Seconds before giving up (default from policy)

        Returns:
            ProbeResult with ``ready`` or ``timed_out`` set and the last metrics
        """
        text = self._policy.min_text_length if min_text_length is None else min_text_length
        structural = self._policy.min_structural_count if min_structural_count is None else min_structural_count

        return await self._poll(
            lambda snapshot: is_content_ready(snapshot, expected_url, text, structural),
            interval=self._policy.poll_interval,
            timeout=self._policy.timeout if timeout is None else timeout,
            label=expected_url,
        )

    async def probe_topic(
        self,
        expected_title: str,
        previous: Optional[ContentSignature] = None,
        timeout: Optional[float] = None,
    ) -> ProbeResult:
        """
        Wait until a freshly selected topic panel has rendered.

        Args:
            expected_title: Title of the selected topic
            previous: Signature of the panel before selection
            timeout: Seconds before giving up (default from policy)
        """
        return await self._poll(
            lambda snapshot: is_topic_ready(snapshot, expected_title, previous, self._policy),
            interval=self._policy.topic_poll_interval,
            timeout=self._policy.timeout if timeout is None else timeout,
            label=expected_title,
        )

    async def _poll(
        self,
        check: Callable[[ReadinessSnapshot], bool],
        interval: float,
        timeout: float,
        label: str,
    ) -> ProbeResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        polls = 0

        while True:
            snapshot = await self._source.read_snapshot()
            polls += 1

            if check(snapshot):
                logger.debug(f"Content ready for {label} after {polls} poll(s): {snapshot.metrics}")
                return ProbeResult(
                    ready=True,
                    timed_out=False,
                    metrics=snapshot.metrics,
                    current_url=snapshot.current_url,
                    polls=polls,
                )

            if loop.time() >= deadline:
                logger.debug(f"Content readiness timed out for {label}: {snapshot.metrics}")
                return ProbeResult(
                    ready=False,
                    timed_out=True,
                    metrics=snapshot.metrics,
                    current_url=snapshot.current_url,
                    polls=polls,
                )

            await asyncio.sleep(interval)
