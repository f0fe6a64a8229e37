"""Per-page unit of work: navigate, wait for content, convert, record."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..errors import ConversionError, DeliveryError, EmptyOutputError, TopicSelectionError
from ..models.config import EmptyOutputConfig, ReadinessConfig, TimingConfig
from ..models.events import BatchEventType, StatusRecord
from ..models.pages import ContentSignature, ConversionResult, ConvertedPage, PageDescriptor, ProbeResult, ReadinessMetrics
from ..naming import unique_file_name
from ..navigation import NavigationCoordinator, Target, same_document
from ..readiness import ReadinessProber, content_looks_substantial
from .protocols import ContentAgent
from .run import BatchRun

logger = logging.getLogger(__name__)

# Type alias for status emitter function
StatusEmitter = Callable[[StatusRecord], None]


def is_suspiciously_empty(
    markdown: Optional[str],
    metrics: Optional[ReadinessMetrics],
    empty_output: Optional[EmptyOutputConfig] = None,
    readiness: Optional[ReadinessConfig] = None,
) -> bool:
    """
    Decide whether a conversion probably ran before the content rendered.

    Short output is suspicious when the page looked substantial while
    probing, or, without metrics, when it is shorter than a small floor.
    """
    empty_output = empty_output or EmptyOutputConfig()
    readiness = readiness or ReadinessConfig()

    length = len((markdown or "").strip())
    if length >= empty_output.suspicious_length:
        return False
    if metrics is None:
        return length < empty_output.minimum_length
    return content_looks_substantial(metrics, readiness.min_text_length, readiness.min_structural_count)


class PageProcessor:
    """
    Produce one converted page from one page descriptor, or fail it.

    Failures are raised as ``PageError`` subclasses (or ``DeliveryError``
    when the agent cannot be reached) for the orchestrator to count. A
    readiness timeout only emits a warning; conversion is attempted anyway.

    Example:
        processor = PageProcessor(target, agent, navigator, prober, emit=print)
        converted = await processor.process(run, page)
    """

    def __init__(
        self,
        target: Target,
        agent: ContentAgent,
        navigator: NavigationCoordinator,
        prober: ReadinessProber,
        empty_output: Optional[EmptyOutputConfig] = None,
        timing: Optional[TimingConfig] = None,
        emit: Optional[StatusEmitter] = None,
    ) -> None:
        self._target = target
        self._agent = agent
        self._navigator = navigator
        self._prober = prober
        self._empty_output = empty_output or EmptyOutputConfig()
        self._timing = timing or TimingConfig()
        self._emit = emit

    def _notify(self, record: StatusRecord) -> None:
        if self._emit:
            self._emit(record)

    async def process(self, run: BatchRun, page: PageDescriptor) -> Optional[ConvertedPage]:
        """
        Process a single page of ``run``.

        Returns:
            The converted page, or None if the run was cancelled before
            the page began

        Raises:
            PageError: Navigation, topic selection, conversion, or empty output failure
            DeliveryError: The agent could not be reached for conversion
        """
        if run.cancel_requested:
            return None

        step = run.processed + run.failed + 1
        run.current_title = page.title
        self._notify(run.status(BatchEventType.PROCESSING, f"Processing {step}/{run.total}: {page.title}"))

        previous: Optional[ContentSignature] = None
        if page.is_topic:
            previous = await self._show_topic(page)
        else:
            await self._navigator.navigate(page.url)

        readiness = await self._await_readiness(run, page, previous)
        conversion = await self._agent.convert_current()
        if not conversion.ok:
            raise ConversionError(conversion.error or "Conversion failed")

        if is_suspiciously_empty(conversion.markdown, _metrics(readiness), self._empty_output, self._prober.policy):
            conversion = await self._retry_conversion(run, page, previous, readiness)

        converted = self._record(run, page, conversion)

        # Breathe so the rendering target is not overloaded
        await asyncio.sleep(self._timing.page_pause)
        return converted

    async def _show_topic(self, page: PageDescriptor) -> Optional[ContentSignature]:
        """Bring the topic's page up and select the topic; return the prior signature."""
        current = await self._target.current_url()
        if not same_document(current, page.url):
            logger.debug(f"Topic page not loaded, navigating to {page.url}")
            await self._navigator.navigate(page.url)

        previous = (await self._agent.read_snapshot()).signature

        selection = await self._agent.select_topic(page.topic_index, page.title)
        if not selection.ok:
            raise TopicSelectionError(selection.error or "Failed to select topic.")
        logger.debug(f"Selected topic {selection.selected_index}: {selection.selected_title}")

        # Give the panel a moment to start rendering
        await asyncio.sleep(self._timing.topic_settle_delay)
        return previous

    async def _await_readiness(
        self,
        run: BatchRun,
        page: PageDescriptor,
        previous: Optional[ContentSignature],
    ) -> Optional[ProbeResult]:
        try:
            if page.is_topic:
                result = await self._prober.probe_topic(page.title, previous)
            else:
                result = await self._prober.probe(page.url)
        except DeliveryError as e:
            logger.warning(f"Readiness probe failed for {page.url}: {e}")
            return None

        if result.timed_out:
            logger.warning(f"Content readiness timed out for {page.title}: {result.metrics}")
            self._notify(
                run.status(
                    BatchEventType.PAGE_WARNING,
                    f"Content for {page.title} did not finish rendering, converting anyway.",
                    level="warning",
                )
            )
        return result

    async def _retry_conversion(
        self,
        run: BatchRun,
        page: PageDescriptor,
        previous: Optional[ContentSignature],
        readiness: Optional[ProbeResult],
    ) -> ConversionResult:
        """Wait, re-probe and convert once more; the second attempt is final."""
        logger.warning(f"Suspiciously empty markdown for {page.title}, retrying once")
        await asyncio.sleep(self._empty_output.retry_delay)

        retry_readiness = await self._await_readiness(run, page, previous)
        conversion = await self._agent.convert_current()
        if not conversion.ok:
            raise ConversionError(conversion.error or "Conversion retry failed")

        metrics = _metrics(retry_readiness) or _metrics(readiness)
        if is_suspiciously_empty(conversion.markdown, metrics, self._empty_output, self._prober.policy):
            raise EmptyOutputError("Converted markdown appears empty after retry.")
        return conversion

    def _record(self, run: BatchRun, page: PageDescriptor, conversion: ConversionResult) -> ConvertedPage:
        base_title = conversion.title_hint or page.title
        if page.order_prefix:
            base_title = f"{page.order_prefix}-{base_title}"

        converted = ConvertedPage(
            file_name=unique_file_name(base_title, run.used_file_names),
            content=conversion.markdown,
            source_url=page.url,
        )
        run.outputs.append(converted)
        run.processed += 1

        logger.info(f"Converted {page.url} -> {converted.file_name}.md")
        self._notify(run.status(BatchEventType.PAGE_PROCESSED, f"Converted {run.processed}/{run.total}: {page.title}"))
        return converted


def _metrics(result: Optional[ProbeResult]) -> Optional[ReadinessMetrics]:
    return result.metrics if result is not None else None
