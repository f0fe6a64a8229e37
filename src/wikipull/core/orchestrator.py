"""Batch orchestrator: the single-flight state machine behind a run."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from ..archive import ArchiveAssembler
from ..delivery import DeliveryQueue
from ..discovery import filter_pages_to_project, is_supported_url, number_pages
from ..errors import (
    BatchAlreadyRunningError,
    DeliveryError,
    DiscoveryError,
    NoPagesError,
    NothingConvertedError,
    UnsupportedLocationError,
)
from ..models.config import WikipullConfig
from ..models.events import IDLE_STATUS, BatchEventType, StatusRecord
from ..naming import sanitize_folder_name
from ..navigation import NavigationCoordinator, Target
from ..readiness import ReadinessProber
from .processor import PageProcessor
from .protocols import ContentAgent
from .run import BatchRun, BatchState, StartResult

logger = logging.getLogger(__name__)

StatusObserver = Callable[[StatusRecord], None]


class BatchOrchestrator:
    """
    Drive one target through every page of a project and archive the result.

    States run ``IDLE -> RUNNING -> COMPLETED | CANCELLED | ERRORED`` and
    always fall back to ``IDLE``. Only one run may be active at a time.
    Pages are processed strictly in order; a failing page is counted and
    the run moves on. Cancellation is cooperative and observed between
    pages. Closing the target ends the run at once.

    Every transition is broadcast as a ``StatusRecord`` to subscribers, and
    the latest record is kept for ``get_batch_status``.

    Example:
        orchestrator = BatchOrchestrator(target, agent, delivery, config)
        orchestrator.subscribe(lambda record: print(record.message))

        started = await orchestrator.start_batch()
        print(f"Converting {started.total} pages into {started.folder_name}.zip")
        outcome = await orchestrator.wait()
    """

    def __init__(
        self,
        target: Target,
        agent: ContentAgent,
        delivery: DeliveryQueue,
        config: Optional[WikipullConfig] = None,
        navigator: Optional[NavigationCoordinator] = None,
        prober: Optional[ReadinessProber] = None,
        assembler: Optional[ArchiveAssembler] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            target: The tab driving every run
            agent: Client for the in-page agent
            delivery: Delivery queue the agent client sends through
            config: Configuration (defaults apply when omitted)
            navigator: Navigation coordinator (default: built from ``delivery``)
            prober: Readiness prober reading from ``agent``
            assembler: Archive sink (default: the configured output directory)
        """
        self.config = config or WikipullConfig()
        self._target = target
        self._agent = agent

        self._navigator = navigator or NavigationCoordinator(
            target,
            delivery,
            timeout=self.config.timing.navigation_timeout,
            poll_interval=self.config.timing.url_poll_interval,
        )
        self._prober = prober or ReadinessProber(agent, self.config.readiness)
        self._assembler = assembler or ArchiveAssembler(self.config.output.directory)
        self._processor = PageProcessor(
            target,
            agent,
            self._navigator,
            self._prober,
            empty_output=self.config.empty_output,
            timing=self.config.timing,
            emit=self._publish,
        )

        self._run: Optional[BatchRun] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._observers: list[StatusObserver] = []
        self._last_status: StatusRecord = IDLE_STATUS
        self._last_outcome: BatchState = BatchState.IDLE
        self._last_archive: Optional[Path] = None

    @property
    def state(self) -> BatchState:
        return BatchState.RUNNING if self._run is not None else BatchState.IDLE

    @property
    def last_outcome(self) -> BatchState:
        """Terminal state of the most recent run (``IDLE`` before the first)."""
        return self._last_outcome

    @property
    def last_archive(self) -> Optional[Path]:
        """Where the most recent completed run's archive was saved."""
        return self._last_archive

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        """Register a status observer and return a function that removes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def start_batch(self) -> StartResult:
        """
        Discover the current project's pages and start converting them.

        Returns once the run is under way; use ``wait()`` for the outcome.

        Raises:
            BatchAlreadyRunningError: A run is active
            UnsupportedLocationError: The target is not on a supported site
            DiscoveryError: The agent could not list the pages
            NoPagesError: No pages of the current project were found
        """
        if self._run is not None:
            raise BatchAlreadyRunningError("Batch conversion already running.")

        scope = self.config.scope
        current_url = await self._target.current_url()
        if not is_supported_url(current_url, scope.supported_hosts):
            logger.error(f"Unsupported location: {current_url}")
            raise UnsupportedLocationError("Please open a DeepWiki or Devin page before starting batch conversion.")

        try:
            discovery = await self._agent.discover_pages()
        except DeliveryError as e:
            raise DiscoveryError(f"Failed to extract sidebar links: {e}") from e
        if not discovery.ok:
            raise DiscoveryError(discovery.error or "Failed to extract sidebar links.")

        pages = filter_pages_to_project(discovery.pages, current_url, scope.topic_hosts)
        if scope.max_pages:
            pages = pages[: scope.max_pages]
        if scope.number_files:
            pages = number_pages(pages)
        if not pages:
            raise NoPagesError("No child pages were detected for the current project.")

        folder_name = sanitize_folder_name(
            self.config.output.folder_name or discovery.head_title or discovery.current_title
        )
        run = BatchRun(
            target_id=self._target.target_id,
            original_location=current_url,
            pages=tuple(pages),
            folder_name=folder_name,
        )
        self._begin(run)

        logger.info(f"Starting batch of {run.total} pages from {current_url}")
        self._publish(run.status(BatchEventType.STARTED, f"Found {run.total} pages. Starting batch conversion..."))
        self._task = asyncio.get_running_loop().create_task(self._run_batch(run))

        return StartResult(total=run.total, folder_name=folder_name)

    def _begin(self, run: BatchRun) -> None:
        # Discovery awaits, so another start may have won in the meantime
        if self._run is not None:
            raise BatchAlreadyRunningError("Batch conversion already running.")
        self._run = run
        self._last_archive = None

    def cancel_batch(self) -> bool:
        """
        Request cooperative cancellation of the active run.

        The page in flight finishes; no further page begins.

        Returns:
            True if a run was active and is now cancelling
        """
        run = self._run
        if run is None or not run.running:
            return False

        run.cancel_requested = True
        logger.info("Batch cancellation requested")
        self._publish(run.status(BatchEventType.CANCELLING, f"Cancelling... processed {run.processed}/{run.total}."))
        return True

    def get_batch_status(self) -> StatusRecord:
        """
        Current status, valid whether or not a run is active.

        While running, the counters are live and the message is the last
        one broadcast; otherwise the last broadcast record is returned.
        """
        run = self._run
        if run is not None and run.running:
            last = self._last_status
            return run.status(last.type, last.message, last.level, running=True)
        return replace(self._last_status, running=False)

    def handle_target_closed(self, target_id: Optional[str] = None) -> None:
        """
        End the active run immediately because its target went away.

        Nothing is archived. Calls for other targets, or with no active
        run, are ignored.
        """
        run = self._run
        if run is None or (target_id is not None and target_id != run.target_id):
            return

        logger.warning(f"Target {run.target_id} closed during batch run")
        run.running = False
        self._last_outcome = BatchState.ERRORED
        self._publish(
            run.status(BatchEventType.ERROR, "Batch cancelled because the target was closed.", level="error")
        )
        self._reset()

        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> BatchState:
        """Wait for the current run's task to finish and return its outcome."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self._last_outcome

    async def _run_batch(self, run: BatchRun) -> None:
        try:
            for page in run.pages:
                if run.cancel_requested:
                    break

                try:
                    await self._processor.process(run, page)
                except Exception as e:
                    run.failed += 1
                    logger.error(f"Failed {page.url}: {e}")
                    self._publish(run.status(BatchEventType.PAGE_FAILED, f"Failed {page.title}: {e}", level="error"))

            if run.cancel_requested:
                run.running = False
                self._last_outcome = BatchState.CANCELLED
                self._publish(
                    run.status(
                        BatchEventType.CANCELLED,
                        f"Batch cancelled. Success {run.processed}, Failed {run.failed}.",
                    )
                )
                return

            if not run.outputs:
                raise NothingConvertedError("No pages were converted successfully.")

            self._publish(run.status(BatchEventType.ZIPPING, f"Creating ZIP with {len(run.outputs)} files..."))
            self._last_archive = await self._write_archive(run)

            run.running = False
            self._last_outcome = BatchState.COMPLETED
            self._publish(
                run.status(
                    BatchEventType.COMPLETED,
                    f"ZIP ready. Success {run.processed}, Failed {run.failed}.",
                    level="success",
                )
            )

        except Exception as e:
            run.running = False
            self._last_outcome = BatchState.ERRORED
            logger.error(f"Batch run failed: {e}")
            self._publish(run.status(BatchEventType.ERROR, str(e) or "Batch conversion failed.", level="error"))

        finally:
            # A closed target has already reset the orchestrator
            if self._run is run:
                if self.config.output.restore_original_page:
                    await self._restore_original_page(run)
                self._reset()

    async def _write_archive(self, run: BatchRun) -> Path:
        data = self._assembler.assemble(run.folder_name, run.outputs)
        return await asyncio.to_thread(self._assembler.save, data, f"{run.folder_name}.zip")

    async def _restore_original_page(self, run: BatchRun) -> None:
        try:
            await self._navigator.navigate(run.original_location)
        except Exception as e:
            logger.warning(f"Failed to restore original page: {e}")

    def _publish(self, record: StatusRecord) -> None:
        self._last_status = record
        for observer in list(self._observers):
            try:
                observer(record)
            except Exception as e:
                logger.warning(f"Status observer failed: {e}")

    def _reset(self) -> None:
        self._run = None
