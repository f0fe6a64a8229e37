"""Tests for the batch orchestrator state machine."""

import asyncio
import zipfile
from unittest.mock import AsyncMock

import pytest
from wikipull.core import BatchOrchestrator, BatchState
from wikipull.errors import (
    BatchAlreadyRunningError,
    DeliveryTimeoutError,
    DiscoveryError,
    NoPagesError,
    UnsupportedLocationError,
)
from wikipull.models.events import BatchEventType
from wikipull.models.pages import ConversionResult, DiscoveryResult, PageDescriptor

from .fakes import START_URL, markdown_for, page_urls

URLS = page_urls(5)


@pytest.fixture
def events():
    return []


@pytest.fixture
def orchestrator(target, agent, delivery, config, events):
    orchestrator = BatchOrchestrator(target, agent, delivery, config)
    orchestrator.subscribe(events.append)
    return orchestrator


def types(events):
    return [event.type for event in events]


class TestStartBatch:
    """Tests for starting a run."""

    @pytest.mark.asyncio
    async def test_start_result(self, orchestrator):
        """Test that starting reports the page count and archive name."""
        started = await orchestrator.start_batch()

        assert started.total == 5
        assert started.folder_name == "owner-repo-DeepWiki"
        assert orchestrator.state == BatchState.RUNNING
        await orchestrator.wait()

    @pytest.mark.asyncio
    async def test_folder_name_override(self, orchestrator, config):
        """Test that the configured folder name wins over the page title."""
        config.output.folder_name = "My Wiki"

        started = await orchestrator.start_batch()
        await orchestrator.wait()

        assert started.folder_name == "My-Wiki"
        assert orchestrator.last_archive.name == "My-Wiki.zip"

    @pytest.mark.asyncio
    async def test_unsupported_location(self, orchestrator, target, events):
        """Test that a run cannot start away from a supported site."""
        target.url = "https://example.com/docs/intro"

        with pytest.raises(UnsupportedLocationError):
            await orchestrator.start_batch()

        assert orchestrator.state == BatchState.IDLE
        assert events == []

    @pytest.mark.asyncio
    async def test_discovery_failure(self, orchestrator, agent):
        """Test that a failed discovery rejects the run."""
        agent.discovery = DiscoveryResult(ok=False, error="Failed to extract sidebar links.")

        with pytest.raises(DiscoveryError, match="sidebar"):
            await orchestrator.start_batch()
        assert orchestrator.state == BatchState.IDLE

    @pytest.mark.asyncio
    async def test_discovery_delivery_failure(self, orchestrator, agent):
        """Test that an unreachable agent rejects the run."""
        agent.discover_pages = AsyncMock(side_effect=DeliveryTimeoutError("no answer"))

        with pytest.raises(DiscoveryError):
            await orchestrator.start_batch()

    @pytest.mark.asyncio
    async def test_no_pages_in_project(self, orchestrator, agent):
        """Test that pages of other projects do not count."""
        agent.pages = [PageDescriptor(url="https://deepwiki.com/other/project/1-intro", title="Intro")]

        with pytest.raises(NoPagesError):
            await orchestrator.start_batch()
        assert orchestrator.state == BatchState.IDLE

    @pytest.mark.asyncio
    async def test_already_running(self, orchestrator):
        """Test that a second start is rejected while a run is active."""
        await orchestrator.start_batch()

        with pytest.raises(BatchAlreadyRunningError):
            await orchestrator.start_batch()

        await orchestrator.wait()

    @pytest.mark.asyncio
    async def test_concurrent_starts(self, orchestrator, agent):
        """Test that only one of two overlapping starts wins."""
        original = agent.discover_pages

        async def slow_discovery():
            await asyncio.sleep(0.01)
            return await original()

        agent.discover_pages = slow_discovery

        results = await asyncio.gather(
            orchestrator.start_batch(),
            orchestrator.start_batch(),
            return_exceptions=True,
        )

        assert sum(isinstance(r, BatchAlreadyRunningError) for r in results) == 1
        assert sum(not isinstance(r, Exception) for r in results) == 1
        await orchestrator.wait()

    @pytest.mark.asyncio
    async def test_max_pages_and_numbering(self, orchestrator, config):
        """Test page limit and order prefixes."""
        config.scope.max_pages = 2
        config.scope.number_files = True

        started = await orchestrator.start_batch()
        await orchestrator.wait()

        assert started.total == 2
        with zipfile.ZipFile(orchestrator.last_archive) as zf:
            assert zf.namelist() == ["01-Page-1.md", "02-Page-2.md", "README.md"]


class TestBatchRun:
    """Tests for complete runs."""

    @pytest.mark.asyncio
    async def test_completes_with_empty_page_retry(self, orchestrator, agent, events, config):
        """Test a five page run where page three first converts empty."""
        agent.conversions[URLS[2]] = [
            ConversionResult(ok=True, markdown=""),
            ConversionResult(ok=True, markdown=markdown_for(URLS[2])),
        ]

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert outcome == BatchState.COMPLETED
        assert orchestrator.state == BatchState.IDLE
        assert agent.convert_calls.count(URLS[2]) == 2

        status = orchestrator.get_batch_status()
        assert status.type == BatchEventType.COMPLETED
        assert status.running is False
        assert (status.processed, status.failed, status.total) == (5, 0, 5)
        assert status.level == "success"

        assert types(events)[0] == BatchEventType.STARTED
        assert types(events)[-2:] == [BatchEventType.ZIPPING, BatchEventType.COMPLETED]
        assert types(events).count(BatchEventType.PAGE_PROCESSED) == 5

        archive = orchestrator.last_archive
        assert archive == config.output.directory / "owner-repo-DeepWiki.zip"
        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
            assert names == [f"Page-{i}.md" for i in range(1, 6)] + ["README.md"]
            assert zf.read("Page-3.md").decode() == markdown_for(URLS[2])
            assert "- [Page-1](Page-1.md)" in zf.read("README.md").decode()

    @pytest.mark.asyncio
    async def test_page_failure_does_not_stop_run(self, orchestrator, agent, events):
        """Test that a failing page is counted and the run continues."""
        agent.conversions[URLS[1]] = [ConversionResult(ok=False, error="No content container found on the page.")]

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert outcome == BatchState.COMPLETED
        status = orchestrator.get_batch_status()
        assert (status.processed, status.failed) == (4, 1)

        failures = [e for e in events if e.type == BatchEventType.PAGE_FAILED]
        assert len(failures) == 1
        assert failures[0].message.startswith("Failed Page 2:")
        assert failures[0].level == "error"

    @pytest.mark.asyncio
    async def test_nothing_converted(self, orchestrator, agent, config):
        """Test that a run without a single success ends errored."""
        for url in URLS:
            agent.conversions[url] = [ConversionResult(ok=False)]

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert outcome == BatchState.ERRORED
        status = orchestrator.get_batch_status()
        assert status.type == BatchEventType.ERROR
        assert status.message == "No pages were converted successfully."
        assert status.failed == 5
        assert orchestrator.last_archive is None
        assert not config.output.directory.exists()

    @pytest.mark.asyncio
    async def test_restores_original_page(self, orchestrator, target, config):
        """Test that the target returns to the starting page when asked."""
        config.output.restore_original_page = True

        await orchestrator.start_batch()
        await orchestrator.wait()

        assert target.navigations[-1] == START_URL
        assert target.url == START_URL

    @pytest.mark.asyncio
    async def test_new_run_after_completion(self, orchestrator):
        """Test that the orchestrator is reusable once a run ends."""
        await orchestrator.start_batch()
        await orchestrator.wait()

        started = await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert started.total == 5
        assert outcome == BatchState.COMPLETED
        assert orchestrator.last_archive.name == "owner-repo-DeepWiki-1.zip"


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_when_idle(self, orchestrator):
        """Test that cancelling without a run reports nothing to cancel."""
        assert orchestrator.cancel_batch() is False

    @pytest.mark.asyncio
    async def test_cancel_after_second_page(self, orchestrator, agent, events):
        """Test that the in-flight page finishes and no further page starts."""
        cancelled = []

        def on_convert(key):
            if key == URLS[1]:
                cancelled.append(orchestrator.cancel_batch())

        agent.on_convert = on_convert

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert cancelled == [True]
        assert outcome == BatchState.CANCELLED
        assert agent.convert_calls == URLS[:2]

        status = orchestrator.get_batch_status()
        assert status.type == BatchEventType.CANCELLED
        assert status.processed == 2
        assert status.message == "Batch cancelled. Success 2, Failed 0."
        assert orchestrator.last_archive is None
        assert BatchEventType.CANCELLING in types(events)
        assert BatchEventType.ZIPPING not in types(events)


class TestTargetClosed:
    """Tests for the driving target going away."""

    @pytest.mark.asyncio
    async def test_close_mid_run(self, orchestrator, target, agent, config):
        """Test that closing the target ends the run at once without an archive."""
        loop = asyncio.get_running_loop()

        def on_navigate(url):
            if url == URLS[1]:
                loop.call_soon(orchestrator.handle_target_closed, target.target_id)

        target.on_navigate = on_navigate

        await orchestrator.start_batch()
        outcome = await orchestrator.wait()

        assert outcome == BatchState.ERRORED
        assert orchestrator.state == BatchState.IDLE
        assert agent.convert_calls == URLS[:1]
        assert orchestrator.last_archive is None
        assert not config.output.directory.exists()

        status = orchestrator.get_batch_status()
        assert status.type == BatchEventType.ERROR
        assert status.message == "Batch cancelled because the target was closed."
        assert status.running is False

    @pytest.mark.asyncio
    async def test_other_target_ignored(self, orchestrator):
        """Test that closing an unrelated target does not affect the run."""
        await orchestrator.start_batch()
        orchestrator.handle_target_closed("tab-other")

        assert await orchestrator.wait() == BatchState.COMPLETED


class TestStatus:
    """Tests for status snapshots and observers."""

    def test_idle_status(self, orchestrator):
        """Test the status before any run."""
        status = orchestrator.get_batch_status()

        assert status.type == BatchEventType.IDLE
        assert status.running is False
        assert status.message == "Batch converter ready."

    @pytest.mark.asyncio
    async def test_live_status_while_running(self, orchestrator, agent):
        """Test that a late observer sees live counters mid-run."""
        snapshots = []
        agent.on_convert = lambda key: snapshots.append(orchestrator.get_batch_status())

        await orchestrator.start_batch()
        await orchestrator.wait()

        third = snapshots[2]
        assert third.running is True
        assert third.processed == 2
        assert third.total == 5
        assert third.type == BatchEventType.PROCESSING
        assert third.message == "Processing 3/5: Page 3"

    @pytest.mark.asyncio
    async def test_failing_observer_is_ignored(self, orchestrator, events):
        """Test that an observer raising does not disturb the run."""

        def broken(record):
            raise RuntimeError("observer gone")

        orchestrator.subscribe(broken)

        await orchestrator.start_batch()
        assert await orchestrator.wait() == BatchState.COMPLETED
        assert types(events)[-1] == BatchEventType.COMPLETED

    @pytest.mark.asyncio
    async def test_unsubscribe(self, orchestrator):
        """Test that an unsubscribed observer receives nothing."""
        received = []
        unsubscribe = orchestrator.subscribe(received.append)
        unsubscribe()

        await orchestrator.start_batch()
        await orchestrator.wait()

        assert received == []
