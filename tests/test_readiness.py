"""Tests for content readiness probing."""

import pytest
from wikipull.models.config import ReadinessConfig
from wikipull.models.pages import ContentSignature, ReadinessMetrics, ReadinessSnapshot
from wikipull.readiness import (
    ReadinessProber,
    content_looks_substantial,
    is_content_ready,
    is_topic_ready,
)

URL = "https://deepwiki.com/owner/repo/2-setup"

EMPTY = ReadinessMetrics(has_content=True, text_length=10, structural_count=1)
FULL = ReadinessMetrics(has_content=True, text_length=900, structural_count=15)


class ScriptedSource:
    """Returns the scripted snapshots in order, repeating the last one."""

    def __init__(self, *snapshots):
        self.snapshots = list(snapshots)
        self.reads = 0

    async def read_snapshot(self):
        self.reads += 1
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]


def snapshot(metrics, url=URL, heading="", snippet="", text_length=0):
    return ReadinessSnapshot(
        current_url=url,
        metrics=metrics,
        signature=ContentSignature(heading=heading, snippet=snippet, text_length=text_length),
    )


@pytest.fixture
def policy():
    return ReadinessConfig(poll_interval=0.01, topic_poll_interval=0.01, timeout=0.1)


class TestThresholds:
    """Tests for the readiness predicates."""

    def test_text_volume_is_enough(self):
        """Test that text alone crosses the threshold."""
        metrics = ReadinessMetrics(has_content=True, text_length=160)
        assert content_looks_substantial(metrics, 160, 6)

    def test_structure_is_enough(self):
        """Test that structural elements alone cross the threshold."""
        metrics = ReadinessMetrics(has_content=True, text_length=5, structural_count=6)
        assert content_looks_substantial(metrics, 160, 6)

    def test_diagram_is_enough(self):
        """Test that a diagram alone crosses the threshold."""
        metrics = ReadinessMetrics(has_content=True, has_diagram=True)
        assert content_looks_substantial(metrics, 160, 6)

    def test_little_content_is_not_enough(self):
        """Test that sparse content stays below the threshold."""
        assert not content_looks_substantial(EMPTY, 160, 6)

    def test_ready_requires_matching_address(self):
        """Test that content on another page is not ready."""
        other = snapshot(FULL, url="https://deepwiki.com/owner/repo/3-usage")
        assert not is_content_ready(other, URL, 160, 6)
        assert is_content_ready(snapshot(FULL), URL, 160, 6)

    def test_ready_requires_container(self):
        """Test that metrics without a content container are not ready."""
        metrics = ReadinessMetrics(has_content=False, text_length=900, structural_count=20)
        assert not is_content_ready(snapshot(metrics), URL, 160, 6)


class TestTopicReadiness:
    """Tests for the in-page topic variant."""

    def test_heading_match_with_little_structure(self, policy):
        """Test that a matching heading with a few elements is ready."""
        metrics = ReadinessMetrics(has_content=True, text_length=50, structural_count=3)
        previous = ContentSignature(heading="Overview", snippet="old", text_length=50)
        current = snapshot(metrics, heading="Architecture Overview", snippet="old", text_length=50)

        assert is_topic_ready(current, "architecture overview", previous, policy)

    def test_unchanged_panel_is_not_ready(self, policy):
        """Test that the previous panel still showing is not ready."""
        previous = ContentSignature(heading="Overview", snippet="same text", text_length=900)
        current = snapshot(FULL, heading="Overview", snippet="same text", text_length=900)

        assert not is_topic_ready(current, "Architecture", previous, policy)

    def test_changed_snippet_counts_as_change(self, policy):
        """Test that new panel text counts as a change."""
        previous = ContentSignature(heading="Overview", snippet="old text", text_length=900)
        current = snapshot(FULL, heading="Overview", snippet="new text", text_length=905)

        assert is_topic_ready(current, "Architecture", previous, policy)

    def test_length_change_counts_as_change(self, policy):
        """Test that a large text length change counts as a change."""
        previous = ContentSignature(heading="Overview", snippet="", text_length=100)
        current = snapshot(FULL, heading="Overview", snippet="", text_length=900)

        assert is_topic_ready(current, "Architecture", previous, policy)

    def test_changed_but_empty_is_not_ready(self, policy):
        """Test that a changed panel without content is not ready."""
        metrics = ReadinessMetrics(has_content=True, text_length=10, structural_count=1)
        current = snapshot(metrics, heading="Architecture", snippet="x", text_length=10)

        assert not is_topic_ready(current, "Architecture", None, policy)


class TestReadinessProber:
    """Tests for ReadinessProber polling."""

    @pytest.mark.asyncio
    async def test_ready_immediately(self, policy):
        """Test that rendered content returns after one poll."""
        source = ScriptedSource(snapshot(FULL))
        result = await ReadinessProber(source, policy).probe(URL)

        assert result.ready is True
        assert result.timed_out is False
        assert result.polls == 1
        assert result.metrics == FULL

    @pytest.mark.asyncio
    async def test_polls_until_ready(self, policy):
        """Test that polling continues until content appears."""
        source = ScriptedSource(snapshot(EMPTY), snapshot(EMPTY), snapshot(FULL))
        result = await ReadinessProber(source, policy).probe(URL)

        assert result.ready is True
        assert result.polls == 3
        assert result.current_url == URL

    @pytest.mark.asyncio
    async def test_timeout_is_soft(self, policy):
        """Test that a timeout returns the last metrics instead of raising."""
        source = ScriptedSource(snapshot(EMPTY))
        result = await ReadinessProber(source, policy).probe(URL)

        assert result.ready is False
        assert result.timed_out is True
        assert result.metrics == EMPTY
        assert result.polls > 1

    @pytest.mark.asyncio
    async def test_threshold_overrides(self, policy):
        """Test that per-call thresholds replace the policy defaults."""
        source = ScriptedSource(snapshot(EMPTY))
        result = await ReadinessProber(source, policy).probe(URL, min_text_length=5)

        assert result.ready is True

    @pytest.mark.asyncio
    async def test_probe_topic(self, policy):
        """Test topic probing against the previous signature."""
        previous = ContentSignature(heading="Overview", snippet="old", text_length=900)
        source = ScriptedSource(
            snapshot(FULL, heading="Overview", snippet="old", text_length=900),
            snapshot(FULL, heading="Setup", snippet="new", text_length=700),
        )
        result = await ReadinessProber(source, policy).probe_topic("Setup", previous)

        assert result.ready is True
        assert result.polls == 2

    def test_default_policy(self):
        """Test that the prober falls back to the default thresholds."""
        prober = ReadinessProber(ScriptedSource(snapshot(FULL)))
        assert prober.policy.min_text_length == 160
        assert prober.policy.min_structural_count == 6
