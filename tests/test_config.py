"""Tests for configuration and status models."""

from pathlib import Path

import pytest
from pydantic import ValidationError
from wikipull.models.config import ReadinessConfig, ScopeConfig, WikipullConfig
from wikipull.models.events import IDLE_STATUS, BatchEventType, StatusRecord
from wikipull.models.pages import DiscoveryResult, PageDescriptor, ReadinessSnapshot, TopicSelection


class TestWikipullConfig:
    """Tests for WikipullConfig."""

    def test_defaults(self):
        """Test the default thresholds and hosts."""
        config = WikipullConfig()

        assert config.scope.supported_hosts == ["deepwiki.com", "devin.ai"]
        assert config.scope.topic_hosts == ["devin.ai"]
        assert config.readiness.min_text_length == 160
        assert config.readiness.min_structural_count == 6
        assert config.readiness.timeout == 20.0
        assert config.empty_output.suspicious_length == 80
        assert config.empty_output.minimum_length == 20
        assert config.timing.navigation_timeout == 30.0
        assert config.output.directory == Path("./wikis")
        assert config.browser.headless is True

    def test_unknown_fields_rejected(self):
        """Test that typos in config fail loudly."""
        with pytest.raises(ValidationError):
            WikipullConfig(scope={"max_page": 3})

    def test_invalid_values_rejected(self):
        """Test field constraints."""
        with pytest.raises(ValidationError):
            ScopeConfig(max_pages=0)
        with pytest.raises(ValidationError):
            ReadinessConfig(poll_interval=0)

    def test_yaml_roundtrip(self):
        """Test YAML serialization keeps nested settings."""
        pytest.importorskip("yaml")
        config = WikipullConfig(
            url="https://deepwiki.com/owner/repo",
            scope={"max_pages": 10, "number_files": True},
            output={"directory": "out", "folder_name": "repo"},
        )

        loaded = WikipullConfig.from_yaml(config.to_yaml())

        assert loaded.url == "https://deepwiki.com/owner/repo"
        assert loaded.scope.max_pages == 10
        assert loaded.scope.number_files is True
        assert loaded.output.directory == Path("out")
        assert loaded.output.folder_name == "repo"

    def test_from_yaml_file(self, tmp_path):
        """Test loading from a YAML file."""
        pytest.importorskip("yaml")
        path = tmp_path / "wikipull.yaml"
        path.write_text("url: https://deepwiki.com/owner/repo\nreadiness:\n  timeout: 45\n")

        config = WikipullConfig.from_yaml_file(path)

        assert config.readiness.timeout == 45
        assert config.readiness.min_text_length == 160

    def test_empty_yaml(self):
        """Test that an empty document gives defaults."""
        pytest.importorskip("yaml")
        assert WikipullConfig.from_yaml("") == WikipullConfig()


class TestStatusRecord:
    """Tests for StatusRecord."""

    def test_progress_percent(self):
        """Test progress counts failures as attempted."""
        record = StatusRecord(type=BatchEventType.PROCESSING, processed=3, failed=1, total=8)
        assert record.progress_percent == 50.0
        assert StatusRecord(type=BatchEventType.IDLE).progress_percent is None

    def test_flags(self):
        """Test terminal and error classification."""
        assert StatusRecord(type=BatchEventType.COMPLETED).is_terminal
        assert StatusRecord(type=BatchEventType.PAGE_FAILED).is_error
        assert not StatusRecord(type=BatchEventType.PAGE_FAILED).is_terminal
        assert not IDLE_STATUS.is_terminal

    def test_to_dict(self):
        """Test the JSON friendly form."""
        record = StatusRecord(type=BatchEventType.PAGE_PROCESSED, running=True, processed=1, total=2, message="ok")
        data = record.to_dict()

        assert data["type"] == "pageProcessed"
        assert data["cancelRequested"] is False
        assert data["running"] is True
        assert data["message"] == "ok"
        assert "timestamp" in data


class TestWirePayloads:
    """Tests for parsing agent responses."""

    def test_discovery_payload(self):
        """Test discovery parsing, dropping entries without a URL."""
        result = DiscoveryResult.from_payload(
            {
                "success": True,
                "pages": [
                    {"url": "https://devin.ai/wiki/o/r", "title": "Intro", "topicIndex": 0},
                    {"title": "no url"},
                    {"url": "https://devin.ai/wiki/o/r", "topicIndex": True},
                ],
                "headTitle": "o/r",
            }
        )

        assert result.ok
        assert result.pages == [
            PageDescriptor(url="https://devin.ai/wiki/o/r", title="Intro", topic_index=0),
            PageDescriptor(url="https://devin.ai/wiki/o/r", title="Untitled Page"),
        ]
        assert result.head_title == "o/r"
        assert result.current_title is None

    def test_failed_discovery_payload(self):
        """Test that a failed or missing response is not ok."""
        assert DiscoveryResult.from_payload({"success": False, "error": "boom"}).error == "boom"
        assert DiscoveryResult.from_payload(None).ok is False

    def test_snapshot_payload(self):
        """Test readiness snapshot parsing with missing keys."""
        snapshot = ReadinessSnapshot.from_payload(
            {"currentUrl": "https://deepwiki.com/o/r", "metrics": {"hasContainer": True, "textLength": "12"}}
        )

        assert snapshot.current_url == "https://deepwiki.com/o/r"
        assert snapshot.metrics.has_content is True
        assert snapshot.metrics.text_length == 12
        assert snapshot.metrics.structural_count == 0
        assert snapshot.signature is None

    def test_topic_selection_payload(self):
        """Test topic selection parsing."""
        selection = TopicSelection.from_payload({"success": True, "selectedIndex": 2, "selectedTitle": "Setup"})
        assert selection.ok and selection.selected_index == 2 and selection.selected_title == "Setup"
