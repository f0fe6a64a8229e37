"""Pydantic configuration models for wikipull."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ScopeConfig(BaseModel):
    """Which sites are supported and how a project's pages are selected."""

    supported_hosts: list[str] = Field(
        default_factory=lambda: ["deepwiki.com", "devin.ai"],
        description="Host substrings a batch may be started on",
    )
    topic_hosts: list[str] = Field(
        default_factory=lambda: ["devin.ai"],
        description="Hosts whose pages are in-page topic panels rather than separate documents",
    )
    max_pages: Optional[int] = Field(None, ge=1, description="Maximum pages to convert (None = unlimited)")
    number_files: bool = Field(False, description="Prefix file names with the page's position")

    model_config = {"extra": "forbid"}


class ReadinessConfig(BaseModel):
    """Thresholds for deciding that rendered content is worth converting.

    The defaults are tuned for DeepWiki-style sites and are policy, not
    protocol constants.
    """

    min_text_length: int = Field(160, ge=0, description="Visible text characters that count as content")
    min_structural_count: int = Field(6, ge=0, description="Paragraphs, headings, lists, code blocks, tables")
    min_topic_structural_count: int = Field(
        3,
        ge=0,
        description="Structural elements accepted for a topic panel that changed",
    )
    signature_change_threshold: int = Field(
        40,
        ge=0,
        description="Text length delta that counts as a changed topic panel",
    )
    poll_interval: float = Field(0.25, gt=0, description="Seconds between readiness polls")
    topic_poll_interval: float = Field(0.2, gt=0, description="Seconds between topic readiness polls")
    timeout: float = Field(20.0, gt=0, description="Seconds before a readiness probe gives up")

    model_config = {"extra": "forbid"}


class EmptyOutputConfig(BaseModel):
    """Heuristic for catching conversions that ran before content rendered."""

    suspicious_length: int = Field(80, ge=0, description="Markdown shorter than this may be empty")
    minimum_length: int = Field(
        20,
        ge=0,
        description="Markdown shorter than this is empty when no readiness metrics exist",
    )
    retry_delay: float = Field(0.9, ge=0, description="Seconds to wait before the single retry")

    model_config = {"extra": "forbid"}


class TimingConfig(BaseModel):
    """Timeouts and pacing for talking to the target."""

    message_timeout: float = Field(30.0, gt=0, description="Seconds before a queued request times out")
    navigation_timeout: float = Field(30.0, gt=0, description="Seconds before a navigation is abandoned")
    url_poll_interval: float = Field(0.2, gt=0, description="Seconds between address checks")
    topic_settle_delay: float = Field(0.35, ge=0, description="Pause after selecting a topic panel")
    page_pause: float = Field(0.25, ge=0, description="Pause between pages")

    model_config = {"extra": "forbid"}


class BrowserConfig(BaseModel):
    """Configuration for the Playwright browser driving the batch."""

    headless: bool = Field(True, description="Run Chromium without a window")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    viewport_width: int = Field(1440, ge=320, description="Viewport width in pixels")
    viewport_height: int = Field(900, ge=240, description="Viewport height in pixels")
    timeout: float = Field(30.0, gt=0, description="Default Playwright operation timeout in seconds")

    model_config = {"extra": "forbid"}


class OutputConfig(BaseModel):
    """Configuration for the archive produced by a run."""

    directory: Path = Field(Path("./wikis"), description="Directory the archive is saved into")
    folder_name: Optional[str] = Field(None, description="Archive name (default: the site's title)")
    restore_original_page: bool = Field(
        False,
        description="Navigate back to the starting page when the run ends",
    )

    model_config = {"extra": "forbid"}


class WikipullConfig(BaseModel):
    """
    Root configuration model for wikipull.

    Example:
        config = WikipullConfig(
            url="https://deepwiki.com/owner/repo",
            output=OutputConfig(directory=Path("./wikis")),
        )

    YAML format:
        url: https://deepwiki.com/owner/repo
        scope:
          max_pages: 50
        readiness:
          timeout: 30
        output:
          directory: ./wikis
    """

    url: Optional[str] = Field(None, description="Page to start the batch from")

    scope: ScopeConfig = Field(default_factory=ScopeConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    empty_output: EmptyOutputConfig = Field(default_factory=EmptyOutputConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "WikipullConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "WikipullConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
