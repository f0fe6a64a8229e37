"""Shared fixtures for the batch conversion tests."""

from unittest.mock import AsyncMock

import pytest
from wikipull.delivery import DeliveryQueue
from wikipull.models.config import (
    EmptyOutputConfig,
    OutputConfig,
    ReadinessConfig,
    TimingConfig,
    WikipullConfig,
)

from .fakes import FakeAgent, FakeTarget


@pytest.fixture
def config(tmp_path):
    """Configuration with timings small enough for tests."""
    return WikipullConfig(
        readiness=ReadinessConfig(poll_interval=0.01, topic_poll_interval=0.01, timeout=0.2),
        empty_output=EmptyOutputConfig(retry_delay=0.01),
        timing=TimingConfig(
            message_timeout=1.0,
            navigation_timeout=0.5,
            url_poll_interval=0.01,
            topic_settle_delay=0,
            page_pause=0,
        ),
        output=OutputConfig(directory=tmp_path / "wikis"),
    )


@pytest.fixture
def target():
    return FakeTarget()


@pytest.fixture
def agent(target):
    return FakeAgent(target)


@pytest.fixture
def delivery():
    return DeliveryQueue(transport=AsyncMock(return_value={"success": True}), timeout=1.0)
