"""Browser host: the Playwright tab, its in-page agent and the agent client."""

from .agent import PageAgent
from .agent_script import AGENT_GLOBAL, AGENT_SCRIPT, ANNOUNCE_BINDING
from .session import PLAYWRIGHT_AVAILABLE, BrowserSession, PlaywrightTarget, classify_evaluation_error

__all__ = [
    "AGENT_GLOBAL",
    "AGENT_SCRIPT",
    "ANNOUNCE_BINDING",
    "PLAYWRIGHT_AVAILABLE",
    "BrowserSession",
    "PageAgent",
    "PlaywrightTarget",
    "classify_evaluation_error",
]
