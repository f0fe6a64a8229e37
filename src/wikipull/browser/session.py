"""Playwright-backed target and browser session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from types import TracebackType
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..conversion import HtmlToMarkdown
from ..delivery import DeliveryQueue
from ..errors import NavigationError, NoReceiverError, TargetClosedError
from ..models.config import WikipullConfig
from ..navigation import NavigationListener, NavigationSignal, SignalKind
from .agent import PageAgent
from .agent_script import AGENT_SCRIPT, ANNOUNCE_BINDING, DISPATCH_EXPRESSION

logger = logging.getLogger(__name__)

# Check for Playwright availability
PLAYWRIGHT_AVAILABLE = False
try:
    from playwright.async_api import Error as PlaywrightError
    from playwright.async_api import async_playwright

    PLAYWRIGHT_AVAILABLE = True
except ImportError:
    pass

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Frame, Page, Playwright, Request

# Evaluation failures meaning the agent is gone or being replaced
NO_RECEIVER_MARKERS = (
    "Execution context was destroyed",
    "Cannot find context with specified id",
    "because of a navigation",
)
CLOSED_MARKERS = ("has been closed", "Target closed")


def classify_evaluation_error(error: Exception) -> Exception:
    """Map a Playwright evaluation failure onto the delivery error taxonomy."""
    message = str(error)
    if any(marker in message for marker in CLOSED_MARKERS):
        return TargetClosedError(message)
    if any(marker in message for marker in NO_RECEIVER_MARKERS):
        return NoReceiverError(message)
    return error


class PlaywrightTarget:
    """
    The single browser tab driving a batch run.

    Implements the navigation ``Target`` protocol and the delivery
    transport. A main-frame navigation request marks the target pending in
    the delivery queue; the agent's announcement marks it ready again.
    Fragment and history changes issue no request, so they leave the
    agent's readiness alone.

    Example:
        target = PlaywrightTarget(page)
        delivery = DeliveryQueue(target.deliver)
        await target.install(delivery)
        await target.open("https://deepwiki.com/owner/repo")
    """

    def __init__(self, page: Page, target_id: Optional[str] = None, timeout: float = 30.0) -> None:
        self._page = page
        self.target_id = target_id or f"tab-{uuid.uuid4().hex[:8]}"
        self._timeout = timeout * 1000  # Convert to milliseconds
        self._listeners: list[NavigationListener] = []
        self._close_callbacks: list[Callable[[str], None]] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._delivery: Optional[DeliveryQueue] = None
        self._navigation_request: Optional[Request] = None
        self._closed = False

    @property
    def page(self) -> Page:
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed

    async def install(self, delivery: DeliveryQueue) -> None:
        """Install the agent script and wire page events to ``delivery``."""
        self._delivery = delivery

        await self._page.expose_binding(ANNOUNCE_BINDING, self._on_announce)
        await self._page.add_init_script(AGENT_SCRIPT)

        self._page.on("request", self._on_request)
        self._page.on("requestfailed", self._on_request_failed)
        self._page.on("framenavigated", self._on_frame_navigated)
        self._page.on("close", self._on_close)

    def on_close(self, callback: Callable[[str], None]) -> None:
        """Call ``callback(target_id)`` when the tab closes."""
        self._close_callbacks.append(callback)

    async def open(self, url: str) -> None:
        """Load the starting page and wait for its document."""
        logger.info(f"Opening {url}")
        await self._page.goto(url, wait_until="domcontentloaded", timeout=self._timeout)

    # Target protocol

    async def current_url(self) -> str:
        if self._closed:
            raise NavigationError("Target closed.")
        return self._page.url

    async def set_fragment(self, fragment: str) -> None:
        try:
            await self._page.evaluate("fragment => { window.location.hash = fragment; }", fragment)
        except PlaywrightError as e:
            raise NavigationError(f"In-page fragment update failed: {e}") from e

    async def navigate(self, url: str) -> None:
        task = asyncio.get_running_loop().create_task(self._goto(url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def add_navigation_listener(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Delivery transport

    async def deliver(self, target_id: str, payload: dict[str, Any]) -> Any:
        """Hand ``payload`` to the agent in the current document."""
        if target_id != self.target_id or self._closed:
            raise TargetClosedError(f"Target {target_id} is not available.")
        try:
            response = await self._page.evaluate(DISPATCH_EXPRESSION, payload)
        except PlaywrightError as e:
            raise classify_evaluation_error(e) from e

        if isinstance(response, dict) and response.get("__noReceiver"):
            raise NoReceiverError("No agent in the current document.")
        return response

    # Page events

    async def _goto(self, url: str) -> None:
        try:
            await self._page.goto(url, wait_until="commit", timeout=self._timeout)
        except PlaywrightError as e:
            logger.debug(f"Navigation to {url} failed: {e}")
            self._emit(NavigationSignal(kind=SignalKind.ERROR, url=url, error=str(e)))

    def _emit(self, signal: NavigationSignal) -> None:
        for listener in list(self._listeners):
            listener(signal)

    def _on_announce(self, source: dict[str, Any], url: str = "") -> None:
        logger.debug(f"Agent ready at {url}")
        if self._delivery is not None:
            self._delivery.mark_ready(self.target_id)

    def _is_main_frame_navigation(self, request: Request) -> bool:
        try:
            return request.is_navigation_request() and request.frame == self._page.main_frame
        except PlaywrightError:
            return False

    def _on_request(self, request: Request) -> None:
        if self._delivery is not None and self._is_main_frame_navigation(request):
            logger.debug(f"Document reload started: {request.url}")
            self._navigation_request = request
            self._delivery.mark_pending(self.target_id)

    def _on_request_failed(self, request: Request) -> None:
        # The previous document stays when its latest replacement never arrives
        if self._delivery is not None and request is self._navigation_request:
            self._navigation_request = None
            logger.debug(f"Document reload failed: {request.url}")
            self._delivery.mark_ready(self.target_id)

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self._page.main_frame:
            self._emit(NavigationSignal(kind=SignalKind.COMPLETED, url=frame.url))

    def _on_close(self, page: Page) -> None:
        self._closed = True
        logger.warning(f"Target {self.target_id} closed")
        for callback in list(self._close_callbacks):
            try:
                callback(self.target_id)
            except Exception as e:
                logger.warning(f"Close callback failed: {e}")
        if self._delivery is not None:
            self._delivery.forget(self.target_id)
        for task in list(self._tasks):
            task.cancel()


class BrowserSession:
    """
    Chromium with the single tab a batch run drives.

    Wires the tab, its delivery queue and its agent client together.

    Example:
        async with BrowserSession(config) as session:
            await session.open("https://deepwiki.com/owner/repo")
            orchestrator = BatchOrchestrator(session.target, session.agent, session.delivery, config)

    Requires: playwright install chromium
    """

    def __init__(self, config: Optional[WikipullConfig] = None) -> None:
        if not PLAYWRIGHT_AVAILABLE:
            raise ImportError(
                "Playwright is required to drive the browser. "
                "Install with: pip install wikipull && playwright install chromium"
            )

        self.config = config or WikipullConfig()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._target: Optional[PlaywrightTarget] = None
        self._delivery: Optional[DeliveryQueue] = None
        self._agent: Optional[PageAgent] = None

    @property
    def target(self) -> PlaywrightTarget:
        if self._target is None:
            raise RuntimeError("Browser session not started. Use 'async with' context.")
        return self._target

    @property
    def delivery(self) -> DeliveryQueue:
        if self._delivery is None:
            raise RuntimeError("Browser session not started. Use 'async with' context.")
        return self._delivery

    @property
    def agent(self) -> PageAgent:
        if self._agent is None:
            raise RuntimeError("Browser session not started. Use 'async with' context.")
        return self._agent

    def on_close(self, callback: Callable[[str], None]) -> None:
        """Call ``callback(target_id)`` when the tab closes."""
        self.target.on_close(callback)

    async def open(self, url: str) -> None:
        await self.target.open(url)

    async def __aenter__(self) -> BrowserSession:
        """Launch the browser and prepare the tab."""
        browser_config = self.config.browser

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=browser_config.headless)

        context_options: dict[str, object] = {
            "viewport": {"width": browser_config.viewport_width, "height": browser_config.viewport_height},
            "java_script_enabled": True,
        }
        if browser_config.user_agent:
            context_options["user_agent"] = browser_config.user_agent

        self._context = await self._browser.new_context(**context_options)  # type: ignore[arg-type]
        self._context.set_default_timeout(browser_config.timeout * 1000)
        page = await self._context.new_page()

        self._target = PlaywrightTarget(page, timeout=browser_config.timeout)
        self._delivery = DeliveryQueue(self._target.deliver, timeout=self.config.timing.message_timeout)
        self._agent = PageAgent(
            self._delivery,
            self._target.target_id,
            HtmlToMarkdown(),
            topic_hosts=self.config.scope.topic_hosts,
        )
        await self._target.install(self._delivery)

        logger.info(f"Browser session started (headless={browser_config.headless})")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the tab and shut the browser down."""
        if self._context:
            with contextlib.suppress(Exception):
                await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Browser session shut down")
