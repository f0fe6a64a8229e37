"""Drive the target to a destination and confirm arrival."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Optional

from ..delivery import DeliveryQueue
from ..errors import NavigationError
from .protocols import NavigationSignal, SignalKind, Target
from .urls import fragment_of, same_document, urls_roughly_match

logger = logging.getLogger(__name__)


class NavigationKind(str, Enum):
    """How a navigation was carried out."""

    NONE = "none"
    FRAGMENT = "fragment"
    FULL = "full"


class NavigationCoordinator:
    """
    Move the driving target to an address and resolve only on arrival.

    Two regimes are used:

    - Fragment-only: same document, different fragment. The fragment is
      changed in place and the agent survives, so the target is *not*
      marked pending. Arrival is confirmed by polling the address; on
      failure it falls back to a full navigation.
    - Full: the target is marked pending in the delivery queue, the
      navigation is issued, and the coordinator waits for whichever comes
      first of a matching completed signal, an error signal, or the
      deadline. Address polling runs alongside as a second success path
      for single-page applications.

    Example:
        coordinator = NavigationCoordinator(target, delivery)
        kind = await coordinator.navigate("https://deepwiki.com/owner/repo/2-setup")
    """

    def __init__(
        self,
        target: Target,
        delivery: DeliveryQueue,
        timeout: float = 30.0,
        poll_interval: float = 0.2,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            target: The target to drive
            delivery: Delivery queue to mark pending on full navigations
            timeout: Seconds before a navigation is abandoned
            poll_interval: Seconds between address checks
        """
        self._target = target
        self._delivery = delivery
        self._timeout = timeout
        self._poll_interval = poll_interval

    async def navigate(self, url: str) -> NavigationKind:
        """
        Navigate the target to ``url``.

        Navigating to the current document without a new fragment is a
        no-op and leaves the delivery queue untouched.

        Returns:
            The regime that was used

        Raises:
            NavigationError: On timeout or a navigation error signal
        """
        current = await self._target.current_url()

        if same_document(current, url):
            target_fragment = fragment_of(url)
            if not target_fragment or target_fragment == fragment_of(current):
                logger.debug(f"Already at {url}, no navigation needed")
                return NavigationKind.NONE
            return await self._fragment_transition(url, target_fragment)

        await self._full_transition(url)
        return NavigationKind.FULL

    async def wait_for_url(self, url: str, timeout: Optional[float] = None) -> None:
        """
        Poll the target's address until it roughly matches ``url``.

        Raises:
            NavigationError: If the address does not match before the deadline
        """
        if await self._poll_url(url, self._timeout if timeout is None else timeout):
            return
        raise NavigationError("Target URL did not reach expected value in time.")

    async def _fragment_transition(self, url: str, fragment: str) -> NavigationKind:
        logger.debug(f"Fragment navigation to #{fragment}")
        try:
            await self._target.set_fragment(fragment)
            await self.wait_for_url(url)
            return NavigationKind.FRAGMENT
        except NavigationError as e:
            logger.warning(f"In-page fragment navigation failed, falling back: {e}")

        # The document does not change, so the agent stays alive
        await self._full_transition(url, mark_pending=False)
        return NavigationKind.FULL

    async def _full_transition(self, url: str, mark_pending: bool = True) -> None:
        logger.debug(f"Full navigation to {url}")
        if mark_pending:
            self._delivery.mark_pending(self._target.target_id)

        loop = asyncio.get_running_loop()
        signal_future: asyncio.Future[str] = loop.create_future()

        def on_signal(signal: NavigationSignal) -> None:
            if signal_future.done() or not signal.main_frame:
                return
            if signal.kind == SignalKind.ERROR:
                signal_future.set_exception(NavigationError(signal.error or "Navigation error"))
            elif urls_roughly_match(url, signal.url):
                signal_future.set_result(signal.url)

        start_url = await self._target.current_url()
        remove_listener = self._target.add_navigation_listener(on_signal)
        deadline = loop.time() + self._timeout
        poll_task: Optional[asyncio.Task[bool]] = None

        try:
            await self._target.navigate(url)
            poll_task = loop.create_task(self._poll_url(url, self._timeout, moved_from=start_url))

            waiting: set[asyncio.Future] = {signal_future, poll_task}
            while waiting:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, waiting = await asyncio.wait(waiting, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
                if signal_future in done:
                    signal_future.result()
                    return
                if poll_task in done and poll_task.result():
                    return

            raise NavigationError("Navigation timeout.")
        finally:
            remove_listener()
            if poll_task is not None and not poll_task.done():
                poll_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await poll_task
            if not signal_future.done():
                signal_future.cancel()

    async def _poll_url(self, url: str, timeout: float, moved_from: Optional[str] = None) -> bool:
        """
        Return True once the target's address matches, False at the deadline.

        With ``moved_from`` set, the address must also differ from it, so a
        prefix match against the page being left does not count as arrival.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            try:
                current = await self._target.current_url()
            except NavigationError as e:
                logger.debug(f"Address poll failed: {e}")
                return False
            if urls_roughly_match(url, current) and current != moved_from:
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self._poll_interval)
