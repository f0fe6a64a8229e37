"""Per-target mailbox that survives in-page agent reloads."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ..errors import DeliveryTimeoutError, NoReceiverError, TargetClosedError

logger = logging.getLogger(__name__)

# Sends a payload to the agent currently living in a target.
# Must raise NoReceiverError when no agent is listening.
Transport = Callable[[str, dict[str, Any]], Awaitable[Any]]


@dataclass
class PendingDelivery:
    """A buffered request waiting for the target's agent to announce itself."""

    payload: dict[str, Any]
    future: asyncio.Future[Any]
    deadline: float
    seq: int = 0
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def action(self) -> str:
        return str(self.payload.get("action", "request"))


@dataclass
class DeliveryQueueEntry:
    """Readiness flag and buffer for one target."""

    is_ready: bool = False
    # Bumped by every announcement
    generation: int = 0
    direct_sends: int = 0
    pending: deque[PendingDelivery] = field(default_factory=deque)
    in_flight: Optional[PendingDelivery] = None
    flush_task: Optional[asyncio.Task[None]] = None

    @property
    def flushing(self) -> bool:
        return self.flush_task is not None and not self.flush_task.done()


class DeliveryQueue:
    """
    Reliable request delivery to the agent of a navigable target.

    While a target is marked pending (its document is reloading), sends are
    buffered instead of attempted. When the new agent announces itself via
    ``mark_ready``, buffered sends are flushed one at a time in submission
    order against the new agent. Every buffered send carries an absolute
    deadline and is rejected with ``DeliveryTimeoutError`` when it passes.

    Example:
        queue = DeliveryQueue(transport=session.deliver)
        queue.mark_pending("tab-1")
        response = await queue.send("tab-1", {"action": "readiness"})
        # ... elsewhere, when the agent announces itself:
        queue.mark_ready("tab-1")
    """

    def __init__(self, transport: Transport, timeout: float = 30.0) -> None:
        """
        Initialize the queue.

        Args:
            transport: Coroutine function delivering a payload to a target
            timeout: Default seconds before an unanswered send is rejected
        """
        self._transport = transport
        self._timeout = timeout
        self._entries: dict[str, DeliveryQueueEntry] = {}
        self._sequence = itertools.count()

    def entry(self, target_id: str) -> Optional[DeliveryQueueEntry]:
        return self._entries.get(target_id)

    def is_ready(self, target_id: str) -> bool:
        entry = self._entries.get(target_id)
        return entry is not None and entry.is_ready

    def pending_count(self, target_id: str) -> int:
        entry = self._entries.get(target_id)
        return len(entry.pending) if entry else 0

    def _entry_for(self, target_id: str, ready: bool = False) -> DeliveryQueueEntry:
        entry = self._entries.get(target_id)
        if entry is None:
            entry = DeliveryQueueEntry(is_ready=ready)
            self._entries[target_id] = entry
        return entry

    def mark_pending(self, target_id: str) -> None:
        """Stop direct sends to the target until its agent announces itself."""
        entry = self._entry_for(target_id)
        if entry.is_ready:
            logger.debug(f"Target {target_id} marked pending")
        entry.is_ready = False

    def mark_ready(self, target_id: str) -> None:
        """Record that the target's agent is listening and flush buffered sends."""
        entry = self._entry_for(target_id, ready=True)
        entry.is_ready = True
        entry.generation += 1
        if entry.pending:
            logger.debug(f"Target {target_id} ready, flushing {len(entry.pending)} queued request(s)")
        self._schedule_flush(target_id, entry)

    def forget(self, target_id: str, reason: str = "Target closed.") -> None:
        """Drop the target's entry, rejecting everything still buffered."""
        entry = self._entries.pop(target_id, None)
        if entry is None:
            return
        if entry.flush_task is not None:
            entry.flush_task.cancel()
        if entry.in_flight is not None:
            self._settle(entry.in_flight, exception=TargetClosedError(reason))
        while entry.pending:
            item = entry.pending.popleft()
            self._settle(item, exception=TargetClosedError(reason))

    async def send(
        self,
        target_id: str,
        payload: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send a payload to the target's current agent and return its response.

        Args:
            target_id: Target to deliver to
            payload: Request payload (must carry an ``action`` key)
            timeout: Seconds before the send is rejected (default: queue timeout)

        Returns:
            The agent's response

        Raises:
            DeliveryTimeoutError: If no response arrives in time
            TargetClosedError: If the target is closed while the send is buffered
            DeliveryError: For any other delivery failure
        """
        timeout = self._timeout if timeout is None else timeout
        seq = next(self._sequence)
        deadline = asyncio.get_running_loop().time() + timeout
        entry = self._entry_for(target_id, ready=True)

        # Only one direct send at a time, and never past buffered ones
        if not entry.is_ready or entry.pending or entry.flushing or entry.direct_sends:
            return await self._enqueue(target_id, payload, deadline, seq)

        generation = entry.generation
        entry.direct_sends += 1
        try:
            return await asyncio.wait_for(self._transport(target_id, payload), timeout)
        except NoReceiverError as e:
            # A reload started between the last announcement and this send
            logger.debug(f"No receiver in {target_id} for {payload.get('action')}, queueing: {e}")
            if self._entries.get(target_id) is not entry:
                raise TargetClosedError("Target closed.") from e
            if entry.generation == generation:
                entry.is_ready = False
        except asyncio.TimeoutError as e:
            raise DeliveryTimeoutError(f"Timed out waiting for response for {payload.get('action')}") from e
        finally:
            entry.direct_sends -= 1
            if entry.is_ready and self._entries.get(target_id) is entry:
                self._schedule_flush(target_id, entry)

        return await self._enqueue(target_id, payload, deadline, seq)

    async def _enqueue(self, target_id: str, payload: dict[str, Any], deadline: float, seq: int) -> Any:
        loop = asyncio.get_running_loop()
        entry = self._entry_for(target_id)
        item = PendingDelivery(payload=payload, future=loop.create_future(), deadline=deadline, seq=seq)
        item.timer = loop.call_at(item.deadline, self._expire, target_id, item)
        self._insert(entry, item)

        if entry.is_ready:
            self._schedule_flush(target_id, entry)

        try:
            return await item.future
        finally:
            if item.timer is not None:
                item.timer.cancel()
            if item.future.cancelled():
                self._discard(target_id, item)

    def _expire(self, target_id: str, item: PendingDelivery) -> None:
        self._discard(target_id, item)
        if not item.future.done():
            logger.warning(f"Request {item.action} to {target_id} timed out")
        self._settle(item, exception=DeliveryTimeoutError(f"Timed out waiting for response for {item.action}"))

    @staticmethod
    def _insert(entry: DeliveryQueueEntry, item: PendingDelivery) -> None:
        """Buffer an item at its submission position."""
        for index, queued in enumerate(entry.pending):
            if queued.seq > item.seq:
                entry.pending.insert(index, item)
                return
        entry.pending.append(item)

    def _discard(self, target_id: str, item: PendingDelivery) -> None:
        entry = self._entries.get(target_id)
        if entry is None:
            return
        try:
            entry.pending.remove(item)
        except ValueError:
            pass

    @staticmethod
    def _settle(item: PendingDelivery, result: Any = None, exception: Optional[BaseException] = None) -> None:
        if item.timer is not None:
            item.timer.cancel()
        if item.future.done():
            return
        if exception is not None:
            item.future.set_exception(exception)
        else:
            item.future.set_result(result)

    def _schedule_flush(self, target_id: str, entry: DeliveryQueueEntry) -> None:
        if entry.flushing or entry.direct_sends or not entry.pending:
            return
        entry.flush_task = asyncio.get_running_loop().create_task(self._flush(target_id, entry))

    async def _flush(self, target_id: str, entry: DeliveryQueueEntry) -> None:
        """Deliver buffered requests one at a time, in submission order."""
        loop = asyncio.get_running_loop()

        while entry.pending and entry.is_ready and self._entries.get(target_id) is entry:
            item = entry.pending.popleft()
            if item.future.done():
                continue

            remaining = item.deadline - loop.time()
            if remaining <= 0:
                self._settle(item, exception=DeliveryTimeoutError(f"Timed out waiting for response for {item.action}"))
                continue

            generation = entry.generation
            entry.in_flight = item
            try:
                response = await asyncio.wait_for(self._transport(target_id, item.payload), remaining)
            except NoReceiverError:
                # The agent went away again; keep the request in its place
                if not item.future.done():
                    self._insert(entry, item)
                # A newer agent may already have announced itself
                if entry.generation == generation:
                    entry.is_ready = False
            except asyncio.TimeoutError:
                self._settle(item, exception=DeliveryTimeoutError(f"Timed out waiting for response for {item.action}"))
            except asyncio.CancelledError:
                if not item.future.done() and self._entries.get(target_id) is entry:
                    self._insert(entry, item)
                raise
            except Exception as e:
                self._settle(item, exception=e)
            else:
                self._settle(item, result=response)
            finally:
                entry.in_flight = None
