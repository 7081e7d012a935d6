"""
ChangeEventBus - in-process publish/subscribe channel for file-change and
project lifecycle events.

Every subscription owns its own queue and a single consumer task, so each
subscriber observes events in exactly the order they were published. That
per-subscriber FIFO is what gives the embedding pipeline and the shadow
mirror per-path ordering; no ordering is implied between subscribers.
"""

import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional

from .models import EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class Subscription:
    """A single listener attached to one event kind"""

    _ids = itertools.count(1)

    def __init__(self, bus: 'ChangeEventBus', kind: EventKind, handler: Handler, name: Optional[str] = None):
        self.bus = bus
        self.kind = kind
        self.handler = handler
        self.name = name or getattr(handler, "__qualname__", repr(handler))
        self.id = next(self._ids)
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    def _ensure_consumer(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
            self._task = asyncio.get_running_loop().create_task(self._consume())
        return self._queue

    def deliver(self, event: Any) -> None:
        self._ensure_consumer().put_nowait(event)

    async def _consume(self) -> None:
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                result = self.handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                queue.task_done()
                raise
            except Exception as e:
                logger.error(f"[EventBus] Handler '{self.name}' failed for {self.kind.value} event: {e}")
            queue.task_done()

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    def unsubscribe(self) -> None:
        self.bus.unsubscribe(self)

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            self._queue = None


class ChangeEventBus:
    """
    Typed publish/subscribe channel shared by the watcher, the embedding
    pipeline and the shadow workspace mirror.

    Publishing must happen on the event loop thread; use
    ``publish_threadsafe`` from observer threads.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._subscriptions: Dict[EventKind, List[Subscription]] = {kind: [] for kind in EventKind}
        self._loop = loop

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the loop that owns the consumers (for threadsafe publishing)"""
        self._loop = loop

    def subscribe(self, kind: EventKind, handler: Handler, name: Optional[str] = None) -> Subscription:
        subscription = Subscription(self, kind, handler, name)
        self._subscriptions[kind].append(subscription)
        logger.debug(f"[EventBus] '{subscription.name}' subscribed to {kind.value}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        listeners = self._subscriptions.get(subscription.kind, [])
        if subscription in listeners:
            listeners.remove(subscription)
            if subscription._task is not None:
                subscription._task.cancel()

    def subscriber_count(self, kind: EventKind) -> int:
        return len(self._subscriptions[kind])

    def publish(self, kind: EventKind, event: Any) -> int:
        """
        Enqueue an event for every subscriber of ``kind``.

        Returns the number of subscribers the event was delivered to.
        """
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                pass
        listeners = list(self._subscriptions[kind])
        for subscription in listeners:
            subscription.deliver(event)
        return len(listeners)

    def publish_threadsafe(self, kind: EventKind, event: Any) -> None:
        """Publish from a thread that does not run the event loop"""
        if self._loop is None:
            raise RuntimeError("ChangeEventBus has no bound event loop")
        self._loop.call_soon_threadsafe(self.publish, kind, event)

    async def drain(self) -> None:
        """Wait until every subscriber has handled everything published so far"""
        for listeners in self._subscriptions.values():
            for subscription in list(listeners):
                await subscription.join()

    async def close(self) -> None:
        """Stop all consumer tasks and drop every subscription"""
        for kind, listeners in self._subscriptions.items():
            for subscription in list(listeners):
                await subscription.close()
            listeners.clear()
        logger.debug("[EventBus] Closed")
