"""Cancellable stream of status events for one submitted extrinsic."""

from __future__ import annotations

import asyncio
import logging
import threading

from chainprobe.models.events import StatusEvent

log = logging.getLogger(__name__)


class StatusSubscription:
    """Status events for one extrinsic, in arrival order.

    Must be created on the event loop that consumes it. Producers running on
    another thread (the websocket watcher) use ``publish_threadsafe``. Once
    closed, published events are discarded.
    """

    def __init__(self, tx_hash: str, subscription_id: str | None = None) -> None:
        self.tx_hash = tx_hash
        self.id = subscription_id
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[StatusEvent] = asyncio.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, event: StatusEvent) -> None:
        if self.closed:
            log.debug("Discarding %s for closed subscription %s", event, self.id)
            return
        self._queue.put_nowait(event)

    def publish_threadsafe(self, event: StatusEvent) -> None:
        if self.closed or self._loop.is_closed():
            log.debug("Discarding %s for closed subscription %s", event, self.id)
            return
        try:
            self._loop.call_soon_threadsafe(self.publish, event)
        except RuntimeError:
            # Loop closed between the check and the call
            log.debug("Event loop gone, dropping %s for %s", event, self.id)

    async def next_event(self) -> StatusEvent:
        return await self._queue.get()

    def close(self) -> bool:
        """Stop accepting events. Returns False if already closed."""
        if self.closed:
            return False
        self._closed.set()
        return True
