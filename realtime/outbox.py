import asyncio
from typing import Awaitable, Callable, Optional

from logger.logger import logger
from models.events_model import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventOutbox:
    """
    Hand-off point between committed writes and live fan-out.

    Services call publish() after their transaction commits. Events sit in
    an in-process queue until the background worker passes them to the
    handler (normally RealtimeDispatcher.dispatch). A failing handler is
    logged and the event dropped: the database stays the source of truth and
    clients resync on their next fetch.
    """

    def __init__(self, handler: Optional[EventHandler] = None):
        self.handler = handler
        self._queue: "asyncio.Queue[DomainEvent]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def publish(self, event: DomainEvent):
        """Queue an event without waiting on delivery"""
        self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self):
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="event-outbox")
            logger.info("Event outbox worker started")

    async def stop(self):
        """Deliver whatever is queued, then stop the worker"""
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self.drain()
        logger.info("Event outbox worker stopped")

    async def drain(self):
        """Deliver every queued event in the current task"""
        while not self._queue.empty():
            event = self._queue.get_nowait()
            await self._deliver(event)
            self._queue.task_done()

    async def _run(self):
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: DomainEvent):
        if self.handler is None:
            logger.debug(f"No realtime handler, dropping {event.event_type.value} event")
            return
        try:
            await self.handler(event)
        except Exception as e:
            logger.exception(
                f"Realtime dispatch of {event.event_type.value} for conversation "
                f"{event.conversation_id} failed: {e}"
            )
