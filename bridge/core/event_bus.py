import asyncio
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """Single-consumer handoff between event producers and the handler chain.

    Producers (the webhook decoders fed by the dispatcher, the chat poller)
    call publish(). One consumer pops events in arrival order and offers each
    to every handler in registration order. There is no short-circuit: a
    handler that returns True does not stop the rest, so handlers must accept
    disjoint kinds of events.
    """

    def __init__(self, maxsize=100):
        self._queue = asyncio.Queue(maxsize=maxsize)
        self._handlers = []

    def add_handler(self, handler):
        self._handlers.append(handler)

    async def publish(self, event):
        await self._queue.put(event)

    @property
    def handlers(self):
        return tuple(self._handlers)

    def pending(self):
        return self._queue.qsize()

    async def join(self):
        """Wait until every published event has been dispatched."""
        await self._queue.join()

    async def dispatch(self, event):
        """Offer one event to every handler. Returns the names that handled it."""
        handled_by = []
        for handler in self._handlers:
            name = type(handler).__name__
            try:
                if await handler.handle(event):
                    handled_by.append(name)
            except Exception:
                logger.exception("handler %s failed on %s", name, type(event).__name__)
        if not handled_by:
            logger.debug("no handler took %s", type(event).__name__)
        return handled_by

    async def run(self):
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            finally:
                self._queue.task_done()
