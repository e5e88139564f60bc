import asyncio
import logging
import sqlite3

logger = logging.getLogger(__name__)


class Dispatcher:
    """Sequential consumer of the inbox.

    Each tick claims one delivery, hands (path, headers, body) to every
    webhook handler registered for its path and deletes it once they have all
    returned. Handler errors do not prevent the delete: a delivery counts as
    done once it has been attempted. Only one dispatcher may run per inbox.
    """

    def __init__(self, inbox, interval=5):
        self.inbox = inbox
        self.interval = interval
        self._webhooks = {}
        self._wakeup = asyncio.Event()

    def add_webhook(self, path, handler):
        self._webhooks.setdefault(path, []).append(handler)

    def paths(self):
        return list(self._webhooks)

    def notify(self):
        """Wake the loop early. A no-op when it is busy."""
        self._wakeup.set()

    async def _wait(self):
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass
        self._wakeup.clear()

    async def run_once(self):
        """Claim and route one delivery. Returns True if one was dispatched."""
        try:
            envelope = self.inbox.claim_next()
        except sqlite3.Error:
            logger.exception("claim failed")
            return False
        if envelope is None:
            return False

        try:
            headers = envelope.decode_headers()
        except ValueError as e:
            # Left in place: it becomes visible again after the window.
            logger.error("[envelope %d] %s; leaving it in the inbox", envelope.id, e)
            return False

        handlers = self._webhooks.get(envelope.path, [])
        if not handlers:
            logger.warning("[envelope %d] no webhook registered for %s", envelope.id, envelope.path)
        for handler in handlers:
            try:
                await handler.handle(headers, envelope.body)
            except Exception:
                logger.exception("[envelope %d] webhook %s failed", envelope.id, type(handler).__name__)

        try:
            self.inbox.delete(envelope.id)
        except sqlite3.Error:
            logger.exception("[envelope %d] delete failed", envelope.id)
            return False
        logger.info("[envelope %d] dispatched %s to %d webhook(s)", envelope.id, envelope.path, len(handlers))
        return True

    async def run(self):
        logger.info("dispatcher started for %s", ", ".join(self.paths()) or "no paths")
        while True:
            await self._wait()
            # Drain everything visible before sleeping again.
            while await self.run_once():
                pass
