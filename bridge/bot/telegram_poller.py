import asyncio
import logging

from telegram.error import TelegramError

from bridge.integrations.telegram import chat_message_from_update

logger = logging.getLogger(__name__)

BACKOFF_INITIAL = 1.0
BACKOFF_MAX = 60.0


class TelegramPoller:
    """Long-polls getUpdates and publishes each text message as a ChatMessage."""

    def __init__(self, bot, bus, timeout=60, sleep=asyncio.sleep):
        self.bot = bot
        self.bus = bus
        self.timeout = timeout
        self.offset = None
        self._sleep = sleep
        self._backoff = BACKOFF_INITIAL

    async def poll_once(self):
        """One getUpdates round trip. Returns the number of events published."""
        try:
            updates = await self.bot.get_updates(
                offset=self.offset,
                timeout=self.timeout,
                allowed_updates=["message"],
            )
        except TelegramError as e:
            logger.warning("getUpdates failed: %s; retrying in %.0fs", e, self._backoff)
            await self._sleep(self._backoff)
            self._backoff = min(self._backoff * 2, BACKOFF_MAX)
            return 0

        self._backoff = BACKOFF_INITIAL
        published = 0
        for update in updates:
            self.offset = update.update_id + 1
            event = chat_message_from_update(update)
            if event is None:
                continue
            await self.bus.publish(event)
            published += 1
        return published

    async def run(self):
        logger.info("polling telegram (timeout %ds)", self.timeout)
        while True:
            await self.poll_once()
