import asyncio
import logging
import sys

import httpx
import uvicorn
from telegram import Bot
from telegram.error import TelegramError

from bridge import config
from bridge.bot.telegram_poller import TelegramPoller
from bridge.bot.webhook_server import create_app
from bridge.core.dispatcher import Dispatcher
from bridge.core.event_bus import EventBus
from bridge.core.handlers import (
    CommentMirrorHandler,
    IssueMirrorHandler,
    NoBumpingHandler,
    ReplyToTrackerHandler,
)
from bridge.integrations.github import GithubClient, GithubWebhook
from bridge.integrations.telegram import TelegramMessenger
from bridge.memory.correlation import CorrelationDirectory
from bridge.memory.database import init_db
from bridge.memory.inbox import Inbox

logger = logging.getLogger("bridge")


def _configure_logging():
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every getUpdates round trip at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build(bot, bot_username, github, db):
    """Wire the bridge together. Returns (dispatcher, bus, poller, app)."""
    inbox = Inbox(db, visibility_timeout=config.VISIBILITY_TIMEOUT_SECONDS)
    directory = CorrelationDirectory(max_entries=config.CORRELATION_MAX_ENTRIES)
    messenger = TelegramMessenger(bot, config.TELEGRAM_CHAT_ID)

    bus = EventBus()
    bus.add_handler(IssueMirrorHandler(messenger, directory))
    bus.add_handler(CommentMirrorHandler(messenger, directory))
    bus.add_handler(ReplyToTrackerHandler(github, directory, config.TELEGRAM_CHAT_ID))
    bus.add_handler(NoBumpingHandler(messenger, bot_username, config.TELEGRAM_CHAT_ID))

    dispatcher = Dispatcher(inbox, interval=config.DISPATCH_INTERVAL_SECONDS)
    dispatcher.add_webhook(config.WEBHOOK_PATH, GithubWebhook(bus))

    poller = TelegramPoller(bot, bus, timeout=config.LONG_POLL_TIMEOUT_SECONDS)
    app = create_app(inbox, dispatcher)
    return dispatcher, bus, poller, app


async def run():
    config.validate()

    db = init_db(config.DB_PATH)
    github = GithubClient(config.GITHUB_TOKEN, base_url=config.GITHUB_API_URL)

    async with Bot(config.TELEGRAM_TOKEN) as bot:
        me = await bot.get_me()
        login = await github.get_login()
        logger.info("telegram: @%s, github: %s, chat: %d", me.username, login, config.TELEGRAM_CHAT_ID)

        dispatcher, bus, poller, app = build(bot, me.username, github, db)
        logger.info("inbox: %s (%d pending)", config.DB_PATH, dispatcher.inbox.count())

        server = uvicorn.Server(uvicorn.Config(app, host=config.HOST, port=config.PORT, log_config=None))
        logger.info("listening on %s:%d for %s", config.HOST, config.PORT, ", ".join(dispatcher.paths()))
        try:
            await asyncio.gather(server.serve(), dispatcher.run(), bus.run(), poller.run())
        finally:
            await github.aclose()
            db.close()


def main():
    _configure_logging()
    try:
        asyncio.run(run())
    except config.ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)
    except (TelegramError, httpx.HTTPError) as e:
        logger.error("startup failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
