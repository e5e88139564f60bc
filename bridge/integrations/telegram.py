"""Telegram side of the bridge: outgoing messages and incoming updates."""
import logging

from telegram import LinkPreviewOptions, ReplyParameters
from telegram.constants import ParseMode
from telegram.helpers import escape_markdown

from bridge.core.events import ChatMessage

logger = logging.getLogger(__name__)


def escape(text):
    """Escape text for MarkdownV2: _ * [ ] ( ) ~ ` > # + - = | { } . ! and \\."""
    return escape_markdown(text or "", version=2)


def escape_url(url):
    # Inside (...) of an inline link only ) and \ need escaping.
    return escape_markdown(url or "", version=2, entity_type="text_link")


def sender_name(user):
    if user is None:
        return "unknown"
    return user.username or user.full_name or str(user.id)


def chat_message_from_update(update):
    """Convert a Telegram Update into a ChatMessage, or None if it carries no text."""
    message = update.message
    if message is None or message.text is None:
        return None
    reply_to = message.reply_to_message
    return ChatMessage(
        message_id=message.message_id,
        chat_id=message.chat_id,
        sender=sender_name(message.from_user),
        text=message.text,
        reply_to_message_id=reply_to.message_id if reply_to is not None else None,
    )


class TelegramMessenger:
    def __init__(self, bot, chat_id):
        self.bot = bot
        self.chat_id = chat_id

    async def post_message(self, text, reply_to=None, markdown=True):
        """Send text to the bridged chat and return the new message id."""
        message = await self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            parse_mode=ParseMode.MARKDOWN_V2 if markdown else None,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
            reply_parameters=ReplyParameters(message_id=reply_to) if reply_to is not None else None,
        )
        logger.debug("[chat %d] sent message %d", self.chat_id, message.message_id)
        return message.message_id
