"""Event handlers.

Every handler sees every event and returns True only for the ones it acts on.
The conditions below are kept disjoint so no event produces two side effects:
issues and comments go to chat, replies to mirrors go to GitHub, and the
/noup command is answered in chat.
"""
import logging
import re

from bridge.core.events import ChatMessage, CommentCreated, CommentRef, IssueCreated, IssueRef
from bridge.integrations.telegram import escape, escape_url

logger = logging.getLogger(__name__)

GITHUB_PROFILE = "https://github.com/{}"
_LINE = re.compile(r"^(.*)$", re.MULTILINE)


def issue_message(event):
    issue = event.issue
    return (
        f"New issue: \\#{issue.number} [{escape(issue.title)}]({escape_url(issue.url)}) "
        f"by [{escape(issue.author)}]({escape_url(GITHUB_PROFILE.format(issue.author))})\n"
        f"Description:\n{escape(issue.body)}"
    )


def comment_message(event):
    comment = event.comment
    return (
        f"Comment on \\#{comment.issue_number} [{escape(event.issue_title)}]({escape_url(comment.issue_url)}) "
        f"by [{escape(event.sender)}]({escape_url(GITHUB_PROFILE.format(event.sender))}):\n"
        f"{escape(comment.body)}"
    )


def quote(text):
    return _LINE.sub(r"> \1", text)


def reply_body(target, message):
    attribution = f"{message.sender} replies:\n{message.text}"
    if isinstance(target, CommentRef):
        return f"{quote(target.body)}\n\n{attribution}"
    return attribution


def reply_issue(target):
    """(owner, repo, number) of the issue a reply to target belongs on."""
    match target:
        case IssueRef(owner=owner, repo=repo, number=number):
            return owner, repo, number
        case CommentRef(owner=owner, repo=repo, issue_number=number):
            return owner, repo, number


class IssueMirrorHandler:
    def __init__(self, messenger, directory):
        self.messenger = messenger
        self.directory = directory

    async def handle(self, event):
        match event:
            case IssueCreated():
                pass
            case _:
                return False

        message_id = await self.messenger.post_message(issue_message(event))
        self.directory.record_outgoing_mirror(message_id, event.issue)
        logger.info("mirrored issue %s/%s#%d as message %d",
                    event.issue.owner, event.issue.repo, event.issue.number, message_id)
        return True


class CommentMirrorHandler:
    def __init__(self, messenger, directory):
        self.messenger = messenger
        self.directory = directory

    async def handle(self, event):
        match event:
            case CommentCreated():
                pass
            case _:
                return False

        if self.directory.is_suppressed(event.comment.id):
            # Posted by us for a chat reply; mirroring it would echo.
            logger.info("dropping own comment %d", event.comment.id)
            return True

        message_id = await self.messenger.post_message(comment_message(event))
        self.directory.record_outgoing_mirror(message_id, event.comment)
        logger.info("mirrored comment %d as message %d", event.comment.id, message_id)
        return True


class ReplyToTrackerHandler:
    """Turns a chat reply to a mirrored issue or comment into a GitHub comment.

    Only the directly replied-to message is resolved; a reply to a reply is
    not followed further back.
    """

    def __init__(self, tracker, directory, chat_id):
        self.tracker = tracker
        self.directory = directory
        self.chat_id = chat_id

    async def handle(self, event):
        match event:
            case ChatMessage(reply_to_message_id=int()) if not event.is_command:
                pass
            case _:
                return False

        if event.chat_id != self.chat_id:
            # Message ids are per chat; a foreign id can collide with a mirror.
            logger.debug("[chat %d] ignoring reply from chat %d", event.message_id, event.chat_id)
            return False

        if self.directory.is_mirror(event.message_id):
            return False
        target = self.directory.resolve_reply_target(event.reply_to_message_id)
        if target is None:
            return False

        owner, repo, number = reply_issue(target)
        comment_id = await self.tracker.create_comment(owner, repo, number, reply_body(target, event))
        self.directory.record_suppressed_comment(comment_id, event.message_id)
        logger.info("[chat %d] reply from %s posted as comment %d on %s/%s#%d",
                    event.message_id, event.sender, comment_id, owner, repo, number)
        return True


class NoBumpingHandler:
    def __init__(self, messenger, bot_username, chat_id):
        self.messenger = messenger
        self.chat_id = chat_id
        self.command = f"/noup@{bot_username}"

    async def handle(self, event):
        match event:
            case ChatMessage(text=text) if text.strip() == self.command and event.chat_id == self.chat_id:
                pass
            case _:
                return False

        if event.is_reply:
            await self.messenger.post_message(
                f"@{event.sender} Please do not bump!",
                reply_to=event.reply_to_message_id,
                markdown=False,
            )
        else:
            await self.messenger.post_message("Please do not bump!", markdown=False)
        return True
