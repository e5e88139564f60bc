"""Webhook in, chat message out, reply back to GitHub, echo dropped."""
import asyncio
import json

from bridge.core.dispatcher import Dispatcher
from bridge.core.event_bus import EventBus
from bridge.core.events import ChatMessage
from bridge.core.handlers import CommentMirrorHandler, IssueMirrorHandler, ReplyToTrackerHandler
from bridge.integrations.github import GithubWebhook

REPOSITORY = {"name": "repo", "owner": {"login": "octo"}}
ISSUE = {"number": 7, "title": "Crash", "body": "boom", "html_url": "https://github.com/octo/repo/issues/7",
         "user": {"login": "bob"}}


def _issue_opened():
    return json.dumps({"action": "opened", "issue": ISSUE, "repository": REPOSITORY,
                       "sender": {"login": "bob"}}).encode("utf-8")


def _comment_created(comment_id, body):
    return json.dumps({
        "action": "created",
        "issue": ISSUE,
        "comment": {"id": comment_id, "body": body, "user": {"login": "bridge-bot"}},
        "repository": REPOSITORY,
        "sender": {"login": "bridge-bot"},
    }).encode("utf-8")


def _wire(inbox, messenger, tracker, directory):
    bus = EventBus()
    bus.add_handler(IssueMirrorHandler(messenger, directory))
    bus.add_handler(CommentMirrorHandler(messenger, directory))
    bus.add_handler(ReplyToTrackerHandler(tracker, directory, chat_id=-1))
    dispatcher = Dispatcher(inbox)
    dispatcher.add_webhook("/github", GithubWebhook(bus))
    return dispatcher, bus


async def _pump(dispatcher, bus):
    consumer = asyncio.create_task(bus.run())
    while await dispatcher.run_once():
        pass
    await bus.join()
    consumer.cancel()


def test_round_trip_without_echo(inbox, messenger, tracker, directory):
    async def scenario():
        dispatcher, bus = _wire(inbox, messenger, tracker, directory)

        inbox.enqueue("/github", {"X-GitHub-Event": "issues"}, _issue_opened())
        await _pump(dispatcher, bus)
        m1 = messenger.sent[0]["id"]

        await bus.publish(ChatMessage(message_id=500, chat_id=-1, sender="alice", text="hello",
                                      reply_to_message_id=m1))
        await _pump(dispatcher, bus)
        created = tracker.comments[0]

        inbox.enqueue("/github", {"X-GitHub-Event": "issue_comment"}, _comment_created(created["id"], created["body"]))
        await _pump(dispatcher, bus)

    asyncio.run(scenario())

    assert len(messenger.sent) == 1
    assert tracker.comments[0]["body"] == "alice replies:\nhello"
    assert tracker.comments[0]["number"] == 7
    assert inbox.count() == 0


def test_failed_chat_post_still_retires_delivery(inbox, messenger, tracker, directory):
    messenger.fail = RuntimeError("telegram unavailable")

    async def scenario():
        dispatcher, bus = _wire(inbox, messenger, tracker, directory)
        inbox.enqueue("/github", {"X-GitHub-Event": "issues"}, _issue_opened())
        await _pump(dispatcher, bus)

    asyncio.run(scenario())

    assert inbox.count() == 0
    assert messenger.sent == []
