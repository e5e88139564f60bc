from datetime import datetime, timedelta, timezone

import pytest

from bridge.memory.correlation import CorrelationDirectory
from bridge.memory.database import init_db
from bridge.memory.inbox import Inbox


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeMessenger:
    def __init__(self, first_id=100):
        self.sent = []
        self.fail = None
        self._next_id = first_id

    async def post_message(self, text, reply_to=None, markdown=True):
        if self.fail:
            raise self.fail
        message_id = self._next_id
        self._next_id += 1
        self.sent.append({"id": message_id, "text": text, "reply_to": reply_to, "markdown": markdown})
        return message_id


class FakeTracker:
    def __init__(self, first_id=9000):
        self.comments = []
        self.fail = None
        self._next_id = first_id

    async def create_comment(self, owner, repo, number, body):
        if self.fail:
            raise self.fail
        comment_id = self._next_id
        self._next_id += 1
        self.comments.append({"id": comment_id, "owner": owner, "repo": repo, "number": number, "body": body})
        return comment_id


class RecordingBus:
    def __init__(self):
        self.published = []

    async def publish(self, event):
        self.published.append(event)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "db" / "bridge.db")


@pytest.fixture
def db(db_path):
    conn = init_db(db_path)
    yield conn
    conn.close()


@pytest.fixture
def inbox(db, clock):
    return Inbox(db, visibility_timeout=30, clock=clock)


@pytest.fixture
def directory():
    return CorrelationDirectory()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def tracker():
    return FakeTracker()
