import sqlite3

from fastapi.testclient import TestClient

from bridge.bot.webhook_server import create_app
from bridge.core.dispatcher import Dispatcher


class RecordingWebhook:
    async def handle(self, headers, body):
        return True


class NotifyingDispatcher(Dispatcher):
    def __init__(self, inbox):
        super().__init__(inbox)
        self.notified = 0

    def notify(self):
        self.notified += 1


class FullInbox:
    def enqueue(self, path, headers, body):
        raise sqlite3.OperationalError("database or disk is full")

    def count(self):
        return 0


def _client(inbox):
    dispatcher = NotifyingDispatcher(inbox)
    dispatcher.add_webhook("/github", RecordingWebhook())
    return TestClient(create_app(inbox, dispatcher)), dispatcher


def test_delivery_is_stored_and_dispatcher_woken(inbox):
    client, dispatcher = _client(inbox)

    resp = client.post("/github", content=b'{"action": "opened"}', headers={"X-GitHub-Event": "issues"})

    assert resp.status_code == 202
    envelope = inbox.claim_next()
    assert resp.json() == {"id": envelope.id}
    assert envelope.path == "/github"
    assert envelope.body == b'{"action": "opened"}'
    assert envelope.decode_headers()["x-github-event"] == "issues"
    assert dispatcher.notified == 1


def test_empty_body_is_rejected(inbox):
    client, dispatcher = _client(inbox)

    resp = client.post("/github", content=b"")

    assert resp.status_code == 400
    assert inbox.count() == 0
    assert dispatcher.notified == 0


def test_storage_failure_is_a_server_error():
    client, dispatcher = _client(FullInbox())

    resp = client.post("/github", content=b"{}")

    assert resp.status_code == 500
    assert dispatcher.notified == 0


def test_unregistered_path_is_not_served(inbox):
    client, _ = _client(inbox)
    assert client.post("/gitlab", content=b"{}").status_code == 404
    assert client.get("/github").status_code == 405
    assert inbox.count() == 0


def test_healthz_reports_pending(inbox):
    client, _ = _client(inbox)
    client.post("/github", content=b"{}")
    assert client.get("/healthz").json() == {"status": "ok", "pending": 1}


def test_headers_are_lowercased_and_repeats_keep_first_value(inbox):
    client, _ = _client(inbox)

    client.post("/github", content=b"{}", headers=[("X-Hook-Tag", "first"), ("X-Hook-Tag", "second")])

    headers = inbox.claim_next().decode_headers()
    assert headers["x-hook-tag"] == "first"
    assert "X-Hook-Tag" not in headers
