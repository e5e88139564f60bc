"""Inbox — durable queue for incoming webhook deliveries.

SQLite-backed. The webhook server writes here; the dispatcher claims pending
deliveries, routes them and deletes them. A claim hides a row for the
visibility window instead of removing it, so a delivery whose claimant died
before deleting it becomes claimable again once the window elapses.
"""
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def utcnow():
    return datetime.now(timezone.utc)


def format_time(moment):
    # Fixed width, so comparing the stored text compares the instants.
    return moment.astimezone(timezone.utc).strftime(TIME_FORMAT)


@dataclass(frozen=True)
class Envelope:
    id: int
    path: str
    headers: str
    body: bytes
    created_at: str
    visible_at: str

    def decode_headers(self):
        """Decode the stored header blob into a str -> str mapping."""
        try:
            headers = json.loads(self.headers)
        except json.JSONDecodeError as e:
            raise ValueError(f"malformed headers: {e}") from e
        if not isinstance(headers, dict):
            raise ValueError(f"malformed headers: expected object, got {type(headers).__name__}")
        return {str(k): str(v) for k, v in headers.items()}


class Inbox:
    def __init__(self, db, visibility_timeout=30, clock=utcnow):
        self.db = db
        self.visibility_timeout = timedelta(seconds=visibility_timeout)
        self.clock = clock

    def enqueue(self, path, headers, body):
        if isinstance(body, str):
            body = body.encode("utf-8")
        now = format_time(self.clock())
        with self.db:
            cursor = self.db.execute(
                "INSERT INTO webhooks_data (created_at, updated_at, path, headers, body, visible_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (now, now, path, json.dumps(dict(headers)), body, now),
            )
        return cursor.lastrowid

    def claim_next(self):
        """Claim one visible delivery, or return None.

        Any visible row may be picked. The claim is a compare-and-swap on the
        visible_at value read in the same call: if another claimant moved it
        first, no row is updated and the race is simply lost.
        """
        now = self.clock()
        row = self.db.execute(
            "SELECT rowid, path, headers, body, created_at, visible_at FROM webhooks_data "
            "WHERE visible_at <= ? LIMIT 1",
            (format_time(now),),
        ).fetchone()
        if row is None:
            return None

        rowid, path, headers, body, created_at, observed = row
        hidden_until = format_time(now + self.visibility_timeout)
        with self.db:
            cursor = self.db.execute(
                "UPDATE webhooks_data SET visible_at = ?, updated_at = ? "
                "WHERE rowid = ? AND visible_at = ?",
                (hidden_until, format_time(now), rowid, observed),
            )
        if cursor.rowcount == 0:
            return None

        if isinstance(body, str):
            body = body.encode("utf-8")
        return Envelope(rowid, path, headers, bytes(body), created_at, hidden_until)

    def delete(self, envelope_id):
        with self.db:
            self.db.execute("DELETE FROM webhooks_data WHERE rowid = ?", (envelope_id,))

    def count(self):
        return self.db.execute("SELECT COUNT(*) FROM webhooks_data").fetchone()[0]
