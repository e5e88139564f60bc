"""Correlation between chat messages and tracker entities.

Two indices behind one lock:
  outgoing    chat message id -> IssueRef/CommentRef the message mirrors
  suppressed  tracker comment id -> chat message id whose reply created it

The lock is held only inside each method, never across a network call.
"""
import threading
from collections import OrderedDict


class CorrelationDirectory:
    def __init__(self, max_entries=10000):
        self._lock = threading.Lock()
        self._outgoing = OrderedDict()
        self._suppressed = OrderedDict()
        self._max_entries = max_entries

    def _put(self, index, key, value):
        # First write wins so redelivered events cannot rewrite history.
        if key in index:
            return
        index[key] = value
        while len(index) > self._max_entries:
            index.popitem(last=False)

    def record_outgoing_mirror(self, chat_message_id, tracker_ref):
        with self._lock:
            self._put(self._outgoing, int(chat_message_id), tracker_ref)

    def record_suppressed_comment(self, tracker_comment_id, chat_message_id):
        with self._lock:
            self._put(self._suppressed, int(tracker_comment_id), int(chat_message_id))

    def is_suppressed(self, tracker_comment_id):
        with self._lock:
            return int(tracker_comment_id) in self._suppressed

    def is_mirror(self, chat_message_id):
        with self._lock:
            return int(chat_message_id) in self._outgoing

    def resolve_reply_target(self, replied_to_chat_message_id):
        with self._lock:
            return self._outgoing.get(int(replied_to_chat_message_id))
