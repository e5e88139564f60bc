"""Events flowing through the bus and the tracker entities they refer to."""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class IssueRef:
    owner: str
    repo: str
    number: int
    url: str
    author: str
    title: str
    body: str


@dataclass(frozen=True)
class CommentRef:
    id: int
    url: str
    owner: str
    repo: str
    issue_number: int
    issue_url: str
    author: str
    body: str


TrackerRef = Union[IssueRef, CommentRef]


@dataclass(frozen=True)
class IssueCreated:
    issue: IssueRef
    sender: str


@dataclass(frozen=True)
class CommentCreated:
    comment: CommentRef
    issue_title: str
    sender: str


@dataclass(frozen=True)
class ChatMessage:
    message_id: int
    chat_id: int
    sender: str
    text: str
    reply_to_message_id: Optional[int] = None

    @property
    def is_reply(self):
        return self.reply_to_message_id is not None

    @property
    def is_command(self):
        return self.text.startswith("/")


Event = Union[IssueCreated, CommentCreated, ChatMessage]
