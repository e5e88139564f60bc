"""GitHub side of the bridge: webhook decoding and the issue comments API."""
import json
import logging

import httpx

from bridge.core.events import CommentCreated, CommentRef, IssueCreated, IssueRef

logger = logging.getLogger(__name__)


def _get_header(headers, name):
    for k, v in (headers or {}).items():
        if k.lower() == name.lower():
            return v
    return None


def _login(user):
    return (user or {}).get("login") or ""


def parse_event(headers, body):
    """Decode one GitHub delivery into an event.

    Returns None for deliveries the bridge does not mirror. Raises ValueError
    when the body is not a JSON object.
    """
    kind = _get_header(headers, "X-GitHub-Event")
    try:
        payload = json.loads(body)
    except (TypeError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"undecodable {kind or 'github'} payload: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError(f"undecodable {kind or 'github'} payload: not an object")

    action = payload.get("action")
    repository = payload.get("repository") or {}
    owner = _login(repository.get("owner"))
    repo = repository.get("name") or ""
    issue = payload.get("issue") or {}
    sender = _login(payload.get("sender"))

    if kind == "issues" and action == "opened":
        return IssueCreated(
            issue=IssueRef(
                owner=owner,
                repo=repo,
                number=int(issue["number"]),
                url=issue.get("html_url") or issue.get("url") or "",
                author=_login(issue.get("user")),
                title=issue.get("title") or "",
                body=issue.get("body") or "",
            ),
            sender=sender,
        )

    if kind == "issue_comment" and action == "created":
        comment = payload.get("comment") or {}
        return CommentCreated(
            comment=CommentRef(
                id=int(comment["id"]),
                url=comment.get("html_url") or comment.get("url") or "",
                owner=owner,
                repo=repo,
                issue_number=int(issue["number"]),
                issue_url=issue.get("html_url") or issue.get("url") or "",
                author=_login(comment.get("user")),
                body=comment.get("body") or "",
            ),
            issue_title=issue.get("title") or "",
            sender=sender,
        )

    logger.info("skipping github event %s/%s", kind, action)
    return None


class GithubWebhook:
    """Webhook handler for the dispatcher: decode and publish to the bus."""

    def __init__(self, bus):
        self.bus = bus

    async def handle(self, headers, body):
        event = parse_event(headers, body)
        if event is None:
            return False
        await self.bus.publish(event)
        return True


class GithubClient:
    def __init__(self, token, base_url="https://api.github.com", transport=None):
        self.http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": "tracker-messenger-bridge",
            },
            timeout=10.0,
            transport=transport,
        )

    async def get_login(self):
        """Return the login the token authenticates as. Raises on bad credentials."""
        resp = await self.http.get("/user")
        resp.raise_for_status()
        return resp.json()["login"]

    async def create_comment(self, owner, repo, number, body):
        """Post a comment on an issue and return the new comment id."""
        resp = await self.http.post(
            f"/repos/{owner}/{repo}/issues/{int(number)}/comments",
            json={"body": body},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    async def aclose(self):
        await self.http.aclose()
