"""Collect the conversation around a seed issue from GitHub."""

from __future__ import annotations

import logging
from typing import Any

from devpool_pipeline.models import GitHubClient
from devpool_pipeline.schemas import (
    ConversationItem,
    IssueCommentPayload,
    IssuePayload,
    PullRequestPayload,
    PullRequestRef,
    SeedIssue,
)

logger = logging.getLogger(__name__)


def _login(actor: Any) -> str | None:
    """Login of a REST user or GraphQL actor; deleted accounts come back as null."""

    if isinstance(actor, dict):
        login = actor.get("login")
        if isinstance(login, str) and login:
            return login
    return None


def _nodes(connection: Any) -> list[dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    nodes = connection.get("nodes")
    if not isinstance(nodes, list):
        return []
    return [node for node in nodes if isinstance(node, dict)]


def references_issue(pull_request: dict[str, Any], seed: SeedIssue) -> bool:
    """Whether a PR body mentions the issue by `#<number>` or by its URL.

    Plain substring matching: `#4` also matches a body mentioning `#42`.
    """

    body = pull_request.get("body")
    if not body:
        return False
    if f"#{seed.number}" in body:
        return True
    return bool(seed.html_url) and seed.html_url in body


class IssueFetcher:
    """Fetch an issue, its comments and linked pull request threads, in order."""

    def __init__(self, github: GitHubClient, *, max_pages: int = 10) -> None:
        self._github = github
        self._max_pages = max_pages

    def fetch_issue_payload(self, seed: SeedIssue) -> IssuePayload:
        owner, repo = seed.owner_and_repo()
        raw = self._github.get_issue(owner, repo, seed.number)
        return IssuePayload(
            title=raw.get("title") or "",
            body=raw.get("body"),
            owner=owner,
            repo=repo,
            number=int(raw.get("number", seed.number)),
            url=raw.get("html_url") or seed.html_url,
            state=raw.get("state"),
        )

    def fetch_issue_comments(self, seed: SeedIssue) -> list[ConversationItem]:
        owner, repo = seed.owner_and_repo()
        comments = self._github.list_issue_comments(
            owner, repo, seed.number, max_pages=self._max_pages
        )
        items: list[ConversationItem] = []
        for comment in comments:
            detail = self._github.get_issue_comment(owner, repo, comment["id"])
            items.append(
                ConversationItem(
                    id=comment["node_id"],
                    text=comment.get("body"),
                    issue_id=seed.node_id,
                    user_login=_login(comment.get("user")),
                    payload=IssueCommentPayload(
                        comment_id=comment["id"],
                        body=detail.get("body"),
                        owner=_login(detail.get("user")),
                        repo=repo,
                        issue_number=seed.number,
                        url=detail.get("html_url") or "",
                    ),
                )
            )
        return items

    def find_associated_pull_requests(self, seed: SeedIssue) -> list[dict[str, Any]]:
        owner, repo = seed.owner_and_repo()
        pull_requests = self._github.list_pull_requests(
            owner, repo, state="all", max_pages=self._max_pages
        )
        return [pr for pr in pull_requests if references_issue(pr, seed)]

    def fetch_pull_request_items(
        self, seed: SeedIssue, pull_request: dict[str, Any]
    ) -> list[ConversationItem]:
        """Flatten a PR thread into its body, top-level comments and review comments."""

        thread = self._github.get_pull_request_thread(pull_request["node_id"])
        base_repo = ((pull_request.get("base") or {}).get("repo") or {}).get("name")
        _, seed_repo = seed.owner_and_repo()
        payload = PullRequestPayload(
            title=thread.get("title") or "",
            body=thread.get("body"),
            owner=_login(thread.get("author")),
            repo=base_repo or seed_repo,
            pull_request=PullRequestRef(
                number=pull_request["number"],
                url=pull_request.get("html_url") or "",
            ),
        )

        items = [
            ConversationItem(
                id=thread.get("id") or pull_request["node_id"],
                text=thread.get("body"),
                issue_id=seed.node_id,
                user_login=_login(thread.get("author")),
                payload=payload,
            )
        ]
        comments = list(_nodes(thread.get("comments")))
        for review_thread in _nodes(thread.get("reviewThreads")):
            comments.extend(_nodes(review_thread.get("comments")))

        for comment in comments:
            items.append(
                ConversationItem(
                    id=comment["id"],
                    text=comment.get("body"),
                    issue_id=seed.node_id,
                    user_login=_login(comment.get("author")),
                    payload=payload,
                )
            )
        return items

    def fetch_all_related_items(self, seed: SeedIssue) -> list[ConversationItem]:
        items = [
            ConversationItem(
                id=seed.node_id,
                text=seed.body,
                issue_id=seed.node_id,
                user_login=seed.user_login,
                payload=self.fetch_issue_payload(seed),
            )
        ]
        items.extend(self.fetch_issue_comments(seed))

        pull_requests = self.find_associated_pull_requests(seed)
        if pull_requests:
            logger.info(
                "Issue %d: %d associated pull request(s).", seed.number, len(pull_requests)
            )
        for pull_request in pull_requests:
            items.extend(self.fetch_pull_request_items(seed, pull_request))
        return items
