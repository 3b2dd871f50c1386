"""Shared fakes for GitHub and embedding collaborators."""

from __future__ import annotations

from typing import Any

import pytest

from devpool_pipeline.schemas import SeedIssue

REPO_URL = "https://api.github.com/repos/acme/widgets"
ISSUE_URL = "https://github.com/acme/widgets/issues/42"


def make_seed(
    *,
    number: int = 42,
    node_id: str = "I_1",
    body: str | None = "Fix the bug",
    login: str = "alice",
) -> SeedIssue:
    return SeedIssue.model_validate(
        {
            "number": number,
            "node_id": node_id,
            "body": body,
            "title": f"Issue {number}",
            "user": {"login": login},
            "repository_url": REPO_URL,
            "html_url": f"https://github.com/acme/widgets/issues/{number}",
        }
    )


def make_pull_request(number: int = 7, body: str = "Resolves #42", node_id: str = "PR_7") -> dict:
    return {
        "number": number,
        "node_id": node_id,
        "body": body,
        "html_url": f"https://github.com/acme/widgets/pull/{number}",
        "base": {"repo": {"name": "widgets"}},
    }


def make_thread(
    *,
    node_id: str = "PR_7",
    comments: list[dict] | None = None,
    review_threads: list[list[dict]] | None = None,
) -> dict:
    return {
        "id": node_id,
        "title": "Fix the bug",
        "body": "This fixes **the bug**.",
        "author": {"login": "bob"},
        "comments": {"nodes": comments or []},
        "reviewThreads": {
            "nodes": [{"comments": {"nodes": thread}} for thread in (review_threads or [])]
        },
    }


class FakeGitHub:
    """In-memory stand-in for `GitHubClient` with per-method call logs."""

    def __init__(
        self,
        *,
        issue_comments: list[dict] | None = None,
        pull_requests: list[dict] | None = None,
        threads: dict[str, dict] | None = None,
        user_ids: dict[str, int] | None = None,
    ) -> None:
        self.issue_comments = issue_comments or []
        self.pull_requests = pull_requests or []
        self.threads = threads or {}
        self.user_ids = user_ids if user_ids is not None else {"alice": 101, "bob": 202}
        self.calls: list[tuple[str, Any]] = []

    def get_issue(self, owner: str, repo: str, issue_number: int) -> dict:
        self.calls.append(("get_issue", (owner, repo, issue_number)))
        return {
            "number": issue_number,
            "title": f"Issue {issue_number}",
            "body": "Fix the bug",
            "html_url": f"https://github.com/{owner}/{repo}/issues/{issue_number}",
            "state": "open",
        }

    def list_issue_comments(
        self, owner: str, repo: str, issue_number: int, *, max_pages: int = 10
    ) -> list[dict]:
        self.calls.append(("list_issue_comments", (owner, repo, issue_number)))
        return list(self.issue_comments)

    def get_issue_comment(self, owner: str, repo: str, comment_id: int) -> dict:
        self.calls.append(("get_issue_comment", comment_id))
        for comment in self.issue_comments:
            if comment["id"] == comment_id:
                return {**comment, "html_url": f"https://github.com/c/{comment_id}"}
        raise KeyError(comment_id)

    def list_pull_requests(
        self, owner: str, repo: str, *, state: str = "all", max_pages: int = 10
    ) -> list[dict]:
        self.calls.append(("list_pull_requests", (owner, repo, state)))
        return list(self.pull_requests)

    def get_pull_request_thread(self, node_id: str) -> dict:
        self.calls.append(("get_pull_request_thread", node_id))
        return self.threads[node_id]

    def get_author_id(self, login: str | None) -> int:
        self.calls.append(("get_author_id", login))
        if not login:
            return -1
        return self.user_ids.get(login, -1)


class FakeEmbeddingClient:
    def __init__(self, dimensions: int = 3) -> None:
        self.dimensions = dimensions
        self.inputs: list[str] = []

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.inputs.extend(texts)
        return [[float(len(text))] + [0.5] * (self.dimensions - 1) for text in texts]


@pytest.fixture
def seed() -> SeedIssue:
    return make_seed()


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()
