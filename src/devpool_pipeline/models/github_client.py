"""GitHub REST and GraphQL client used by the fetch stage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Mapping

import httpx

from devpool_pipeline.models.retry import build_retryer

logger = logging.getLogger(__name__)

AUTHOR_ID_UNKNOWN = -1

# Collections are capped at 100 nodes; longer threads are truncated.
PULL_REQUEST_THREAD_QUERY = """
query ($pullRequestId: ID!) {
  node(id: $pullRequestId) {
    ... on PullRequest {
      title
      id
      body
      author {
        login
      }
      comments(first: 100) {
        nodes {
          body
          id
          author {
            login
          }
        }
      }
      reviewThreads(first: 100) {
        nodes {
          comments(first: 100) {
            nodes {
              body
              id
              author {
                login
              }
            }
          }
        }
      }
    }
  }
}
""".strip()


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    limit: int | None = None
    remaining: int | None = None
    reset_at: str | None = None
    resource: str | None = None


class GitHubApiError(RuntimeError):
    def __init__(
        self, message: str, *, status: int, url: str, rate_limit: RateLimitInfo | None = None
    ):
        super().__init__(message)
        self.status = status
        self.url = url
        self.rate_limit = rate_limit


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_rate_limit(headers: Mapping[str, str]) -> RateLimitInfo | None:
    limit = _parse_int(headers.get("X-RateLimit-Limit"))
    remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
    reset_seconds = _parse_int(headers.get("X-RateLimit-Reset"))
    resource = headers.get("X-RateLimit-Resource")

    if limit is None and remaining is None and reset_seconds is None and resource is None:
        return None
    reset_at = (
        datetime.fromtimestamp(reset_seconds, tz=UTC).isoformat()
        if reset_seconds is not None
        else None
    )
    return RateLimitInfo(limit=limit, remaining=remaining, reset_at=reset_at, resource=resource)


class GitHubClient:
    """Authenticated GitHub client; one instance is shared across a run."""

    def __init__(
        self,
        *,
        token: str | None,
        base_url: str = "https://api.github.com",
        graphql_url: str = "https://api.github.com/graphql",
        user_agent: str = "devpool-embeddings",
        api_version: str = "2022-11-28",
        timeout_seconds: float = 30.0,
        max_retries: int = 1,
        backoff_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": api_version,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._graphql_url = graphql_url
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )
        self.last_rate_limit: RateLimitInfo | None = None

    def close(self) -> None:
        """Close the underlying HTTP client."""

        self._http.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        retryer = build_retryer(
            max_retries=self._max_retries,
            backoff_seconds=self._backoff_seconds,
        )
        try:
            for attempt in retryer:
                with attempt:
                    response = self._http.request(method, url, **kwargs)
                    rate_limit = _parse_rate_limit(response.headers)
                    if rate_limit is not None:
                        self.last_rate_limit = rate_limit
                    response.raise_for_status()
        except httpx.HTTPStatusError as error:
            try:
                body = error.response.json()
            except ValueError:
                body = {}
            message = ""
            if isinstance(body, dict):
                message = str(body.get("message") or "")
            raise GitHubApiError(
                message or f"GitHub API request failed ({error.response.status_code})",
                status=error.response.status_code,
                url=str(error.request.url),
                rate_limit=self.last_rate_limit,
            ) from None
        except httpx.HTTPError as error:
            raise GitHubApiError(
                str(error),
                status=0,
                url=url,
                rate_limit=self.last_rate_limit,
            ) from None

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise GitHubApiError(
                f"GitHub returned a non-JSON body ({response.status_code})",
                status=response.status_code,
                url=str(response.request.url),
                rate_limit=self.last_rate_limit,
            ) from None

    def request_json(self, path: str, *, query: Mapping[str, Any] | None = None) -> Any:
        params = {k: v for k, v in (query or {}).items() if v is not None}
        return self._send("GET", path, params=params or None)

    def paginate(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int = 10,
    ) -> list[Any]:
        all_items: list[Any] = []
        for page in range(1, max_pages + 1):
            items = self.request_json(
                path,
                query={**(dict(query) if query else {}), "per_page": per_page, "page": page},
            )
            if not isinstance(items, list):
                raise TypeError(f"Expected list from GitHub pagination (path={path}).")
            all_items.extend(items)
            if len(items) < per_page:
                break
        return all_items

    def graphql(self, query: str, variables: Mapping[str, Any]) -> dict[str, Any]:
        payload = self._send(
            "POST",
            self._graphql_url,
            json={"query": query, "variables": dict(variables)},
        )
        if not isinstance(payload, dict):
            raise GitHubApiError(
                "GraphQL response is not an object", status=200, url=self._graphql_url
            )
        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else {}
            message = first.get("message") if isinstance(first, dict) else None
            raise GitHubApiError(
                f"GraphQL returned {len(errors)} error(s). First: {message!r}",
                status=200,
                url=self._graphql_url,
                rate_limit=self.last_rate_limit,
            )
        return payload.get("data") or {}

    def get_issue(self, owner: str, repo: str, issue_number: int) -> dict[str, Any]:
        return self.request_json(f"/repos/{owner}/{repo}/issues/{issue_number}")

    def get_issue_comment(self, owner: str, repo: str, comment_id: int) -> dict[str, Any]:
        return self.request_json(f"/repos/{owner}/{repo}/issues/comments/{comment_id}")

    def list_issue_comments(
        self, owner: str, repo: str, issue_number: int, *, max_pages: int = 10
    ) -> list[dict[str, Any]]:
        return self.paginate(
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments", max_pages=max_pages
        )

    def get_pull_request(self, owner: str, repo: str, pull_number: int) -> dict[str, Any]:
        return self.request_json(f"/repos/{owner}/{repo}/pulls/{pull_number}")

    def list_pull_requests(
        self, owner: str, repo: str, *, state: str = "all", max_pages: int = 10
    ) -> list[dict[str, Any]]:
        return self.paginate(
            f"/repos/{owner}/{repo}/pulls", query={"state": state}, max_pages=max_pages
        )

    def get_review_comment(self, owner: str, repo: str, comment_id: int) -> dict[str, Any]:
        return self.request_json(f"/repos/{owner}/{repo}/pulls/comments/{comment_id}")

    def get_review(
        self, owner: str, repo: str, pull_number: int, review_id: int
    ) -> dict[str, Any]:
        return self.request_json(f"/repos/{owner}/{repo}/pulls/{pull_number}/reviews/{review_id}")

    def get_user(self, login: str) -> dict[str, Any]:
        return self.request_json(f"/users/{login}")

    def get_pull_request_thread(self, node_id: str) -> dict[str, Any]:
        """Fetch a pull request's body, comments and review threads in one query."""

        data = self.graphql(PULL_REQUEST_THREAD_QUERY, {"pullRequestId": node_id})
        node = data.get("node")
        if not isinstance(node, dict):
            raise GitHubApiError(
                f"No pull request found for node id {node_id}",
                status=404,
                url=self._graphql_url,
            )
        return node

    def get_author_id(self, login: str | None) -> int:
        """Resolve a login to its numeric id, or -1 when the lookup fails."""

        if not login:
            return AUTHOR_ID_UNKNOWN
        try:
            user = self.get_user(login)
        except GitHubApiError as exc:
            logger.error("Error fetching author ID for %s: %s", login, exc)
            return AUTHOR_ID_UNKNOWN
        user_id = user.get("id") if isinstance(user, dict) else None
        if not isinstance(user_id, int):
            logger.error("User payload for %s has no numeric id.", login)
            return AUTHOR_ID_UNKNOWN
        return user_id
