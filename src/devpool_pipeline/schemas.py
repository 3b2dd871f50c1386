"""Core data schemas for the devpool embedding pipeline."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class GitHubUser(BaseModel):
    """The subset of a GitHub user object the pipeline reads."""

    model_config = ConfigDict(extra="ignore")

    login: str


class SeedIssue(BaseModel):
    """One issue from the input list, in GitHub's REST issue payload shape."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    number: int
    node_id: str
    body: str | None = None
    title: str = ""
    user: GitHubUser
    repository_url: str
    html_url: str = ""

    @property
    def user_login(self) -> str:
        return self.user.login

    def owner_and_repo(self) -> tuple[str, str]:
        """Split `repository_url` into its trailing owner and repo segments."""

        parts = [part for part in self.repository_url.rstrip("/").split("/") if part]
        if len(parts) < 2:
            raise ValueError(f"Cannot derive owner/repo from {self.repository_url!r}.")
        return parts[-2], parts[-1]


class IssuePayload(BaseModel):
    """Payload of an issue body row."""

    kind: Literal["issue"] = "issue"
    title: str = ""
    body: str | None = None
    owner: str
    repo: str
    number: int
    url: str = ""
    state: str | None = None


class IssueCommentPayload(BaseModel):
    """Payload of an issue comment row; `owner` is the commenter login, if any."""

    kind: Literal["issue_comment"] = "issue_comment"
    comment_id: int
    body: str | None = None
    owner: str | None = None
    repo: str
    issue_number: int
    url: str = ""


class PullRequestRef(BaseModel):
    """Number and HTML URL of a pull request."""

    number: int
    url: str


class PullRequestPayload(BaseModel):
    """Payload shared by a pull request body and every comment in its thread."""

    kind: Literal["pull_request"] = "pull_request"
    title: str = ""
    body: str | None = None
    owner: str | None = None
    repo: str
    pull_request: PullRequestRef


Payload = Annotated[
    IssuePayload | IssueCommentPayload | PullRequestPayload,
    Field(discriminator="kind"),
]


class ConversationItem(BaseModel):
    """A single textual unit fetched from GitHub, ready for enrichment."""

    id: str
    text: str | None = None
    issue_id: str
    user_login: str | None = None
    payload: Payload


class EnrichedEntry(BaseModel):
    """A conversation item with cleaned text, embedding and author metadata."""

    id: str
    issue_id: str
    plaintext: str
    markdown: str
    embedding: list[float] = Field(default_factory=list)
    author_id: int
    created_at: datetime
    modified_at: datetime
    payload: Payload
