"""End-to-end tests for the pipeline run."""

from __future__ import annotations

import csv
import json
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest
from conftest import FakeEmbeddingClient, FakeGitHub, make_pull_request, make_seed, make_thread

from devpool_pipeline.io import save_tables
from devpool_pipeline.models import GitHubClient, VoyageEmbeddingClient
from devpool_pipeline.pipeline import parse_embedding, run_pipeline

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def _run(seeds, github, embedding_client=None, **kwargs):
    return run_pipeline(
        seeds,
        github=github,
        embedding_client=embedding_client or FakeEmbeddingClient(),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def _read_csv(path: Path) -> list[dict[str, str]]:
    with path.open(encoding="utf-8", newline="") as handle:
        return list(csv.DictReader(handle))


class TestRunPipeline:
    def test_single_issue_without_comments_or_pull_requests(self):
        result = _run([make_seed()], FakeGitHub())

        assert len(result.issues) == 1
        assert result.comments == []
        entry = result.issues[0]
        assert entry.issue_id == "I_1"
        assert entry.plaintext.strip() == "Fix the bug"
        assert result.processed_issue_count == 1

    def test_issue_with_one_pull_request_comment(self):
        github = FakeGitHub(
            pull_requests=[make_pull_request(7, "Resolves #42", "PR_7")],
            threads={
                "PR_7": make_thread(
                    comments=[{"id": "IC_pr", "body": "LGTM", "author": {"login": "dave"}}]
                )
            },
        )

        result = _run([make_seed()], github)

        assert [entry.id for entry in result.issues] == ["I_1"]
        comment_ids = [entry.id for entry in result.comments]
        assert "IC_pr" in comment_ids
        comment = next(entry for entry in result.comments if entry.id == "IC_pr")
        assert comment.issue_id == "I_1"
        assert comment.payload.pull_request.number == 7
        assert comment.payload.pull_request.url == "https://github.com/acme/widgets/pull/7"

    @pytest.mark.parametrize("body", ["", None])
    def test_issue_without_body_is_skipped_before_fetching(self, body):
        github = FakeGitHub()
        result = _run([make_seed(body=body)], github)

        assert result.issues == []
        assert result.comments == []
        assert result.skipped_issue_count == 1
        assert github.calls == []

    def test_duplicates_across_seeds_are_stored_once(self):
        embedding_client = FakeEmbeddingClient()
        github = FakeGitHub(
            pull_requests=[make_pull_request(7, "Fixes #42 and #43", "PR_7")],
            threads={"PR_7": make_thread()},
        )
        seeds = [make_seed(), make_seed(number=43, node_id="I_2", body="Second bug")]

        result = _run(seeds, github, embedding_client)

        assert [entry.id for entry in result.issues] == ["I_1", "I_2"]
        assert [entry.id for entry in result.comments] == ["PR_7"]
        assert result.comments[0].issue_id == "I_1"
        assert result.duplicate_count == 1
        assert len(embedding_client.inputs) == 3

    def test_limit_and_progress(self):
        progress: list[tuple[int, int, str]] = []
        seeds = [make_seed(), make_seed(number=43, node_id="I_2", body="x")]

        result = _run(
            seeds,
            FakeGitHub(),
            limit=1,
            progress_callback=lambda done, total, detail: progress.append((done, total, detail)),
        )

        assert [entry.id for entry in result.issues] == ["I_1"]
        assert progress == [(1, 1, "#42: 1 item(s)")]

    def test_negative_limit_is_rejected(self):
        github = FakeGitHub()
        seeds = [make_seed(), make_seed(number=43, node_id="I_2", body="x")]

        with pytest.raises(ValueError, match="limit must be >= 0"):
            _run(seeds, github, limit=-1)
        assert github.calls == []

    def test_zero_limit_processes_nothing(self):
        result = _run([make_seed()], FakeGitHub(), limit=0)

        assert result.issues == []
        assert result.processed_issue_count == 0

    def test_embedding_failure_aborts_the_run(self):
        class _Broken:
            def embed_texts(self, texts):
                raise ConnectionError("embedding service down")

        with pytest.raises(ConnectionError):
            _run([make_seed()], FakeGitHub(), _Broken())


def _github_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/graphql":
        return httpx.Response(
            200,
            json={
                "data": {
                    "node": make_thread(
                        comments=[{"id": "IC_pr", "body": "LGTM", "author": {"login": "dave"}}]
                    )
                }
            },
        )
    if path == "/repos/acme/widgets/issues/42":
        return httpx.Response(
            200,
            json={
                "number": 42,
                "title": "Issue 42",
                "body": "Fix the bug",
                "html_url": "https://github.com/acme/widgets/issues/42",
                "state": "open",
            },
        )
    if path == "/repos/acme/widgets/issues/42/comments":
        return httpx.Response(200, json=[])
    if path == "/repos/acme/widgets/pulls":
        return httpx.Response(200, json=[make_pull_request(7, "Resolves #42", "PR_7")])
    if path.startswith("/users/"):
        login = path.rsplit("/", 1)[-1]
        ids = {"alice": 101, "bob": 202}
        if login in ids:
            return httpx.Response(200, json={"login": login, "id": ids[login]})
        return httpx.Response(404, json={"message": "Not Found"})
    return httpx.Response(404, json={"message": f"unexpected {path}"})


def _voyage_handler(request: httpx.Request) -> httpx.Response:
    texts = json.loads(request.content)["input"]
    return httpx.Response(
        200,
        json={"data": [{"index": i, "embedding": [0.5, float(i)]} for i in range(len(texts))]},
    )


def test_end_to_end_with_http_clients_writes_both_tables(tmp_path: Path):
    github = GitHubClient(token="t", transport=httpx.MockTransport(_github_handler))
    embedding_client = VoyageEmbeddingClient(
        api_key="k",
        model="voyage-large-2-instruct",
        transport=httpx.MockTransport(_voyage_handler),
    )

    result = run_pipeline(
        [make_seed()],
        github=github,
        embedding_client=embedding_client,
        clock=lambda: FIXED_NOW,
    )
    written = save_tables(
        issues=result.issues,
        comments=result.comments,
        issues_path=tmp_path / "issues_data.csv",
        comments_path=tmp_path / "comments_data.csv",
    )

    issues = _read_csv(written["issues"])
    comments = _read_csv(written["comments"])

    assert len(issues) == 1
    assert issues[0]["id"] == "I_1"
    assert issues[0]["author_id"] == "101"
    assert issues[0]["created_at"] == "2025-03-01T12:00:00.000Z"
    assert parse_embedding(issues[0]["embedding"]) == [0.5, 0.0]
    assert json.loads(issues[0]["payload"])["kind"] == "issue"

    assert [row["id"] for row in comments] == ["PR_7", "IC_pr"]
    assert {row["issue_id"] for row in comments} == {"I_1"}
    by_id = {row["id"]: row for row in comments}
    assert by_id["PR_7"]["author_id"] == "202"
    assert by_id["IC_pr"]["author_id"] == "-1"
    payload = json.loads(by_id["IC_pr"]["payload"])
    assert payload["pull_request"] == {
        "number": 7,
        "url": "https://github.com/acme/widgets/pull/7",
    }
