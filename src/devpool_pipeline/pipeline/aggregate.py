"""Enrich conversation items and route them into deduplicated issue/comment tables."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from devpool_pipeline.models import GitHubClient, TextEmbeddingClient
from devpool_pipeline.pipeline.embedding import extract_embeddings
from devpool_pipeline.schemas import ConversationItem, EnrichedEntry
from devpool_pipeline.text import clean_text, normalize_markdown

logger = logging.getLogger(__name__)

COMMENT_TYPE_MARKERS: tuple[str, ...] = ("PR", "IC")


def utc_now() -> datetime:
    return datetime.now(UTC)


def type_marker(node_id: str) -> str:
    """Prefix of a GitHub node id naming its type, e.g. `IC` in `IC_kwDOA...`.

    Legacy ids have no prefix, so the whole id is returned.
    """

    prefix, sep, _ = node_id.partition("_")
    return prefix if sep else node_id


def is_comment_id(node_id: str) -> bool:
    """Pull requests, PR review comments and issue comments belong in the comments table."""

    marker = type_marker(node_id)
    return any(token in marker for token in COMMENT_TYPE_MARKERS)


def enrich_item(
    item: ConversationItem,
    *,
    github: GitHubClient,
    embedding_client: TextEmbeddingClient,
    drop_boilerplate: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> EnrichedEntry:
    cleaned = normalize_markdown(item.text, drop_boilerplate=drop_boilerplate)
    embedding = extract_embeddings(cleaned, embedding_client)
    author_id = github.get_author_id(item.user_login)
    now = clock()
    return EnrichedEntry(
        id=item.id,
        issue_id=item.issue_id,
        plaintext=clean_text(cleaned),
        markdown=clean_text(item.text),
        embedding=embedding,
        author_id=author_id,
        created_at=now,
        modified_at=now,
        payload=item.payload,
    )


@dataclass
class EntryAggregator:
    """Accumulates entries per table; the first entry seen for an id wins."""

    issues: list[EnrichedEntry] = field(default_factory=list)
    comments: list[EnrichedEntry] = field(default_factory=list)
    _issue_ids: set[str] = field(default_factory=set, repr=False)
    _comment_ids: set[str] = field(default_factory=set, repr=False)
    duplicate_count: int = 0

    def _table(self, node_id: str) -> tuple[list[EnrichedEntry], set[str]]:
        if is_comment_id(node_id):
            return self.comments, self._comment_ids
        return self.issues, self._issue_ids

    def has_seen(self, node_id: str) -> bool:
        _, seen = self._table(node_id)
        return node_id in seen

    def add(self, entry: EnrichedEntry) -> bool:
        """Route an entry to its table; return False when it was a duplicate."""

        rows, seen = self._table(entry.id)
        if entry.id in seen:
            self.duplicate_count += 1
            logger.debug("Skipping duplicate entry %s.", entry.id)
            return False
        rows.append(entry)
        seen.add(entry.id)
        return True
