"""End-to-end run: seed issues in, deduplicated issue and comment tables out."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from devpool_pipeline.models import GitHubClient, TextEmbeddingClient
from devpool_pipeline.pipeline.aggregate import EntryAggregator, enrich_item, utc_now
from devpool_pipeline.pipeline.fetch import IssueFetcher
from devpool_pipeline.schemas import EnrichedEntry, SeedIssue

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    issues: list[EnrichedEntry] = field(default_factory=list)
    comments: list[EnrichedEntry] = field(default_factory=list)
    processed_issue_count: int = 0
    skipped_issue_count: int = 0
    duplicate_count: int = 0


def run_pipeline(
    seeds: Sequence[SeedIssue],
    *,
    github: GitHubClient,
    embedding_client: TextEmbeddingClient,
    drop_boilerplate: bool = False,
    max_pages: int = 10,
    limit: int | None = None,
    progress_callback: Callable[[int, int, str], None] | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> PipelineResult:
    """Fetch, enrich and deduplicate every seed issue sequentially.

    Seeds without a body are skipped. Any other failure propagates and nothing
    accumulated so far is returned.
    """

    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}.")

    selected = list(seeds[:limit]) if limit is not None else list(seeds)
    fetcher = IssueFetcher(github, max_pages=max_pages)
    aggregator = EntryAggregator()
    result = PipelineResult()
    total = len(selected)

    for index, seed in enumerate(selected, start=1):
        logger.info("Processing issue %d...", seed.number)
        if not seed.body:
            logger.info("Skipping issue %d as it has no body.", seed.number)
            result.skipped_issue_count += 1
            if progress_callback is not None:
                progress_callback(index, total, f"skipped #{seed.number}")
            continue

        items = fetcher.fetch_all_related_items(seed)
        for item in items:
            if aggregator.has_seen(item.id):
                aggregator.duplicate_count += 1
                logger.debug("Already stored %s, not re-embedding.", item.id)
                continue
            entry = enrich_item(
                item,
                github=github,
                embedding_client=embedding_client,
                drop_boilerplate=drop_boilerplate,
                clock=clock,
            )
            aggregator.add(entry)

        result.processed_issue_count += 1
        if progress_callback is not None:
            progress_callback(index, total, f"#{seed.number}: {len(items)} item(s)")

    result.issues = aggregator.issues
    result.comments = aggregator.comments
    result.duplicate_count = aggregator.duplicate_count
    logger.info(
        "Collected %d issue row(s) and %d comment row(s) from %d issue(s).",
        len(result.issues),
        len(result.comments),
        result.processed_issue_count,
    )
    return result
