"""Pipeline stage implementations."""

from devpool_pipeline.pipeline.aggregate import (
    EntryAggregator,
    enrich_item,
    is_comment_id,
    type_marker,
)
from devpool_pipeline.pipeline.embedding import (
    EmbeddingFormatError,
    extract_embeddings,
    format_embedding,
    parse_embedding,
)
from devpool_pipeline.pipeline.fetch import IssueFetcher, references_issue
from devpool_pipeline.pipeline.run_pipeline import PipelineResult, run_pipeline

__all__ = [
    "EmbeddingFormatError",
    "EntryAggregator",
    "IssueFetcher",
    "PipelineResult",
    "enrich_item",
    "extract_embeddings",
    "format_embedding",
    "is_comment_id",
    "parse_embedding",
    "references_issue",
    "run_pipeline",
    "type_marker",
]
