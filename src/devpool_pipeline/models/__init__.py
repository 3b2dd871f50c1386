"""Model and API client abstractions."""

from devpool_pipeline.models.github_client import (
    AUTHOR_ID_UNKNOWN,
    GitHubApiError,
    GitHubClient,
    RateLimitInfo,
)
from devpool_pipeline.models.voyage_client import TextEmbeddingClient, VoyageEmbeddingClient

__all__ = [
    "AUTHOR_ID_UNKNOWN",
    "GitHubApiError",
    "GitHubClient",
    "RateLimitInfo",
    "TextEmbeddingClient",
    "VoyageEmbeddingClient",
]
