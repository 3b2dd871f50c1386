"""Embedding helpers for conversation items."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from devpool_pipeline.models import TextEmbeddingClient

logger = logging.getLogger(__name__)


class EmbeddingFormatError(ValueError):
    """Raised when a stored embedding literal cannot be parsed."""


def extract_embeddings(text: str, embedding_client: TextEmbeddingClient) -> list[float]:
    """Embed one text and return its vector, or an empty list when none came back.

    Client errors are not caught here.
    """

    if not text:
        return []
    vectors = embedding_client.embed_texts([text])
    if not vectors:
        logger.warning("Embedding service returned no vectors for a %d-char text.", len(text))
        return []
    return list(vectors[0])


def format_embedding(vector: Sequence[float]) -> str:
    """Render a vector as a bracketed, comma-separated literal."""

    return f"[{', '.join(str(value) for value in vector)}]"


def parse_embedding(literal: str) -> list[float]:
    """Parse a literal produced by `format_embedding` back into floats."""

    raw = literal.strip()
    if not (raw.startswith("[") and raw.endswith("]")):
        raise EmbeddingFormatError(f"Embedding literal must be bracketed: {literal[:40]!r}")
    inner = raw[1:-1].strip()
    if not inner:
        return []
    try:
        return [float(part) for part in inner.split(",")]
    except ValueError as exc:
        raise EmbeddingFormatError(f"Embedding literal has a non-numeric value: {exc}") from exc
