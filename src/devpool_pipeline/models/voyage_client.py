"""Voyage AI embeddings client wrapper."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from devpool_pipeline.models.retry import build_retryer

logger = logging.getLogger(__name__)


class TextEmbeddingClient(Protocol):
    """Protocol for text embedding clients."""

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Return the embedding vectors the service produced for the inputs."""


class VoyageEmbeddingClient:
    """Thin client around Voyage AI's embeddings endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://api.voyageai.com/v1/embeddings",
        timeout_seconds: float = 60.0,
        max_retries: int = 1,
        backoff_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._model = model
        self._base_url = base_url
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._http = httpx.Client(
            timeout=timeout_seconds,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    def close(self) -> None:
        """Close the underlying HTTP client."""

        self._http.close()

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts using Voyage.

        A response without a usable `data` list yields no vectors rather than an error.
        """

        if not texts:
            return []

        response: httpx.Response | None = None
        retryer = build_retryer(
            max_retries=self._max_retries,
            backoff_seconds=self._backoff_seconds,
        )
        for attempt in retryer:
            with attempt:
                response = self._http.post(
                    self._base_url,
                    json={
                        "model": self._model,
                        "input": texts,
                    },
                )
                response.raise_for_status()

        if response is None:
            raise ValueError("Voyage embeddings response missing after retries.")

        payload = response.json()
        if not isinstance(payload, dict):
            logger.warning("Unexpected embeddings response type: %s", type(payload).__name__)
            return []

        data = payload.get("data")
        if not isinstance(data, list):
            logger.warning("Embeddings response missing list field 'data'.")
            return []

        indexed: list[tuple[int, list[float]]] = []
        for position, item in enumerate(data):
            if not isinstance(item, dict):
                continue
            embedding = item.get("embedding")
            if not isinstance(embedding, list):
                continue
            index = item.get("index")
            indexed.append(
                (index if isinstance(index, int) else position, [float(v) for v in embedding])
            )

        indexed.sort(key=lambda pair: pair[0])
        return [vector for _, vector in indexed]
