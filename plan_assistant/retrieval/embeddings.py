"""
Embedding Service using Ollama
Uses a local sentence-embedding model (paraphrase-multilingual, 768 dims)
"""

import asyncio
from typing import Any, Callable, List, Optional, Sequence

import numpy as np
import ollama
from loguru import logger

from ..config import settings
from ..errors import DimensionMismatch, EmbeddingUnavailable


class EmbeddingService:
    """
    Ollama-based embedding service for knowledge retrieval

    Features:
    - Local embedding model (mean-pooled sentence embeddings)
    - Vectors are L2-normalized, so cosine similarity is a dot product
    - Lazy, single-flight initialization shared by concurrent callers

    Usage:
        embedder = EmbeddingService()
        vectors = await embedder.embed(["Day 1: temples in Kyoto"])
        # Returns: [[0.012, -0.034, ...]] (768 dimensions)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        host: Optional[str] = None,
        embedding_dim: Optional[int] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[Callable[[], Any]] = None
    ):
        """
        Args:
            model: Ollama embedding model name
            host: Ollama server URL
            embedding_dim: Expected vector length
            timeout: Seconds allowed for model load and each inference
            client_factory: Builds the Ollama client (defaults to ollama.AsyncClient)
        """
        self.model = model or settings.OLLAMA_EMBEDDING_MODEL
        self.ollama_host = host or settings.OLLAMA_HOST
        self.embedding_dim = embedding_dim or settings.OLLAMA_EMBEDDING_DIM
        self.timeout = timeout or settings.EMBEDDING_TIMEOUT
        self._client_factory = client_factory or (
            lambda: ollama.AsyncClient(host=self.ollama_host, timeout=self.timeout)
        )

        self._client: Any = None
        self._init_task: Optional[asyncio.Task] = None

    async def _initialize(self) -> Any:
        """
        Create the client and verify the model is installed
        """
        logger.info(f"Initializing embedding model: {self.model}")

        try:
            client = self._client_factory()
            await asyncio.wait_for(client.show(self.model), timeout=self.timeout)
        except Exception as e:
            logger.error(f"Failed to load embedding model '{self.model}': {e}")
            logger.error(
                f"Make sure Ollama is running and the model is installed: "
                f"ollama pull {self.model}"
            )
            raise EmbeddingUnavailable(detail=str(e)) from e

        logger.info(
            f"Embedding Service initialized: {self.model} "
            f"({self.embedding_dim} dimensions)"
        )
        return client

    async def _ensure_client(self) -> Any:
        """Return the shared client, initializing it at most once at a time"""
        if self._client is not None:
            return self._client

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        task = self._init_task

        try:
            client = await asyncio.shield(task)
        except Exception:
            # Failed initialization is forgotten so a later call can retry
            if self._init_task is task:
                self._init_task = None
            raise

        self._client = client
        return client

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate normalized embeddings for a batch of texts

        Args:
            texts: Strings to embed

        Returns:
            List[List[float]]: One unit-length vector per input text

        Raises:
            EmbeddingUnavailable: If the model cannot be loaded or inference fails
            DimensionMismatch: If the model returns vectors of an unexpected length
        """
        texts = list(texts)
        if not texts:
            return []

        client = await self._ensure_client()

        try:
            response = await asyncio.wait_for(
                client.embed(model=self.model, input=texts),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Embedding timed out after {self.timeout}s for {len(texts)} text(s)")
            raise EmbeddingUnavailable(detail="timeout") from e
        except Exception as e:
            logger.error(f"Failed to generate embeddings: {e}")
            raise EmbeddingUnavailable(detail=str(e)) from e

        try:
            embeddings = list(response["embeddings"])
        except (KeyError, TypeError) as e:
            logger.error(f"Unexpected embedding response: {str(response)[:200]}")
            raise EmbeddingUnavailable(detail="unexpected embedding response") from e

        if len(embeddings) != len(texts):
            logger.error(
                f"Embedding count mismatch: got {len(embeddings)} for {len(texts)} text(s)"
            )
            raise EmbeddingUnavailable(detail="embedding count mismatch")

        try:
            vectors = np.asarray(embeddings, dtype=np.float32)
        except (TypeError, ValueError) as e:
            # ragged output, vectors of different lengths
            raise EmbeddingUnavailable(detail=str(e)) from e

        if vectors.ndim != 2 or vectors.shape[1] != self.embedding_dim:
            actual = vectors.shape[-1] if vectors.ndim else 0
            raise DimensionMismatch(self.embedding_dim, int(actual))

        # Re-normalize so the unit-length guarantee does not depend on the model
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        vectors = vectors / norms

        logger.debug(f"Generated {len(texts)} embedding(s) ({self.embedding_dim} dims)")

        return vectors.tolist()

    async def embed_query(self, query: str) -> List[float]:
        """
        Generate the embedding for a single query string

        Example:
            >>> embedding = await embedder.embed_query("Is day 2 too packed?")
            >>> len(embedding)
            768
        """
        return (await self.embed([query]))[0]

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    @property
    def model_info(self) -> dict:
        """
        Get model information

        Returns:
            dict: Model metadata
        """
        return {
            "model": self.model,
            "embedding_dim": self.embedding_dim,
            "ollama_host": self.ollama_host
        }

    async def close(self):
        """Release the model client; the next call initializes again"""
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        self._init_task = None
        self._client = None
        logger.info("Embedding Service closed")
