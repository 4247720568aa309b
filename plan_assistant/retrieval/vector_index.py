"""
Vector Index using ChromaDB
Stores (id, vector, text, metadata) records and answers cosine top-k queries
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import chromadb
from chromadb.config import Settings as ChromaSettings
from loguru import logger

from ..config import settings
from ..errors import DimensionMismatch, ExternalServiceError
from ..schemas import RetrievedDocument

# Reserved metadata keys written alongside every record
SEQ_KEY = "_seq"
MODEL_KEY = "_embedding_model"

# Extra candidates fetched so equal-distance hits can be ordered by seq before the cut to k
QUERY_OVERFETCH = 8


def build_chroma_client(mode: Optional[str] = None) -> Any:
    """
    Create a ChromaDB client for the configured deployment

    Args:
        mode: "http" (remote server), "persistent" (local directory) or "memory"
    """
    mode = (mode or settings.CHROMA_MODE).lower()
    chroma_settings = ChromaSettings(anonymized_telemetry=False)

    if mode == "http":
        return chromadb.HttpClient(
            host=settings.CHROMA_HOST,
            port=settings.CHROMA_PORT,
            settings=chroma_settings
        )
    if mode == "persistent":
        return chromadb.PersistentClient(path=settings.CHROMA_PATH, settings=chroma_settings)
    if mode == "memory":
        return chromadb.EphemeralClient(settings=chroma_settings)

    raise ValueError(f"Unknown CHROMA_MODE: {mode}")


def build_where(filter: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Translate a metadata equality filter into a Chroma where clause

    Example:
        >>> build_where({"city": "Kyoto", "type": "tip"})
        {'$and': [{'city': 'Kyoto'}, {'type': 'tip'}]}
    """
    if not filter:
        return None
    clauses = [{key: value} for key, value in filter.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class VectorIndex:
    """
    Cosine-similarity index over a single ChromaDB collection

    Features:
    - Collection is created lazily, once, with get-or-create semantics
    - Records carry the embedding model id; a collection built by another
      model is dropped and recreated on first use
    - Query results are ordered by ascending distance, ties by insertion order

    Usage:
        index = VectorIndex()
        await index.upsert(["doc1"], [vector], ["Kyoto temples open at 8am"])
        hits = await index.query(query_vector, k=3)
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        dimension: Optional[int] = None,
        embedding_model: Optional[str] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[Callable[[], Any]] = None
    ):
        """
        Args:
            collection_name: Chroma collection name
            dimension: Required vector length
            embedding_model: Model id pinned to stored vectors
            timeout: Seconds allowed for each index call
            client_factory: Builds the Chroma client (defaults to build_chroma_client)
        """
        self.collection_name = collection_name or settings.KNOWLEDGE_COLLECTION
        self.dimension = dimension or settings.OLLAMA_EMBEDDING_DIM
        self.embedding_model = embedding_model or settings.OLLAMA_EMBEDDING_MODEL
        self.timeout = timeout or settings.RETRIEVAL_TIMEOUT
        self._client_factory = client_factory or build_chroma_client

        self._client: Any = None
        self._collection: Any = None
        self._collection_lock = asyncio.Lock()
        self._last_seq = 0

    def _open_collection(self) -> Any:
        """Get or create the collection (blocking; runs in a worker thread)"""
        if self._client is None:
            self._client = self._client_factory()
            logger.info("ChromaDB client initialized")

        collection_metadata = {"hnsw:space": "cosine", MODEL_KEY: self.embedding_model}
        collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata=collection_metadata
        )

        stored_model = (collection.metadata or {}).get(MODEL_KEY)
        if stored_model and stored_model != self.embedding_model:
            logger.warning(
                f"Collection '{self.collection_name}' was built with '{stored_model}', "
                f"now using '{self.embedding_model}'. Dropping stale vectors."
            )
            self._client.delete_collection(name=self.collection_name)
            collection = self._client.get_or_create_collection(
                name=self.collection_name,
                metadata=collection_metadata
            )

        return collection

    async def _run(self, operation: str, func: Callable, *args, **kwargs) -> Any:
        """Run a blocking Chroma call in a thread, bounded by the timeout"""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Vector index {operation} timed out after {self.timeout}s")
            raise ExternalServiceError(detail=f"{operation} timeout") from e
        except (DimensionMismatch, ExternalServiceError):
            raise
        except Exception as e:
            logger.error(f"Vector index {operation} failed: {e}")
            raise ExternalServiceError(detail=str(e)) from e

    async def get_collection(self) -> Any:
        """
        Gets the collection, creating it on first use
        """
        if self._collection is not None:
            return self._collection

        async with self._collection_lock:
            if self._collection is None:
                logger.info(f"Attempting to get or create collection: {self.collection_name}")
                self._collection = await self._run("get_or_create", self._open_collection)
                logger.info(f"Collection '{self.collection_name}' ready.")
        return self._collection

    def _next_seq(self) -> int:
        seq = max(time.time_ns(), self._last_seq + 1)
        self._last_seq = seq
        return seq

    async def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        texts: Sequence[str],
        metadatas: Optional[Sequence[Optional[Dict[str, Any]]]] = None
    ):
        """
        Insert or replace records

        Args:
            ids: Unique record ids
            vectors: Normalized embeddings, one per id
            texts: Document texts, one per id
            metadatas: Optional metadata mappings, one per id

        Raises:
            ValueError: If the sequences differ in length
            DimensionMismatch: If any vector length differs from the index dimension
        """
        if not (len(ids) == len(vectors) == len(texts)):
            raise ValueError("ids, vectors and texts must have the same length")
        if metadatas is not None and len(metadatas) != len(ids):
            raise ValueError("metadatas must have the same length as ids if provided")
        if not ids:
            logger.debug("No records to upsert")
            return

        for vector in vectors:
            if len(vector) != self.dimension:
                raise DimensionMismatch(self.dimension, len(vector))

        records_metadata = []
        for i in range(len(ids)):
            metadata = dict(metadatas[i] or {}) if metadatas is not None else {}
            metadata[SEQ_KEY] = self._next_seq()
            metadata[MODEL_KEY] = self.embedding_model
            records_metadata.append(metadata)

        collection = await self.get_collection()
        await self._run(
            "upsert",
            collection.upsert,
            ids=list(ids),
            embeddings=[list(map(float, v)) for v in vectors],
            documents=list(texts),
            metadatas=records_metadata
        )
        logger.info(f"Upserted {len(ids)} record(s) into '{self.collection_name}'")

    async def query(
        self,
        query_vector: Sequence[float],
        k: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[RetrievedDocument]:
        """
        Return at most k records nearest to query_vector

        Args:
            query_vector: Normalized query embedding
            k: Maximum number of results
            filter: Optional metadata equality filter

        Returns:
            List[RetrievedDocument]: Ordered by ascending cosine distance
        """
        if len(query_vector) != self.dimension:
            raise DimensionMismatch(self.dimension, len(query_vector))
        if k <= 0:
            return []

        collection = await self.get_collection()
        results = await self._run(
            "query",
            collection.query,
            query_embeddings=[list(map(float, query_vector))],
            n_results=k + QUERY_OVERFETCH,
            where=build_where(filter),
            include=["documents", "metadatas", "distances"]
        )

        ids = results.get("ids") or []
        if not ids or not ids[0]:
            return []

        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits = []
        for i, record_id in enumerate(ids[0]):
            metadata = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            seq = metadata.pop(SEQ_KEY, 0)
            metadata.pop(MODEL_KEY, None)
            hits.append((
                float(distances[i]),
                seq,
                RetrievedDocument(
                    id=record_id,
                    text=documents[i] or "",
                    metadata=metadata,
                    distance=float(distances[i])
                )
            ))

        # Stable order: distance first, then insertion sequence
        hits.sort(key=lambda hit: (hit[0], hit[1]))
        return [hit[2] for hit in hits[:k]]

    async def count(self) -> int:
        collection = await self.get_collection()
        return await self._run("count", collection.count)

    async def delete(self, ids: Sequence[str]):
        if not ids:
            return
        collection = await self.get_collection()
        await self._run("delete", collection.delete, ids=list(ids))
        logger.info(f"Deleted {len(ids)} record(s) from '{self.collection_name}'")

    async def close(self):
        """Drop the collection handle and client"""
        self._collection = None
        self._client = None
        logger.info("Vector index closed")
