"""
Knowledge Base
Embeds travel knowledge documents and searches them by meaning
"""

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .embeddings import EmbeddingService
from .vector_index import VectorIndex
from ..schemas import RetrievedDocument


class KnowledgeBase:
    """
    Text-level facade over the embedding service and vector index

    Usage:
        kb = KnowledgeBase(embedding_service, vector_index)
        await kb.add_documents(
            ["Kyoto temples usually open at 8am."],
            ["kyoto-temples"],
            [{"city": "Kyoto", "type": "tip"}]
        )
        hits = await kb.search("When do temples open?", k=3)
    """

    def __init__(self, embedding_service: EmbeddingService, vector_index: VectorIndex):
        self.embeddings = embedding_service
        self.index = vector_index

    async def add_documents(
        self,
        texts: Sequence[str],
        ids: Sequence[str],
        metadatas: Optional[Sequence[Optional[Dict[str, Any]]]] = None
    ) -> int:
        """
        Embed and upsert documents

        Returns:
            int: Number of documents written
        """
        if not texts:
            logger.info("No documents to add.")
            return 0
        if len(texts) != len(ids):
            raise ValueError("Documents and IDs must have the same length.")
        if metadatas is not None and len(metadatas) != len(texts):
            raise ValueError("Metadatas must have the same length as documents if provided.")

        logger.info(f"Generating embeddings for {len(texts)} documents...")
        vectors = await self.embeddings.embed(texts)
        await self.index.upsert(ids, vectors, texts, metadatas)
        return len(texts)

    async def search(
        self,
        text: str,
        k: int = 5,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[RetrievedDocument]:
        """Embed text and return the k most similar documents"""
        query_vector = await self.embeddings.embed_query(text)
        return await self.index.query(query_vector, k, filter)
