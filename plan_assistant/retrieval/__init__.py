"""
Retrieval Module
Ollama embeddings + ChromaDB vector index for the travel knowledge base
"""

from .embeddings import EmbeddingService
from .vector_index import VectorIndex, build_chroma_client
from .knowledge_base import KnowledgeBase

__all__ = [
    "EmbeddingService",
    "VectorIndex",
    "build_chroma_client",
    "KnowledgeBase"
]
