"""
Service wiring for the plan assistant

Builds every component from one Settings object and owns the shared
resources (Redis connection, model clients) so they are closed exactly once.
"""

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
from loguru import logger

from .agents import AnalysisOrchestrator, PlanAssistant
from .config import Settings, settings as default_settings
from .interfaces import (
    ConversationStore,
    IdentityProvider,
    PlanAccess,
    PlanStore,
    create_redis_client,
)
from .llm import LLMClient
from .retrieval import EmbeddingService, KnowledgeBase, VectorIndex


@dataclass
class PlanAssistantServices:
    """All long-lived components of the plan assistant"""

    plan_store: PlanStore
    conversation_store: ConversationStore
    embedding_service: EmbeddingService
    vector_index: VectorIndex
    knowledge_base: KnowledgeBase
    llm_client: LLMClient
    orchestrator: AnalysisOrchestrator
    assistant: PlanAssistant
    redis_client: Optional[redis.Redis] = None

    def access_for(self, identity: IdentityProvider) -> PlanAccess:
        """Ownership capability for the caller resolved by identity"""
        return PlanAccess.for_identity(self.plan_store, identity)

    async def close(self):
        """Release clients; the Redis connection is shared so it is closed here only"""
        await self.llm_client.close()
        await self.embedding_service.close()
        await self.vector_index.close()
        if self.redis_client is not None:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")
        logger.info("Plan assistant services stopped")


def create_services(config: Optional[Settings] = None) -> PlanAssistantServices:
    """
    Build the plan assistant from settings

    STORE_BACKEND selects Redis or in-memory stores. Nothing connects to the
    model, the embedding server or the vector store until first use.
    """
    config = config or default_settings
    config.warn_if_unconfigured()

    backend = config.STORE_BACKEND.lower()
    if backend == "redis":
        redis_client = create_redis_client(config.redis_url)
    elif backend == "memory":
        redis_client = None
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND}")

    plan_store = PlanStore(redis_client)
    conversation_store = ConversationStore(redis_client)

    embedding_service = EmbeddingService(
        model=config.OLLAMA_EMBEDDING_MODEL,
        host=config.OLLAMA_HOST,
        embedding_dim=config.OLLAMA_EMBEDDING_DIM,
        timeout=config.EMBEDDING_TIMEOUT
    )
    vector_index = VectorIndex(
        collection_name=config.KNOWLEDGE_COLLECTION,
        dimension=config.OLLAMA_EMBEDDING_DIM,
        embedding_model=config.OLLAMA_EMBEDDING_MODEL,
        timeout=config.RETRIEVAL_TIMEOUT
    )
    knowledge_base = KnowledgeBase(embedding_service, vector_index)

    llm_client = LLMClient(
        api_key=config.OPENAI_API_KEY,
        model=config.OPENAI_MODEL,
        base_url=config.openai_base_url,
        timeout=config.LLM_TIMEOUT
    )

    orchestrator = AnalysisOrchestrator(
        plan_store,
        llm_client,
        temperature=config.ANALYSIS_TEMPERATURE,
        short_content_threshold=config.SHORT_CONTENT_THRESHOLD
    )
    assistant = PlanAssistant(
        plan_store,
        conversation_store,
        llm_client,
        knowledge_base,
        top_k=config.RAG_TOP_K,
        history_window=config.CHAT_HISTORY_WINDOW,
        temperature=config.CHAT_TEMPERATURE,
        retrieval_timeout=config.RETRIEVAL_TIMEOUT
    )

    logger.info(f"Plan assistant services ready (store backend: {backend})")
    return PlanAssistantServices(
        plan_store=plan_store,
        conversation_store=conversation_store,
        embedding_service=embedding_service,
        vector_index=vector_index,
        knowledge_base=knowledge_base,
        llm_client=llm_client,
        orchestrator=orchestrator,
        assistant=assistant,
        redis_client=redis_client
    )
