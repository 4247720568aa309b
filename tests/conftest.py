"""Shared fixtures and fakes for plan assistant tests

No test talks to a real model, Ollama, ChromaDB or Redis: every external
dependency is replaced by a small in-process fake.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import numpy as np
import pytest
import pytest_asyncio

from plan_assistant.interfaces import ConversationStore, PlanAccess, PlanStore
from plan_assistant.llm.client import to_message
from plan_assistant.llm.prompts import ANALYSIS_DIMENSIONS
from plan_assistant.retrieval import EmbeddingService, KnowledgeBase, VectorIndex
from plan_assistant.schemas import Plan

DIM = 4
OWNER = "user-1"
OTHER_USER = "user-2"


# ====================
# LLM
# ====================


class FakeLLM:
    """Scripted LLM: returns (or raises) queued responses and records every call."""

    def __init__(self, responses: Optional[List[Any]] = None, has_credentials: bool = True):
        self.responses = list(responses or [])
        self.has_credentials = has_credentials
        self.calls: List[Dict[str, Any]] = []
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()

    async def complete(self, system_prompt, messages, temperature):
        return await self.chat([("system", system_prompt)] + list(messages), temperature)

    async def chat(self, messages, temperature):
        self.calls.append({
            "messages": [to_message(m) for m in messages],
            "temperature": temperature
        })
        self.started.set()
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()

        response = self.responses.pop(0) if self.responses else "Sounds like a good plan."
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self):
        pass


def analysis_payload(**overrides) -> Dict[str, Any]:
    """A valid analysis object covering every required dimension"""
    payload = {
        "feasibilityScore": 7,
        "reasonablenessScore": 6.5,
        "overallSuggestions": "Spend the afternoon of day 2 at the Gion district instead of rushing to Nara.",
        "detailedAnalysis": [
            {
                "dimensionName": d.name,
                "score": 6 if d.scorable else None,
                "evaluation": f"Evaluation of {d.name.lower()}."
            }
            for d in ANALYSIS_DIMENSIONS
        ]
    }
    payload.update(overrides)
    return payload


def analysis_json(**overrides) -> str:
    return json.dumps(analysis_payload(**overrides))


# ====================
# Ollama
# ====================


class FakeOllamaClient:
    """Stands in for ollama.AsyncClient: show() and embed() only."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, dim: int = DIM):
        self.vectors = vectors or {}
        self.dim = dim
        self.show_calls = 0
        self.embed_calls: List[List[str]] = []
        self.fail_show: Optional[Exception] = None
        self.fail_embed: Optional[Exception] = None
        self.override: Optional[List[List[float]]] = None
        self.raw_response: Any = None

    async def show(self, model: str):
        self.show_calls += 1
        await asyncio.sleep(0)
        if self.fail_show is not None:
            raise self.fail_show
        return {"model": model}

    def vector_for(self, text: str) -> List[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        # Unknown text points along the last axis
        return [0.0] * (self.dim - 1) + [2.0]

    async def embed(self, model: str, input: List[str]):
        self.embed_calls.append(list(input))
        if self.fail_embed is not None:
            raise self.fail_embed
        if self.raw_response is not None:
            return self.raw_response
        if self.override is not None:
            return {"embeddings": self.override}
        return {"embeddings": [self.vector_for(t) for t in input]}


class CountingFactory:
    """Client factory that counts how many clients it built"""

    def __init__(self, client: Any):
        self.client = client
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.client


# ====================
# ChromaDB
# ====================


def _matches(metadata: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(_matches(metadata, clause) for clause in where["$and"])
    return all(metadata.get(key) == value for key, value in where.items())


class FakeCollection:
    """In-memory Chroma collection with cosine distance; returns hits in reverse insertion order."""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        self.name = name
        self.metadata = metadata
        self.records: Dict[str, Dict[str, Any]] = {}
        self.query_calls: List[Dict[str, Any]] = []

    def upsert(self, *, ids, embeddings, documents, metadatas):
        for i, record_id in enumerate(ids):
            self.records[record_id] = {
                "embedding": np.asarray(embeddings[i], dtype=float),
                "document": documents[i],
                "metadata": dict(metadatas[i])
            }

    def query(self, *, query_embeddings, n_results, where, include):
        self.query_calls.append({"n_results": n_results, "where": where, "include": include})
        query = np.asarray(query_embeddings[0], dtype=float)

        scored = []
        # Chroma does not order ties; newest first here so the index has to
        for record_id, record in reversed(list(self.records.items())):
            if not _matches(record["metadata"], where):
                continue
            vector = record["embedding"]
            similarity = float(np.dot(query, vector) / (np.linalg.norm(query) * np.linalg.norm(vector)))
            scored.append((1.0 - similarity, record_id, record))

        scored.sort(key=lambda item: item[0])
        top = list(reversed(scored[:n_results]))
        return {
            "ids": [[item[1] for item in top]],
            "documents": [[item[2]["document"] for item in top]],
            "metadatas": [[dict(item[2]["metadata"]) for item in top]],
            "distances": [[item[0] for item in top]]
        }

    def count(self):
        return len(self.records)

    def delete(self, *, ids):
        for record_id in ids:
            self.records.pop(record_id, None)


class FakeChromaClient:
    """Stands in for chromadb.HttpClient / PersistentClient."""

    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.deleted: List[str] = []

    def get_or_create_collection(self, *, name: str, metadata: Dict[str, Any]):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, dict(metadata))
        return self.collections[name]

    def delete_collection(self, *, name: str):
        self.deleted.append(name)
        self.collections.pop(name, None)


# ====================
# Fixtures
# ====================


@pytest.fixture
def plan_store() -> PlanStore:
    return PlanStore()


@pytest.fixture
def conversation_store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def access(plan_store) -> PlanAccess:
    return PlanAccess(plan_store, OWNER)


@pytest.fixture
def other_access(plan_store) -> PlanAccess:
    return PlanAccess(plan_store, OTHER_USER)


@pytest_asyncio.fixture
async def plan(plan_store) -> Plan:
    plan = Plan(
        id="plan-1",
        title="Kyoto in 3 days",
        content=(
            "Day 1 Fushimi Inari and Gion. Day 2 Arashiyama bamboo grove and a day trip "
            "to Nara. Day 3 Kinkaku-ji, Nishiki market, evening train back to Tokyo."
        ),
        owner_id=OWNER
    )
    return await plan_store.save(plan)


@pytest.fixture
def ollama_client() -> FakeOllamaClient:
    return FakeOllamaClient()


@pytest.fixture
def chroma_client() -> FakeChromaClient:
    return FakeChromaClient()


@pytest.fixture
def embedding_service(ollama_client) -> EmbeddingService:
    return EmbeddingService(
        model="test-embed",
        host="http://ollama.test",
        embedding_dim=DIM,
        timeout=5,
        client_factory=CountingFactory(ollama_client)
    )


@pytest.fixture
def vector_index(chroma_client) -> VectorIndex:
    return VectorIndex(
        collection_name="test_knowledge",
        dimension=DIM,
        embedding_model="test-embed",
        timeout=5,
        client_factory=lambda: chroma_client
    )


@pytest.fixture
def knowledge_base(embedding_service, vector_index) -> KnowledgeBase:
    return KnowledgeBase(embedding_service, vector_index)
