# plan_assistant/__init__.py
"""
Travel Plan Assistant Package

LLM-backed analysis and conversation for user travel plans:
- Plan Analysis (seven-dimension scoring with a guarded status machine)
- Conversational Assistant (multi-turn chat grounded in the plan)
- Knowledge Retrieval (local embeddings + vector similarity search)

User Journeys Supported:
1. Tell me if this plan works
2. Ask follow-up questions without starting over
3. Get tips from the travel knowledge base
"""

__version__ = "1.0.0"

# Package structure:
# plan_assistant/
# ├── __init__.py           <- This file
# ├── config.py             <- Configuration settings + logging
# ├── errors.py             <- Error taxonomy
# ├── services.py           <- Component wiring
# │
# ├── agents/               <- Workflows
# │   ├── analysis_orchestrator.py  <- DRAFT -> ANALYZING -> ANALYZED
# │   └── plan_assistant.py         <- RAG chat
# │
# ├── interfaces/           <- Data Stores
# │   ├── plan_store.py     <- Plans + analysis guard
# │   ├── conversation_store.py <- Ordered turns per plan
# │   ├── access.py         <- Identity + ownership
# │   └── redis_client.py   <- Shared Redis connection
# │
# ├── llm/                  <- LLM Components
# │   ├── client.py         <- Chat-completion client
# │   ├── prompts.py        <- Prompt templates
# │   ├── analysis_parser.py <- Analysis JSON validation
# │   └── messages.py       <- Message assembly
# │
# ├── retrieval/            <- Knowledge Retrieval
# │   ├── embeddings.py     <- Ollama embedding service
# │   ├── vector_index.py   <- ChromaDB index
# │   └── knowledge_base.py <- Text-level facade
# │
# └── schemas/              <- Pydantic Models
#     └── plan_schemas.py
