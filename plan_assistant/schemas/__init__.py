# schemas/__init__.py
"""
Pydantic Schemas Package

Contains all Pydantic v2 models for:
- Plans and analysis results
- Conversation turns
- Retrieval hits and RAG context
"""

from .plan_schemas import (
    # Enums
    PlanStatus, TurnRole,
    # Plan & Analysis
    DimensionResult, AnalysisResult, Plan,
    # Conversation
    ChatMessage, ConversationTurn, ChatReply,
    # Retrieval
    KnowledgeDocument, RetrievedDocument, RagContext
)

__all__ = [
    # Enums
    "PlanStatus", "TurnRole",
    # Plan & Analysis
    "DimensionResult", "AnalysisResult", "Plan",
    # Conversation
    "ChatMessage", "ConversationTurn", "ChatReply",
    # Retrieval
    "KnowledgeDocument", "RetrievedDocument", "RagContext"
]
