# schemas/plan_schemas.py
"""
Pydantic v2 schemas for the plan assistant
Covers plans, analysis results, conversation turns and retrieval hits
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# Enums
# ============================================

class PlanStatus(str, Enum):
    DRAFT = "DRAFT"
    ANALYZING = "ANALYZING"
    ANALYZED = "ANALYZED"


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# ============================================
# Plan & Analysis
# ============================================

class DimensionResult(BaseModel):
    """One entry of the detailed analysis"""
    model_config = ConfigDict(populate_by_name=True)

    dimension_name: str = Field(..., alias="dimensionName", min_length=1)
    score: Optional[float] = Field(None, ge=0, le=10)
    evaluation: str = Field(..., min_length=1)


class AnalysisResult(BaseModel):
    """Validated output of the plan analysis contract"""
    model_config = ConfigDict(populate_by_name=True)

    feasibility_score: float = Field(..., alias="feasibilityScore", ge=0, le=10)
    reasonableness_score: float = Field(..., alias="reasonablenessScore", ge=0, le=10)
    overall_suggestions: str = Field(..., alias="overallSuggestions", min_length=1)
    detailed_analysis: List[DimensionResult] = Field(..., alias="detailedAnalysis", min_length=7)


class Plan(BaseModel):
    """A travel plan record as held by the plan store"""
    id: str
    title: str
    content: Optional[str] = None
    status: PlanStatus = PlanStatus.DRAFT
    owner_id: str

    # Analysis output (all set together when ANALYZED)
    feasibility_score: Optional[float] = None
    reasonableness_score: Optional[float] = None
    suggestions: Optional[str] = None
    analysis_details: Optional[List[DimensionResult]] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_analyzed(self) -> bool:
        return (
            self.status == PlanStatus.ANALYZED
            and self.feasibility_score is not None
            and self.reasonableness_score is not None
            and self.suggestions is not None
            and self.analysis_details is not None
        )


# ============================================
# Conversation
# ============================================

class ChatMessage(BaseModel):
    """A role/content pair submitted by the caller"""
    role: TurnRole
    content: str = Field(..., min_length=1)


class ConversationTurn(BaseModel):
    """A persisted, immutable conversation turn"""
    model_config = ConfigDict(frozen=True)

    id: str
    plan_id: str
    user_id: Optional[str] = None
    role: TurnRole
    content: str = Field(..., min_length=1)
    seq: int
    created_at: datetime


# ============================================
# Retrieval
# ============================================

class KnowledgeDocument(BaseModel):
    """A document stored in the vector index"""
    id: str
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RetrievedDocument(BaseModel):
    """A single vector index hit"""
    id: str
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    distance: float


class RagContext(BaseModel):
    """Outcome of best-effort retrieval for one chat turn"""
    documents: List[RetrievedDocument] = Field(default_factory=list)
    message: str
    failed: bool = False

    @property
    def has_documents(self) -> bool:
        return bool(self.documents)


class ChatReply(BaseModel):
    """Returned to the caller after a successful chat exchange"""
    reply: str
    turn: ConversationTurn
    context_documents: List[RetrievedDocument] = Field(default_factory=list)
