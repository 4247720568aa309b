# llm/__init__.py
"""
LLM Components Package

Contains LLM-facing components:
- client: OpenAI-compatible chat-completion wrapper
- prompts: Analysis and assistant prompt templates
- analysis_parser: Strict decoding and validation of analysis output
- messages: Pure chat message assembly with RAG context
"""

from .client import LLMClient
from .prompts import (
    ANALYSIS_DIMENSIONS,
    REQUIRED_DIMENSION_NAMES,
    build_analysis_prompt,
    build_assistant_system_prompt
)
from .analysis_parser import decode_output, validate_analysis, parse_analysis_output
from .messages import build_messages, build_rag_context, filter_retrieved

__all__ = [
    "LLMClient",
    "ANALYSIS_DIMENSIONS",
    "REQUIRED_DIMENSION_NAMES",
    "build_analysis_prompt",
    "build_assistant_system_prompt",
    "decode_output",
    "validate_analysis",
    "parse_analysis_output",
    "build_messages",
    "build_rag_context",
    "filter_retrieved"
]
