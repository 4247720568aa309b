# agents/__init__.py
"""
Agents Package

Contains the two plan workflows:
- AnalysisOrchestrator: Scores a travel plan and drives its status machine
- PlanAssistant: Multi-turn, knowledge-grounded chat about a plan
"""

from .analysis_orchestrator import AnalysisOrchestrator
from .plan_assistant import PlanAssistant

__all__ = [
    "AnalysisOrchestrator",
    "PlanAssistant"
]
