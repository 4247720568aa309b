# agents/analysis_orchestrator.py
"""
Plan Analysis Orchestrator

Drives the plan status machine:
    DRAFT | ANALYZED --analyze--> ANALYZING --ok--> ANALYZED
                                  ANALYZING --any failure--> DRAFT

At most one analysis per plan is in flight; the guard is the plan store's
compare-and-set. Failures never leave a plan in ANALYZING and never write
partial score fields.
"""

import asyncio
import time
from typing import Optional

from loguru import logger

from ..config import settings
from ..errors import ConfigurationError, ConflictError, PlanAssistantError
from ..interfaces.access import PlanAccess
from ..interfaces.plan_store import PlanStore
from ..llm.analysis_parser import parse_analysis_output
from ..llm.client import LLMClient
from ..llm.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from ..schemas import Plan, PlanStatus


class AnalysisOrchestrator:
    """
    Runs an LLM analysis of a travel plan and persists the validated result.

    Usage:
        orchestrator = AnalysisOrchestrator(plan_store, llm_client)
        plan = await orchestrator.analyze(plan_id, access)
        plan.status  # PlanStatus.ANALYZED
    """

    def __init__(
        self,
        plan_store: PlanStore,
        llm_client: LLMClient,
        temperature: Optional[float] = None,
        short_content_threshold: Optional[int] = None
    ):
        self.plan_store = plan_store
        self.llm = llm_client
        self.temperature = (
            settings.ANALYSIS_TEMPERATURE if temperature is None else temperature
        )
        self.short_content_threshold = (
            settings.SHORT_CONTENT_THRESHOLD
            if short_content_threshold is None else short_content_threshold
        )

    async def analyze(self, plan_id: str, access: PlanAccess) -> Plan:
        """
        Analyze a plan and return it in ANALYZED state

        Args:
            plan_id: Plan to analyze
            access: Ownership capability for the calling user

        Raises:
            NotFound, Forbidden: Before any mutation
            ConfigurationError: If no LLM credentials are configured
            ConflictError: If an analysis is already in flight
            MalformedOutput, SchemaViolation, LLMUnavailable, LLMEmptyResponse:
                After rolling the plan back to DRAFT
        """
        plan = await access.load_owned(plan_id)

        if not self.llm.has_credentials:
            logger.error(f"[{plan_id}] analyze: model API key is not configured")
            raise ConfigurationError()

        if plan.status == PlanStatus.ANALYZING:
            raise ConflictError()
        if not await self.plan_store.begin_analysis(plan_id):
            logger.warning(f"[{plan_id}] analyze: lost race, analysis already in progress")
            raise ConflictError()

        logger.info(f"[{plan_id}] analyze: status -> ANALYZING")
        start_time = time.time()

        try:
            prompt = build_analysis_prompt(plan, self.short_content_threshold)
            text = await self.llm.complete(
                ANALYSIS_SYSTEM_PROMPT,
                [("user", prompt)],
                temperature=self.temperature
            )
            result = parse_analysis_output(text)
            analyzed = await self.plan_store.update_analysis(plan_id, result)
        except (Exception, asyncio.CancelledError) as e:
            await self._rollback(plan_id, e)
            raise

        logger.info(
            f"[{plan_id}] analyze: status -> ANALYZED "
            f"(feasibility={analyzed.feasibility_score}, "
            f"reasonableness={analyzed.reasonableness_score}, "
            f"{time.time() - start_time:.2f}s)"
        )
        return analyzed

    async def _rollback(self, plan_id: str, error: BaseException):
        """Return the plan to DRAFT after a failed analysis"""
        kind = error.kind if isinstance(error, PlanAssistantError) else type(error).__name__
        logger.error(f"[{plan_id}] analyze failed ({kind}): {getattr(error, 'detail', None) or error}")

        try:
            await self.plan_store.update_status(plan_id, PlanStatus.DRAFT)
        except Exception as rollback_error:
            logger.error(f"[{plan_id}] analyze: rollback to DRAFT failed: {rollback_error}")
            return

        logger.info(f"[{plan_id}] analyze: status -> DRAFT")
