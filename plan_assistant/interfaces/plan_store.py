"""
Plan Store - Persists travel plan records

Uses a Redis hash per plan when a client is provided, otherwise an
in-memory dict. The analysis guard is a compare-and-set at this layer so it
holds across processes sharing the same Redis.
"""

import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
from loguru import logger

from ..errors import ExternalServiceError, NotFound
from ..schemas import AnalysisResult, Plan, PlanStatus
from ..schemas.plan_schemas import utcnow

# Sets status to ANALYZING unless it already is.
# Returns -1 when the plan does not exist, 0 when already analyzing, 1 on success.
BEGIN_ANALYSIS_SCRIPT = """
local status = redis.call('HGET', KEYS[1], 'status')
if not status then
    return -1
end
if status == ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1], 'status', ARGV[1], 'updated_at', ARGV[2])
return 1
"""

_JSON_FIELDS = (
    "content", "feasibility_score", "reasonableness_score", "suggestions", "analysis_details"
)


class PlanStore:
    """
    Stores and retrieves travel plans

    Operations needed by the analysis pipeline:
    - get / save
    - update_status
    - begin_analysis (atomic DRAFT|ANALYZED -> ANALYZING)
    - update_analysis (scores, suggestions, details and status in one write)
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        """
        Args:
            redis_client: asyncio Redis client; None keeps plans in memory
        """
        self.redis_client = redis_client
        self.memory_store: Dict[str, Plan] = {}
        self._begin_script = (
            redis_client.register_script(BEGIN_ANALYSIS_SCRIPT) if redis_client else None
        )

        backend = "Redis" if redis_client else "in-memory storage"
        logger.info(f"PlanStore using {backend}")

    def _get_key(self, plan_id: str) -> str:
        """Generate Redis key for a plan"""
        return f"plan:{plan_id}"

    # ============================================
    # Serialization
    # ============================================

    @staticmethod
    def _to_hash(plan: Plan) -> Dict[str, str]:
        data = plan.model_dump(mode="json")
        mapping = {
            "id": data["id"],
            "title": data["title"],
            "status": data["status"],
            "owner_id": data["owner_id"],
            "created_at": data["created_at"],
            "updated_at": data["updated_at"]
        }
        for field in _JSON_FIELDS:
            mapping[field] = json.dumps(data[field], ensure_ascii=False)
        return mapping

    @staticmethod
    def _from_hash(mapping: Dict[str, str]) -> Plan:
        data: Dict[str, Any] = {
            "id": mapping["id"],
            "title": mapping["title"],
            "status": mapping["status"],
            "owner_id": mapping["owner_id"],
            "created_at": mapping["created_at"],
            "updated_at": mapping["updated_at"]
        }
        for field in _JSON_FIELDS:
            raw = mapping.get(field)
            data[field] = json.loads(raw) if raw is not None else None
        return Plan.model_validate(data)

    async def _redis_call(self, operation: str, plan_id: str, coro) -> Any:
        try:
            return await coro
        except redis.RedisError as e:
            logger.error(f"[{plan_id}] PlanStore {operation} failed: {e}")
            raise ExternalServiceError(detail=str(e)) from e

    # ============================================
    # Operations
    # ============================================

    async def get(self, plan_id: str) -> Optional[Plan]:
        """Load a plan, or None if it does not exist"""
        if self.redis_client:
            mapping = await self._redis_call(
                "get", plan_id, self.redis_client.hgetall(self._get_key(plan_id))
            )
            return self._from_hash(mapping) if mapping else None

        return self.memory_store.get(plan_id)

    async def save(self, plan: Plan) -> Plan:
        """Create or replace a plan record"""
        if self.redis_client:
            await self._redis_call(
                "save", plan.id,
                self.redis_client.hset(self._get_key(plan.id), mapping=self._to_hash(plan))
            )
        else:
            self.memory_store[plan.id] = plan

        logger.debug(f"[{plan.id}] Saved plan (status={plan.status.value})")
        return plan

    async def update_status(self, plan_id: str, status: PlanStatus):
        """
        Set the status field only

        Raises:
            NotFound: If the plan does not exist
        """
        now = utcnow()
        if self.redis_client:
            key = self._get_key(plan_id)
            exists = await self._redis_call("update_status", plan_id, self.redis_client.exists(key))
            if not exists:
                raise NotFound()
            await self._redis_call(
                "update_status", plan_id,
                self.redis_client.hset(
                    key, mapping={"status": status.value, "updated_at": now.isoformat()}
                )
            )
        else:
            plan = self.memory_store.get(plan_id)
            if plan is None:
                raise NotFound()
            self.memory_store[plan_id] = plan.model_copy(
                update={"status": status, "updated_at": now}
            )

        logger.debug(f"[{plan_id}] Status -> {status.value}")

    async def begin_analysis(self, plan_id: str) -> bool:
        """
        Atomically move a plan to ANALYZING unless it already is

        Returns:
            bool: False if an analysis is already in flight

        Raises:
            NotFound: If the plan does not exist
        """
        now = utcnow()
        if self.redis_client:
            result = await self._redis_call(
                "begin_analysis", plan_id,
                self._begin_script(
                    keys=[self._get_key(plan_id)],
                    args=[PlanStatus.ANALYZING.value, now.isoformat()]
                )
            )
            if int(result) == -1:
                raise NotFound()
            return int(result) == 1

        # No await between the check and the write
        plan = self.memory_store.get(plan_id)
        if plan is None:
            raise NotFound()
        if plan.status == PlanStatus.ANALYZING:
            return False
        self.memory_store[plan_id] = plan.model_copy(
            update={"status": PlanStatus.ANALYZING, "updated_at": now}
        )
        return True

    async def update_analysis(self, plan_id: str, result: AnalysisResult) -> Plan:
        """
        Persist analysis output and mark the plan ANALYZED in a single write

        Raises:
            NotFound: If the plan does not exist
        """
        now = utcnow()
        details = list(result.detailed_analysis)
        update = {
            "feasibility_score": result.feasibility_score,
            "reasonableness_score": result.reasonableness_score,
            "suggestions": result.overall_suggestions,
            "analysis_details": details,
            "status": PlanStatus.ANALYZED,
            "updated_at": now
        }

        if self.redis_client:
            plan = await self.get(plan_id)
            if plan is None:
                raise NotFound()
            updated = plan.model_copy(update=update)
            mapping = self._to_hash(updated)
            # A single HSET writes every field or none
            await self._redis_call(
                "update_analysis", plan_id,
                self.redis_client.hset(self._get_key(plan_id), mapping={
                    field: mapping[field] for field in (
                        "feasibility_score", "reasonableness_score", "suggestions",
                        "analysis_details", "status", "updated_at"
                    )
                })
            )
            return updated

        plan = self.memory_store.get(plan_id)
        if plan is None:
            raise NotFound()
        updated = plan.model_copy(update=update)
        self.memory_store[plan_id] = updated
        return updated
