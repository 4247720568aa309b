"""
Conversation Store - Persists chat history for travel plans
"""

import json
import uuid
from datetime import timedelta
from typing import Dict, List, Optional

import redis.asyncio as redis
from loguru import logger

from ..errors import ExternalServiceError
from ..schemas import ConversationTurn, TurnRole
from ..schemas.plan_schemas import utcnow


class ConversationStore:
    """
    Stores and retrieves conversation turns per plan

    Turns form an append-only sequence per plan. Order is carried by a
    per-plan sequence number, so it stays correct even when two turns share
    a clock tick. Uses a Redis sorted set scored by that sequence when a
    client is provided, otherwise in-memory lists.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        ttl_hours: Optional[int] = None
    ):
        """
        Initialize conversation store

        Args:
            redis_client: asyncio Redis client; None keeps turns in memory
            ttl_hours: Optional expiry for a plan's history after its last turn
        """
        self.redis_client = redis_client
        self.ttl = timedelta(hours=ttl_hours) if ttl_hours else None

        # In-memory storage
        self.memory_store: Dict[str, List[ConversationTurn]] = {}
        self._sequences: Dict[str, int] = {}
        self._last_created: Dict[str, object] = {}

        backend = "Redis" if redis_client else "in-memory storage"
        logger.info(f"ConversationStore using {backend}")

    def _get_key(self, plan_id: str) -> str:
        """Generate Redis key for a plan's turns"""
        return f"conversation:{plan_id}"

    def _get_seq_key(self, plan_id: str) -> str:
        return f"conversation:{plan_id}:seq"

    def _next_created_at(self, plan_id: str):
        """Wall-clock time, nudged forward so it never repeats for a plan"""
        now = utcnow()
        last = self._last_created.get(plan_id)
        if last is not None and now <= last:
            now = last + timedelta(microseconds=1)
        self._last_created[plan_id] = now
        return now

    async def append(
        self,
        plan_id: str,
        role: TurnRole,
        content: str,
        user_id: Optional[str] = None
    ) -> ConversationTurn:
        """
        Append a turn to a plan's history

        Args:
            plan_id: Plan identifier
            role: TurnRole.USER or TurnRole.ASSISTANT
            content: Message content
            user_id: Owner of the conversation

        Returns:
            The persisted ConversationTurn
        """
        role = TurnRole(role)

        if self.redis_client:
            try:
                seq = await self.redis_client.incr(self._get_seq_key(plan_id))
                turn = ConversationTurn(
                    id=uuid.uuid4().hex,
                    plan_id=plan_id,
                    user_id=user_id,
                    role=role,
                    content=content,
                    seq=seq,
                    created_at=self._next_created_at(plan_id)
                )
                key = self._get_key(plan_id)
                await self.redis_client.zadd(key, {turn.model_dump_json(): seq})
                if self.ttl:
                    ttl_seconds = int(self.ttl.total_seconds())
                    await self.redis_client.expire(key, ttl_seconds)
                    await self.redis_client.expire(self._get_seq_key(plan_id), ttl_seconds)
            except redis.RedisError as e:
                logger.error(f"[{plan_id}] Error saving {role.value} turn: {e}")
                raise ExternalServiceError(detail=str(e)) from e

            logger.debug(f"[{plan_id}] Saved {role.value} turn #{seq} to Redis")
            return turn

        # In-memory: no await between sequence allocation and append
        seq = self._sequences.get(plan_id, 0) + 1
        self._sequences[plan_id] = seq
        turn = ConversationTurn(
            id=uuid.uuid4().hex,
            plan_id=plan_id,
            user_id=user_id,
            role=role,
            content=content,
            seq=seq,
            created_at=self._next_created_at(plan_id)
        )
        self.memory_store.setdefault(plan_id, []).append(turn)

        logger.debug(f"[{plan_id}] Saved {role.value} turn #{seq} to memory")
        return turn

    async def list_ascending(self, plan_id: str) -> List[ConversationTurn]:
        """
        Get the full conversation history for a plan

        Returns:
            List of turns, oldest first
        """
        if self.redis_client:
            try:
                members = await self.redis_client.zrange(self._get_key(plan_id), 0, -1)
            except redis.RedisError as e:
                logger.error(f"[{plan_id}] Error getting history: {e}")
                raise ExternalServiceError(detail=str(e)) from e

            turns = [ConversationTurn.model_validate(json.loads(m)) for m in members]
            return sorted(turns, key=lambda t: t.seq)

        return list(self.memory_store.get(plan_id, []))

    async def delete_all(self, plan_id: str) -> int:
        """
        Delete every turn for a plan in one atomic step

        Returns:
            Number of turns deleted
        """
        if self.redis_client:
            key = self._get_key(plan_id)
            try:
                async with self.redis_client.pipeline(transaction=True) as pipe:
                    pipe.zcard(key)
                    pipe.delete(key, self._get_seq_key(plan_id))
                    count, _ = await pipe.execute()
            except redis.RedisError as e:
                logger.error(f"[{plan_id}] Error clearing history: {e}")
                raise ExternalServiceError(detail=str(e)) from e
        else:
            count = len(self.memory_store.pop(plan_id, []))
            self._sequences.pop(plan_id, None)

        self._last_created.pop(plan_id, None)
        logger.info(f"[{plan_id}] Cleared {count} conversation turn(s)")
        return int(count)
