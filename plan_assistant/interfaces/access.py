"""
Ownership capability for plan operations

The identity provider resolves who is calling; PlanAccess binds that user to
the plan store and answers "load this plan if I own it".
"""

from typing import Protocol

from loguru import logger

from .plan_store import PlanStore
from ..errors import Forbidden, NotFound
from ..schemas import Plan


class IdentityProvider(Protocol):
    """Resolves the current user id (sessions live outside this package)"""

    def current_user_id(self) -> str:
        ...


class StaticIdentityProvider:
    """Identity provider for a fixed, already authenticated user"""

    def __init__(self, user_id: str):
        self.user_id = user_id

    def current_user_id(self) -> str:
        return self.user_id


class PlanAccess:
    """
    Ownership check handed to the orchestrator and the assistant

    Usage:
        access = PlanAccess.for_identity(plan_store, identity)
        plan = await access.load_owned(plan_id)  # NotFound / Forbidden
    """

    def __init__(self, plan_store: PlanStore, user_id: str):
        self.plan_store = plan_store
        self.user_id = user_id

    @classmethod
    def for_identity(cls, plan_store: PlanStore, identity: IdentityProvider) -> "PlanAccess":
        return cls(plan_store, identity.current_user_id())

    async def is_owner(self, plan_id: str) -> bool:
        """
        Raises:
            NotFound: If the plan does not exist
        """
        plan = await self.plan_store.get(plan_id)
        if plan is None:
            raise NotFound()
        return plan.owner_id == self.user_id

    async def load_owned(self, plan_id: str) -> Plan:
        """
        Load a plan owned by the bound user

        Raises:
            NotFound: If the plan does not exist
            Forbidden: If another user owns it
        """
        plan = await self.plan_store.get(plan_id)
        if plan is None:
            logger.warning(f"[{plan_id}] Plan not found")
            raise NotFound()
        if plan.owner_id != self.user_id:
            logger.warning(f"[{plan_id}] Access denied for user {self.user_id}")
            raise Forbidden()
        return plan
