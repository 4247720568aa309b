# interfaces/__init__.py
"""
Interfaces Package

Contains data stores and collaborator contracts:
- plan_store: Travel plan records and the analysis guard
- conversation_store: Ordered conversation turns per plan
- access: Identity provider and ownership capability
- redis_client: Shared Redis connection
"""

from .plan_store import PlanStore
from .conversation_store import ConversationStore
from .access import IdentityProvider, StaticIdentityProvider, PlanAccess
from .redis_client import create_redis_client, check_redis_health

__all__ = [
    "PlanStore",
    "ConversationStore",
    "IdentityProvider",
    "StaticIdentityProvider",
    "PlanAccess",
    "create_redis_client",
    "check_redis_health"
]
