# agents/plan_assistant.py
"""
Plan Assistant - Conversational helper grounded in a travel plan

Flow for one chat turn:
1. Validate input and persist the user turn
2. Load history and render the plan-aware system prompt
3. Best-effort knowledge retrieval (never fails the turn)
4. Assemble messages and call the LLM
5. Persist and return the assistant turn
"""

import asyncio
import time
from typing import Any, List, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..errors import (
    ConfigurationError,
    DimensionMismatch,
    ExternalServiceError,
    InvalidRequest,
)
from ..interfaces.access import PlanAccess
from ..interfaces.conversation_store import ConversationStore
from ..interfaces.plan_store import PlanStore
from ..llm.client import LLMClient
from ..llm.messages import build_messages, build_rag_context, window_history
from ..llm.prompts import build_assistant_system_prompt
from ..retrieval.knowledge_base import KnowledgeBase
from ..schemas import (
    ChatMessage,
    ChatReply,
    ConversationTurn,
    RagContext,
    TurnRole,
)


MessageInput = Union[ChatMessage, dict]


class PlanAssistant:
    """
    Multi-turn chat about a single travel plan, with RAG background

    Usage:
        assistant = PlanAssistant(plan_store, conversation_store, llm, kb)
        reply = await assistant.chat(plan_id, [{"role": "user", "content": "Too rushed?"}], access)
        history = await assistant.get_history(plan_id, access)
    """

    def __init__(
        self,
        plan_store: PlanStore,
        conversation_store: ConversationStore,
        llm_client: LLMClient,
        knowledge_base: Optional[KnowledgeBase] = None,
        top_k: Optional[int] = None,
        history_window: Optional[int] = None,
        temperature: Optional[float] = None,
        retrieval_timeout: Optional[float] = None
    ):
        self.plan_store = plan_store
        self.conversations = conversation_store
        self.llm = llm_client
        self.knowledge_base = knowledge_base
        self.top_k = settings.RAG_TOP_K if top_k is None else top_k
        self.history_window = (
            settings.CHAT_HISTORY_WINDOW if history_window is None else history_window
        )
        self.temperature = settings.CHAT_TEMPERATURE if temperature is None else temperature
        self.retrieval_timeout = (
            settings.RETRIEVAL_TIMEOUT if retrieval_timeout is None else retrieval_timeout
        )

        if knowledge_base is None:
            logger.warning("PlanAssistant has no knowledge base; chat runs without retrieval")

    async def chat(
        self,
        plan_id: str,
        new_messages: Sequence[MessageInput],
        access: PlanAccess
    ) -> ChatReply:
        """
        Handle one user turn

        Args:
            plan_id: Plan being discussed
            new_messages: Messages from the client; the last one must be the
                user's new message, and only that one is persisted
            access: Ownership capability for the calling user

        Returns:
            ChatReply with the reply text, the stored assistant turn and the
            knowledge documents that were offered to the model

        Raises:
            InvalidRequest: Empty input or last message not from the user
            NotFound, Forbidden: Before anything is persisted
            ConfigurationError: No LLM credentials
            LLMUnavailable, LLMEmptyResponse: After the user turn is persisted
        """
        message = self._latest_user_message(new_messages)
        plan = await access.load_owned(plan_id)

        if not self.llm.has_credentials:
            logger.error(f"[{plan_id}] chat: model API key is not configured")
            raise ConfigurationError()

        start_time = time.time()
        user_turn = await self.conversations.append(plan_id, TurnRole.USER, message, user_id=access.user_id)

        # Turns appended by overlapping chats on the same plan stay out of this request
        history = [
            t for t in await self.conversations.list_ascending(plan_id)
            if t.seq <= user_turn.seq
        ]
        system_prompt = build_assistant_system_prompt(plan)
        rag_context = await self._retrieve(plan_id, message)

        messages = build_messages(
            system_prompt,
            rag_context,
            window_history(history, self.history_window)
        )
        logger.debug(
            f"[{plan_id}] chat: {len(messages)} messages, "
            f"{len(rag_context.documents)} knowledge document(s)"
        )

        try:
            reply = await self.llm.chat(messages, temperature=self.temperature)
        except Exception as e:
            logger.error(f"[{plan_id}] chat: LLM call failed: {getattr(e, 'detail', None) or e}")
            raise

        turn = await self.conversations.append(
            plan_id, TurnRole.ASSISTANT, reply, user_id=access.user_id
        )
        logger.info(f"[{plan_id}] chat: replied in {time.time() - start_time:.2f}s")

        return ChatReply(reply=reply, turn=turn, context_documents=rag_context.documents)

    async def get_history(self, plan_id: str, access: PlanAccess) -> List[ConversationTurn]:
        """Full conversation for a plan, oldest first"""
        await access.load_owned(plan_id)
        return await self.conversations.list_ascending(plan_id)

    async def clear_history(self, plan_id: str, access: PlanAccess) -> int:
        """Delete the plan's whole conversation; returns the number of turns removed"""
        await access.load_owned(plan_id)
        return await self.conversations.delete_all(plan_id)

    def _latest_user_message(self, new_messages: Sequence[Any]) -> str:
        if not new_messages:
            raise InvalidRequest("At least one message is required.")

        try:
            last = ChatMessage.model_validate(new_messages[-1])
        except ValidationError as e:
            raise InvalidRequest("The last message must have a role and non-empty content.", detail=str(e)) from e

        if last.role != TurnRole.USER:
            raise InvalidRequest("The last message must come from the user.")
        if not last.content.strip():
            raise InvalidRequest("The last message must have non-empty content.")
        return last.content

    async def _retrieve(self, plan_id: str, message: str) -> RagContext:
        """Top-k knowledge search; any failure degrades to the neutral placeholder"""
        if self.knowledge_base is None or self.top_k <= 0:
            return build_rag_context([], message)

        try:
            documents = await asyncio.wait_for(
                self.knowledge_base.search(message, k=self.top_k),
                timeout=self.retrieval_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[{plan_id}] chat: knowledge retrieval timed out after {self.retrieval_timeout}s")
            return build_rag_context([], message, failed=True)
        except (ExternalServiceError, DimensionMismatch) as e:
            logger.warning(f"[{plan_id}] chat: knowledge retrieval failed ({e.kind}): {e.detail or e}")
            return build_rag_context([], message, failed=True)
        except Exception as e:
            logger.error(f"[{plan_id}] chat: knowledge retrieval failed unexpectedly: {e!r}")
            return build_rag_context([], message, failed=True)

        context = build_rag_context(documents, message)
        if not context.has_documents:
            logger.info(f"[{plan_id}] chat: no relevant knowledge found")
        return context
