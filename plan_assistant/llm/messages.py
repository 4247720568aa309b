"""
Chat message assembly for the plan assistant.

Pure functions only: no I/O, so prompt assembly is testable without a model
or a vector store.
"""

from typing import Dict, List, Optional, Sequence

from .prompts import RAG_CONTEXT_HEADER, RAG_NO_CONTEXT
from ..schemas import ConversationTurn, RagContext, RetrievedDocument, TurnRole


def is_echo(text: str, message: str) -> bool:
    """True when a retrieved text is the user's own message (case-insensitive)"""
    return text.strip().lower() == message.strip().lower()


def filter_retrieved(
    documents: Sequence[RetrievedDocument],
    user_message: str
) -> List[RetrievedDocument]:
    """
    Drop hits that echo the user message and hits repeating an earlier text
    """
    kept = []
    seen = set()
    for doc in documents:
        key = doc.text.strip().lower()
        if not key or is_echo(doc.text, user_message) or key in seen:
            continue
        seen.add(key)
        kept.append(doc)
    return kept


def build_rag_context(
    documents: Sequence[RetrievedDocument],
    user_message: str,
    failed: bool = False
) -> RagContext:
    """
    Summarize retrieved documents as optional background

    Returns:
        RagContext with the kept documents, or the neutral placeholder when
        nothing usable was retrieved
    """
    kept = [] if failed else filter_retrieved(documents, user_message)
    if not kept:
        return RagContext(documents=[], message=RAG_NO_CONTEXT, failed=failed)

    lines = [RAG_CONTEXT_HEADER]
    lines.extend(f"- {doc.text.strip()}" for doc in kept)
    return RagContext(documents=kept, message="\n".join(lines))


def window_history(
    history: Sequence[ConversationTurn],
    window: Optional[int]
) -> List[ConversationTurn]:
    """Keep the last `window` turns (all turns when window is falsy)"""
    history = list(history)
    if window and len(history) > window:
        return history[-window:]
    return history


def build_messages(
    system_prompt: str,
    rag_context: Optional[RagContext],
    history: Sequence[ConversationTurn]
) -> List[Dict[str, str]]:
    """
    Assemble the ordered message list sent to the model

    Layout: system prompt, then chronological history. When retrieval found
    documents, their summary is inserted as a system message immediately
    before the final user turn.
    """
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(
        {"role": turn.role.value, "content": turn.content} for turn in history
    )

    if rag_context is not None and rag_context.has_documents:
        last_user = None
        for i in range(len(messages) - 1, 0, -1):
            if messages[i]["role"] == TurnRole.USER.value:
                last_user = i
                break
        position = last_user if last_user is not None else len(messages)
        messages.insert(position, {"role": "system", "content": rag_context.message})

    return messages
