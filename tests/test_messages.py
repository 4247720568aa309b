"""Message assembly tests (pure functions, no I/O)"""

from datetime import datetime, timedelta, timezone

from plan_assistant.llm.messages import (
    build_messages,
    build_rag_context,
    filter_retrieved,
    is_echo,
    window_history,
)
from plan_assistant.llm.prompts import RAG_CONTEXT_HEADER, RAG_NO_CONTEXT
from plan_assistant.schemas import ConversationTurn, RetrievedDocument, TurnRole

START = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def turns(*pairs):
    return [
        ConversationTurn(
            id=f"t{i}",
            plan_id="plan-1",
            role=role,
            content=content,
            seq=i + 1,
            created_at=START + timedelta(seconds=i)
        )
        for i, (role, content) in enumerate(pairs)
    ]


def doc(doc_id, text, distance=0.1):
    return RetrievedDocument(id=doc_id, text=text, distance=distance)


def test_is_echo_ignores_case_and_whitespace():
    assert is_echo("  Is Day 2 too rushed? ", "is day 2 too rushed?")
    assert not is_echo("Day 2 is rushed", "is day 2 too rushed?")


def test_filter_drops_echoes_duplicates_and_blanks():
    documents = [
        doc("echo", "Is day 2 too rushed?"),
        doc("a", "Nara is a half-day trip."),
        doc("dup", "nara is a half-day trip. "),
        doc("blank", "   "),
        doc("b", "Book the tea ceremony early."),
    ]

    kept = filter_retrieved(documents, "is day 2 too rushed?")

    assert [d.id for d in kept] == ["a", "b"]


def test_rag_context_lists_documents_after_header():
    context = build_rag_context([doc("a", "Nara is a half-day trip.")], "question")

    assert context.has_documents
    assert context.message.splitlines() == [RAG_CONTEXT_HEADER, "- Nara is a half-day trip."]


def test_rag_context_placeholder_when_nothing_usable():
    context = build_rag_context([doc("echo", "question")], "question")

    assert not context.has_documents
    assert context.message == RAG_NO_CONTEXT
    assert not context.failed


def test_rag_context_placeholder_on_failure():
    context = build_rag_context([doc("a", "text")], "question", failed=True)

    assert context.failed
    assert context.documents == []
    assert context.message == RAG_NO_CONTEXT


def test_messages_without_context():
    history = turns((TurnRole.USER, "hi"), (TurnRole.ASSISTANT, "hello"), (TurnRole.USER, "day 2?"))

    messages = build_messages("SYSTEM", None, history)

    assert messages == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "day 2?"},
    ]


def test_placeholder_context_is_not_inserted():
    history = turns((TurnRole.USER, "day 2?"))
    context = build_rag_context([], "day 2?")

    messages = build_messages("SYSTEM", context, history)

    assert len(messages) == 2


def test_context_goes_immediately_before_last_user_turn():
    history = turns(
        (TurnRole.USER, "hi"),
        (TurnRole.ASSISTANT, "hello"),
        (TurnRole.USER, "day 2?"),
    )
    context = build_rag_context([doc("a", "Nara is a half-day trip.")], "day 2?")

    messages = build_messages("SYSTEM", context, history)

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "system", "user"]
    assert messages[3]["content"] == context.message
    assert messages[4]["content"] == "day 2?"


def test_build_messages_does_not_mutate_history():
    history = turns((TurnRole.USER, "day 2?"))
    context = build_rag_context([doc("a", "tip")], "day 2?")

    first = build_messages("SYSTEM", context, history)
    second = build_messages("SYSTEM", context, history)

    assert first == second
    assert len(history) == 1


def test_window_keeps_most_recent_turns():
    history = turns(*[(TurnRole.USER, str(i)) for i in range(5)])

    assert [t.content for t in window_history(history, 2)] == ["3", "4"]
    assert len(window_history(history, 50)) == 5
    assert len(window_history(history, None)) == 5
