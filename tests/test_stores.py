"""Plan store, conversation store and access tests (in-memory backend)"""

import asyncio

import pytest

from conftest import OWNER, analysis_payload
from plan_assistant.errors import Forbidden, NotFound
from plan_assistant.interfaces import PlanAccess, PlanStore, StaticIdentityProvider
from plan_assistant.schemas import AnalysisResult, Plan, PlanStatus, TurnRole


# ====================
# PlanStore
# ====================


@pytest.mark.asyncio
async def test_get_missing_plan_returns_none(plan_store):
    assert await plan_store.get("nope") is None


@pytest.mark.asyncio
async def test_begin_analysis_is_a_compare_and_set(plan_store, plan):
    assert await plan_store.begin_analysis(plan.id) is True
    assert (await plan_store.get(plan.id)).status == PlanStatus.ANALYZING
    assert await plan_store.begin_analysis(plan.id) is False


@pytest.mark.asyncio
async def test_begin_analysis_under_contention_has_one_winner(plan_store, plan):
    results = await asyncio.gather(*(plan_store.begin_analysis(plan.id) for _ in range(10)))

    assert results.count(True) == 1


@pytest.mark.asyncio
async def test_begin_analysis_on_missing_plan(plan_store):
    with pytest.raises(NotFound):
        await plan_store.begin_analysis("nope")


@pytest.mark.asyncio
async def test_update_status_on_missing_plan(plan_store):
    with pytest.raises(NotFound):
        await plan_store.update_status("nope", PlanStatus.DRAFT)


@pytest.mark.asyncio
async def test_update_analysis_sets_every_field(plan_store, plan):
    result = AnalysisResult.model_validate(analysis_payload())

    updated = await plan_store.update_analysis(plan.id, result)

    assert updated.status == PlanStatus.ANALYZED
    assert updated.is_analyzed
    assert updated.suggestions == result.overall_suggestions
    assert await plan_store.get(plan.id) == updated


def test_redis_hash_round_trip():
    plan = Plan(
        id="plan-9",
        title="Lisbon weekend",
        content="Tram 28, Belém, pastéis de nata",
        owner_id=OWNER,
        status=PlanStatus.ANALYZED,
        feasibility_score=8.0,
        reasonableness_score=7.5,
        suggestions="Go early to Belém.",
        analysis_details=AnalysisResult.model_validate(analysis_payload()).detailed_analysis
    )

    mapping = PlanStore._to_hash(plan)

    assert all(isinstance(value, str) for value in mapping.values())
    assert PlanStore._from_hash(mapping) == plan


def test_redis_hash_round_trip_for_draft():
    plan = Plan(id="plan-10", title="Draft", owner_id=OWNER)

    assert PlanStore._from_hash(PlanStore._to_hash(plan)) == plan


# ====================
# ConversationStore
# ====================


@pytest.mark.asyncio
async def test_turns_are_listed_in_append_order(conversation_store):
    for i in range(6):
        role = TurnRole.USER if i % 2 == 0 else TurnRole.ASSISTANT
        await conversation_store.append("plan-1", role, f"message {i}")

    history = await conversation_store.list_ascending("plan-1")

    assert [t.content for t in history] == [f"message {i}" for i in range(6)]
    assert [t.seq for t in history] == list(range(1, 7))
    assert all(a.created_at < b.created_at for a, b in zip(history, history[1:]))


@pytest.mark.asyncio
async def test_histories_are_kept_per_plan(conversation_store):
    await conversation_store.append("plan-1", TurnRole.USER, "for plan 1")
    await conversation_store.append("plan-2", TurnRole.USER, "for plan 2")

    assert [t.content for t in await conversation_store.list_ascending("plan-1")] == ["for plan 1"]
    assert [t.seq for t in await conversation_store.list_ascending("plan-2")] == [1]


@pytest.mark.asyncio
async def test_append_accepts_role_strings(conversation_store):
    turn = await conversation_store.append("plan-1", "assistant", "hello", user_id=OWNER)

    assert turn.role == TurnRole.ASSISTANT
    assert turn.user_id == OWNER


@pytest.mark.asyncio
async def test_delete_all_only_touches_one_plan(conversation_store):
    await conversation_store.append("plan-1", TurnRole.USER, "a")
    await conversation_store.append("plan-1", TurnRole.ASSISTANT, "b")
    await conversation_store.append("plan-2", TurnRole.USER, "c")

    assert await conversation_store.delete_all("plan-1") == 2
    assert await conversation_store.list_ascending("plan-1") == []
    assert len(await conversation_store.list_ascending("plan-2")) == 1
    assert await conversation_store.delete_all("plan-1") == 0


@pytest.mark.asyncio
async def test_listed_history_is_a_copy(conversation_store):
    await conversation_store.append("plan-1", TurnRole.USER, "a")

    history = await conversation_store.list_ascending("plan-1")
    history.clear()

    assert len(await conversation_store.list_ascending("plan-1")) == 1


# ====================
# PlanAccess
# ====================


@pytest.mark.asyncio
async def test_load_owned(plan_store, plan):
    access = PlanAccess.for_identity(plan_store, StaticIdentityProvider(OWNER))

    assert (await access.load_owned(plan.id)).id == plan.id
    assert await access.is_owner(plan.id)


@pytest.mark.asyncio
async def test_load_owned_rejects_other_user(plan_store, plan, other_access):
    assert not await other_access.is_owner(plan.id)
    with pytest.raises(Forbidden):
        await other_access.load_owned(plan.id)


@pytest.mark.asyncio
async def test_load_owned_missing_plan(access):
    with pytest.raises(NotFound):
        await access.load_owned("nope")
    with pytest.raises(NotFound):
        await access.is_owner("nope")
