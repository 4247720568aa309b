"""LLMClient tests with a fake AsyncOpenAI client"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from plan_assistant.errors import ConfigurationError, LLMEmptyResponse, LLMUnavailable
from plan_assistant.llm.client import LLMClient, to_message
from plan_assistant.schemas import TurnRole

REQUEST = httpx.Request("POST", "https://llm.test/v1/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_openai(result=None, error=None):
    create = AsyncMock(return_value=result, side_effect=error)
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
        close=AsyncMock()
    )


def make_client(fake):
    return LLMClient(api_key="sk-test", model="test-model", client=fake)


@pytest.mark.asyncio
async def test_complete_prepends_system_prompt():
    fake = fake_openai(completion("Looks good."))
    client = make_client(fake)

    reply = await client.complete("You are an analyst.", [("user", "Analyze this")], temperature=0.3)

    assert reply == "Looks good."
    kwargs = fake.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"] == [
        {"role": "system", "content": "You are an analyst."},
        {"role": "user", "content": "Analyze this"},
    ]


@pytest.mark.asyncio
async def test_chat_accepts_dict_messages():
    fake = fake_openai(completion("Sure."))

    await make_client(fake).chat([{"role": "user", "content": "hi"}], temperature=0.7)

    assert fake.chat.completions.create.call_args.kwargs["messages"] == [
        {"role": "user", "content": "hi"}
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_empty_reply_is_an_error(content):
    client = make_client(fake_openai(completion(content)))

    with pytest.raises(LLMEmptyResponse):
        await client.chat([("user", "hi")], temperature=0.7)


@pytest.mark.asyncio
async def test_no_choices_is_an_error():
    client = make_client(fake_openai(SimpleNamespace(choices=[])))

    with pytest.raises(LLMEmptyResponse):
        await client.chat([("user", "hi")], temperature=0.7)


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    openai.APIConnectionError(request=REQUEST),
    openai.APITimeoutError(request=REQUEST),
    openai.AuthenticationError(
        "Incorrect API key provided: sk-abc***",
        response=httpx.Response(401, request=REQUEST),
        body=None
    ),
])
async def test_provider_errors_become_llm_unavailable(error):
    client = make_client(fake_openai(error=error))

    with pytest.raises(LLMUnavailable) as exc_info:
        await client.chat([("user", "hi")], temperature=0.7)

    assert "sk-abc" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_key_is_configuration_error():
    client = LLMClient(api_key="", model="test-model")

    assert not client.has_credentials
    with pytest.raises(ConfigurationError):
        await client.chat([("user", "hi")], temperature=0.7)


def test_placeholder_key_counts_as_missing():
    assert not LLMClient(api_key="sk-your-key-here").has_credentials
    assert LLMClient(api_key="sk-real").has_credentials


@pytest.mark.asyncio
async def test_close_closes_underlying_client():
    fake = fake_openai(completion("ok"))
    client = make_client(fake)

    await client.close()

    fake.close.assert_awaited_once()


def test_to_message_normalizes_roles():
    assert to_message((TurnRole.USER, "hi")) == {"role": "user", "content": "hi"}
    assert to_message({"role": "assistant", "content": "hello"}) == {"role": "assistant", "content": "hello"}
    with pytest.raises(ValueError):
        to_message(("tool", "x"))
