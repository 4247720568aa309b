# llm/client.py
"""
LLM Client for plan analysis and the plan assistant
Stateless wrapper around an OpenAI-compatible chat-completion endpoint.
Retry policy belongs to the caller; this layer never retries.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx
import openai
from openai import AsyncOpenAI
from loguru import logger

from ..config import is_usable_api_key, settings
from ..errors import ConfigurationError, LLMEmptyResponse, LLMUnavailable

VALID_ROLES = ("system", "user", "assistant")

MessageLike = Union[Mapping[str, Any], Tuple[str, str]]


def to_message(message: MessageLike) -> Dict[str, str]:
    """Normalize a (role, content) pair or mapping into a chat message dict"""
    if isinstance(message, tuple):
        role, content = message
    else:
        role, content = message["role"], message["content"]

    role = getattr(role, "value", role)
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid message role: {role}")
    return {"role": role, "content": content}


class LLMClient:
    """
    Issues chat-completion requests to the configured model.

    Usage:
        llm = LLMClient()
        text = await llm.complete(
            "You are a travel plan analyst.",
            [("user", "Analyze this plan ...")],
            temperature=0.3
        )
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Any] = None
    ):
        """
        Args:
            api_key: Bearer key (defaults to OPENAI_API_KEY)
            model: Model name (defaults to OPENAI_MODEL)
            base_url: OpenAI-compatible endpoint (defaults to OPENAI_BASE_URL)
            timeout: Seconds allowed per request
            client: Pre-built AsyncOpenAI-compatible client
        """
        self.api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        self.model = model or settings.OPENAI_MODEL
        self.base_url = base_url or settings.openai_base_url
        self.timeout = timeout or settings.LLM_TIMEOUT
        self._client = client

        if not self.has_credentials and client is None:
            logger.warning(
                "LLMClient: API key is not set. Analysis and chat calls will fail."
            )
        else:
            logger.info(f"LLMClient: using model {self.model}")

    @property
    def has_credentials(self) -> bool:
        return is_usable_api_key(self.api_key)

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        if not self.has_credentials:
            raise ConfigurationError()

        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            max_retries=0
        )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[MessageLike],
        temperature: float
    ) -> str:
        """
        Send a system prompt plus ordered messages and return the reply text

        Args:
            system_prompt: Instructions sent as the first system message
            messages: Ordered (role, content) pairs
            temperature: Sampling temperature

        Returns:
            str: The model's reply

        Raises:
            ConfigurationError: If no API key is configured
            LLMUnavailable: On network, authentication, timeout or provider errors
            LLMEmptyResponse: If the model returned no content
        """
        return await self.chat(
            [("system", system_prompt)] + list(messages),
            temperature
        )

    async def chat(self, messages: Sequence[MessageLike], temperature: float) -> str:
        """Send an already assembled message list and return the reply text"""
        client = self._get_client()
        payload: List[Dict[str, str]] = [to_message(m) for m in messages]

        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=temperature
            )
        except openai.AuthenticationError as e:
            logger.error(f"LLM authentication failed: {e}")
            raise LLMUnavailable(detail="authentication failed") from e
        except openai.APITimeoutError as e:
            logger.error(f"LLM request timed out after {self.timeout}s")
            raise LLMUnavailable(detail="timeout") from e
        except openai.APIConnectionError as e:
            logger.error(f"LLM connection failed: {e}")
            raise LLMUnavailable(detail="connection failed") from e
        except openai.OpenAIError as e:
            logger.error(f"LLM API call failed: {e}")
            raise LLMUnavailable(detail=str(e)) from e

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None

        if not content or not content.strip():
            logger.error("LLM returned an empty response")
            raise LLMEmptyResponse()

        logger.debug(f"LLM reply received ({len(content)} chars, temperature={temperature})")
        return content

    async def close(self):
        """Close the underlying HTTP client"""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
