"""
OpenAI LLM
Works with OpenAI and any OpenAI-compatible endpoint via base_url
"""
from typing import List, Optional
import logging

import openai
from openai import AsyncOpenAI

from utils.exceptions import LLMConfigurationError, LLMError

from .base import BaseLLM, Message, LLMResponse


logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """
    OpenAI chat completions client

    Authentication and permission failures, and a missing API key, raise
    ``LLMConfigurationError``; every other SDK failure raises ``LLMError``.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 60.0,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key
        self.base_url = base_url
        self._async_client: Optional[AsyncOpenAI] = None

    @property
    def provider(self) -> str:
        return "openai"

    def _get_async_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise LLMConfigurationError("LLM API key is not configured", provider=self.provider)
        if self._async_client is None:
            self._async_client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._async_client

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        client = self._get_async_client()

        request_params = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

        try:
            response = await client.chat.completions.create(**request_params)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise LLMConfigurationError(f"LLM rejected credentials: {exc}", provider=self.provider) from exc
        except openai.OpenAIError as exc:
            raise LLMError(f"LLM request failed: {exc}", provider=self.provider) from exc

        if not response.choices:
            raise LLMError("LLM returned no choices", provider=self.provider)

        choice = response.choices[0]
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        logger.debug("LLM %s completion: %s tokens", self.model, usage.get("total_tokens", "?"))

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason,
        )

    async def aclose(self) -> None:
        client = self._async_client
        self._async_client = None
        if client is not None:
            await client.close()
