"""
LLM Factory
Build an LLM instance from settings
"""
from typing import Optional
import logging

from utils.exceptions import LLMConfigurationError

from .base import BaseLLM
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    Get an LLM instance

    Reads ``LLM_*`` settings; explicit arguments win.

    Example:
        llm = get_llm()
        llm = get_llm(model="gpt-4o", temperature=0.3)
        llm = get_llm(base_url="http://localhost:8000/v1", api_key="local")
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = (provider or settings.provider or "openai").strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    default_params = {
        "api_key": settings.api_key,
        "base_url": settings.base_url,
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "timeout": settings.timeout,
    }
    for key, value in default_params.items():
        if kwargs.get(key) is None:
            kwargs[key] = value

    if provider == "openai":
        logger.debug("Using OpenAI-compatible LLM %s (base_url=%s)", model, kwargs.get("base_url"))
        return OpenAILLM(model=model, **kwargs)

    raise LLMConfigurationError(f"Unsupported LLM provider: {provider}", provider=provider)
