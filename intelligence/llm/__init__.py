"""
LLM Module
Async LLM abstraction layer
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole, extract_json_object
from .openai_llm import OpenAILLM
from .factory import get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "extract_json_object",
    "get_llm",
]
