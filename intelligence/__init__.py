"""
Intelligence Module
LLM access and post generation
"""
from .generator import PostGenerator
from .llm import BaseLLM, LLMResponse, Message, MessageRole, OpenAILLM, extract_json_object, get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "PostGenerator",
    "extract_json_object",
    "get_llm",
]
