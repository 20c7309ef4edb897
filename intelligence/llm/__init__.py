"""
LLM Module
Provider abstraction for the content generator
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole
from .gemini_llm import GeminiLLM
from .factory import get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "GeminiLLM",
    "get_llm",
]
