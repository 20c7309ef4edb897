"""
Intelligence Module
LLM abstraction, prompt construction and response parsing
"""
from .llm import (
    BaseLLM,
    GeminiLLM,
    LLMResponse,
    Message,
    get_llm,
)
from .generator import ContentGenerator, PromptContext
from .response_parser import (
    build_fallback_fields,
    coerce_generated_fields,
    parse_generator_json,
    repair_json_text,
)

__all__ = [
    # LLM
    "BaseLLM",
    "GeminiLLM",
    "LLMResponse",
    "Message",
    "get_llm",
    # Generation
    "ContentGenerator",
    "PromptContext",
    # Parsing
    "build_fallback_fields",
    "coerce_generated_fields",
    "parse_generator_json",
    "repair_json_text",
]
