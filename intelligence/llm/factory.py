"""
LLM Factory
Build an LLM instance from settings
"""
from typing import Optional
import logging

from utils.exceptions import ConfigurationError

from .base import BaseLLM
from .gemini_llm import GeminiLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "gemini": "gemini-2.5-pro",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings=None,
    **kwargs,
) -> BaseLLM:
    """
    Return an LLM instance

    Reads ``LLM_*`` settings unless explicit values are passed.

    Example:
        llm = get_llm()
        llm = get_llm(model="gemini-2.5-flash", temperature=0.3)
    """
    if settings is None:
        from config import get_llm_settings
        settings = get_llm_settings()

    provider = provider or settings.provider
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "gemini": settings.gemini_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "timeout": settings.timeout,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    if provider == "gemini":
        if not api_key:
            raise ConfigurationError("LLM_GEMINI_API_KEY is not set")
        return GeminiLLM(
            model=model,
            api_key=api_key,
            top_p=kwargs.pop("top_p", settings.top_p),
            top_k=kwargs.pop("top_k", settings.top_k),
            **kwargs,
        )
    raise ConfigurationError(f"Unsupported LLM provider: {provider}")
