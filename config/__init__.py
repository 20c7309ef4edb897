"""
Configuration Management Module
"""
from .settings import (
    Settings,
    get_settings,
    get_github_settings,
    get_llm_settings,
    get_source_settings,
    get_extraction_settings,
    get_batch_settings,
    get_storage_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_github_settings",
    "get_llm_settings",
    "get_source_settings",
    "get_extraction_settings",
    "get_batch_settings",
    "get_storage_settings",
]
