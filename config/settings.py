"""
Settings Configuration
Pydantic-validated settings, one class per concern
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class GitHubSettings(BaseSettings):
    """GitHub API settings (private file fetch and content publishing)"""
    token: Optional[str] = Field(default=None, description="GitHub Token")
    owner: Optional[str] = Field(default=None, description="Content repository owner")
    repo: Optional[str] = Field(default=None, description="Content repository name")
    branch: str = Field(default="main", description="Content repository branch")
    api_base: str = Field(default="https://api.github.com", description="GitHub API base URL")

    class Config:
        env_prefix = "GITHUB_"


class LLMSettings(BaseSettings):
    """Content generator settings"""
    provider: str = Field(default="gemini", description="LLM provider")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    top_p: float = Field(default=0.95, description="Nucleus sampling")
    top_k: int = Field(default=40, description="Top-k sampling")
    max_tokens: int = Field(default=8192, description="Max output tokens")
    timeout: float = Field(default=120.0, description="Request timeout (seconds)")
    output_language: str = Field(default="Korean", description="Language of generated descriptions")

    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")

    class Config:
        env_prefix = "LLM_"


class SourceSettings(BaseSettings):
    """Source resolution settings"""
    uploads_root: str = Field(default="./public", description="Directory holding papers/ uploads")
    request_timeout: int = Field(default=30, description="HTTP timeout (seconds)")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="Upload size limit")

    class Config:
        env_prefix = "SOURCE_"


class ExtractionSettings(BaseSettings):
    """PDF text extraction limits"""
    max_pages: int = Field(default=80, description="Pages read per document")
    max_chars: int = Field(default=100_000, description="Characters kept per document")
    header_chars: int = Field(default=12_000, description="Header region scanned for authors")

    class Config:
        env_prefix = "EXTRACTION_"


class BatchSettings(BaseSettings):
    """Batch runner settings"""
    max_workers: int = Field(default=3, description="Concurrent pipeline runs (1-3)")

    class Config:
        env_prefix = "BATCH_"


class StorageSettings(BaseSettings):
    """Content store settings"""
    backend: str = Field(default="markdown", description="markdown | github")
    content_dir: str = Field(default="./content/projects", description="Local markdown directory")
    github_content_path: str = Field(default="src/content/projects", description="Path inside the content repo")

    class Config:
        env_prefix = "STORAGE_"


class DefaultsSettings(BaseSettings):
    """Fallback values used when neither the request nor the generator provides one"""
    institution: str = Field(default="ModuLabs")
    venue: str = Field(default="Publication")
    placeholder_author: str = Field(default="Author")

    class Config:
        env_prefix = "DEFAULTS_"


class Settings(BaseSettings):
    """Top-level settings aggregating every concern"""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    source: SourceSettings = Field(default_factory=SourceSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    defaults: DefaultsSettings = Field(default_factory=DefaultsSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load a .env file into the environment, then build every section."""
        if env_path is None:
            env_path = Path.cwd() / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            github=GitHubSettings(),
            llm=LLMSettings(),
            source=SourceSettings(),
            extraction=ExtractionSettings(),
            batch=BatchSettings(),
            storage=StorageSettings(),
            defaults=DefaultsSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()


def get_github_settings() -> GitHubSettings:
    return get_settings().github


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_source_settings() -> SourceSettings:
    return get_settings().source


def get_extraction_settings() -> ExtractionSettings:
    return get_settings().extraction


def get_batch_settings() -> BatchSettings:
    return get_settings().batch


def get_storage_settings() -> StorageSettings:
    return get_settings().storage
