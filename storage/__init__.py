"""
Storage Module
Content store backends for generated project documents
"""
from .content_store import (
    ContentStore,
    GitHubContentStore,
    InMemoryContentStore,
    MarkdownContentStore,
    build_frontmatter,
    get_content_store,
    render_project_document,
)

__all__ = [
    "ContentStore",
    "GitHubContentStore",
    "InMemoryContentStore",
    "MarkdownContentStore",
    "build_frontmatter",
    "get_content_store",
    "render_project_document",
]
