"""
Content Store
Persists generated project documents, one record per project id.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import asyncio
import base64
import logging

import httpx
import yaml
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core import GenerationResult, SourceKind, is_valid_project_id
from utils.exceptions import PersistFailed


logger = logging.getLogger(__name__)


_PROJECT_TYPES = {
    SourceKind.PDF: "paper",
    SourceKind.GITHUB: "github",
    SourceKind.YOUTUBE: "video",
}
_SOURCE_URL_KEYS = {
    SourceKind.PDF: "arxivUrl",
    SourceKind.GITHUB: "githubUrl",
    SourceKind.YOUTUBE: "videoUrl",
}
_LINK_LABELS = {"paper": "Paper", "code": "Code", "arxiv": "arXiv", "supplementary": "Supplementary"}


def build_frontmatter(
    result: GenerationResult,
    *,
    research_year: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    record = result.record
    created = (created_at or datetime.now(timezone.utc)).date().isoformat()
    abstract = record.abstract
    frontmatter: Dict[str, Any] = {
        "id": result.project_id,
        "title": record.title,
        "description": f"{abstract[:100]}..." if len(abstract) > 100 else abstract,
        "type": _PROJECT_TYPES[result.source.kind],
        "createdAt": created,
        "authors": [author.name for author in record.authors],
        "authorsDetailed": [author.to_frontmatter() for author in record.authors],
        "published": True,
        "venue": record.venue,
        "year": research_year or record.year,
        "institution": record.institution,
    }
    frontmatter[_SOURCE_URL_KEYS[result.source.kind]] = result.source.locator
    if record.youtube_video_id:
        frontmatter["youtubeVideoId"] = record.youtube_video_id
    return frontmatter


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def render_project_document(
    result: GenerationResult,
    *,
    research_year: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> str:
    """Markdown body with YAML frontmatter, as consumed by the site's content loader."""
    record = result.record
    authors = ", ".join(f"[{a.name}]({a.url})" if a.url else a.name for a in record.authors)
    sections = [
        f"# {record.title}",
        f"**Authors:** {authors}",
        f"**Institution:** {record.institution}",
        f"**Venue:** {record.venue} {record.year}",
        "## Links\n\n" + "\n".join(f"- [{_LINK_LABELS[l.type]}]({l.url})" for l in record.links),
        f"## Abstract\n\n{record.abstract}",
    ]
    if record.highlights:
        sections.append("## Highlights\n\n" + _bullets(record.highlights))
    description = record.detailed_description
    if description:
        parts = []
        for heading, items in (("Problem", description.problem), ("Method", description.method), ("Results", description.results)):
            if items:
                parts.append(f"### {heading}\n\n{_bullets(items)}")
        if parts:
            sections.append("## Details\n\n" + "\n\n".join(parts))
    if record.teaser_video:
        sections.append(f"## Teaser Video\n\n[Watch Teaser]({record.teaser_video})")
    if record.carousel:
        sections.append("## Results\n\n" + "\n\n".join(f"![{c.caption or 'image'}]({c.src})\n_{c.caption}_" for c in record.carousel))
    if record.youtube_video_id:
        vid = record.youtube_video_id
        sections.append(
            f"## Video Presentation\n\n[![Video](https://img.youtube.com/vi/{vid}/maxresdefault.jpg)]"
            f"(https://www.youtube.com/watch?v={vid})"
        )
    if record.bibtex and record.bibtex.code:
        sections.append(f"## BibTeX\n\n```bibtex\n{record.bibtex.code}\n```")

    frontmatter = build_frontmatter(result, research_year=research_year, created_at=created_at)
    header = yaml.safe_dump(frontmatter, allow_unicode=True, sort_keys=False).strip()
    return f"---\n{header}\n---\n\n" + "\n\n".join(sections) + "\n"


class ContentStore(ABC):
    """
    Content store abstraction

    ``save`` is idempotent per record id: saving again overwrites.
    """

    @abstractmethod
    async def save(self, record_id: str, document: str) -> str:
        """Persist a document, returning where it went; raise PersistFailed on error."""
        pass

    async def aclose(self) -> None:
        return None


class InMemoryContentStore(ContentStore):
    """Dict-backed store (tests and dry runs)"""

    def __init__(self):
        self.documents: Dict[str, str] = {}
        self.writes = 0

    async def save(self, record_id: str, document: str) -> str:
        self.writes += 1
        self.documents[record_id] = document
        return f"memory://{record_id}"


class MarkdownContentStore(ContentStore):
    """Writes ``<content_dir>/<record_id>.md``"""

    def __init__(self, content_dir: str):
        self.content_dir = Path(content_dir)

    def _target(self, record_id: str) -> Path:
        root = self.content_dir.resolve()
        path = (root / f"{record_id}.md").resolve()
        try:
            path.relative_to(root)
        except ValueError:
            raise PersistFailed(f"Record path escapes {root}: {record_id}", record_id=record_id) from None
        return path

    def _write(self, record_id: str, document: str) -> Path:
        path = self._target(record_id)
        self.content_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
        return path

    async def save(self, record_id: str, document: str) -> str:
        try:
            path = await asyncio.to_thread(self._write, record_id, document)
        except OSError as e:
            raise PersistFailed(f"Failed to write markdown file: {e}", record_id=record_id) from e
        logger.info(f"[MarkdownContentStore] Saved {path}")
        return str(path)


class _RetryableStoreError(Exception):
    pass


class GitHubContentStore(ContentStore):
    """
    Commits documents into a GitHub repository through the contents API.
    Transport errors and 5xx responses are retried.
    """

    def __init__(
        self,
        *,
        token: str,
        owner: str,
        repo: str,
        branch: str = "main",
        content_path: str = "src/content/projects",
        api_base: str = "https://api.github.com",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.content_path = content_path.strip("/")
        self.api_base = api_base.rstrip("/")
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        return self._client

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def _file_url(self, record_id: str) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.repo}/contents/{self.content_path}/{record_id}.md"

    @retry(
        retry=retry_if_exception_type(_RetryableStoreError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _put(self, record_id: str, document: str) -> httpx.Response:
        client = self._get_client()
        url = self._file_url(record_id)
        try:
            existing = await client.get(url, headers=self._headers, params={"ref": self.branch})
            sha = existing.json().get("sha") if existing.is_success else None

            body = {
                "message": f"Add project: {record_id}",
                "content": base64.b64encode(document.encode("utf-8")).decode("ascii"),
                "branch": self.branch,
            }
            if sha:
                body["sha"] = sha
            response = await client.put(url, headers=self._headers, json=body)
        except httpx.TransportError as e:
            raise _RetryableStoreError(str(e)) from e

        if response.status_code >= 500:
            raise _RetryableStoreError(f"GitHub API Error: {response.status_code} {response.text}")
        return response

    async def save(self, record_id: str, document: str) -> str:
        if not is_valid_project_id(record_id):
            raise PersistFailed(f"Invalid record id for a repository path: {record_id!r}", record_id=record_id)
        try:
            response = await self._put(record_id, document)
        except _RetryableStoreError as e:
            raise PersistFailed(str(e), record_id=record_id) from e

        if not response.is_success:
            raise PersistFailed(
                f"GitHub API Error: {response.status_code} {response.text}",
                record_id=record_id,
            )
        logger.info(f"[GitHubContentStore] Committed {self.content_path}/{record_id}.md")
        return f"github://{self.owner}/{self.repo}/{self.content_path}/{record_id}.md"

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def get_content_store(settings=None) -> ContentStore:
    """Build the configured content store."""
    if settings is None:
        from config import get_settings
        settings = get_settings()

    backend = settings.storage.backend.lower()
    if backend == "github":
        github = settings.github
        if not (github.token and github.owner and github.repo):
            from utils.exceptions import ConfigurationError
            raise ConfigurationError("GITHUB_TOKEN, GITHUB_OWNER and GITHUB_REPO are required for the github backend")
        return GitHubContentStore(
            token=github.token,
            owner=github.owner,
            repo=github.repo,
            branch=github.branch,
            content_path=settings.storage.github_content_path,
            api_base=github.api_base,
        )
    if backend == "memory":
        return InMemoryContentStore()
    return MarkdownContentStore(settings.storage.content_dir)
