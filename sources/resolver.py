"""Turn a source descriptor into raw document bytes."""

from __future__ import annotations

import base64
import logging
import re
import time
from pathlib import Path
from typing import Optional

import httpx

from config.settings import GitHubSettings, SourceSettings
from core import SourceDescriptor, SourceKind
from utils.exceptions import SourceUnavailable

from .url_utils import (
    GitHubFileRef,
    extract_paper_path,
    is_github_hosted,
    is_http_url,
    locator_basename,
    parse_github_file_url,
)


logger = logging.getLogger(__name__)

_BLOCKED_STATUSES = {401, 403, 404}
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class SourceResolver:
    """
    Resolve document sources in order: local uploads, direct fetch, then the
    authenticated GitHub contents API when the direct fetch was refused.

    No retries happen here; callers decide whether a failure is final.
    """

    def __init__(
        self,
        source_settings: Optional[SourceSettings] = None,
        github_settings: Optional[GitHubSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if source_settings is None or github_settings is None:
            from config import get_settings

            settings = get_settings()
            source_settings = source_settings or settings.source
            github_settings = github_settings or settings.github
        self._source_settings = source_settings
        self._github_settings = github_settings
        self._client = client
        self._owns_client = client is None

    @property
    def papers_dir(self) -> Path:
        return Path(self._source_settings.uploads_root) / "papers"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(float(self._source_settings.request_timeout)),
                follow_redirects=True,
            )
        return self._client

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, source: SourceDescriptor) -> bytes:
        """Return the document bytes for a pdf source or raise SourceUnavailable."""
        if source.kind != SourceKind.PDF:
            raise SourceUnavailable(
                f"Only document sources resolve to bytes, got '{source.kind.value}'",
                locator=source.locator,
            )

        locator = source.locator
        local_path = self.resolve_local_path(locator)
        if local_path is not None:
            logger.info(f"[SourceResolver] Reading local upload {local_path}")
            return local_path.read_bytes()

        if not is_http_url(locator):
            raise SourceUnavailable(f"PDF not found in uploads and not a URL: {locator}", locator=locator)

        return await self._fetch_remote(locator)

    def resolve_local_path(self, locator: str) -> Optional[Path]:
        """Map a locator onto an existing file under the uploads root."""
        paper_path = extract_paper_path(locator)
        if paper_path:
            found = self._existing_under_papers(paper_path[len("/papers/"):])
            if found is not None:
                return found

        basename = locator_basename(locator)
        if basename.lower().endswith(".pdf"):
            return self._existing_under_papers(basename)
        return None

    def _existing_under_papers(self, relative: str) -> Optional[Path]:
        relative = relative.strip().lstrip("/")
        if not relative:
            return None
        root = self.papers_dir.resolve()
        candidate = (root / relative).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            logger.warning(f"[SourceResolver] Rejected path outside uploads root: {relative}")
            return None
        return candidate if candidate.is_file() else None

    async def _fetch_remote(self, url: str) -> bytes:
        client = self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"PDF download failed ({url}): {e}", locator=url) from e

        if response.is_success:
            logger.info(f"[SourceResolver] Fetched {url} ({len(response.content)} bytes)")
            return response.content

        if response.status_code in _BLOCKED_STATUSES and self._github_settings.token and is_github_hosted(url):
            logger.info(f"[SourceResolver] Direct fetch returned {response.status_code}, trying GitHub auth")
            payload = await self._fetch_with_github_auth(url)
            if payload is not None:
                return payload

        raise SourceUnavailable(
            f"PDF download failed ({url}): {response.status_code} {response.reason_phrase}",
            locator=url,
            status=response.status_code,
        )

    async def _fetch_with_github_auth(self, url: str) -> Optional[bytes]:
        file_ref = parse_github_file_url(url)
        if file_ref is not None:
            payload = await self.fetch_github_contents(file_ref)
            if payload is not None:
                return payload

        client = self._get_client()
        try:
            response = await client.get(url, headers={"Authorization": f"Bearer {self._github_settings.token}"})
        except httpx.HTTPError as e:
            logger.warning(f"[SourceResolver] Authenticated fetch failed for {url}: {e}")
            return None
        return response.content if response.is_success else None

    async def fetch_github_contents(self, file_ref: GitHubFileRef) -> Optional[bytes]:
        """Fetch one file through the contents API; None signals not found."""
        token = self._github_settings.token
        if not token:
            return None

        api_url = (
            f"{self._github_settings.api_base.rstrip('/')}/repos/"
            f"{file_ref.owner}/{file_ref.repo}/contents/{file_ref.file_path}"
        )
        client = self._get_client()
        try:
            response = await client.get(
                api_url,
                params={"ref": file_ref.ref},
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github.v3+json",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"[SourceResolver] Contents API request failed: {e}")
            return None

        if not response.is_success:
            return None

        data = response.json()
        if data.get("encoding") != "base64" or not isinstance(data.get("content"), str):
            return None
        return base64.b64decode(re.sub(r"\s+", "", data["content"]))


def save_upload(
    filename: str,
    data: bytes,
    *,
    uploads_root: str,
    max_bytes: int = 10 * 1024 * 1024,
    now_ms: Optional[int] = None,
) -> str:
    """
    Store an uploaded PDF under ``<uploads_root>/papers`` and return the
    ``/papers/<name>`` locator the resolver understands.
    """
    name = str(filename or "").strip()
    if not name.lower().endswith(".pdf"):
        raise ValueError("Only PDF files can be uploaded")
    if len(data) > max_bytes:
        raise ValueError(f"File exceeds the {max_bytes // (1024 * 1024)}MB upload limit")

    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    stored_name = f"{timestamp}-{_UNSAFE_FILENAME_CHARS.sub('_', name)}"
    target_dir = Path(uploads_root) / "papers"
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / stored_name).write_bytes(data)
    logger.info(f"[Uploads] Stored {stored_name} ({len(data)} bytes)")
    return f"/papers/{stored_name}"
