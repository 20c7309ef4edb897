"""
Unit tests for source resolution (local uploads, direct fetch, GitHub fallback).
"""

from __future__ import annotations

import base64

import httpx
import pytest

from config.settings import GitHubSettings, SourceSettings
from core import SourceDescriptor, SourceKind
from sources.resolver import SourceResolver, save_upload
from utils.exceptions import SourceUnavailable


PDF_BYTES = b"%PDF-1.4 fake body"


def _resolver(tmp_path, handler=None, token=None) -> SourceResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler or (lambda request: httpx.Response(404))))
    return SourceResolver(
        source_settings=SourceSettings(uploads_root=str(tmp_path / "public")),
        github_settings=GitHubSettings(token=token),
        client=client,
    )


def _pdf(locator: str) -> SourceDescriptor:
    return SourceDescriptor(kind=SourceKind.PDF, locator=locator)


@pytest.mark.asyncio
async def test_local_upload_is_read_before_network(tmp_path):
    papers = tmp_path / "public" / "papers"
    papers.mkdir(parents=True)
    (papers / "123-paper.pdf").write_bytes(PDF_BYTES)

    def no_network(request):
        raise AssertionError(f"unexpected request to {request.url}")

    resolver = _resolver(tmp_path, no_network)
    assert await resolver.resolve(_pdf("/papers/123-paper.pdf")) == PDF_BYTES
    assert await resolver.resolve(_pdf("https://site.example/public/papers/123-paper.pdf")) == PDF_BYTES
    assert await resolver.resolve(_pdf("file:123-paper.pdf")) == PDF_BYTES


@pytest.mark.asyncio
async def test_direct_fetch(tmp_path):
    def handler(request):
        assert request.url.host == "files.example"
        return httpx.Response(200, content=PDF_BYTES)

    resolver = _resolver(tmp_path, handler)
    assert await resolver.resolve(_pdf("https://files.example/paper.pdf")) == PDF_BYTES


@pytest.mark.asyncio
async def test_blocked_github_file_falls_back_to_contents_api(tmp_path):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        if request.url.host == "raw.githubusercontent.com":
            return httpx.Response(403)
        assert request.url.path == "/repos/acme/papers/contents/pdfs/paper.pdf"
        assert request.url.params["ref"] == "main"
        assert request.headers["Authorization"] == "Bearer secret"
        encoded = base64.b64encode(PDF_BYTES).decode("ascii")
        return httpx.Response(200, json={"encoding": "base64", "content": encoded[:8] + "\n" + encoded[8:]})

    resolver = _resolver(tmp_path, handler, token="secret")
    data = await resolver.resolve(_pdf("https://raw.githubusercontent.com/acme/papers/main/pdfs/paper.pdf"))

    assert data == PDF_BYTES
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_failed_fetch_reports_status(tmp_path):
    resolver = _resolver(tmp_path, lambda request: httpx.Response(404))
    with pytest.raises(SourceUnavailable) as exc_info:
        await resolver.resolve(_pdf("https://files.example/missing.pdf"))
    assert "404" in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_local_path_and_non_pdf_kinds_fail(tmp_path):
    resolver = _resolver(tmp_path)
    with pytest.raises(SourceUnavailable):
        await resolver.resolve(_pdf("/papers/missing.pdf"))
    with pytest.raises(SourceUnavailable):
        await resolver.resolve(SourceDescriptor(kind=SourceKind.GITHUB, locator="https://github.com/acme/repo"))


@pytest.mark.asyncio
async def test_paths_escaping_uploads_root_are_rejected(tmp_path):
    (tmp_path / "secret.pdf").write_bytes(PDF_BYTES)
    resolver = _resolver(tmp_path)
    with pytest.raises(SourceUnavailable):
        await resolver.resolve(_pdf("/papers/../../secret.pdf"))


def test_save_upload_sanitizes_and_prefixes(tmp_path):
    locator = save_upload("my paper (v2).pdf", PDF_BYTES, uploads_root=str(tmp_path), now_ms=123)
    assert locator == "/papers/123-my_paper__v2_.pdf"
    assert (tmp_path / "papers" / "123-my_paper__v2_.pdf").read_bytes() == PDF_BYTES


def test_save_upload_rejects_non_pdf_and_oversize(tmp_path):
    with pytest.raises(ValueError):
        save_upload("notes.txt", b"x", uploads_root=str(tmp_path))
    with pytest.raises(ValueError):
        save_upload("big.pdf", b"x" * 11, uploads_root=str(tmp_path), max_bytes=10)
