"""
Unit tests for document rendering and content store backends.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest
import yaml
from tenacity import wait_none

from core import AuthorCandidate, GenerationResult, ProjectRecord, SourceDescriptor, SourceKind
from storage.content_store import (
    GitHubContentStore,
    InMemoryContentStore,
    MarkdownContentStore,
    render_project_document,
)
from utils.exceptions import PersistFailed


def _result(kind=SourceKind.GITHUB, locator="https://github.com/acme/widgets", **record_fields) -> GenerationResult:
    record = ProjectRecord(
        title="Widget Nets",
        authors=[AuthorCandidate(name="Jane Doe", affiliation="MIT", equal_contribution=True)],
        institution="ModuLabs",
        venue="Publication",
        year="2024",
        abstract="A" * 150,
        links=[{"type": "code", "url": locator}],
        **record_fields,
    )
    return GenerationResult(
        project_id="widget-nets",
        source=SourceDescriptor(kind=kind, locator=locator),
        record=record,
    )


def test_render_frontmatter_and_body():
    document = render_project_document(
        _result(highlights=["fast"], bibtex={"code": "@misc{w}"}),
        research_year="2023",
        created_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
    )
    header, body = document.split("---\n")[1], document.split("---\n", 2)[2]
    frontmatter = yaml.safe_load(header)

    assert frontmatter["id"] == "widget-nets"
    assert frontmatter["type"] == "github"
    assert frontmatter["createdAt"] == "2025-01-02"
    assert frontmatter["description"] == "A" * 100 + "..."
    assert frontmatter["year"] == "2023"
    assert frontmatter["githubUrl"] == "https://github.com/acme/widgets"
    assert frontmatter["authorsDetailed"] == [{"name": "Jane Doe", "affiliation": "MIT", "equalContribution": True}]
    assert frontmatter["published"] is True
    assert "# Widget Nets" in body
    assert "- [Code](https://github.com/acme/widgets)" in body
    assert "```bibtex\n@misc{w}\n```" in body


def test_render_video_record():
    document = render_project_document(
        _result(kind=SourceKind.YOUTUBE, locator="https://youtu.be/abc123", youtube_video_id="abc123")
    )
    frontmatter = yaml.safe_load(document.split("---\n")[1])
    assert frontmatter["type"] == "video"
    assert frontmatter["videoUrl"] == "https://youtu.be/abc123"
    assert frontmatter["youtubeVideoId"] == "abc123"
    assert frontmatter["year"] == "2024"


@pytest.mark.asyncio
async def test_markdown_store_overwrites(tmp_path):
    store = MarkdownContentStore(str(tmp_path / "projects"))
    await store.save("widget-nets", "first")
    path = await store.save("widget-nets", "second")

    assert path.endswith("widget-nets.md")
    assert (tmp_path / "projects" / "widget-nets.md").read_text(encoding="utf-8") == "second"


@pytest.mark.asyncio
async def test_markdown_store_failure_is_persist_failed(tmp_path):
    blocker = tmp_path / "projects"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(PersistFailed):
        await MarkdownContentStore(str(blocker)).save("widget-nets", "doc")


@pytest.mark.asyncio
async def test_in_memory_store():
    store = InMemoryContentStore()
    assert await store.save("a", "doc") == "memory://a"
    assert store.documents == {"a": "doc"}


def _github_store(handler) -> GitHubContentStore:
    return GitHubContentStore(
        token="secret",
        owner="acme",
        repo="site",
        branch="main",
        content_path="src/content/projects",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_github_store_updates_existing_file():
    puts = []

    def handler(request):
        assert request.url.path == "/repos/acme/site/contents/src/content/projects/widget-nets.md"
        assert request.headers["Authorization"] == "Bearer secret"
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "abc"})
        puts.append(json.loads(request.content))
        return httpx.Response(200, json={"content": {}})

    location = await _github_store(handler).save("widget-nets", "# doc")

    assert location == "github://acme/site/src/content/projects/widget-nets.md"
    assert puts[0]["sha"] == "abc"
    assert puts[0]["branch"] == "main"
    assert base64.b64decode(puts[0]["content"]) == b"# doc"


@pytest.mark.asyncio
async def test_github_store_retries_server_errors(monkeypatch):
    monkeypatch.setattr(GitHubContentStore._put.retry, "wait", wait_none())
    attempts = {"put": 0}

    def handler(request):
        if request.method == "GET":
            return httpx.Response(404)
        attempts["put"] += 1
        if attempts["put"] == 1:
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(201, json={"content": {}})

    await _github_store(handler).save("widget-nets", "# doc")
    assert attempts["put"] == 2


@pytest.mark.asyncio
async def test_github_store_client_errors_fail_without_retry(monkeypatch):
    monkeypatch.setattr(GitHubContentStore._put.retry, "wait", wait_none())
    attempts = {"put": 0}

    def handler(request):
        if request.method == "GET":
            return httpx.Response(404)
        attempts["put"] += 1
        return httpx.Response(422, text="invalid sha")

    with pytest.raises(PersistFailed) as exc_info:
        await _github_store(handler).save("widget-nets", "# doc")
    assert "422" in exc_info.value.message
    assert attempts["put"] == 1


@pytest.mark.asyncio
async def test_markdown_store_rejects_paths_outside_content_dir(tmp_path):
    content_dir = tmp_path / "site" / "content"
    with pytest.raises(PersistFailed):
        await MarkdownContentStore(str(content_dir)).save("../../escaped", "x")
    assert not (tmp_path / "escaped.md").exists()
    assert list(tmp_path.rglob("*.md")) == []


@pytest.mark.asyncio
async def test_github_store_rejects_path_like_ids():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(PersistFailed):
        await _github_store(handler).save("../other/readme", "# doc")
