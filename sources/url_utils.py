"""URL parsing helpers for video, repository, arXiv and paper-upload locators."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse


_YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=)([^&\s]+)"),
    re.compile(r"(?:youtu\.be/)([^?\s]+)"),
    re.compile(r"(?:youtube\.com/embed/)([^?\s]+)"),
]
_GITHUB_REPO_RE = re.compile(r"github\.com/([^/]+)/([^/]+)")
_ARXIV_RE = re.compile(r"arxiv\.org/(?:abs|pdf)/(\d+\.\d+)")

PAPERS_PREFIX = "/papers/"


@dataclass(frozen=True)
class GitHubInfo:
    owner: str
    repo: str


@dataclass(frozen=True)
class GitHubFileRef:
    owner: str
    repo: str
    ref: str
    file_path: str


def extract_youtube_id(url: str) -> Optional[str]:
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(str(url or ""))
        if match:
            return match.group(1)
    return None


def extract_github_info(url: str) -> Optional[GitHubInfo]:
    match = _GITHUB_REPO_RE.search(str(url or ""))
    if not match:
        return None
    repo = match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return GitHubInfo(owner=match.group(1), repo=repo)


def extract_arxiv_id(url: str) -> Optional[str]:
    match = _ARXIV_RE.search(str(url or ""))
    return match.group(1) if match else None


def is_valid_url(url: str) -> bool:
    parsed = urlparse(str(url or "").strip())
    return bool(parsed.scheme in {"http", "https"} and parsed.netloc)


def is_http_url(url: str) -> bool:
    text = str(url or "").strip()
    return text.startswith("http://") or text.startswith("https://")


def determine_source_type(url: str) -> str:
    """Best-effort guess: youtube | github | arxiv | pdf | unknown."""
    value = str(url or "")
    if "youtube.com" in value or "youtu.be" in value:
        return "youtube"
    if "github.com" in value:
        return "github"
    if "arxiv.org" in value:
        return "arxiv"
    if value.lower().endswith(".pdf"):
        return "pdf"
    return "unknown"


def parse_github_file_url(url: str) -> Optional[GitHubFileRef]:
    """
    Recognize a single file hosted on GitHub.

    Supports ``raw.githubusercontent.com/{owner}/{repo}/{ref}/{path}`` and
    ``github.com/{owner}/{repo}/blob/{ref}/{path}``.
    """
    parsed = urlparse(str(url or "").strip())
    parts = [part for part in parsed.path.split("/") if part]

    if parsed.hostname == "raw.githubusercontent.com":
        if len(parts) >= 4:
            owner, repo, ref = parts[0], parts[1], parts[2]
            return GitHubFileRef(owner=owner, repo=repo, ref=ref, file_path="/".join(parts[3:]))
        return None

    if parsed.hostname == "github.com":
        if len(parts) >= 5 and parts[2] == "blob":
            owner, repo, ref = parts[0], parts[1], parts[3]
            return GitHubFileRef(owner=owner, repo=repo, ref=ref, file_path="/".join(parts[4:]))
        return None

    return None


def is_github_hosted(url: str) -> bool:
    value = str(url or "")
    return "github.com" in value or "githubusercontent.com" in value


def extract_paper_path(locator: str) -> Optional[str]:
    """
    Map a locator onto an uploads path of the form ``/papers/<name>``.

    Accepts bare ``/papers/...`` paths, ``file:`` hints and URLs whose path
    contains ``/papers/`` (optionally under ``/public``).
    """
    trimmed = str(locator or "").strip()
    if not trimmed:
        return None

    if trimmed.startswith(PAPERS_PREFIX):
        return trimmed

    if trimmed.startswith("file:"):
        hint = trimmed[5:].strip()
        if not hint:
            return None
        return hint if hint.startswith(PAPERS_PREFIX) else PAPERS_PREFIX + hint.lstrip("/")

    parsed = urlparse(trimmed)
    if not parsed.scheme:
        return None
    path = parsed.path
    if path.startswith(PAPERS_PREFIX):
        return path
    public_index = path.find("/public/papers/")
    if public_index >= 0:
        return path[public_index + len("/public"):]
    papers_index = path.find(PAPERS_PREFIX)
    if papers_index >= 0:
        return path[papers_index:]
    return None


def locator_basename(locator: str) -> str:
    """File name at the end of a URL or path, query and fragment removed."""
    text = str(locator or "").strip()
    parsed = urlparse(text)
    path = parsed.path if parsed.scheme else text.split("?")[0].split("#")[0]
    return posixpath.basename(path)
