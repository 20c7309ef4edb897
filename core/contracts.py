"""Canonical data contracts for source ingestion, generation and batch runs."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


PROJECT_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


def is_valid_project_id(value: str) -> bool:
    """Project ids double as file names: one path segment, no ``..``."""
    return bool(PROJECT_ID_RE.fullmatch(value or "")) and ".." not in value


class SourceKind(str, Enum):
    """Kind of source material a project page is generated from."""

    PDF = "pdf"
    GITHUB = "github"
    YOUTUBE = "youtube"


class AuthorOrigin(str, Enum):
    """Provenance of an author candidate; drives merge precedence only."""

    EXTRACTED = "extracted"
    MANUAL = "manual"
    GENERATED = "generated"


class JobState(str, Enum):
    """Lifecycle of one generation job inside a batch."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SourceDescriptor(BaseModel):
    """What to fetch: a pdf locator, a repository URL or a video URL."""

    kind: SourceKind
    locator: str

    @field_validator("locator", mode="before")
    @classmethod
    def _non_empty_locator(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("locator is required")
        return text


class AuthorCandidate(_CamelModel):
    """One author entry; identity is the normalized name."""

    name: str
    url: Optional[str] = None
    affiliation: Optional[str] = None
    equal_contribution: Optional[bool] = Field(default=None, alias="equalContribution")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("url", "affiliation", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        text = value.strip()
        return text or None

    @field_validator("equal_contribution", mode="before")
    @classmethod
    def _strict_bool(cls, value: Any) -> Optional[bool]:
        return value if isinstance(value, bool) else None

    def to_frontmatter(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name}
        if self.url:
            payload["url"] = self.url
        if self.affiliation:
            payload["affiliation"] = self.affiliation
        if self.equal_contribution is not None:
            payload["equalContribution"] = self.equal_contribution
        return payload


class ProjectLink(_CamelModel):
    type: Literal["paper", "code", "arxiv", "supplementary"]
    url: str


class CarouselItem(_CamelModel):
    type: Literal["image", "video"]
    src: str
    caption: str = ""


class DetailedDescription(_CamelModel):
    problem: List[str] = Field(default_factory=list)
    method: List[str] = Field(default_factory=list)
    results: List[str] = Field(default_factory=list)


class BibTeX(_CamelModel):
    code: Optional[str] = None


class PosterData(_CamelModel):
    pdf_url: Optional[str] = Field(default=None, alias="pdfUrl")


class RelatedWork(_CamelModel):
    title: str
    description: str = ""
    venue: str = ""
    url: str = ""


class ProjectRecord(_CamelModel):
    """Structured project metadata produced by the generation pipeline."""

    title: str
    authors: List[AuthorCandidate] = Field(default_factory=list)
    institution: str
    venue: str
    year: str
    abstract: str
    highlights: List[str] = Field(default_factory=list)
    detailed_description: Optional[DetailedDescription] = Field(default=None, alias="detailedDescription")
    links: List[ProjectLink] = Field(default_factory=list)
    teaser_video: Optional[str] = Field(default=None, alias="teaserVideo")
    carousel: List[CarouselItem] = Field(default_factory=list)
    youtube_video_id: Optional[str] = Field(default=None, alias="youtubeVideoId")
    poster: Optional[PosterData] = None
    bibtex: Optional[BibTeX] = None
    related_works: List[RelatedWork] = Field(default_factory=list, alias="relatedWorks")


class GenerationRequest(BaseModel):
    """One end-to-end generation request (a single page)."""

    project_id: str
    source: SourceDescriptor
    authors_text: str = ""
    author_list: List[AuthorCandidate] = Field(default_factory=list)
    institution: Optional[str] = None
    venue: Optional[str] = None
    research_year: Optional[str] = None

    @field_validator("project_id", mode="before")
    @classmethod
    def _non_empty_id(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("project_id is required")
        return text

    @field_validator("institution", "venue", "research_year", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None


class GenerationResult(BaseModel):
    """Outcome of a successful pipeline run."""

    project_id: str
    source: SourceDescriptor
    record: ProjectRecord
    used_fallback: bool = False
    extracted_author_names: List[str] = Field(default_factory=list)
    document_path: Optional[str] = None


class GenerationJob(BaseModel):
    """Batch-scoped job; mutated only by the orchestrator."""

    id: str
    request: GenerationRequest
    state: JobState = JobState.QUEUED
    message: str = ""
    result_title: Optional[str] = None
    attempts: int = 0
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def source(self) -> SourceDescriptor:
        return self.request.source

    def reset(self) -> None:
        self.state = JobState.QUEUED
        self.message = ""
        self.result_title = None
        self.updated_at = _utcnow()


class BatchRow(BaseModel):
    """Raw tabular row before validation; every field kept as text."""

    row_number: int
    source_type: str = ""
    source_url: str = ""
    project_id: str = ""
    authors: str = ""
    institution: str = ""
    venue: str = ""
    research_year: str = ""
    pdf_file_name: str = ""


class RowError(BaseModel):
    """Validation error reported at batch level."""

    row_number: int
    project_id: str = ""
    message: str


class BatchSummary(BaseModel):
    """Aggregate counts derived from current job states."""

    total: int = 0
    queued: int = 0
    running: int = 0
    success: int = 0
    failed: int = 0

    @property
    def completed(self) -> int:
        return self.success + self.failed

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return round(100.0 * self.completed / self.total, 1)
