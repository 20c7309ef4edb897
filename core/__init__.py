"""Core contracts and shared types."""

from .contracts import (
    AuthorCandidate,
    AuthorOrigin,
    BatchRow,
    BatchSummary,
    BibTeX,
    CarouselItem,
    DetailedDescription,
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobState,
    PosterData,
    ProjectLink,
    ProjectRecord,
    RelatedWork,
    RowError,
    SourceDescriptor,
    SourceKind,
    is_valid_project_id,
)

__all__ = [
    "AuthorCandidate",
    "AuthorOrigin",
    "BatchRow",
    "BatchSummary",
    "BibTeX",
    "CarouselItem",
    "DetailedDescription",
    "GenerationJob",
    "GenerationRequest",
    "GenerationResult",
    "JobState",
    "PosterData",
    "ProjectLink",
    "ProjectRecord",
    "RelatedWork",
    "RowError",
    "SourceDescriptor",
    "SourceKind",
    "is_valid_project_id",
]
