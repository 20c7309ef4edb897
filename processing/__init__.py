"""
Processing Module
PDF text extraction, author detection and author roster reconciliation
"""
from .pdf_text import TextExtractor
from .author_detector import (
    AuthorLineCandidate,
    AuthorNameDetector,
    DetectorConfig,
    detect_authors,
    extract_names_from_line,
    is_likely_author_name,
    score_author_line,
    unique_names,
)
from .author_reconciler import (
    RosterOutcome,
    apply_affiliation_by_position,
    build_roster,
    coerce_author_list,
    merge_author_sets,
    names_to_authors,
    normalize_author_key,
    parse_authors_text,
    reconcile,
)

__all__ = [
    # Extraction
    "TextExtractor",
    # Detection
    "AuthorLineCandidate",
    "AuthorNameDetector",
    "DetectorConfig",
    "detect_authors",
    "extract_names_from_line",
    "is_likely_author_name",
    "score_author_line",
    "unique_names",
    # Reconciliation
    "RosterOutcome",
    "apply_affiliation_by_position",
    "build_roster",
    "coerce_author_list",
    "merge_author_sets",
    "names_to_authors",
    "normalize_author_key",
    "parse_authors_text",
    "reconcile",
]
