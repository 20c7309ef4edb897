"""
Author roster reconciliation.

Author candidates arrive from three origins (extracted from the document,
entered manually, returned by the generator). Lists are merged first-wins:
the earlier list owns the order and every field it already set, later
lists may only fill gaps and, when allowed, append unseen names.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from core import AuthorCandidate, AuthorOrigin, SourceKind

from .author_detector import unique_names


logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_author_key(name: str) -> str:
    """Identity key: trimmed, lowercased, whitespace-collapsed."""
    return _WHITESPACE_RE.sub(" ", str(name or "").strip().lower())


def merge_author(base: AuthorCandidate, incoming: AuthorCandidate) -> AuthorCandidate:
    """Fill fields missing on ``base`` from ``incoming``; set fields never change."""
    return AuthorCandidate(
        name=base.name or incoming.name,
        url=base.url or incoming.url,
        affiliation=base.affiliation or incoming.affiliation,
        equal_contribution=(
            base.equal_contribution if base.equal_contribution is not None else incoming.equal_contribution
        ),
    )


def merge_author_sets(
    base: Iterable[AuthorCandidate],
    incoming: Iterable[AuthorCandidate],
    *,
    allow_new_names: bool = True,
) -> List[AuthorCandidate]:
    """
    Merge ``incoming`` into ``base``.

    Duplicates inside ``base`` itself collapse into their first occurrence,
    so the result never holds two entries with the same identity key.
    """
    merged: List[AuthorCandidate] = []
    index_by_key = {}

    for author in base:
        candidate = author.model_copy(update={"name": author.name.strip()})
        if not candidate.name:
            continue
        key = normalize_author_key(candidate.name)
        if key in index_by_key:
            position = index_by_key[key]
            merged[position] = merge_author(merged[position], candidate)
            continue
        index_by_key[key] = len(merged)
        merged.append(candidate)

    for author in incoming:
        name = author.name.strip()
        if not name:
            continue
        key = normalize_author_key(name)
        normalized = author.model_copy(update={"name": name})

        position = index_by_key.get(key)
        if position is not None:
            merged[position] = merge_author(merged[position], normalized)
            continue
        if not allow_new_names:
            continue
        index_by_key[key] = len(merged)
        merged.append(normalized)

    return merged


def reconcile(
    *rosters: Sequence[AuthorCandidate],
    allow_new_names: bool = True,
) -> List[AuthorCandidate]:
    """
    First-list-wins merge over any number of rosters.

    The first roster is always taken in full; ``allow_new_names`` governs
    whether later rosters may append names the result does not have yet.
    """
    if not rosters:
        return []
    result = merge_author_sets([], rosters[0])
    for roster in rosters[1:]:
        result = merge_author_sets(result, roster, allow_new_names=allow_new_names)
    return result


def apply_affiliation_by_position(
    base: Sequence[AuthorCandidate],
    enrichment: Sequence[AuthorCandidate],
) -> List[AuthorCandidate]:
    """
    Copy affiliations index-for-index when both rosters have the same
    non-zero length and the enrichment carries at least one affiliation.
    Any other shape leaves ``base`` untouched.
    """
    result = list(base)
    if not result or not enrichment or len(result) != len(enrichment):
        return result
    if not any(author.affiliation for author in enrichment):
        return result

    for index, author in enumerate(result):
        if author.affiliation:
            continue
        affiliation = enrichment[index].affiliation
        if affiliation:
            result[index] = author.model_copy(update={"affiliation": affiliation})
    return result


def names_to_authors(names: Iterable[str]) -> List[AuthorCandidate]:
    return [AuthorCandidate(name=name) for name in unique_names(names)]


def parse_authors_text(value: str) -> List[AuthorCandidate]:
    """
    Parse free-text manual input: comma/semicolon separated entries, each
    either ``Name`` or ``Name @ Affiliation``.
    """
    authors: List[AuthorCandidate] = []
    for chunk in re.split(r"[,;\n]", str(value or "")):
        entry = chunk.strip()
        if not entry:
            continue
        name, _, affiliation = entry.partition("@")
        name = name.strip()
        if not name:
            continue
        authors.append(AuthorCandidate(name=name, affiliation=affiliation.strip() or None))
    return merge_author_sets([], authors)


def coerce_author_list(value: Any) -> List[AuthorCandidate]:
    """
    Normalize a loosely-typed author list (manual JSON or generator output).
    Plain strings become name-only entries; malformed entries are skipped.
    """
    if not isinstance(value, list):
        return []

    authors: List[AuthorCandidate] = []
    for item in value:
        if isinstance(item, str):
            if item.strip():
                authors.append(AuthorCandidate(name=item))
            continue
        if isinstance(item, AuthorCandidate):
            authors.append(item)
            continue
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        authors.append(AuthorCandidate.model_validate(item))
    return merge_author_sets([], authors)


@dataclass
class RosterOutcome:
    """Final roster plus the origin that supplied its base entries."""

    authors: List[AuthorCandidate]
    base_origin: Optional[AuthorOrigin]


def build_roster(
    *,
    source_kind: SourceKind,
    extracted_names: Sequence[str],
    manual_authors: Sequence[AuthorCandidate],
    generated_authors: Sequence[AuthorCandidate],
    placeholder_name: str = "Author",
) -> RosterOutcome:
    """
    Pipeline-level precedence chain:

    1. base = detected names (pdf only), else the manual roster
    2. manual roster enriches the base without adding names, then fills
       affiliations by position when the lengths line up
    3. generator roster enriches without adding names
    4. still empty: raw generator roster
    5. still empty: a single placeholder author
    """
    extracted = names_to_authors(extracted_names) if source_kind == SourceKind.PDF else []
    manual = merge_author_sets([], manual_authors)
    generated = merge_author_sets([], generated_authors)

    if extracted:
        base, origin = extracted, AuthorOrigin.EXTRACTED
    elif manual:
        base, origin = manual, AuthorOrigin.MANUAL
    else:
        base, origin = [], None

    roster = merge_author_sets(base, manual, allow_new_names=False)
    roster = apply_affiliation_by_position(roster, manual)
    roster = merge_author_sets(roster, generated, allow_new_names=False)

    if not roster and generated:
        roster, origin = generated, AuthorOrigin.GENERATED
    if not roster:
        logger.warning("[Roster] No author from any origin, using placeholder")
        roster, origin = [AuthorCandidate(name=placeholder_name)], None

    logger.info(f"[Roster] {len(roster)} authors (base origin: {origin.value if origin else 'placeholder'})")
    return RosterOutcome(authors=roster, base_origin=origin)
