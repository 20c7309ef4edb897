"""Batch input: CSV rows to validated generation jobs."""

from __future__ import annotations

import csv
import io
import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from core import BatchRow, GenerationJob, GenerationRequest, RowError, SourceDescriptor, SourceKind, is_valid_project_id
from sources.url_utils import is_http_url
from utils.exceptions import BatchValidationError


logger = logging.getLogger(__name__)

_HEADER_ALIASES = {
    "sourcetype": "source_type",
    "type": "source_type",
    "sourceurl": "source_url",
    "url": "source_url",
    "projectid": "project_id",
    "id": "project_id",
    "authors": "authors",
    "institution": "institution",
    "venue": "venue",
    "researchyear": "research_year",
    "year": "research_year",
    "pdffilename": "pdf_file_name",
    "pdffile": "pdf_file_name",
    "filename": "pdf_file_name",
}
_VALID_KINDS = ", ".join(kind.value for kind in SourceKind)


def _header_key(header: str) -> Optional[str]:
    return _HEADER_ALIASES.get(re.sub(r"[\s_\-]", "", str(header or "").lower()))


def parse_batch_csv(text: str) -> List[BatchRow]:
    """
    Parse CSV text with a header row. Unknown columns are ignored, fully
    empty rows skipped; ``row_number`` counts data rows from 1.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: List[BatchRow] = []
    for number, raw in enumerate(reader, start=1):
        values: Dict[str, str] = {}
        for header, value in raw.items():
            key = _header_key(header) if header is not None else None
            if key and key not in values:
                values[key] = str(value or "").strip()
        if not any(values.values()):
            continue
        rows.append(BatchRow(row_number=number, **values))
    logger.info(f"[BatchInput] Parsed {len(rows)} rows")
    return rows


def _match_uploaded(file_name: str, files: Mapping[str, str]) -> Optional[str]:
    if file_name in files:
        return files[file_name]
    wanted = Path(file_name).name.lower()
    for name, locator in files.items():
        if Path(name).name.lower() == wanted:
            return locator
    return None


def _validate_row(row: BatchRow, files: Mapping[str, str], seen_ids: set) -> GenerationRequest:
    kind_text = row.source_type.strip().lower()
    try:
        kind = SourceKind(kind_text)
    except ValueError:
        raise BatchValidationError(
            f"Invalid sourceType '{row.source_type}' (expected one of: {_VALID_KINDS})",
            row_number=row.row_number,
            project_id=row.project_id,
        ) from None

    project_id = row.project_id.strip()
    if not project_id:
        raise BatchValidationError("projectId is required", row_number=row.row_number)
    if not is_valid_project_id(project_id):
        raise BatchValidationError(
            f"Invalid projectId '{project_id}' (letters, digits, '.', '_' and '-' only)",
            row_number=row.row_number,
            project_id=project_id,
        )
    if project_id in seen_ids:
        raise BatchValidationError(
            f"Duplicate projectId '{project_id}'", row_number=row.row_number, project_id=project_id
        )

    locator = row.source_url.strip()
    if kind == SourceKind.PDF and row.pdf_file_name:
        uploaded = _match_uploaded(row.pdf_file_name, files)
        if uploaded:
            locator = uploaded
        elif not locator:
            raise BatchValidationError(
                f"pdfFileName '{row.pdf_file_name}' was not uploaded",
                row_number=row.row_number,
                project_id=project_id,
            )

    if not locator:
        raise BatchValidationError("sourceUrl is required", row_number=row.row_number, project_id=project_id)
    if kind != SourceKind.PDF and not is_http_url(locator):
        raise BatchValidationError(
            f"sourceUrl must be an http(s) URL for {kind.value} rows",
            row_number=row.row_number,
            project_id=project_id,
        )

    return GenerationRequest(
        project_id=project_id,
        source=SourceDescriptor(kind=kind, locator=locator),
        authors_text=row.authors,
        institution=row.institution,
        venue=row.venue,
        research_year=row.research_year,
    )


def build_batch(
    rows: List[BatchRow],
    files: Optional[Mapping[str, str]] = None,
) -> Tuple[List[GenerationJob], List[RowError]]:
    """
    Validate rows into queued jobs.

    ``files`` maps uploaded file names to their stored locators
    (``/papers/<name>``). Invalid rows never become jobs; they are
    returned as batch-level errors instead.
    """
    files = files or {}
    jobs: List[GenerationJob] = []
    errors: List[RowError] = []
    seen_ids: set = set()

    for row in rows:
        try:
            request = _validate_row(row, files, seen_ids)
        except BatchValidationError as e:
            logger.warning(f"[BatchInput] Row {row.row_number} rejected: {e.message}")
            errors.append(RowError(row_number=row.row_number, project_id=row.project_id, message=e.message))
            continue
        seen_ids.add(request.project_id)
        jobs.append(GenerationJob(id=request.project_id, request=request))

    return jobs, errors
