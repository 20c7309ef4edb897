"""Parse and repair near-JSON generator output into project fields."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from core import AuthorCandidate, SourceKind
from utils.exceptions import GeneratorMalformed


logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\n?")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_CONTROL_CHARS = {chr(code) for code in list(range(0x00, 0x20)) + [0x7F]}

_LINK_TYPES = {"paper", "code", "arxiv", "supplementary"}
_CAROUSEL_TYPES = {"image", "video"}
_GENERATED_IMAGE_PREFIX = "GENERATE_"
_CAPTION_UNESCAPES = [("\\!", "!"), ("\\[", "["), ("\\]", "]"), ("\\(", "("), ("\\)", ")"), ("\\_", "_")]


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", str(text or "")).strip()


def repair_json_text(text: str) -> str:
    """
    Fix what LLMs commonly get wrong in JSON.

    Inside string literals: raw newlines and tabs are escaped, other control
    characters dropped. Outside strings: trailing commas before ``}``/``]``
    are removed.
    """
    out: List[str] = []
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            if escaped:
                out.append(ch)
                escaped = False
            elif ch == "\\":
                out.append(ch)
                escaped = True
            elif ch == '"':
                out.append(ch)
                in_string = False
            elif ch == "\n":
                out.append("\\n")
            elif ch == "\t":
                out.append("\\t")
            elif ch in _CONTROL_CHARS:
                continue
            else:
                out.append(ch)
            continue

        if ch == '"':
            in_string = True
        elif ch in "}]":
            cursor = len(out) - 1
            while cursor >= 0 and out[cursor].isspace():
                cursor -= 1
            if cursor >= 0 and out[cursor] == ",":
                del out[cursor]
        out.append(ch)

    return "".join(out)


def parse_generator_json(raw_text: str) -> Dict[str, Any]:
    """Locate the JSON object in a generator answer and parse it, repairing if needed."""
    text = strip_code_fences(raw_text)
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        raise GeneratorMalformed("No JSON object found in generator response", raw_text=raw_text)

    candidate = match.group(0)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            data = json.loads(repair_json_text(candidate))
        except json.JSONDecodeError as e:
            raise GeneratorMalformed(f"Generator JSON could not be repaired: {e}", raw_text=raw_text) from e

    if not isinstance(data, dict):
        raise GeneratorMalformed("Generator JSON is not an object", raw_text=raw_text)
    return data


def _text(value: Any) -> Optional[str]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(int(value)) if float(value).is_integer() else str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _items(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _kind(item: Dict[str, Any], allowed: set) -> Optional[str]:
    value = item.get("type")
    return value if isinstance(value, str) and value in allowed else None


def _text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item for item in (_text(entry) for entry in value) if item]


def clean_caption(caption: Any) -> str:
    text = caption if isinstance(caption, str) else ""
    for escaped, plain in _CAPTION_UNESCAPES:
        text = text.replace(escaped, plain)
    return text.strip()


def coerce_generated_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keep only well-shaped fields from generator output.

    Unknown link/carousel types are dropped, image placeholders the
    generator was asked to leave for diagram rendering are removed, and
    carousel captions are unescaped. Authors are passed through untouched
    for the reconciler.
    """
    fields: Dict[str, Any] = {"authors": data.get("authors")}

    for key in ("title", "institution", "venue", "year", "abstract", "youtubeVideoId", "teaserVideo"):
        value = _text(data.get(key))
        if value:
            fields[key] = value

    highlights = _text_list(data.get("highlights"))
    if highlights:
        fields["highlights"] = highlights

    detailed = data.get("detailedDescription")
    if isinstance(detailed, dict):
        description = {key: _text_list(detailed.get(key)) for key in ("problem", "method", "results")}
        if any(description.values()):
            fields["detailedDescription"] = description

    links = []
    for link in _items(data.get("links")):
        if _kind(link, _LINK_TYPES) and _text(link.get("url")):
            links.append({"type": link["type"], "url": _text(link["url"])})
    if links:
        fields["links"] = links

    carousel = []
    for item in _items(data.get("carousel")):
        if not _kind(item, _CAROUSEL_TYPES):
            continue
        src = _text(item.get("src"))
        if not src or src.startswith(_GENERATED_IMAGE_PREFIX):
            continue
        carousel.append({"type": item["type"], "src": src, "caption": clean_caption(item.get("caption"))})
    if carousel:
        fields["carousel"] = carousel

    bibtex = data.get("bibtex")
    if isinstance(bibtex, str) and bibtex.strip():
        fields["bibtex"] = {"code": bibtex.strip()}
    elif isinstance(bibtex, dict) and _text(bibtex.get("code")):
        fields["bibtex"] = {"code": _text(bibtex["code"])}

    poster = data.get("poster")
    if isinstance(poster, dict) and _text(poster.get("pdfUrl")):
        fields["poster"] = {"pdfUrl": _text(poster["pdfUrl"])}

    related = []
    for work in _items(data.get("relatedWorks")):
        if _text(work.get("title")):
            related.append({key: _text(work.get(key)) or "" for key in ("title", "description", "venue", "url")})
    if related:
        fields["relatedWorks"] = related

    return fields


def default_link_type(kind: SourceKind) -> str:
    return "code" if kind == SourceKind.GITHUB else "paper"


def build_fallback_fields(
    *,
    project_id: str,
    raw_text: str,
    kind: SourceKind,
    locator: str,
    known_authors: Sequence[AuthorCandidate],
    institution: str,
    venue: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Minimal record used when the generator answer cannot be parsed."""
    year = str((now or datetime.now(timezone.utc)).year)
    return {
        "title": f"{project_id} Project",
        "authors": [author.model_dump(by_alias=True, exclude_none=True) for author in known_authors],
        "institution": institution,
        "venue": venue,
        "year": year,
        "abstract": strip_code_fences(raw_text)[:500],
        "links": [{"type": default_link_type(kind), "url": locator}],
    }
