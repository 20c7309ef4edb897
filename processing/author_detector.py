"""
Author name detection over the header region of extracted document text.

There is no ground truth for "who is an author", so this is a scoring
heuristic: every header line that yields name-shaped tokens becomes a
candidate, candidates are scored, and the best one (or a small merge of
near-best ones) wins. An empty result is valid and means "fall back to
another origin".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional


_NOISE_PATTERNS = [
    re.compile(
        r"\b(abstract|introduction|keywords?|index terms?|university|institute|department|laboratory|"
        r"school|college|conference|journal|figure|table|appendix|copyright|arxiv|doi)\b",
        re.IGNORECASE,
    ),
    re.compile(r"(초록|요약|서론|키워드|대학교|대학원|연구소|학과|실험실|저널|학회|그림|표)"),
]

_SECTION_STOP_PATTERNS = [
    re.compile(r"^(abstract|요약|초록)\b", re.IGNORECASE),
    re.compile(r"^(keywords?|key words?|index terms?)\b", re.IGNORECASE),
    re.compile(r"^1\s*[.)]?\s*(introduction|서론)\b", re.IGNORECASE),
]

_LINE_HARD_STOP_PATTERNS = [
    re.compile(r"^(figure|fig\.?|table|appendix)\b", re.IGNORECASE),
    re.compile(r"^https?://", re.IGNORECASE),
    re.compile(r"^copyright\b", re.IGNORECASE),
]

_AUTHOR_PREFIX_RE = re.compile(r"^(?:authors?|by|저자)\b", re.IGNORECASE)
_AUTHOR_PREFIX_STRIP_RE = re.compile(r"^(?:authors?|by|저자)\b\s*[:\-]?\s*", re.IGNORECASE)
_EMAIL_RE = re.compile(r"\S+@\S+")
_URL_RE = re.compile(r"https?://\S+")
_ORCID_RE = re.compile(r"orcid\.org/\S+", re.IGNORECASE)
_BULLET_RE = re.compile(r"[·•・]")
_STRAY_DIGITS_RE = re.compile(r"\d+(?=[\s,;]|$)")
_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_SPLIT_RE = re.compile(r"\s*(?:,|;| and | & |/)\s*", re.IGNORECASE)

_NAME_WORD = r"[A-Z][a-z]+(?:[-'][A-Za-z]+)*"
_INITIALS = r"(?:[A-Z]\.){1,3}"
_PARTICLE = r"(?:de|da|del|van|von|der|den|di|la|le|bin|al)"
_NAME_RUN_RE = re.compile(
    rf"(?:{_NAME_WORD}|{_INITIALS})(?:\s+(?:{_NAME_WORD}|{_INITIALS}|{_PARTICLE})){{1,4}}|[가-힣]{{2,5}}"
)

_INITIALS_WORD_RE = re.compile(rf"^{_INITIALS}$")
_CAPITALIZED_WORD_RE = re.compile(rf"^{_NAME_WORD}$")
_ABBREVIATED_WORD_RE = re.compile(r"^[A-Z][a-z]?\.$")
_PARTICLE_WORD_RE = re.compile(rf"^{_PARTICLE}$", re.IGNORECASE)
_KOREAN_NAME_RE = re.compile(r"^[가-힣]{2,5}$")
_LATIN_RE = re.compile(r"[A-Za-z]")
_DISQUALIFYING_RE = re.compile(r"\d|@|https?://", re.IGNORECASE)


@dataclass(frozen=True)
class DetectorConfig:
    """Thresholds for header scanning and line scoring."""

    header_chars: int = 12_000
    max_header_lines: int = 70
    scan_lines: int = 45
    max_line_length: int = 240
    max_names: int = 12
    min_name_length: int = 2
    max_name_length: int = 60

    name_weight: int = 3
    prefix_bonus: int = 7
    early_line_index: int = 8
    early_line_bonus: int = 2
    short_line_length: int = 110
    short_line_bonus: int = 1
    noise_penalty: int = 3
    email_penalty: int = 1
    merge_penalty: int = 1
    accumulate_window: int = 3


@dataclass
class AuthorLineCandidate:
    """Names proposed by one header line (or a wrapped pair of lines)."""

    names: List[str]
    score: int
    index: int
    merged: bool = False


LineScorer = Callable[[str, List[str], int, DetectorConfig], int]


def unique_names(values: Iterable[str]) -> List[str]:
    """Trim, drop empties and dedupe case-insensitively, keeping first spelling."""
    seen = set()
    result: List[str] = []
    for value in values:
        trimmed = str(value or "").strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(trimmed)
    return result


def has_author_noise(text: str) -> bool:
    return any(pattern.search(text) for pattern in _NOISE_PATTERNS)


def has_author_prefix(line: str) -> bool:
    return bool(_AUTHOR_PREFIX_RE.match(line))


def normalize_author_token(token: str) -> str:
    """Drop footnote markers, bracketed refs and parentheticals around a name."""
    text = re.sub(r"\[[^\]]*\]", " ", token)
    text = re.sub(r"[†‡*]", " ", text)
    text = re.sub(r"\([^)]*\)", " ", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return re.sub(r"^[,;:.\-]+|[,;:.\-]+$", "", text)


def is_likely_english_name(name: str) -> bool:
    words = name.split()
    if len(words) < 2 or len(words) > 5:
        return False

    name_words = 0
    for word in words:
        if _INITIALS_WORD_RE.match(word) or _CAPITALIZED_WORD_RE.match(word) or _ABBREVIATED_WORD_RE.match(word):
            name_words += 1
            continue
        if _PARTICLE_WORD_RE.match(word):
            continue
        return False
    return name_words >= 2


def is_likely_korean_name(name: str) -> bool:
    return bool(_KOREAN_NAME_RE.match(_WHITESPACE_RE.sub("", name)))


def is_likely_author_name(name: str, config: DetectorConfig = DetectorConfig()) -> bool:
    normalized = normalize_author_token(name)
    if not normalized:
        return False
    if not config.min_name_length <= len(normalized) <= config.max_name_length:
        return False
    if _DISQUALIFYING_RE.search(normalized):
        return False
    if has_author_noise(normalized):
        return False
    if is_likely_korean_name(normalized):
        return True
    return bool(_LATIN_RE.search(normalized)) and is_likely_english_name(normalized)


def clean_header_line(line: str) -> str:
    """Strip contact details and superscript digits; bullets become commas."""
    text = _EMAIL_RE.sub(" ", line)
    text = _URL_RE.sub(" ", text)
    text = _ORCID_RE.sub(" ", text)
    text = _BULLET_RE.sub(",", text)
    text = _STRAY_DIGITS_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_names_from_line(line: str, config: DetectorConfig = DetectorConfig()) -> List[str]:
    """Accepted author names on a single header line, in order of appearance."""
    if not line or any(pattern.match(line.strip()) for pattern in _LINE_HARD_STOP_PATTERNS):
        return []

    cleaned = clean_header_line(line)
    if not cleaned or len(cleaned) > config.max_line_length:
        return []

    body = _AUTHOR_PREFIX_STRIP_RE.sub("", cleaned, count=1).strip()
    if not body:
        return []

    parts = [normalize_author_token(part) for part in _TOKEN_SPLIT_RE.split(body)]
    parts = [part for part in parts if part]
    if len(parts) <= 1:
        parts = _NAME_RUN_RE.findall(body)

    return unique_names(part for part in parts if is_likely_author_name(part, config))


def score_author_line(line: str, names: List[str], index: int, config: DetectorConfig = DetectorConfig()) -> int:
    """Default line scorer; pure so the weights can be tested in isolation."""
    prefixed = has_author_prefix(line)
    score = len(names) * config.name_weight
    if prefixed:
        score += config.prefix_bonus
    if index <= config.early_line_index:
        score += config.early_line_bonus
    if len(line) <= config.short_line_length:
        score += config.short_line_bonus
    if has_author_noise(line) and not prefixed:
        score -= config.noise_penalty
    if _EMAIL_RE.search(line):
        score -= config.email_penalty
    return score


def header_lines(text: str, config: DetectorConfig = DetectorConfig()) -> List[str]:
    """Leading non-empty lines up to the first Abstract/Keywords/Introduction marker."""
    chunk = text[: config.header_chars].replace("\r", "\n")
    lines = [_WHITESPACE_RE.sub(" ", line).strip() for line in chunk.split("\n")]
    lines = [line for line in lines if line]

    stop_index = next(
        (i for i, line in enumerate(lines) if any(p.match(line) for p in _SECTION_STOP_PATTERNS)),
        -1,
    )
    # A marker on the very first line is treated as a running title, not a boundary.
    if stop_index > 0:
        return lines[: min(stop_index, config.max_header_lines)]
    return lines[: config.max_header_lines]


class AuthorNameDetector:
    """Propose an ordered, deduplicated author list from document text."""

    def __init__(self, config: Optional[DetectorConfig] = None, scorer: Optional[LineScorer] = None):
        self.config = config or DetectorConfig()
        self.scorer = scorer or score_author_line

    def candidates(self, text: str) -> List[AuthorLineCandidate]:
        """Scored line candidates, best first."""
        if not text:
            return []

        lines = header_lines(text, self.config)
        scan_limit = min(len(lines), self.config.scan_lines)
        names_by_line = [extract_names_from_line(line, self.config) for line in lines[:scan_limit]]

        found: List[AuthorLineCandidate] = []
        for i in range(scan_limit):
            names = names_by_line[i]
            if not names:
                continue
            line_score = self.scorer(lines[i], names, i, self.config)
            found.append(AuthorLineCandidate(names=names, score=line_score, index=i))

            # Author lists wrapped over two lines
            if i + 1 < scan_limit:
                next_names = names_by_line[i + 1]
                if next_names and not has_author_noise(lines[i + 1]):
                    merged = unique_names(names + next_names)
                    if len(merged) > len(names):
                        next_score = self.scorer(lines[i + 1], next_names, i + 1, self.config)
                        found.append(
                            AuthorLineCandidate(
                                names=merged,
                                score=line_score + next_score - self.config.merge_penalty,
                                index=i,
                                merged=True,
                            )
                        )

        found.sort(key=lambda c: (-c.score, -len(c.names), c.index))
        return found

    def detect(self, text: str) -> List[str]:
        ranked = self.candidates(text)
        if not ranked:
            return []

        limit = self.config.max_names
        best = ranked[0]
        if len(best.names) >= 2:
            return unique_names(best.names)[:limit]

        merged = list(best.names)
        seen = {name.lower() for name in merged}
        for candidate in ranked[1:]:
            if candidate.score < best.score - self.config.accumulate_window:
                break
            for name in candidate.names:
                if name.lower() not in seen:
                    seen.add(name.lower())
                    merged.append(name)
                if len(merged) >= limit:
                    return merged
        return unique_names(merged)[:limit]


def detect_authors(text: str, config: Optional[DetectorConfig] = None) -> List[str]:
    """Convenience wrapper around :class:`AuthorNameDetector`."""
    return AuthorNameDetector(config).detect(text)
