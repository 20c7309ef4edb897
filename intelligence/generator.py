"""
Content Generator
Prompt construction and the call to the external generative model.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from core import SourceKind
from utils.exceptions import GeneratorUnavailable

from .llm import BaseLLM, Message


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You write structured metadata for academic project pages. "
    "Answer with a single JSON object and nothing else."
)

_SCHEMA_EXAMPLE = {
    "title": "Original title, untranslated",
    "authors": [{"name": "Author name", "url": "", "equalContribution": False, "affiliation": "Affiliation"}],
    "institution": "{institution}",
    "venue": "{venue}",
    "year": "{year}",
    "abstract": "Detailed summary",
    "highlights": ["Key contribution 1", "Key contribution 2", "Key contribution 3"],
    "detailedDescription": {
        "problem": ["Problem with existing approaches"],
        "method": ["Core of the proposed method"],
        "results": ["Main results"],
    },
    "links": [{"type": "{link_type}", "url": "{source_url}"}],
    "carousel": [],
    "bibtex": {"code": "@inproceedings{...}"},
}


@dataclass
class PromptContext:
    """Everything a prompt may mention about one request."""

    kind: SourceKind
    source_url: str
    project_id: str
    author_info: str = ""
    institution: Optional[str] = None
    venue: Optional[str] = None
    document_text: str = ""
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    youtube_video_id: Optional[str] = None


def _schema_block(ctx: PromptContext, default_institution: str, default_venue: str) -> str:
    link_type = "code" if ctx.kind == SourceKind.GITHUB else "paper"
    example = json.dumps(_SCHEMA_EXAMPLE, ensure_ascii=False, indent=2)
    return (
        example.replace("{institution}", ctx.institution or default_institution)
        .replace("{venue}", ctx.venue or default_venue)
        .replace("{year}", str(datetime.now(timezone.utc).year))
        .replace("{link_type}", link_type)
        .replace("{source_url}", ctx.source_url)
    )


def _language_rules(language: str) -> str:
    return (
        "## Output language\n"
        "- Keep the title in its original language.\n"
        f"- Write abstract, highlights and description texts in {language}.\n"
        "- Keep author names, affiliations, venue and BibTeX verbatim.\n"
    )


def build_pdf_prompt(ctx: PromptContext, *, language: str, default_institution: str, default_venue: str) -> str:
    if ctx.document_text:
        content = (
            "[PAPER TEXT BEGIN]\n"
            f"{ctx.document_text}\n"
            "[PAPER TEXT END]\n\n"
            "Use the [PAPER TEXT] above as the only source of facts. "
            "Never invent anything that is not in the text."
        )
    else:
        content = "[NO PAPER TEXT]\nOnly state what can be verified."

    return (
        "Generate Academic Project Page data for the following paper.\n\n"
        f"Source: {ctx.source_url}\n"
        f"Project ID: {ctx.project_id}\n"
        f"Authors (detected from the PDF, preferred): {ctx.author_info or 'detect from the paper text'}\n"
        f"Venue: {ctx.venue or 'unknown'}\n"
        f"Institution: {ctx.institution or default_institution}\n\n"
        f"{content}\n\n"
        "## No fabrication\n"
        "1. Include only what the [PAPER TEXT] states.\n"
        "2. Do not guess authors, results or numbers; omit them when the text does not give them.\n"
        "3. Fill authors only with names that appear in the paper's title block; omit unverifiable entries.\n\n"
        f"{_language_rules(language)}\n"
        "Respond with JSON only (no markdown), in this shape:\n"
        f"{_schema_block(ctx, default_institution, default_venue)}"
    )


def build_github_prompt(ctx: PromptContext, *, language: str, default_institution: str, default_venue: str) -> str:
    repo_line = f"Owner: {ctx.github_owner}, Repo: {ctx.github_repo}\n" if ctx.github_owner else ""
    return (
        "Generate Academic Project Page data for the following GitHub repository.\n\n"
        f"Repository: {ctx.source_url}\n"
        f"{repo_line}"
        f"Project ID: {ctx.project_id}\n"
        f"Authors: {ctx.author_info or ctx.github_owner or 'unknown'}\n\n"
        f"{_language_rules(language)}\n"
        "Use 'GitHub Open Source Project' as venue unless one is given.\n"
        "Respond with JSON only (no markdown), in this shape:\n"
        f"{_schema_block(ctx, default_institution, ctx.venue or 'GitHub Open Source Project')}"
    )


def build_youtube_prompt(ctx: PromptContext, *, language: str, default_institution: str, default_venue: str) -> str:
    video_line = f"- Video ID: {ctx.youtube_video_id}\n" if ctx.youtube_video_id else ""
    return (
        "Analyse the project or technology presented by the following YouTube video.\n\n"
        f"- URL: {ctx.source_url}\n"
        f"{video_line}"
        f"- Project ID: {ctx.project_id}\n"
        f"- Presenter/channel: {ctx.author_info or 'unknown'}\n\n"
        "Identify the kind of video (demo, tutorial, talk, interview) and cover: a 4-6 sentence "
        "abstract, three highlights, and problem / method / results in detailedDescription.\n\n"
        f"{_language_rules(language)}\n"
        "Respond with JSON only (no markdown), in this shape:\n"
        f"{_schema_block(ctx, ctx.institution or 'YouTube', ctx.venue or 'YouTube')}"
    )


_PROMPT_BUILDERS = {
    SourceKind.PDF: build_pdf_prompt,
    SourceKind.GITHUB: build_github_prompt,
    SourceKind.YOUTUBE: build_youtube_prompt,
}


class ContentGenerator:
    """Builds prompts per source kind and calls the LLM."""

    def __init__(
        self,
        llm: Optional[BaseLLM] = None,
        *,
        language: str = "Korean",
        default_institution: str = "ModuLabs",
        default_venue: str = "Publication",
    ):
        self._llm = llm
        self.language = language
        self.default_institution = default_institution
        self.default_venue = default_venue

    @property
    def llm(self) -> BaseLLM:
        if self._llm is None:
            from .llm import get_llm
            self._llm = get_llm()
        return self._llm

    def build_prompt(self, ctx: PromptContext) -> str:
        builder = _PROMPT_BUILDERS[ctx.kind]
        return builder(
            ctx,
            language=self.language,
            default_institution=self.default_institution,
            default_venue=self.default_venue,
        )

    async def generate(self, prompt: str) -> str:
        """Return the raw generator text; any call failure becomes GeneratorUnavailable."""
        llm = self.llm
        logger.info(f"[ContentGenerator] Calling {llm} ({len(prompt)} prompt chars)")
        try:
            response = await llm.acomplete([Message.system(SYSTEM_PROMPT), Message.user(prompt)])
        except Exception as e:
            raise GeneratorUnavailable(f"Content generation failed: {e}", provider=llm.provider) from e

        logger.info(f"[ContentGenerator] Received {len(response.content)} chars (finish={response.finish_reason})")
        return response.content

    async def aclose(self) -> None:
        if self._llm is not None:
            await self._llm.aclose()
