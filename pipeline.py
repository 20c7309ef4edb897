"""
Generation Pipeline
One request end to end: resolve, extract, detect authors, generate, reconcile, persist.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core import (
    AuthorCandidate,
    GenerationRequest,
    GenerationResult,
    ProjectRecord,
    SourceKind,
)
from intelligence import ContentGenerator, PromptContext
from intelligence.response_parser import (
    build_fallback_fields,
    coerce_generated_fields,
    default_link_type,
    parse_generator_json,
)
from processing import (
    AuthorNameDetector,
    TextExtractor,
    build_roster,
    coerce_author_list,
    merge_author_sets,
    names_to_authors,
    parse_authors_text,
)
from sources import SourceResolver, extract_github_info, extract_youtube_id
from storage import ContentStore, render_project_document
from utils.exceptions import GeneratorMalformed, PersistFailed


logger = logging.getLogger(__name__)

ABSTRACT_PLACEHOLDER = "Abstract is not available."


def _author_info(authors: List[AuthorCandidate]) -> str:
    parts = []
    for author in authors:
        parts.append(f"{author.name} ({author.affiliation})" if author.affiliation else author.name)
    return ", ".join(parts)


class GenerationPipeline:
    """
    Runs a single GenerationRequest.

    Fatal errors (SourceUnavailable, ExtractionFailed, GeneratorUnavailable,
    PersistFailed) propagate to the caller. A malformed generator answer is
    recovered with a fallback record and never surfaces.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        extractor: TextExtractor,
        detector: AuthorNameDetector,
        generator: ContentGenerator,
        store: ContentStore,
        *,
        default_institution: str = "ModuLabs",
        default_venue: str = "Publication",
        placeholder_author: str = "Author",
    ):
        self.resolver = resolver
        self.extractor = extractor
        self.detector = detector
        self.generator = generator
        self.store = store
        self.default_institution = default_institution
        self.default_venue = default_venue
        self.placeholder_author = placeholder_author

    @classmethod
    def from_settings(cls, settings=None) -> "GenerationPipeline":
        """Wire the production collaborators from settings."""
        if settings is None:
            from config import get_settings
            settings = get_settings()

        from intelligence import get_llm
        from processing import DetectorConfig
        from storage import get_content_store

        defaults = settings.defaults
        llm = get_llm(settings.llm.provider, settings.llm.model_name, settings=settings.llm)
        return cls(
            resolver=SourceResolver(settings.source, settings.github),
            extractor=TextExtractor.from_settings(settings.extraction),
            detector=AuthorNameDetector(DetectorConfig(header_chars=settings.extraction.header_chars)),
            generator=ContentGenerator(
                llm,
                language=settings.llm.output_language,
                default_institution=defaults.institution,
                default_venue=defaults.venue,
            ),
            store=get_content_store(settings),
            default_institution=defaults.institution,
            default_venue=defaults.venue,
            placeholder_author=defaults.placeholder_author,
        )

    async def aclose(self) -> None:
        await self.resolver.close()
        await self.generator.aclose()
        await self.store.aclose()

    async def _read_document(self, request: GenerationRequest) -> str:
        pdf_bytes = await self.resolver.resolve(request.source)
        text = await self.extractor.aextract(pdf_bytes)
        logger.info(f"[Pipeline] {request.project_id}: extracted {len(text)} chars")
        return text

    def _prompt_context(
        self,
        request: GenerationRequest,
        document_text: str,
        known_authors: List[AuthorCandidate],
    ) -> PromptContext:
        source = request.source
        ctx = PromptContext(
            kind=source.kind,
            source_url=source.locator,
            project_id=request.project_id,
            author_info=_author_info(known_authors),
            institution=request.institution,
            venue=request.venue,
            document_text=document_text,
        )
        if source.kind == SourceKind.GITHUB:
            info = extract_github_info(source.locator)
            if info:
                ctx.github_owner, ctx.github_repo = info.owner, info.repo
        elif source.kind == SourceKind.YOUTUBE:
            ctx.youtube_video_id = extract_youtube_id(source.locator)
        return ctx

    async def run(self, request: GenerationRequest) -> GenerationResult:
        source = request.source
        logger.info(f"[Pipeline] {request.project_id}: start ({source.kind.value} {source.locator})")

        document_text = ""
        extracted_names: List[str] = []
        if source.kind == SourceKind.PDF:
            document_text = await self._read_document(request)
            extracted_names = self.detector.detect(document_text)
            logger.info(f"[Pipeline] {request.project_id}: detected {len(extracted_names)} author names")

        manual_authors = merge_author_sets(parse_authors_text(request.authors_text), request.author_list)
        known_authors = names_to_authors(extracted_names) or manual_authors

        ctx = self._prompt_context(request, document_text, known_authors)
        raw_text = await self.generator.generate(self.generator.build_prompt(ctx))

        used_fallback = False
        try:
            data = parse_generator_json(raw_text)
        except GeneratorMalformed as e:
            logger.warning(f"[Pipeline] {request.project_id}: {e.message}, using fallback record")
            used_fallback = True
            data = build_fallback_fields(
                project_id=request.project_id,
                raw_text=raw_text,
                kind=source.kind,
                locator=source.locator,
                known_authors=known_authors,
                institution=request.institution or self.default_institution,
                venue=request.venue or self.default_venue,
            )

        fields = coerce_generated_fields(data)
        roster = build_roster(
            source_kind=source.kind,
            extracted_names=extracted_names,
            manual_authors=manual_authors,
            generated_authors=coerce_author_list(fields.get("authors")),
            placeholder_name=self.placeholder_author,
        )
        record = self._compose_record(request, fields, roster.authors)

        result = GenerationResult(
            project_id=request.project_id,
            source=source,
            record=record,
            used_fallback=used_fallback,
            extracted_author_names=extracted_names,
        )
        result.document_path = await self._persist(request, result)
        logger.info(f"[Pipeline] {request.project_id}: done ({record.title})")
        return result

    def _compose_record(
        self,
        request: GenerationRequest,
        fields: Dict[str, Any],
        authors: List[AuthorCandidate],
    ) -> ProjectRecord:
        source = request.source
        payload = {key: value for key, value in fields.items() if key != "authors"}
        payload["authors"] = authors
        payload["title"] = fields.get("title") or f"{request.project_id} Project"
        payload["institution"] = fields.get("institution") or request.institution or self.default_institution
        payload["venue"] = fields.get("venue") or request.venue or self.default_venue
        payload["year"] = (
            fields.get("year") or request.research_year or str(datetime.now(timezone.utc).year)
        )
        payload["abstract"] = fields.get("abstract") or ABSTRACT_PLACEHOLDER
        payload["links"] = fields.get("links") or [{"type": default_link_type(source.kind), "url": source.locator}]
        if source.kind == SourceKind.YOUTUBE and not fields.get("youtubeVideoId"):
            video_id = extract_youtube_id(source.locator)
            if video_id:
                payload["youtubeVideoId"] = video_id
        return ProjectRecord.model_validate(payload)

    async def _persist(self, request: GenerationRequest, result: GenerationResult) -> Optional[str]:
        document = render_project_document(result, research_year=request.research_year)
        try:
            return await self.store.save(request.project_id, document)
        except PersistFailed:
            raise
        except Exception as e:
            raise PersistFailed(f"Content store error: {e}", record_id=request.project_id) from e
