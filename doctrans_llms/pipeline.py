"""
Document translation pipeline for DocTrans-LLMs.

This module runs the complete workflow on one uploaded file:
1. Ingest the bytes into a DocumentContent
2. Optionally cleanse the source text (element by element)
3. Classify the domain (or take the caller's hint) and summarise
4. Translate with one provider, or compare several concurrently
5. Build the bilingual view (segments + alignments) per translation

Design Philosophy:
- Pipeline is configured per call via PipelineConfig; nothing is read
  from global state, so each stage stays independently testable
- Credentials are passed explicitly to ``run``
- Provider failures end up in ``PipelineResult.errors``; malformed input,
  unknown providers and missing credentials raise
- Progress callbacks for CLI integration
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from doctrans_llms.align import build_bilingual_view
from doctrans_llms.cleanse import SourceCleanser
from doctrans_llms.config import CHUNK_SIZE, DEFAULT_TARGET_LANG, DEFAULT_TIMEOUT
from doctrans_llms.domain import analyze_document, detect_domain, terminology_for
from doctrans_llms.errors import ChunkTranslationError, UnsupportedDomainError
from doctrans_llms.ingest import parse_document
from doctrans_llms.models import (
    BilingualView,
    DocumentContent,
    DocumentDomain,
    DocumentMetadata,
    DocumentStructure,
    DocumentSummary,
    DomainType,
    SourceFixes,
    Translation,
)
from doctrans_llms.translate.orchestrator import OrchestratorConfig, TranslationOrchestrator

logger = logging.getLogger(__name__)

# Type alias for progress callbacks
ProgressCallback = Callable[[str, float], None]


@dataclass
class PipelineConfig:
    """Per-call configuration for the document pipeline."""
    # Languages; source None means "use the detected document language"
    source_lang: Optional[str] = None
    target_lang: str = DEFAULT_TARGET_LANG

    # One provider → chunked translation; several → concurrent comparison
    providers: list[str] = field(default_factory=lambda: ["openai"])

    # Overrides domain detection when set (e.g. "legal")
    domain_hint: Optional[str] = None

    clean_source: bool = True

    chunk_size: int = CHUNK_SIZE
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = 4

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
            "providers": list(self.providers),
            "domain_hint": self.domain_hint,
            "clean_source": self.clean_source,
            "chunk_size": self.chunk_size,
            "timeout": self.timeout,
        }

    def orchestrator_config(self) -> OrchestratorConfig:
        return OrchestratorConfig(
            chunk_size=self.chunk_size,
            timeout=self.timeout,
            max_workers=self.max_workers,
        )


@dataclass
class PipelineResult:
    """Everything produced for one document.

    ``fixes`` maps element ids (e.g. "paragraph-3") to the cleanser result
    for that element; only changed elements are listed.
    """
    content: DocumentContent
    domain: DocumentDomain
    summary: DocumentSummary
    fixes: dict[str, SourceFixes] = field(default_factory=dict)
    translations: dict[str, Translation] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    views: dict[str, BilingualView] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def change_count(self) -> int:
        return sum(len(f.changes) for f in self.fixes.values())

    def to_dict(self) -> dict:
        return {
            "content": self.content.to_dict(),
            "domain": self.domain.to_dict(),
            "summary": self.summary.to_dict(),
            "fixes": {k: v.to_dict() for k, v in self.fixes.items()},
            "translations": {k: v.to_dict() for k, v in self.translations.items()},
            "errors": dict(self.errors),
            "views": {k: v.to_dict() for k, v in self.views.items()},
        }


def cleanse_content(
    content: DocumentContent,
    cleanser: Optional[SourceCleanser] = None,
) -> tuple[DocumentContent, dict[str, SourceFixes]]:
    """Cleanse every heading, paragraph, list item and footnote.

    Tables are left untouched. Returns a new DocumentContent (text and
    metadata recomputed) plus the fixes of the elements that changed.
    """
    cleanser = cleanser or SourceCleanser()
    fixes: dict[str, SourceFixes] = {}

    def clean(element_id: str, text: str) -> str:
        result = cleanser.clean(text)
        if result.was_changed:
            fixes[element_id] = result
        return result.corrected_text

    s = content.structure
    structure = DocumentStructure(
        headings=[dataclasses.replace(h, text=clean(h.id, h.text)) for h in s.headings],
        paragraphs=[dataclasses.replace(p, text=clean(p.id, p.text)) for p in s.paragraphs],
        lists=[
            dataclasses.replace(lst, items=[
                dataclasses.replace(item, text=clean(item.id, item.text)) for item in lst.items
            ])
            for lst in s.lists
        ],
        tables=list(s.tables),
        footnotes=[dataclasses.replace(f, text=clean(f.id, f.text)) for f in s.footnotes],
        reading_order=list(s.reading_order),
    )

    if not fixes:
        return content, fixes

    if structure.reading_order:
        text = "\n\n".join(structure.element(kind, pos).text for kind, pos in structure.reading_order)
    else:
        text = clean("text", content.text)

    meta = content.metadata
    metadata = DocumentMetadata.from_text(
        text,
        language=meta.language if meta else None,
        author=meta.author if meta else None,
        title=meta.title if meta else None,
    )
    return (
        DocumentContent(text=text, structure=structure, images=list(content.images), metadata=metadata),
        fixes,
    )


class DocumentPipeline:
    """Main pipeline: file bytes in, translations and bilingual views out.

    Usage:
        config = PipelineConfig(target_lang="es", providers=["openai", "claude"])
        pipeline = DocumentPipeline(config)
        result = pipeline.run(data, "report.docx", credentials=keys)

        for provider, view in result.views.items():
            print(provider, len(view.alignments))
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        orchestrator: Optional[TranslationOrchestrator] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config or PipelineConfig()
        self.orchestrator = orchestrator or TranslationOrchestrator(self.config.orchestrator_config())
        self.progress_callback = progress_callback or (lambda msg, pct: None)
        self.cleanser = SourceCleanser()

    def resolve_domain(self, text: str) -> DocumentDomain:
        """Domain from the configured hint, or detected from text."""
        if self.config.domain_hint:
            hint = self.config.domain_hint.strip().lower()
            try:
                domain_type = DomainType(hint)
            except ValueError:
                raise UnsupportedDomainError(hint, [d.value for d in DomainType]) from None
            return DocumentDomain(
                type=domain_type,
                confidence=1.0,
                terminology=terminology_for(domain_type, self.config.target_lang),
            )
        return detect_domain(text, self.config.target_lang)

    def run(
        self,
        data: bytes,
        filename: str = "",
        mime_type: str = "",
        credentials: Optional[dict[str, Optional[str]]] = None,
    ) -> PipelineResult:
        """Run the complete pipeline on one file.

        Args:
            data: Raw file bytes
            filename: Original file name (format dispatch by extension)
            mime_type: Declared MIME type, may be empty
            credentials: Mapping provider → credential

        Returns:
            PipelineResult with content, domain, summary, fixes,
            translations, per-provider errors and bilingual views
        """
        credentials = credentials or {}
        cfg = self.config

        self.progress_callback("Parsing document...", 0.05)
        content = parse_document(data, filename, mime_type)

        fixes: dict[str, SourceFixes] = {}
        if cfg.clean_source:
            self.progress_callback("Cleansing source text...", 0.15)
            content, fixes = cleanse_content(content, self.cleanser)
            logger.info("Source cleansing changed %d element(s)", len(fixes))

        self.progress_callback("Analyzing document...", 0.25)
        domain = self.resolve_domain(content.text)
        summary = analyze_document(content.text)

        result = PipelineResult(content=content, domain=domain, summary=summary, fixes=fixes)
        if not cfg.providers:
            self.progress_callback("Complete!", 1.0)
            return result

        self.progress_callback("Translating...", 0.35)
        if len(cfg.providers) == 1:
            provider = cfg.providers[0]
            try:
                result.translations[provider] = self.orchestrator.translate_document(
                    content,
                    cfg.target_lang,
                    credentials.get(provider),
                    provider,
                    domain=domain,
                    source_language=cfg.source_lang,
                )
            except ChunkTranslationError as e:
                logger.error("Translation with %s failed at chunk %d: %s", provider, e.chunk_index + 1, e)
                result.errors[provider] = str(e)
        else:
            translations, errors = self.orchestrator.compare_document(
                content,
                cfg.target_lang,
                {p: credentials.get(p) for p in cfg.providers},
                domain=domain,
                source_language=cfg.source_lang,
            )
            result.translations.update(translations)
            result.errors.update(errors)

        self.progress_callback("Aligning...", 0.9)
        for provider, translation in result.translations.items():
            result.views[provider] = build_bilingual_view(
                content, translation.translated_text, translation.segment_texts or None,
            )

        self.progress_callback("Complete!", 1.0)
        return result


def translate_file(
    data: bytes,
    filename: str,
    credentials: dict[str, Optional[str]],
    target_lang: str = DEFAULT_TARGET_LANG,
    providers: Optional[list[str]] = None,
) -> PipelineResult:
    """Convenience function to run the pipeline with default settings."""
    config = PipelineConfig(target_lang=target_lang, providers=providers or ["openai"])
    return DocumentPipeline(config).run(data, filename, credentials=credentials)
