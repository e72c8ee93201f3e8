"""
Translation orchestration across LLM providers.

The orchestrator sits between the pipeline and the provider adapters:

- ``translate``: one provider call, after local validation
- ``translate_long_text``: sentence-bounded chunks, translated sequentially
  in order (later chunks read best when earlier ones are settled) and
  joined with a single space
- ``translate_multiple``: one concurrent job per provider on a thread pool;
  every provider gets a result slot, failures included
- ``translate_document``: segment-by-segment translation of a parsed
  document with terminology pre-substitution, confidence estimate and
  positional word alignments
- ``compare_document``: ``translate_document`` for several providers on the
  same thread pool fan-out

Local problems (unknown provider, missing credential) raise. Provider
failures are data (``ProviderResponse.error``) except inside a chunked
translation, where the first failing chunk aborts the whole text.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Optional

from doctrans_llms.align import align_words, segments_from_text
from doctrans_llms.config import CHUNK_SIZE, DEFAULT_SOURCE_LANG, DEFAULT_TIMEOUT
from doctrans_llms.domain import detect_domain
from doctrans_llms.errors import (
    ChunkTranslationError,
    DocTransError,
    MissingCredentialError,
    TranslationCancelled,
    UnsupportedProviderError,
)
from doctrans_llms.models import DocumentContent, DocumentDomain, Translation, segments_from_structure
from doctrans_llms.translate.base import ProviderAdapter, ProviderResponse
from doctrans_llms.translate.chunking import split_into_chunks
from doctrans_llms.translate.providers import ADAPTERS, create_adapter
from doctrans_llms.translate.terminology import apply_terminology
from doctrans_llms.utils import clamp, count_words, split_sentences

logger = logging.getLogger(__name__)


@dataclass
class OrchestratorConfig:
    """Settings for the orchestrator.

    Attributes:
        chunk_size: Texts longer than this are chunked
        timeout: Per-call provider timeout in seconds
        max_workers: Thread pool size for provider comparison
        grace_period: Extra seconds a comparison waits beyond the call timeouts
    """
    chunk_size: int = CHUNK_SIZE
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = 4
    grace_period: float = 5.0


# ============================================================================
# Confidence estimate
# ============================================================================

def text_complexity(text: str) -> float:
    """Sentence-length complexity: ``min(1, (avg words per sentence - 10) / 20)``."""
    sentences = split_sentences(text)
    if not sentences:
        return 0.0
    return min(1.0, (count_words(text) / len(sentences) - 10) / 20)


def estimate_confidence(source_text: str, domain_confidence: float) -> float:
    """Heuristic translation confidence in ``[0.1, 1.0]``.

    Starts at 0.9; a confidently classified domain adds 0.05, a weakly
    classified one removes 0.1, and long sentences remove 0.05.
    """
    confidence = 0.9
    if domain_confidence > 0.8:
        confidence += 0.05
    elif domain_confidence < 0.5:
        confidence -= 0.1

    if text_complexity(source_text) > 0.7:
        confidence -= 0.05

    return clamp(confidence, 0.1, 1.0)


# ============================================================================
# Orchestrator
# ============================================================================

@dataclass
class _ChunkedResult:
    text: str
    tokens_used: Optional[int]
    model: Optional[str]


class TranslationOrchestrator:
    """Routes translation requests to provider adapters.

    Usage:
        orchestrator = TranslationOrchestrator()
        text = orchestrator.translate_long_text(long_text, "en", "es", key, "openai")
        results = orchestrator.translate_multiple(text, "es", {"openai": k1, "claude": k2})

    Args:
        config: OrchestratorConfig (defaults apply when None)
        adapters: Optional provider → adapter mapping; providers missing from
            it are created with ``create_adapter`` on first use
    """

    def __init__(
        self,
        config: Optional[OrchestratorConfig] = None,
        adapters: Optional[dict[str, ProviderAdapter]] = None,
    ):
        self.config = config or OrchestratorConfig()
        self.adapters: dict[str, ProviderAdapter] = dict(adapters or {})

    def get_adapter(self, provider: str) -> ProviderAdapter:
        """Return the adapter for provider, creating it on first use."""
        key = provider.lower()
        if key not in self.adapters:
            if key not in ADAPTERS:
                raise UnsupportedProviderError(provider)
            self.adapters[key] = create_adapter(key, timeout=self.config.timeout)
        return self.adapters[key]

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str],
        provider: str,
        domain: Optional[str] = None,
    ) -> ProviderResponse:
        """Translate text with one provider in a single call.

        Raises:
            UnsupportedProviderError: Unknown provider
            MissingCredentialError: Empty credential (no request is made)
        """
        adapter = self.get_adapter(provider)
        if not credential:
            raise MissingCredentialError(provider)

        logger.debug("Translating %d chars with %s", len(text), adapter.name)
        return adapter.translate(text, source_language, target_language, credential, domain)

    def _translate_chunks(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str],
        provider: str,
        domain: Optional[str] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> _ChunkedResult:
        if len(text) <= self.config.chunk_size:
            chunks = [text]
        else:
            chunks = split_into_chunks(text, self.config.chunk_size)
            logger.info("Split %d chars into %d chunks for %s", len(text), len(chunks), provider)

        translated: list[str] = []
        tokens: Optional[int] = None
        model: Optional[str] = None
        for index, chunk in enumerate(chunks):
            if should_continue is not None and not should_continue():
                raise TranslationCancelled(index, len(chunks))

            response = self.translate(chunk, source_language, target_language, credential, provider, domain)
            if response.error:
                raise ChunkTranslationError(response.error, index, len(chunks))

            translated.append(response.translated_text)
            model = response.model or model
            if response.tokens_used is not None:
                tokens = (tokens or 0) + response.tokens_used

        return _ChunkedResult(text=" ".join(translated), tokens_used=tokens, model=model)

    def translate_long_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str],
        provider: str,
        domain: Optional[str] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> str:
        """Translate text of any length with one provider.

        Args:
            should_continue: Polled before each chunk; returning False
                abandons the translation with ``TranslationCancelled``

        Raises:
            ChunkTranslationError: A chunk failed; later chunks were not sent
            TranslationCancelled: should_continue returned False
        """
        return self._translate_chunks(
            text, source_language, target_language, credential, provider, domain, should_continue,
        ).text

    def _call_count(self, texts: list[str]) -> int:
        """Number of provider calls needed to translate texts."""
        return sum(
            1 if len(t) <= self.config.chunk_size else len(split_into_chunks(t, self.config.chunk_size))
            for t in texts
        ) or 1

    def _fan_out(
        self,
        providers: list[str],
        job: Callable[[str], object],
        deadline: float,
    ) -> dict[str, tuple[object, Optional[str]]]:
        """Run ``job(provider)`` for every provider concurrently.

        Returns provider → ``(result, error)``, where error is set when the
        job raised or did not finish before the deadline. Jobs still running
        at the deadline are abandoned; they end at their own call timeout.
        """
        outcomes: dict[str, tuple[object, Optional[str]]] = {}
        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(providers)),
            thread_name_prefix="doctrans-provider",
        )
        try:
            futures = {executor.submit(job, provider): provider for provider in providers}
            done, not_done = wait(futures, timeout=deadline)

            for future in done:
                provider = futures[future]
                try:
                    outcomes[provider] = (future.result(), None)
                except Exception as e:
                    logger.warning("%s translation job failed: %s", provider, e)
                    message = str(e) if isinstance(e, DocTransError) else f"{provider} translation failed: {e}"
                    outcomes[provider] = (None, message)

            for future in not_done:
                provider = futures[future]
                logger.warning("%s did not finish within %.0fs", provider, deadline)
                outcomes[provider] = (None, f"{provider} translation timed out after {deadline:.0f}s")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return {provider: outcomes[provider] for provider in providers}

    def translate_multiple(
        self,
        text: str,
        target_language: str,
        credentials: dict[str, Optional[str]],
        source_language: str = DEFAULT_SOURCE_LANG,
        domain: Optional[str] = None,
    ) -> dict[str, ProviderResponse]:
        """Translate text with every provider in credentials, concurrently.

        Each provider's failure (missing credential, provider error,
        exception or timeout) is reported in that provider's entry; this
        method never raises because of one provider.

        Returns:
            Mapping provider → ProviderResponse, in credentials order
        """
        providers = list(credentials)
        if not providers:
            return {}

        def job(provider: str) -> ProviderResponse:
            result = self._translate_chunks(
                text, source_language, target_language, credentials[provider], provider, domain,
            )
            return ProviderResponse(translated_text=result.text, tokens_used=result.tokens_used, model=result.model)

        deadline = self.config.timeout * self._call_count([text]) + self.config.grace_period
        outcomes = self._fan_out(providers, job, deadline)
        return {
            provider: response if error is None else ProviderResponse.failure(error)
            for provider, (response, error) in outcomes.items()
        }

    def _document_texts(self, content: DocumentContent) -> list[str]:
        texts = [s.text for s in segments_from_structure(content.structure)]
        if not texts:
            texts = [s.text for s in segments_from_text(content.text)]
        return texts

    def _resolve_source_language(self, content: DocumentContent, source_language: Optional[str]) -> str:
        if source_language:
            return source_language
        detected = content.metadata.language if content.metadata else None
        return detected if detected and detected != "unknown" else DEFAULT_SOURCE_LANG

    def translate_document(
        self,
        content: DocumentContent,
        target_language: str,
        credential: Optional[str],
        provider: str,
        domain: Optional[DocumentDomain] = None,
        source_language: Optional[str] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> Translation:
        """Translate a parsed document segment by segment.

        Segments are translated in reading order and joined with blank
        lines. The per-segment results are kept in ``segment_texts`` so the
        bilingual view pairs them 1:1 with the source segments.

        Args:
            content: Parsed document
            target_language: Target language code
            credential: Provider credential
            provider: Provider name
            domain: Domain classification; detected from the text when None
            source_language: Source code; document language or "en" when None
            should_continue: Cancellation hook polled between chunks

        Returns:
            Translation with confidence and positional word alignments
        """
        source_language = self._resolve_source_language(content, source_language)
        if domain is None:
            domain = detect_domain(content.text, target_language)

        texts = self._document_texts(content)
        translated: list[str] = []
        tokens: Optional[int] = None
        model: Optional[str] = None
        for text in texts:
            result = self._translate_chunks(
                apply_terminology(text, domain.terminology),
                source_language,
                target_language,
                credential,
                provider,
                domain.type.value,
                should_continue,
            )
            translated.append(result.text)
            model = result.model or model
            if result.tokens_used is not None:
                tokens = (tokens or 0) + result.tokens_used

        translated_text = "\n\n".join(translated)
        logger.info("Translated %d segment(s) with %s", len(texts), provider)
        return Translation(
            original_text=content.text,
            translated_text=translated_text,
            target_language=target_language,
            source_language=source_language,
            confidence=estimate_confidence(content.text, domain.confidence),
            word_alignments=align_words(content.text.split(), translated_text.split()),
            provider=provider,
            model=model,
            tokens_used=tokens,
            segment_texts=translated,
        )

    def compare_document(
        self,
        content: DocumentContent,
        target_language: str,
        credentials: dict[str, Optional[str]],
        domain: Optional[DocumentDomain] = None,
        source_language: Optional[str] = None,
    ) -> tuple[dict[str, Translation], dict[str, str]]:
        """Translate a document with every provider in credentials, concurrently.

        Returns:
            ``(translations, errors)``: one Translation per provider that
            succeeded and one error message per provider that did not
        """
        providers = list(credentials)
        if not providers:
            return {}, {}
        if domain is None:
            domain = detect_domain(content.text, target_language)
        source_language = self._resolve_source_language(content, source_language)

        def job(provider: str) -> Translation:
            return self.translate_document(
                content, target_language, credentials[provider], provider, domain, source_language,
            )

        deadline = self.config.timeout * self._call_count(self._document_texts(content)) + self.config.grace_period
        translations: dict[str, Translation] = {}
        errors: dict[str, str] = {}
        for provider, (translation, error) in self._fan_out(providers, job, deadline).items():
            if error is None:
                translations[provider] = translation
            else:
                errors[provider] = error
        return translations, errors
