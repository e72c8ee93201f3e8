"""
Tests for provider adapters, chunking and the translation orchestrator.

Provider SDKs are never called: adapters are replaced with FakeAdapter
(see conftest.py) or their client factory is monkeypatched.

Run with: pytest tests/test_translate.py -v
"""

from types import SimpleNamespace

import pytest
import requests

from doctrans_llms.align import build_bilingual_view
from doctrans_llms.errors import (
    ChunkTranslationError,
    MissingCredentialError,
    TranslationCancelled,
    UnsupportedProviderError,
)
from doctrans_llms.ingest import parse_document
from doctrans_llms.models import DomainType
from doctrans_llms.translate import (
    ClaudeAdapter,
    GeminiAdapter,
    GrokAdapter,
    OpenAIAdapter,
    OrchestratorConfig,
    TranslationOrchestrator,
    apply_terminology,
    create_adapter,
    estimate_confidence,
    split_into_chunks,
)
from doctrans_llms.translate.base import ProviderResponse

from conftest import FakeAdapter


# ============================================================================
# Chunking & terminology
# ============================================================================

class TestChunking:
    """Tests for sentence-bounded chunking."""

    def test_sentences_are_packed_greedily(self):
        """Chunks stay under the limit and keep sentence order."""
        text = "One two. Three four. Five six. Seven eight."
        chunks = split_into_chunks(text, chunk_size=25)

        assert chunks == ["One two. Three four.", "Five six. Seven eight."]
        assert all(len(c) <= 25 for c in chunks)

    def test_long_sentence_is_not_split(self):
        """A sentence longer than the limit forms its own chunk."""
        long_sentence = "word " * 30 + "end."
        chunks = split_into_chunks(f"Short one. {long_sentence} Tail.", chunk_size=40)

        assert chunks[0] == "Short one."
        assert chunks[1] == long_sentence.strip()
        assert chunks[2] == "Tail."

    def test_unterminated_tail_is_kept(self):
        """Text after the last terminator is a final sentence."""
        assert split_into_chunks("First. and a tail", chunk_size=8) == ["First.", "and a tail"]

    def test_blank_and_invalid(self):
        """Blank text gives no chunks; a non-positive size is rejected."""
        assert split_into_chunks("   ", chunk_size=10) == []
        with pytest.raises(ValueError):
            split_into_chunks("text", chunk_size=0)


class TestTerminology:
    """Tests for terminology pre-substitution."""

    def test_whole_word_case_insensitive(self):
        """Whole words are replaced and a leading capital is kept."""
        terms = {"contract": "contrato", "court": "tribunal"}
        text = "The Contract was sent to court; contractual terms differ."

        assert apply_terminology(text, terms) == (
            "The Contrato was sent to tribunal; contractual terms differ."
        )

    def test_longest_term_first(self):
        """Multi-word terms win over their parts."""
        terms = {"data": "datos", "data base": "base de datos"}
        assert apply_terminology("a data base and data", terms) == "a base de datos and datos"

    def test_empty_map(self):
        """No terminology leaves text unchanged."""
        assert apply_terminology("text", {}) == "text"


# ============================================================================
# Adapters
# ============================================================================

class TestAdapters:
    """Tests for adapter construction and response handling."""

    def test_factory(self):
        """Adapters are created by name with their default models."""
        assert isinstance(create_adapter("openai"), OpenAIAdapter)
        assert isinstance(create_adapter("Claude"), ClaudeAdapter)
        assert isinstance(create_adapter("gemini"), GeminiAdapter)
        grok = create_adapter("grok", timeout=5)
        assert isinstance(grok, GrokAdapter)
        assert grok.config.model == "grok-beta"
        assert grok.config.timeout == 5

    def test_unknown_provider(self):
        """Unknown names raise UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError):
            create_adapter("mystery")

    def test_parse_response(self):
        """Code fences and translation prefixes are stripped."""
        adapter = OpenAIAdapter()
        assert adapter.parse_response("```\nHola mundo\n```") == "Hola mundo"
        assert adapter.parse_response("Translation: Hola") == "Hola"
        assert adapter.parse_response("  Hola  ") == "Hola"

    def test_instruction_mentions_languages_and_domain(self):
        """The instruction names both languages and the domain tone."""
        instruction = OpenAIAdapter().build_instruction("en", "fr", "legal")

        assert "from English to French" in instruction
        assert "formal tone" in instruction

    def test_openai_request(self, monkeypatch):
        """The OpenAI adapter maps the SDK response to a ProviderResponse."""
        captured = {}

        def create(**kwargs):
            captured.update(kwargs)
            message = SimpleNamespace(content="Translation: Hola mundo")
            return SimpleNamespace(
                choices=[SimpleNamespace(message=message)],
                usage=SimpleNamespace(total_tokens=42),
            )

        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        adapter = OpenAIAdapter()
        monkeypatch.setattr(adapter, "_get_client", lambda credential: client)

        response = adapter.translate("Hello world", "en", "es", "sk-test")

        assert response.ok
        assert response.translated_text == "Hola mundo"
        assert response.tokens_used == 42
        assert captured["temperature"] == 0.3
        assert captured["max_tokens"] == 4000
        assert captured["messages"][1]["content"] == "Hello world"

    def test_claude_request(self, monkeypatch):
        """Claude token usage is input plus output tokens."""
        response_obj = SimpleNamespace(
            content=[SimpleNamespace(text="Bonjour")],
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
        )
        client = SimpleNamespace(messages=SimpleNamespace(create=lambda **kwargs: response_obj))
        adapter = ClaudeAdapter()
        monkeypatch.setattr(adapter, "_get_client", lambda credential: client)

        response = adapter.translate("Hello", "en", "fr", "key")

        assert response.translated_text == "Bonjour"
        assert response.tokens_used == 15

    def test_gemini_http_error(self, monkeypatch):
        """An HTTP error body becomes an error response, not an exception."""
        class FakeResponse:
            ok = False
            status_code = 403
            reason = "Forbidden"

            def json(self):
                return {"error": {"message": "API key not valid"}}

        monkeypatch.setattr(
            "doctrans_llms.translate.providers.requests.post",
            lambda *args, **kwargs: FakeResponse(),
        )
        response = GeminiAdapter().translate("Hello", "en", "es", "bad-key")

        assert not response.ok
        assert "API key not valid" in response.error
        assert response.translated_text == ""

    def test_gemini_success(self, monkeypatch):
        """Gemini candidates and usage metadata are read."""
        class FakeResponse:
            ok = True

            def json(self):
                return {
                    "candidates": [{"content": {"parts": [{"text": "Hola"}]}}],
                    "usageMetadata": {"totalTokenCount": 7},
                }

        calls = []

        def post(url, **kwargs):
            calls.append((url, kwargs))
            return FakeResponse()

        monkeypatch.setattr("doctrans_llms.translate.providers.requests.post", post)
        response = GeminiAdapter().translate("Hello", "en", "es", "key-123")

        assert response.translated_text == "Hola"
        assert response.tokens_used == 7
        assert calls[0][1]["headers"] == {"x-goog-api-key": "key-123"}
        assert "key-123" not in calls[0][0]
        assert "params" not in calls[0][1]
        assert "gemini-pro:generateContent" in calls[0][0]

    def test_gemini_credential_never_reaches_errors(self, monkeypatch, caplog):
        """Transport failures report neither the URL key nor the credential."""
        def post(url, **kwargs):
            raise requests.ConnectionError(
                f"Max retries exceeded with url: {url} (key {kwargs['headers']['x-goog-api-key']})"
            )

        monkeypatch.setattr("doctrans_llms.translate.providers.requests.post", post)
        with caplog.at_level("WARNING"):
            response = GeminiAdapter().translate("Hello", "en", "es", "SECRETKEY123")

        assert not response.ok
        assert "Max retries exceeded" in response.error
        assert "SECRETKEY123" not in response.error
        assert "SECRETKEY123" not in caplog.text

    def test_exceptions_become_error_responses(self):
        """Anything raised inside a request is reported as data."""
        adapter = FakeAdapter("openai", raise_error=ConnectionError("network down"))
        response = adapter.translate("Hello", "en", "es", "key")

        assert response.error == "openai translation failed: network down"


# ============================================================================
# Orchestrator
# ============================================================================

class TestOrchestrator:
    """Tests for single, chunked and multi-provider translation."""

    def _orchestrator(self, adapters, chunk_size=2000, timeout=5.0):
        config = OrchestratorConfig(chunk_size=chunk_size, timeout=timeout, grace_period=1.0)
        return TranslationOrchestrator(config, adapters=adapters)

    def test_missing_credential_makes_no_request(self, fake_adapter_factory):
        """An empty credential raises before any provider call."""
        adapters = fake_adapter_factory("openai")
        orchestrator = self._orchestrator(adapters)

        with pytest.raises(MissingCredentialError, match="openai credential required"):
            orchestrator.translate("Hello", "en", "es", "", "openai")
        assert adapters["openai"].calls == []

    def test_unknown_provider(self):
        """Unknown providers raise even with a credential."""
        with pytest.raises(UnsupportedProviderError):
            self._orchestrator({}).translate("Hello", "en", "es", "key", "mystery")

    def test_short_text_is_one_call(self, fake_adapter_factory):
        """Text within the chunk size is sent in a single call."""
        adapters = fake_adapter_factory("openai")
        result = self._orchestrator(adapters).translate_long_text("Short text.", "en", "es", "k", "openai")

        assert result == "[openai] Short text."
        assert len(adapters["openai"].calls) == 1

    def test_long_text_is_chunked_in_order(self, fake_adapter_factory):
        """Each chunk is one call, in order, and results join with a space."""
        adapters = fake_adapter_factory("openai", prefix="T")
        orchestrator = self._orchestrator(adapters, chunk_size=25)
        text = "One two. Three four. Five six. Seven eight."

        result = orchestrator.translate_long_text(text, "en", "es", "k", "openai")

        assert [c["text"] for c in adapters["openai"].calls] == [
            "One two. Three four.", "Five six. Seven eight.",
        ]
        assert result == "T One two. Three four. T Five six. Seven eight."

    def test_failing_chunk_aborts(self, fake_adapter_factory):
        """The first failing chunk raises and later chunks are not sent."""
        adapters = fake_adapter_factory("openai", fail_on=2)
        orchestrator = self._orchestrator(adapters, chunk_size=10)

        with pytest.raises(ChunkTranslationError) as excinfo:
            orchestrator.translate_long_text("Aaaa one. Bbbb two. Cccc three.", "en", "es", "k", "openai")

        assert excinfo.value.chunk_index == 1
        assert excinfo.value.total_chunks == 3
        assert len(adapters["openai"].calls) == 2

    def test_cancellation_between_chunks(self, fake_adapter_factory):
        """should_continue is polled before every chunk."""
        adapters = fake_adapter_factory("openai")
        orchestrator = self._orchestrator(adapters, chunk_size=10)
        answers = iter([True, False])

        with pytest.raises(TranslationCancelled) as excinfo:
            orchestrator.translate_long_text(
                "Aaaa one. Bbbb two. Cccc three.", "en", "es", "k", "openai",
                should_continue=lambda: next(answers),
            )

        assert excinfo.value.completed_chunks == 1
        assert len(adapters["openai"].calls) == 1

    def test_multiple_keeps_every_provider(self, fake_adapter_factory):
        """Each provider gets a slot; failures do not affect the others."""
        adapters = fake_adapter_factory("openai", "claude")
        adapters["gemini"] = FakeAdapter("gemini", raise_error=RuntimeError("boom"))
        orchestrator = self._orchestrator(adapters)

        results = orchestrator.translate_multiple(
            "Hello.", "es", {"openai": "k1", "gemini": "k2", "claude": "k3", "grok": None},
        )

        assert list(results) == ["openai", "gemini", "claude", "grok"]
        assert results["openai"].translated_text == "[openai] Hello."
        assert results["claude"].ok
        assert "boom" in results["gemini"].error
        assert results["grok"].error == "grok credential required"

    def test_multiple_times_out_slow_providers(self, fake_adapter_factory):
        """A provider slower than the deadline is reported as timed out."""
        adapters = fake_adapter_factory("openai")
        adapters["claude"] = FakeAdapter("claude", delay=1.0)
        orchestrator = TranslationOrchestrator(
            OrchestratorConfig(timeout=0.1, grace_period=0.1), adapters=adapters,
        )

        results = orchestrator.translate_multiple("Hi.", "es", {"openai": "k", "claude": "k"})

        assert results["openai"].ok
        assert "timed out" in results["claude"].error

    def test_multiple_with_no_providers(self):
        """An empty credential map gives an empty result."""
        assert self._orchestrator({}).translate_multiple("Hi.", "es", {}) == {}


class TestDocumentTranslation:
    """Tests for segment-wise document translation."""

    def test_segments_are_translated_with_terminology(self, fake_adapter_factory, sample_text):
        """Every segment is one call with terminology substituted."""
        adapters = fake_adapter_factory("openai", prefix="ES:")
        content = parse_document(sample_text.encode(), "contract.txt")

        translation = self._orchestrator(adapters).translate_document(content, "es", "key", "openai")

        calls = adapters["openai"].calls
        assert len(calls) == 3
        assert "contrato" in calls[1]["text"]
        assert calls[1]["domain"] == DomainType.LEGAL.value
        assert translation.translated_text.count("\n\n") == 2
        assert translation.provider == "openai"
        assert translation.tokens_used == 30
        assert translation.source_language == "en"
        assert translation.word_alignments[0].source_word == "Service"

    def test_compare_document(self, fake_adapter_factory, sample_text):
        """Successful providers give translations, failures give errors."""
        adapters = fake_adapter_factory("openai", "claude")
        content = parse_document(sample_text.encode(), "contract.txt")

        translations, errors = self._orchestrator(adapters).compare_document(
            content, "es", {"openai": "k", "claude": None},
        )

        assert list(translations) == ["openai"]
        assert errors == {"claude": "claude credential required"}

    def test_multi_paragraph_reply_keeps_segment_pairs(self, fake_adapter_factory, sample_text):
        """A reply containing blank lines stays one target segment."""
        adapters = fake_adapter_factory("openai", replies={1: "Primero.\n\nContinua."})
        content = parse_document(sample_text.encode(), "contract.txt")

        translation = self._orchestrator(adapters).translate_document(content, "es", "key", "openai")
        view = build_bilingual_view(content, translation.translated_text, translation.segment_texts)

        calls = adapters["openai"].calls
        assert translation.segment_texts[0] == "Primero.\n\nContinua."
        assert len(view.translated_segments) == len(view.original_segments) == 3
        assert view.translated_segments[2].text == f"[openai] {calls[2]['text']}"
        assert [a.target_segment_id for a in view.alignments] == ["tgt-0", "tgt-1", "tgt-2"]
        assert translation.to_dict()["segment_texts"] == translation.segment_texts

    def _orchestrator(self, adapters):
        return TranslationOrchestrator(OrchestratorConfig(timeout=5.0), adapters=adapters)


class TestConfidence:
    """Tests for the translation confidence heuristic."""

    def test_domain_confidence_adjusts(self):
        """Strong domains raise, weak domains lower the estimate."""
        text = "Short sentence here."
        assert estimate_confidence(text, 0.9) == pytest.approx(0.95)
        assert estimate_confidence(text, 0.6) == pytest.approx(0.9)
        assert estimate_confidence(text, 0.1) == pytest.approx(0.8)

    def test_long_sentences_lower_confidence(self):
        """Very long sentences cost a little confidence."""
        text = " ".join(["word"] * 40) + "."
        assert estimate_confidence(text, 0.6) == pytest.approx(0.85)

    def test_response_failure_helper(self):
        """Failure responses carry an error and empty text."""
        response = ProviderResponse.failure("bad")
        assert not response.ok
        assert response.to_dict()["translated_text"] == ""
