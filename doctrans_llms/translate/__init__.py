"""
Translation module.

This module provides:
- Provider adapters for OpenAI, Gemini, Claude and Grok
- Sentence-bounded chunking for long texts
- Terminology pre-substitution
- The TranslationOrchestrator (single, chunked, comparison and document
  translation)
"""

from doctrans_llms.translate.base import ProviderAdapter, ProviderConfig, ProviderResponse
from doctrans_llms.translate.chunking import split_into_chunks
from doctrans_llms.translate.orchestrator import (
    OrchestratorConfig,
    TranslationOrchestrator,
    estimate_confidence,
)
from doctrans_llms.translate.providers import (
    ClaudeAdapter,
    GeminiAdapter,
    GrokAdapter,
    OpenAIAdapter,
    create_adapter,
)
from doctrans_llms.translate.terminology import apply_terminology

__all__ = [
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderResponse",
    "split_into_chunks",
    "OrchestratorConfig",
    "TranslationOrchestrator",
    "estimate_confidence",
    "ClaudeAdapter",
    "GeminiAdapter",
    "GrokAdapter",
    "OpenAIAdapter",
    "create_adapter",
    "apply_terminology",
]
