"""
Provider adapter interface.

This module defines:
- ProviderResponse: the single normalised result shape of every provider
- ProviderConfig: per-adapter request settings (model, temperature, ...)
- ProviderAdapter: abstract base class, one subclass per LLM provider

Design Philosophy:
- Adapters are stateless per call: the credential, languages and domain
  are passed in every ``translate`` call
- Provider/network failures never escape an adapter; they come back as
  ``ProviderResponse(error=...)`` so that comparisons always complete
- Prompt wording and request shaping are private to each adapter
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from doctrans_llms.config import DEFAULT_TIMEOUT
from doctrans_llms.domain import get_domain_preferences

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
    "ru": "Russian",
    "ar": "Arabic",
}


def language_name(code: str) -> str:
    """Human-readable language name for prompts; unknown codes pass through."""
    return LANGUAGE_NAMES.get(code.lower(), code)


@dataclass(frozen=True)
class ProviderResponse:
    """Normalised provider result.

    Attributes:
        translated_text: Translation, empty when the call failed
        tokens_used: Total tokens reported by the provider, if any
        model: Model that produced the translation
        error: Failure message; None on success
    """
    translated_text: str = ""
    tokens_used: Optional[int] = None
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str, model: Optional[str] = None) -> ProviderResponse:
        return cls(translated_text="", model=model, error=message)

    def to_dict(self) -> dict:
        return {
            "translated_text": self.translated_text,
            "tokens_used": self.tokens_used,
            "model": self.model,
            "error": self.error,
        }


@dataclass
class ProviderConfig:
    """Configuration for provider adapters."""
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 4000
    timeout: float = DEFAULT_TIMEOUT
    base_url: Optional[str] = None


class ProviderAdapter(ABC):
    """Abstract base class for LLM provider adapters.

    Subclasses implement ``_request`` and may raise anything from it;
    ``translate`` converts every exception into an error response.
    """

    provider_name: str = "provider"
    default_model: str = ""

    def __init__(self, config: Optional[ProviderConfig] = None):
        self.config = config or ProviderConfig(model=self.default_model)

    @property
    def name(self) -> str:
        return f"{self.provider_name}-{self.config.model}"

    def build_instruction(
        self,
        source_language: str,
        target_language: str,
        domain: Optional[str] = None,
    ) -> str:
        """Instruction text shared by all providers."""
        source = language_name(source_language) if source_language else "the source language"
        parts = [
            "You are a professional translator.",
            f"Translate the following text from {source} to {language_name(target_language)}.",
            "Maintain the original formatting, style, and tone.",
        ]
        if domain and domain != "general":
            prefs = get_domain_preferences(domain)
            parts.append(
                f"The document is {domain}: use a {prefs.tone} tone, "
                f"{prefs.formality} formality and {prefs.terminology} terminology."
            )
        parts.append("Only return the translated text, nothing else.")
        return " ".join(parts)

    def parse_response(self, response: str) -> str:
        """Strip code fences and "Translation:" prefixes from the reply."""
        cleaned = response.strip()

        if cleaned.startswith("```"):
            lines = cleaned.split("\n")
            if lines[-1].strip() == "```":
                lines = lines[1:-1]
            else:
                lines = lines[1:]
            cleaned = "\n".join(lines).strip()

        for prefix in ("Translation:", "Translated text:", "Here is the translation:"):
            if cleaned.lower().startswith(prefix.lower()):
                cleaned = cleaned[len(prefix):].strip()

        return cleaned

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: str,
        domain: Optional[str] = None,
    ) -> ProviderResponse:
        """Translate text; failures are returned as ``ProviderResponse.error``."""
        try:
            return self._request(text, source_language, target_language, credential, domain)
        except Exception as e:
            message = str(e)
            if credential:
                # Transport errors may echo request details
                message = message.replace(credential, "***")
            logger.warning("%s translation failed: %s", self.provider_name, message)
            return ProviderResponse.failure(
                f"{self.provider_name} translation failed: {message}",
                model=self.config.model,
            )

    @abstractmethod
    def _request(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: str,
        domain: Optional[str],
    ) -> ProviderResponse:
        """Perform the provider call."""
        pass
