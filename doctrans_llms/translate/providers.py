"""
LLM provider adapters.

This module provides:
- OpenAIAdapter: OpenAI chat completions (openai SDK)
- GrokAdapter: xAI Grok through its OpenAI-compatible API (openai SDK)
- ClaudeAdapter: Anthropic messages API (anthropic SDK)
- GeminiAdapter: Google Gemini ``generateContent`` REST endpoint (requests)
- create_adapter(): factory by provider name

All adapters use temperature 0.3 and at most 4000 output tokens. SDK
clients are created per call from the credential passed in, so adapters
hold no secrets between calls.
"""

from __future__ import annotations

from typing import Optional

import requests

from doctrans_llms.errors import ProviderRequestError, UnsupportedProviderError
from doctrans_llms.translate.base import ProviderAdapter, ProviderConfig, ProviderResponse


class OpenAIAdapter(ProviderAdapter):
    """OpenAI GPT adapter.

    Usage:
        adapter = OpenAIAdapter()
        response = adapter.translate("Hello world", "en", "es", credential)
    """

    provider_name = "openai"
    default_model = "gpt-4o-mini"
    base_url: Optional[str] = None

    def _get_client(self, credential: str):
        """Create an OpenAI-compatible client for this call."""
        from openai import OpenAI

        kwargs = {"api_key": credential, "timeout": self.config.timeout, "max_retries": 0}
        base_url = self.config.base_url or self.base_url
        if base_url:
            kwargs["base_url"] = base_url
        return OpenAI(**kwargs)

    def _request(self, text, source_language, target_language, credential, domain):
        client = self._get_client(credential)
        response = client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": self.build_instruction(source_language, target_language, domain)},
                {"role": "user", "content": text},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        if not response.choices:
            raise ProviderRequestError(self.provider_name, "empty response")

        usage = getattr(response, "usage", None)
        return ProviderResponse(
            translated_text=self.parse_response(response.choices[0].message.content or ""),
            tokens_used=usage.total_tokens if usage is not None else None,
            model=self.config.model,
        )


class GrokAdapter(OpenAIAdapter):
    """xAI Grok adapter; the API is OpenAI-compatible."""

    provider_name = "grok"
    default_model = "grok-beta"
    base_url = "https://api.x.ai/v1"


class ClaudeAdapter(ProviderAdapter):
    """Anthropic Claude adapter."""

    provider_name = "claude"
    default_model = "claude-3-5-sonnet-20241022"

    def _get_client(self, credential: str):
        import anthropic

        return anthropic.Anthropic(api_key=credential, timeout=self.config.timeout, max_retries=0)

    def _request(self, text, source_language, target_language, credential, domain):
        client = self._get_client(credential)
        response = client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            system=self.build_instruction(source_language, target_language, domain),
            messages=[
                {"role": "user", "content": text},
            ],
        )
        translated = response.content[0].text if response.content else ""

        usage = getattr(response, "usage", None)
        tokens = (usage.input_tokens or 0) + (usage.output_tokens or 0) if usage is not None else None
        return ProviderResponse(
            translated_text=self.parse_response(translated),
            tokens_used=tokens,
            model=self.config.model,
        )


class GeminiAdapter(ProviderAdapter):
    """Google Gemini adapter using the public REST endpoint."""

    provider_name = "gemini"
    default_model = "gemini-pro"
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def _request(self, text, source_language, target_language, credential, domain):
        instruction = self.build_instruction(source_language, target_language, domain)
        url = (self.config.base_url or self.API_URL).format(model=self.config.model)
        payload = {
            "contents": [{"parts": [{"text": f"{instruction}\n\n{text}"}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }

        response = requests.post(
            url,
            headers={"x-goog-api-key": credential},
            json=payload,
            timeout=self.config.timeout,
        )
        if not response.ok:
            raise ProviderRequestError(self.provider_name, _error_message(response))

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderRequestError(self.provider_name, "response contained no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or [{}]

        return ProviderResponse(
            translated_text=self.parse_response(parts[0].get("text", "")),
            tokens_used=(data.get("usageMetadata") or {}).get("totalTokenCount"),
            model=self.config.model,
        )


def _error_message(response: requests.Response) -> str:
    """Provider error message from a JSON error body, else the HTTP status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return message
    return f"HTTP {response.status_code}: {response.reason}"


ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "gemini": GeminiAdapter,
    "claude": ClaudeAdapter,
    "grok": GrokAdapter,
}


def create_adapter(provider: str, config: Optional[ProviderConfig] = None, **kwargs) -> ProviderAdapter:
    """Factory function to create a provider adapter by name.

    Args:
        provider: One of 'openai', 'gemini', 'claude', 'grok'
        config: Optional ProviderConfig; the provider's default model otherwise
        **kwargs: Overrides applied to the config (e.g. timeout=30)

    Returns:
        ProviderAdapter instance

    Raises:
        UnsupportedProviderError: Unknown provider name
    """
    adapter_cls = ADAPTERS.get(provider.lower())
    if adapter_cls is None:
        raise UnsupportedProviderError(provider)

    config = config or ProviderConfig(model=adapter_cls.default_model)
    for key, value in kwargs.items():
        setattr(config, key, value)
    return adapter_cls(config)
