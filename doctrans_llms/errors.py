"""
Error taxonomy for the document translation pipeline.

Local validation problems (unsupported format, missing credential,
unknown provider) are raised immediately. Provider/network failures are
captured by the adapters and returned as data, so that a multi-provider
comparison always completes; they only become exceptions when a single
long-text translation must abort (``ChunkTranslationError``).
"""

from __future__ import annotations


class DocTransError(Exception):
    """Base class for all DocTrans-LLMs errors."""


class UnsupportedFormatError(DocTransError, ValueError):
    """The file type is unknown or a legacy format we refuse to parse."""


class ParseFailureError(DocTransError):
    """Bytes of a supported format could not be parsed."""


class MissingCredentialError(DocTransError, ValueError):
    """A provider was requested without a credential."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} credential required")


class UnsupportedProviderError(DocTransError, ValueError):
    """The provider name does not map to an adapter."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")


class UnsupportedDomainError(DocTransError, ValueError):
    """A domain hint does not name a known domain."""

    def __init__(self, domain: str, allowed: list[str]):
        self.domain = domain
        self.allowed = allowed
        super().__init__(f"Unsupported domain: {domain} (choose from {', '.join(allowed)})")


class ProviderRequestError(DocTransError, RuntimeError):
    """A provider call failed (HTTP error, bad payload, timeout)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ChunkTranslationError(DocTransError, RuntimeError):
    """One chunk of a long-text translation failed; remaining chunks were skipped."""

    def __init__(self, message: str, chunk_index: int, total_chunks: int):
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        super().__init__(message)


class TranslationCancelled(DocTransError):
    """The caller abandoned a chunked translation between chunks."""

    def __init__(self, completed_chunks: int, total_chunks: int):
        self.completed_chunks = completed_chunks
        self.total_chunks = total_chunks
        super().__init__(
            f"Translation cancelled after {completed_chunks}/{total_chunks} chunks"
        )
