"""
Project-wide configuration and defaults.

This module defines the constants used throughout the DocTrans-LLMs system.
Values that change per call (languages, providers, domain hint) are NOT
read from here by the pipeline; they are passed explicitly through
``PipelineConfig`` so that every stage stays independently testable.

Module Contents:
    APP_NAME: Application name for display purposes
    CONFIG_DIR: Per-user directory for the local key file
    CHUNK_SIZE: Character threshold above which text is chunked
    WORDS_PER_PAGE: Words per page for the page-count heuristic
    DEFAULT_TIMEOUT: Per-provider request timeout in seconds
    SUPPORTED_PROVIDERS: Provider names the orchestrator knows about

Example:
    >>> from doctrans_llms.config import CHUNK_SIZE, SUPPORTED_PROVIDERS
    >>> print(f"Chunking above {CHUNK_SIZE} characters")
    >>> print(", ".join(SUPPORTED_PROVIDERS))
"""

from pathlib import Path

# Application name for display and identification
APP_NAME = "DocTrans-LLMs"

# Per-user config directory (only the CLI key store writes here)
CONFIG_DIR = Path.home() / ".doctrans"

# Long texts are split into sentence-bounded chunks under this size
CHUNK_SIZE = 2000

# Page-count heuristic: ceil(words / WORDS_PER_PAGE), minimum 1
WORDS_PER_PAGE = 250

# Timeout applied to every provider call
DEFAULT_TIMEOUT = 60.0

# Provider names, in the order comparisons are reported
SUPPORTED_PROVIDERS = ("openai", "gemini", "claude", "grok")

# Default language pair and domain when the caller gives none
DEFAULT_SOURCE_LANG = "en"
DEFAULT_TARGET_LANG = "es"
DEFAULT_DOMAIN = "general"
