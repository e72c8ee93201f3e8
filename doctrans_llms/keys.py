"""
Provider credential management for the DocTrans-LLMs CLI.

Credentials are looked up in order:
1. Environment variables (preferred for CI/production)
2. OS keychain via keyring (secure local storage)
3. Local key file (~/.doctrans/keys.json)

The pipeline itself never reads credentials; the CLI builds the
``{provider: credential}`` map with ``KeyManager.credentials()`` and passes
it in explicitly.

Usage:
    from doctrans_llms.keys import KeyManager

    km = KeyManager()
    km.set_key("openai", "sk-...")
    creds = km.credentials()
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from doctrans_llms.config import APP_NAME, CONFIG_DIR, SUPPORTED_PROVIDERS
from doctrans_llms.errors import MissingCredentialError, UnsupportedProviderError

logger = logging.getLogger(__name__)

# Providers and their env var names
PROVIDER_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "grok": "XAI_API_KEY",
}


@dataclass
class KeyInfo:
    """Information about a provider credential."""
    provider: str
    is_set: bool
    source: str  # 'env', 'keyring', 'config', 'none'
    masked_value: str  # e.g., "sk-p...x9Qa"


class KeyManager:
    """Look up and store provider credentials.

    Priority order for retrieval:
    1. Environment variable
    2. OS keychain (via keyring)
    3. Local key file
    """

    SERVICE_NAME = APP_NAME

    def __init__(self, config_file: Optional[Path] = None, use_keyring: bool = True):
        self.config_file = config_file or CONFIG_DIR / "keys.json"
        self._keyring_available = use_keyring and self._check_keyring()

    def _check_keyring(self) -> bool:
        """Check that a usable keyring backend is configured."""
        try:
            import keyring
            from keyring.backends.fail import Keyring as FailKeyring
        except ImportError:
            return False
        return not isinstance(keyring.get_keyring(), FailKeyring)

    def _validate(self, provider: str) -> str:
        provider = provider.lower()
        if provider not in PROVIDER_ENV_VARS:
            raise UnsupportedProviderError(provider)
        return provider

    def _read_file(self) -> dict[str, str]:
        if not self.config_file.exists():
            return {}
        try:
            data = json.loads(self.config_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable key file %s: %s", self.config_file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_file(self, data: dict[str, str]) -> None:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(json.dumps(data, indent=2))
        self.config_file.chmod(0o600)  # Restrict permissions

    def _keyring_get(self, provider: str) -> Optional[str]:
        if not self._keyring_available:
            return None
        import keyring
        from keyring.errors import KeyringError

        try:
            return keyring.get_password(self.SERVICE_NAME, provider)
        except KeyringError as e:
            logger.debug("Keyring lookup for %s failed: %s", provider, e)
            return None

    def _lookup(self, provider: str) -> tuple[Optional[str], str]:
        if env_val := os.getenv(PROVIDER_ENV_VARS[provider]):
            return env_val, "env"
        if key := self._keyring_get(provider):
            return key, "keyring"
        if key := self._read_file().get(provider):
            return key, "config"
        return None, "none"

    def get_key(self, provider: str) -> Optional[str]:
        """Credential for a provider, or None when not configured."""
        return self._lookup(self._validate(provider))[0]

    def require_key(self, provider: str) -> str:
        """Credential for a provider.

        Raises:
            MissingCredentialError: No credential configured
        """
        key = self.get_key(provider)
        if not key:
            raise MissingCredentialError(provider)
        return key

    def set_key(self, provider: str, key: str, use_keyring: bool = True) -> str:
        """Store a credential.

        Returns:
            Storage location used ('keyring' or 'config')
        """
        provider = self._validate(provider)

        if use_keyring and self._keyring_available:
            import keyring
            from keyring.errors import KeyringError

            try:
                keyring.set_password(self.SERVICE_NAME, provider, key)
                return "keyring"
            except KeyringError as e:
                logger.warning("Keyring unavailable (%s), storing %s key in %s", e, provider, self.config_file)

        data = self._read_file()
        data[provider] = key
        self._write_file(data)
        return "config"

    def delete_key(self, provider: str) -> bool:
        """Delete a stored credential from keyring and key file."""
        provider = self._validate(provider)
        deleted = False

        if self._keyring_available:
            import keyring
            from keyring.errors import PasswordDeleteError

            try:
                keyring.delete_password(self.SERVICE_NAME, provider)
                deleted = True
            except PasswordDeleteError:
                logger.debug("No keyring entry for %s", provider)

        data = self._read_file()
        if provider in data:
            del data[provider]
            self._write_file(data)
            deleted = True

        return deleted

    def get_key_info(self, provider: str) -> KeyInfo:
        """Where a credential comes from, with a masked value."""
        provider = self._validate(provider)
        key, source = self._lookup(provider)
        return KeyInfo(
            provider=provider,
            is_set=key is not None,
            source=source,
            masked_value=self._mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        """Status of every supported provider."""
        return [self.get_key_info(provider) for provider in SUPPORTED_PROVIDERS]

    def credentials(self, providers: Optional[list[str]] = None) -> dict[str, Optional[str]]:
        """The ``{provider: credential}`` map passed to the pipeline.

        Providers without a credential map to None so the orchestrator can
        report them individually.
        """
        return {p: self.get_key(p) for p in (providers or SUPPORTED_PROVIDERS)}

    def _mask_key(self, key: str) -> str:
        """Mask a key for display (show first 4 and last 4 chars)."""
        if len(key) <= 12:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"
