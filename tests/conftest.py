"""
Shared fixtures for DocTrans-LLMs tests.

Provider adapters are replaced by in-process fakes so that no test makes
a network call.
"""

import threading
import time

import pytest

from doctrans_llms.translate.base import ProviderAdapter, ProviderResponse


class FakeAdapter(ProviderAdapter):
    """Adapter that "translates" by tagging the text.

    Records every call so tests can check call counts and order.
    """

    provider_name = "fake"
    default_model = "fake-model"

    def __init__(self, name="fake", prefix=None, fail_on=None, raise_error=None, delay=0.0, tokens=10, replies=None):
        super().__init__()
        self.provider_name = name
        self.prefix = prefix if prefix is not None else f"[{name}]"
        self.fail_on = fail_on
        self.raise_error = raise_error
        self.delay = delay
        self.tokens = tokens
        # Canned replies keyed by call number (1-based)
        self.replies = replies or {}
        self.calls = []
        self._lock = threading.Lock()

    def _request(self, text, source_language, target_language, credential, domain):
        with self._lock:
            self.calls.append({
                "text": text,
                "source": source_language,
                "target": target_language,
                "credential": credential,
                "domain": domain,
            })
            call_number = len(self.calls)
        if self.delay:
            time.sleep(self.delay)
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_on is not None and call_number == self.fail_on:
            return ProviderResponse.failure(f"{self.provider_name} translation failed: quota exceeded")
        return ProviderResponse(
            translated_text=self.replies.get(call_number, f"{self.prefix} {text}"),
            tokens_used=self.tokens,
            model=self.config.model,
        )


@pytest.fixture
def fake_adapter_factory():
    """Build fake adapters keyed by provider name."""
    def make(*names, **kwargs):
        return {name: FakeAdapter(name=name, **kwargs) for name in names}
    return make


@pytest.fixture
def sample_text():
    """Plain-text document with a clear legal domain."""
    return (
        "Service Agreement\n\n"
        "This contract sets out the terms and conditions of the agreement. "
        "The court may review any liability under the statute.\n\n"
        "Each party accepts the regulation and the law that applies."
    )
