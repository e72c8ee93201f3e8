"""
Terminology pre-substitution.

Before a text is sent to a provider, domain terms are replaced with their
target-language equivalents so that every provider sees the same fixed
vocabulary. Matching is whole-word and case-insensitive; longer terms are
matched first so "base de datos"-style multi-word entries win over their
parts. A leading capital in the source occurrence is kept.
"""

from __future__ import annotations

import re


def _preserve_case(original: str, replacement: str) -> str:
    if original[:1].isupper() and replacement:
        return replacement[0].upper() + replacement[1:]
    return replacement


def apply_terminology(text: str, terminology: dict[str, str]) -> str:
    """Replace every terminology source term in text with its target.

    >>> apply_terminology("The Patient has symptoms.", {"patient": "paciente"})
    'The Paciente has symptoms.'
    """
    if not text or not terminology:
        return text

    lookup = {source.lower(): target for source, target in terminology.items() if source}
    terms = sorted(lookup, key=len, reverse=True)
    pattern = re.compile(r"\b(" + "|".join(re.escape(t) for t in terms) + r")\b", re.IGNORECASE)
    return pattern.sub(lambda m: _preserve_case(m.group(0), lookup[m.group(0).lower()]), text)
