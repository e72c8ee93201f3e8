"""
Source cleansing: deterministic spelling, punctuation and style fixes.

The cleanser runs a fixed sequence of regex rules over the source text
before translation. Each rule is one substitution pass; every substitution
is recorded as a ``TextChange`` whose ``position`` is the offset of the
corrected substring in the text produced by that pass.

Rule order:
1. Spelling: a fixed misspelling dictionary (whole word, case-insensitive)
2. Normalisation: repeated spaces, capital after a period, missing space
   after ``.!?``, repeated terminal punctuation, missing space after a comma
3. Style: intensifier removal and comma after transition adverbs

Protected content is never altered: numbers, URLs (including bare domains),
email addresses and proper nouns (capitalised words not at sentence start).
Protected spans are recomputed before every rule and a substitution that
overlaps one is skipped.

Example:
    >>> fixes = SourceCleanser().clean("Thier teh cat  sat.next to it.")
    >>> fixes.corrected_text
    'Their the cat sat. Next to it.'
    >>> len(fixes.changes)
    4
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from doctrans_llms.models import ChangeType, SourceFixes, TextChange

logger = logging.getLogger(__name__)


# ============================================================================
# Protected content
# ============================================================================

URL_PATTERN = re.compile(
    r'https?://[^\s<>"\']+?(?=[.,!?;:)\]]*(?:\s|$))'
    r'|www\.[^\s<>"\']+?(?=[.,!?;:)\]]*(?:\s|$))'
    r'|\b[\w-]+(?:\.[\w-]+)*\.(?:com|org|net|edu|gov|io|co|uk|de|fr|es|it|info|biz|dev|ai)\b'
    r'(?:/[^\s<>"\']*?(?=[.,!?;:)\]]*(?:\s|$)))?'
)

EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]*\w')

NUMBER_PATTERN = re.compile(r'\d+(?:[.,:/]\d+)*')

CAPITALIZED_WORD_PATTERN = re.compile(r'\b[A-Z][A-Za-z]*\b')

_CLOSING_CHARS = "\"')]}’”"


def _at_sentence_start(text: str, index: int) -> bool:
    """True when only whitespace separates index from a sentence boundary."""
    j = index - 1
    while j >= 0 and text[j].isspace():
        if text[j] == "\n":
            return True
        j -= 1
    while j >= 0 and text[j] in _CLOSING_CHARS:
        j -= 1
    return j < 0 or text[j] in ".!?"


def protected_spans(text: str) -> list[tuple[int, int]]:
    """Return merged ``(start, end)`` spans that corrections must not touch."""
    spans = []
    for pattern in (URL_PATTERN, EMAIL_PATTERN, NUMBER_PATTERN):
        spans.extend(m.span() for m in pattern.finditer(text))
    for m in CAPITALIZED_WORD_PATTERN.finditer(text):
        if not _at_sentence_start(text, m.start()):
            spans.append(m.span())

    merged: list[tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
        else:
            merged.append((start, end))
    return merged


def protected_tokens(text: str) -> list[str]:
    """The protected substrings of text, in order of appearance."""
    tokens = []
    for pattern in (URL_PATTERN, EMAIL_PATTERN, NUMBER_PATTERN):
        tokens.extend(m.group(0) for m in pattern.finditer(text))
    tokens.extend(
        m.group(0) for m in CAPITALIZED_WORD_PATTERN.finditer(text)
        if not _at_sentence_start(text, m.start())
    )
    return tokens


def _overlaps(span: tuple[int, int], protected: list[tuple[int, int]], starts: list[int]) -> bool:
    start, end = span
    i = bisect.bisect_left(starts, end)
    # Only the span starting right before ``end`` can overlap, spans are merged
    return i > 0 and protected[i - 1][1] > start


# ============================================================================
# Rules
# ============================================================================

MISSPELLINGS = {
    "teh": "the",
    "adn": "and",
    "yuo": "you",
    "thier": "their",
    "recieve": "receive",
    "seperate": "separate",
}

INTENSIFIERS = ("very", "really", "quite")

TRANSITION_ADVERBS = ("However", "Therefore", "Moreover", "Furthermore", "Additionally")

_ABBREVIATION_RE = re.compile(r'(?:\be\.g|\bi\.e|\betc|\bvs|\bcf|\bal|\bapprox)$', re.IGNORECASE)

_INITIALISM_RE = re.compile(r"(?:^|[^A-Za-z])[A-Za-z]$")


@dataclass(frozen=True)
class CleanupRule:
    """One substitution pass.

    ``replace`` returns the replacement for a match, or None to leave the
    match untouched. ``explanation`` is formatted with ``original``,
    ``corrected`` and ``word`` (the first group, if any).
    """
    name: str
    pattern: re.Pattern
    change_type: ChangeType
    replace: Callable[[re.Match], Optional[str]]
    explanation: str


def _match_case(original: str, replacement: str) -> str:
    if len(original) > 1 and original.isupper():
        return replacement.upper()
    if original[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def _capitalize_after_period(m: re.Match) -> Optional[str]:
    before = m.string[max(0, m.start() - 8):m.start()]
    if _ABBREVIATION_RE.search(before):
        return None
    return "." + m.group(1) + m.group(2).upper()


def _space_after_mark(m: re.Match) -> Optional[str]:
    mark, letter = m.group(1), m.group(2)
    text = m.string
    before = text[max(0, m.start() - 8):m.start()]
    if mark == "." and _ABBREVIATION_RE.search(before):
        return None
    # Initialisms such as "e.g", "i.e." and "U.S." keep their periods
    if mark == "." and _INITIALISM_RE.search(before):
        following = text[m.end():m.end() + 1]
        if following == "." or not following.isalpha():
            return None
    return f"{mark} {letter.upper() if mark == '.' else letter}"


def build_rules(misspellings: dict[str, str]) -> list[CleanupRule]:
    """Build the ordered rule list for a misspelling dictionary."""
    words = sorted(misspellings, key=len, reverse=True)
    spelling_re = re.compile(r'\b(' + "|".join(map(re.escape, words)) + r')\b', re.IGNORECASE)

    return [
        CleanupRule(
            name="spelling",
            pattern=spelling_re,
            change_type=ChangeType.SPELLING,
            replace=lambda m: _match_case(m.group(0), misspellings[m.group(0).lower()]),
            explanation='Corrected spelling error: "{original}" → "{corrected}"',
        ),
        CleanupRule(
            name="collapse_spaces",
            pattern=re.compile(r' {2,}'),
            change_type=ChangeType.PUNCTUATION,
            replace=lambda m: " ",
            explanation="Collapsed repeated spaces",
        ),
        CleanupRule(
            name="capitalize_after_period",
            pattern=re.compile(r'\.(\s+)([a-z])'),
            change_type=ChangeType.PUNCTUATION,
            replace=_capitalize_after_period,
            explanation="Capitalized letter after period",
        ),
        CleanupRule(
            name="space_after_punctuation",
            pattern=re.compile(r'([.!?])([A-Za-z])'),
            change_type=ChangeType.PUNCTUATION,
            replace=_space_after_mark,
            explanation="Added space after punctuation",
        ),
        CleanupRule(
            name="repeated_punctuation",
            pattern=re.compile(r'[.!?]{2,}'),
            change_type=ChangeType.PUNCTUATION,
            replace=lambda m: m.group(0)[0],
            explanation="Removed duplicate punctuation",
        ),
        CleanupRule(
            name="space_after_comma",
            pattern=re.compile(r',([A-Za-z])'),
            change_type=ChangeType.PUNCTUATION,
            replace=lambda m: ", " + m.group(1),
            explanation="Added space after comma",
        ),
        CleanupRule(
            name="intensifiers",
            pattern=re.compile(r'\b(' + "|".join(INTENSIFIERS) + r')\s+(?=\w)'),
            change_type=ChangeType.STYLE,
            replace=lambda m: "",
            explanation='Removed unnecessary "{word}"',
        ),
        CleanupRule(
            name="transition_comma",
            pattern=re.compile(r'\b(' + "|".join(TRANSITION_ADVERBS) + r')(,\s*|\s+)(?=[a-z])'),
            change_type=ChangeType.STYLE,
            replace=lambda m: m.group(1) + ", ",
            explanation="Improved sentence structure",
        ),
    ]


# ============================================================================
# Cleanser
# ============================================================================

class SourceCleanser:
    """Applies the cleanup rules and records every change.

    Usage:
        cleanser = SourceCleanser()
        fixes = cleanser.clean(text)
        print(fixes.explanation)
        print(get_change_report(fixes))
    """

    def __init__(self, misspellings: Optional[dict[str, str]] = None):
        table = dict(MISSPELLINGS)
        if misspellings:
            table.update({k.lower(): v for k, v in misspellings.items()})
        self.rules = build_rules(table)

    def clean(self, text: str) -> SourceFixes:
        changes: list[TextChange] = []
        corrected = text
        for rule in self.rules:
            corrected = self._apply_rule(corrected, rule, changes)

        logger.debug("Cleansing made %d change(s)", len(changes))
        return SourceFixes(
            original_text=text,
            corrected_text=corrected,
            changes=changes,
            explanation=generate_explanation(changes),
        )

    def _apply_rule(self, text: str, rule: CleanupRule, changes: list[TextChange]) -> str:
        protected = protected_spans(text)
        starts = [s for s, _ in protected]
        out: list[str] = []
        out_len = 0
        last = 0

        for m in rule.pattern.finditer(text):
            replacement = rule.replace(m)
            if replacement is None or replacement == m.group(0):
                continue
            if _overlaps(m.span(), protected, starts):
                logger.debug("Skipped %s at %d: touches protected text %r", rule.name, m.start(), m.group(0))
                continue

            out.append(text[last:m.start()])
            out_len += m.start() - last
            changes.append(TextChange(
                type=rule.change_type,
                original=m.group(0),
                corrected=replacement,
                position=out_len,
                explanation=rule.explanation.format(
                    original=m.group(0),
                    corrected=replacement,
                    word=m.group(1) if m.re.groups else "",
                ),
            ))
            out.append(replacement)
            out_len += len(replacement)
            last = m.end()

        if not out:
            return text
        out.append(text[last:])
        return "".join(out)


def validate_correction(original: str, corrected: str) -> bool:
    """Check that every protected token of original survives in corrected."""
    return all(token in corrected for token in protected_tokens(original))


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def generate_explanation(changes: list[TextChange]) -> str:
    """One-sentence summary of the changes by type."""
    if not changes:
        return "No corrections were needed. The text is already well-written."

    counts = {t: 0 for t in ChangeType}
    for change in changes:
        counts[change.type] += 1

    labels = [
        (ChangeType.SPELLING, "spelling correction"),
        (ChangeType.PUNCTUATION, "punctuation improvement"),
        (ChangeType.GRAMMAR, "grammar fix"),
        (ChangeType.STYLE, "style enhancement"),
    ]
    parts = [_plural(counts[t], label) for t, label in labels if counts[t]]
    correction = "correction" if len(changes) == 1 else "corrections"
    return f"Applied {len(changes)} {correction}: {', '.join(parts)}."


def get_change_report(fixes: SourceFixes) -> str:
    """Numbered, human-readable list of the recorded changes."""
    if not fixes.changes:
        return "No changes were made to the original text."

    lines = [f"Document Correction Report ({len(fixes.changes)} changes):"]
    for i, change in enumerate(fixes.changes, start=1):
        lines.append(f"{i}. [{change.type.value.upper()}] {change.explanation}")
        lines.append(f'   Original: "{change.original}"')
        lines.append(f'   Corrected: "{change.corrected}"')
        lines.append("")
    return "\n".join(lines)


def clean_text(text: str) -> SourceFixes:
    """Convenience function using the default rules."""
    return SourceCleanser().clean(text)
