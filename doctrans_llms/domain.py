"""
Domain classification and extractive document summary.

Both functions here are fast heuristics meant to shape the translation
request (terminology pre-substitution, prompt tone). They are never
authoritative: a low-confidence result is still returned and the
pipeline carries on.

Domain scoring:
    For each domain in declaration order (legal, medical, technical,
    marketing, academic) the score is the number of its fixed terms that
    occur in the text (case-insensitive, at a word start). The highest
    non-zero score wins, ties go to the earlier domain, all-zero gives
    ``general``. ``confidence = min(0.9, score / 10)``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass

from doctrans_llms.models import DocumentDomain, DocumentSummary, DomainType
from doctrans_llms.utils import split_sentences

logger = logging.getLogger(__name__)


# ============================================================================
# Term lists and terminology maps
# ============================================================================

DOMAIN_TERMS: dict[DomainType, list[str]] = {
    DomainType.LEGAL: [
        "contract", "agreement", "terms", "conditions", "liability",
        "legal", "court", "law", "statute", "regulation",
    ],
    DomainType.MEDICAL: [
        "patient", "diagnosis", "treatment", "medical", "clinical",
        "symptoms", "disease", "health", "therapy", "medication",
    ],
    DomainType.TECHNICAL: [
        "system", "software", "hardware", "algorithm", "database",
        "network", "protocol", "api", "function", "method",
    ],
    DomainType.MARKETING: [
        "marketing", "brand", "customer", "sales", "promotion",
        "advertisement", "campaign", "target", "audience", "strategy",
    ],
    DomainType.ACADEMIC: [
        "research", "study", "analysis", "hypothesis", "methodology",
        "conclusion", "findings", "literature", "references", "citation",
    ],
}

_TERM_PATTERNS = {
    domain: [re.compile(r"\b" + re.escape(term), re.IGNORECASE) for term in terms]
    for domain, terms in DOMAIN_TERMS.items()
}

# Source (English) → target terminology per target language and domain
TERMINOLOGY: dict[str, dict[DomainType, dict[str, str]]] = {
    "es": {
        DomainType.LEGAL: {
            "contract": "contrato",
            "agreement": "acuerdo",
            "liability": "responsabilidad",
            "court": "tribunal",
            "statute": "estatuto",
        },
        DomainType.MEDICAL: {
            "patient": "paciente",
            "diagnosis": "diagnóstico",
            "treatment": "tratamiento",
            "symptoms": "síntomas",
            "therapy": "terapia",
        },
        DomainType.TECHNICAL: {
            "system": "sistema",
            "software": "software",
            "hardware": "hardware",
            "algorithm": "algoritmo",
            "database": "base de datos",
        },
        DomainType.MARKETING: {
            "brand": "marca",
            "customer": "cliente",
            "sales": "ventas",
            "campaign": "campaña",
            "strategy": "estrategia",
        },
        DomainType.ACADEMIC: {
            "research": "investigación",
            "study": "estudio",
            "analysis": "análisis",
            "hypothesis": "hipótesis",
            "methodology": "metodología",
        },
    },
    "fr": {
        DomainType.LEGAL: {
            "contract": "contrat",
            "agreement": "accord",
            "liability": "responsabilité",
            "court": "tribunal",
            "statute": "loi",
        },
        DomainType.MEDICAL: {
            "patient": "patient",
            "diagnosis": "diagnostic",
            "treatment": "traitement",
            "symptoms": "symptômes",
            "therapy": "thérapie",
        },
        DomainType.TECHNICAL: {
            "system": "système",
            "software": "logiciel",
            "hardware": "matériel",
            "algorithm": "algorithme",
            "database": "base de données",
        },
        DomainType.MARKETING: {
            "brand": "marque",
            "customer": "client",
            "sales": "ventes",
            "campaign": "campagne",
            "strategy": "stratégie",
        },
        DomainType.ACADEMIC: {
            "research": "recherche",
            "study": "étude",
            "analysis": "analyse",
            "hypothesis": "hypothèse",
            "methodology": "méthodologie",
        },
    },
}


@dataclass(frozen=True)
class DomainPreferences:
    """How a translation for a domain should read."""
    tone: str
    formality: str
    terminology: str

    def to_dict(self) -> dict:
        return {"tone": self.tone, "formality": self.formality, "terminology": self.terminology}


DOMAIN_PREFERENCES: dict[DomainType, DomainPreferences] = {
    DomainType.GENERAL: DomainPreferences("neutral", "medium", "standard"),
    DomainType.LEGAL: DomainPreferences("formal", "high", "legal"),
    DomainType.MEDICAL: DomainPreferences("professional", "high", "medical"),
    DomainType.TECHNICAL: DomainPreferences("precise", "medium", "technical"),
    DomainType.MARKETING: DomainPreferences("engaging", "low", "marketing"),
    DomainType.ACADEMIC: DomainPreferences("scholarly", "high", "academic"),
}

SUMMARY_STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})


# ============================================================================
# Classification
# ============================================================================

def domain_scores(text: str) -> dict[DomainType, int]:
    """Number of distinct domain terms found, per domain, in declaration order."""
    return {
        domain: sum(1 for pattern in patterns if pattern.search(text))
        for domain, patterns in _TERM_PATTERNS.items()
    }


def terminology_for(domain: DomainType, target_lang: str) -> dict[str, str]:
    """Terminology map for a domain; empty for unknown target languages."""
    return dict(TERMINOLOGY.get(target_lang.lower(), {}).get(domain, {}))


def detect_domain(text: str, target_lang: str = "es") -> DocumentDomain:
    """Classify text into a coarse domain.

    Args:
        text: Source text
        target_lang: Language of the terminology map to attach

    Returns:
        DocumentDomain with type, confidence and terminology map
    """
    scores = domain_scores(text)
    best_score = max(scores.values(), default=0)
    if best_score == 0:
        domain = DomainType.GENERAL
    else:
        # max() keeps the first maximal key, i.e. declaration order wins ties
        domain = max(scores, key=lambda d: scores[d])

    logger.debug("Domain scores: %s -> %s", {d.value: s for d, s in scores.items()}, domain.value)
    return DocumentDomain(
        type=domain,
        confidence=min(0.9, best_score / 10),
        terminology=terminology_for(domain, target_lang),
    )


def get_domain_preferences(domain: DomainType | str) -> DomainPreferences:
    """Tone, formality and terminology register for a domain."""
    return DOMAIN_PREFERENCES[DomainType(domain)]


# ============================================================================
# Summary
# ============================================================================

_KEY_TERM_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")


def extract_main_ideas(text: str, count: int = 3) -> list[str]:
    """First sentences longer than 10 characters."""
    return split_sentences(text, min_length=10)[:count]


def extract_topics(text: str, count: int = 5) -> list[str]:
    """Most frequent words longer than 3 characters, stopwords excluded."""
    cleaned = re.sub(r"[^\w\s]", "", text.lower())
    words = [w for w in cleaned.split() if len(w) > 3 and w not in SUMMARY_STOPWORDS]
    return [word for word, _ in Counter(words).most_common(count)]


def extract_key_terms(text: str, limit: int = 10) -> list[str]:
    """Distinct capitalised word sequences, in order of appearance."""
    terms: list[str] = []
    for match in _KEY_TERM_RE.finditer(text):
        term = " ".join(match.group(0).split())
        if len(term) > 2 and term not in terms:
            terms.append(term)
            if len(terms) == limit:
                break
    return terms


def generate_abstract(text: str) -> str:
    """First sentence plus the middle sentence, or a 200-character prefix."""
    sentences = split_sentences(text, min_length=10)
    if len(sentences) <= 2:
        return text[:200] + "..."
    return f"{sentences[0]}. {sentences[len(sentences) // 2]}..."


def analyze_document(text: str) -> DocumentSummary:
    """Build the extractive summary of a document."""
    return DocumentSummary(
        main_ideas=extract_main_ideas(text),
        topics=extract_topics(text),
        key_terms=extract_key_terms(text),
        abstract=generate_abstract(text),
    )
