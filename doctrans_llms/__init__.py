"""
DocTrans-LLMs: document translation across multiple LLM providers.

Uploaded documents (DOCX, PDF, RTF, ODT, plain text) are normalised into a
structured content model, optionally cleansed, classified by domain,
translated by one or several LLM providers and aligned segment by segment
for side-by-side reading.

License: MIT
"""

__version__ = "0.1.0"

from doctrans_llms.ingest import parse_document
from doctrans_llms.models import BilingualView, DocumentContent, Translation
from doctrans_llms.pipeline import DocumentPipeline, PipelineConfig, PipelineResult

__all__ = [
    "parse_document",
    "BilingualView",
    "DocumentContent",
    "Translation",
    "DocumentPipeline",
    "PipelineConfig",
    "PipelineResult",
]
