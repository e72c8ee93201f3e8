"""
Entry point for running DocTrans-LLMs as a module.

Usage:
    python -m doctrans_llms --help
    python -m doctrans_llms ingest report.docx
    python -m doctrans_llms compare report.pdf --target es
"""
from .cli import app


if __name__ == "__main__":
    app()
