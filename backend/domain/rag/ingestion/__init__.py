"""
Document ingestion
"""

from domain.rag.ingestion.splitter import TextSplitter, detect_language

__all__ = [
    "TextSplitter",
    "detect_language",
]
