"""Reporting module for post-run output."""

from .indexer import HtmlIndexer, IndexSection, IndexedFile

__all__ = [
    "HtmlIndexer",
    "IndexSection",
    "IndexedFile",
]
