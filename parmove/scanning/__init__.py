"""Scanning module for directory traversal."""

from .walker import DirectoryWalker, FileEntry, walk

__all__ = [
    "DirectoryWalker",
    "FileEntry",
    "walk",
]
