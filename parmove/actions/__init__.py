"""Actions module for file operations."""

from .file_operations import FileOperations, OperationMode
from .conflict_resolver import ConflictResolver, ConflictInfo

__all__ = [
    "FileOperations",
    "OperationMode",
    "ConflictResolver",
    "ConflictInfo",
]
