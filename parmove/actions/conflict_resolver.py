"""
Conflict Resolver
=================

Hands out destination paths that are guaranteed free for one sorting run.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Set

from parmove.classification.classifier import split_name
from parmove.utils.exceptions import ErrorCode, FileProcessingError
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConflictInfo:
    """Information about a renamed destination.

    Attributes:
        requested: Path the file would have had without a conflict.
        result_path: Disambiguated path handed out instead.
    """
    requested: Path
    result_path: Path


class ConflictResolver:
    """Resolves destination name collisions for a single run.

    Paths handed out are remembered in a claim set. Checking the claim
    set and the filesystem, and recording the claim, happen under one
    lock, so two items resolved concurrently never receive the same path.
    A resolver belongs to exactly one run and is discarded with it.
    """

    MAX_ATTEMPTS = 9999

    def __init__(self, dest_dir: Path):
        """Initialize conflict resolver.

        Args:
            dest_dir: Output directory holding the category folders.
        """
        self.dest_dir = Path(dest_dir)
        self._lock = threading.Lock()
        self._claimed: Set[str] = set()
        self._ready_dirs: Set[Path] = set()
        self._conflicts: List[ConflictInfo] = []

    @staticmethod
    def _key(path: Path) -> str:
        return os.path.normcase(str(path))

    def _is_taken(self, path: Path) -> bool:
        return self._key(path) in self._claimed or os.path.lexists(path)

    def _ensure_dir(self, category_dir: Path) -> None:
        if category_dir in self._ready_dirs:
            return
        try:
            category_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileProcessingError(
                f"Cannot create category directory: {e}",
                file_path=str(category_dir),
                error_code=ErrorCode.DIRECTORY_CREATE_FAILED,
                cause=e,
            )
        self._ready_dirs.add(category_dir)

    def resolve(self, category: str, filename: str) -> Path:
        """Claim a free destination for a file.

        Args:
            category: Category folder name.
            filename: Original file name.

        Returns:
            ``dest_dir/category/filename``, or ``name (N).ext`` with the
            smallest N that is neither on disk nor claimed in this run.

        Raises:
            FileProcessingError: If the category folder cannot be created
                or no free name is found.
        """
        category_dir = self.dest_dir / category
        requested = category_dir / filename

        with self._lock:
            self._ensure_dir(category_dir)

            candidate = requested
            if self._is_taken(candidate):
                stem, suffix = split_name(filename)
                counter = 1
                while True:
                    candidate = category_dir / f"{stem} ({counter}){suffix}"
                    if not self._is_taken(candidate):
                        break
                    counter += 1
                    if counter > self.MAX_ATTEMPTS:
                        raise FileProcessingError(
                            "Too many files with same name",
                            file_path=str(requested),
                            error_code=ErrorCode.NAME_SPACE_EXHAUSTED,
                        )
                self._conflicts.append(ConflictInfo(requested, candidate))
                logger.debug(f"Renamed on conflict: {filename} -> {candidate.name}")

            self._claimed.add(self._key(candidate))

        return candidate

    def is_claimed(self, path: Path) -> bool:
        """Check whether a path was handed out by this resolver."""
        with self._lock:
            return self._key(Path(path)) in self._claimed

    @property
    def claimed_count(self) -> int:
        with self._lock:
            return len(self._claimed)

    def get_conflict_history(self) -> List[ConflictInfo]:
        """Get history of resolved conflicts.

        Returns:
            List of ConflictInfo objects.
        """
        with self._lock:
            return self._conflicts.copy()
