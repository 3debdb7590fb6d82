"""
Directory Walker
================

Lazy, depth-bounded, depth-first pre-order traversal of a root directory.
Only file entries are yielded; directory symlinks are never followed.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Set

from parmove.classification.classifier import extract_extension
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)

WalkErrorCallback = Callable[[Path, OSError], None]


@dataclass(frozen=True)
class FileEntry:
    """One file discovered during traversal.

    Attributes:
        path: Absolute path to the file.
        extension: Lower-cased extension, None when the name has none.
        depth: Nesting level; the root's direct children are level 0.
    """
    path: Path
    extension: Optional[str]
    depth: int

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path, depth: int = 0) -> "FileEntry":
        """Create a FileEntry for a path."""
        path = Path(os.path.abspath(path))
        return cls(path=path, extension=extract_extension(path.name), depth=depth)


class DirectoryWalker:
    """Walks a directory tree and yields FileEntry objects.

    Each call to walk() re-scans from scratch, no cursor is kept between
    calls. Entries are visited in name order so a given filesystem
    snapshot always produces the same sequence.
    """

    def __init__(
        self,
        root: Path,
        max_depth: Optional[int] = None,
        exclude: Iterable[Path] = (),
        on_error: Optional[WalkErrorCallback] = None,
    ):
        """Initialize the walker.

        Args:
            root: Directory to walk.
            max_depth: Deepest level to yield files from. 0 yields only the
                root's direct children, None recurses fully.
            exclude: Directories that are never entered (e.g. the output
                directory when it lives inside the root).
            on_error: Called with (path, error) for unreadable directories.
        """
        if max_depth is not None and max_depth < 0:
            raise ValueError("max_depth cannot be negative")
        self.root = Path(os.path.abspath(root))
        self.max_depth = max_depth
        self.on_error = on_error
        self._exclude: Set[str] = {self._key(Path(p)) for p in exclude}
        self.directories_scanned = 0

    @staticmethod
    def _key(path: Path) -> str:
        return os.path.normcase(os.path.realpath(path))

    def walk(self) -> Iterator[FileEntry]:
        """Yield every file under the root within the depth limit."""
        self.directories_scanned = 0
        yield from self._walk_dir(self.root, 0)

    __iter__ = walk

    def _walk_dir(self, directory: Path, depth: int) -> Iterator[FileEntry]:
        """Yield files of one directory, then recurse into its subdirectories.

        Args:
            directory: Directory being listed.
            depth: Level of the entries inside this directory.
        """
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Failed to read directory {directory}: {e}")
            if self.on_error:
                self.on_error(directory, e)
            return

        self.directories_scanned += 1
        subdirs = []

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry)
                elif entry.is_file():
                    yield FileEntry(
                        path=Path(entry.path),
                        extension=extract_extension(entry.name),
                        depth=depth,
                    )
                else:
                    logger.debug(f"Skipping non-regular entry: {entry.path}")
            except OSError as e:
                logger.warning(f"Failed to inspect {entry.path}: {e}")
                if self.on_error:
                    self.on_error(Path(entry.path), e)

        if self.max_depth is not None and depth + 1 > self.max_depth:
            return

        for entry in subdirs:
            path = Path(entry.path)
            if self._key(path) in self._exclude:
                logger.debug(f"Skipping excluded directory: {path}")
                continue
            yield from self._walk_dir(path, depth + 1)


def walk(
    root: Path,
    max_depth: Optional[int] = None,
    exclude: Iterable[Path] = (),
    on_error: Optional[WalkErrorCallback] = None,
) -> Iterator[FileEntry]:
    """Lazily yield the files under root.

    Args:
        root: Directory to walk.
        max_depth: Depth limit, None for unlimited.
        exclude: Directories never entered.
        on_error: Callback for unreadable directories.

    Returns:
        Iterator of FileEntry objects.
    """
    return DirectoryWalker(root, max_depth, exclude, on_error).walk()
