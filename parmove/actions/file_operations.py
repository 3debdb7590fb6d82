"""
File Operations
===============

Move and copy primitives used by the workers.
Moves hard-link the file into place and then unlink the source, so an
existing destination is never replaced. Where a link is impossible
(another filesystem, no hard-link support) they fall back to a streamed
exclusive-create copy followed by deleting the source.
"""

import errno
import os
import shutil
from enum import Enum
from pathlib import Path

from parmove.utils.exceptions import ErrorCode, FileProcessingError, error_code_for
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024

# link() errors that mean "use a copy instead"
LINK_FALLBACK_ERRNOS = frozenset({
    errno.EXDEV,
    errno.EPERM,
    errno.EMLINK,
    getattr(errno, "ENOTSUP", errno.EXDEV),
    getattr(errno, "EOPNOTSUPP", errno.EXDEV),
})


class OperationMode(Enum):
    """How a file reaches its destination."""
    MOVE = "move"
    COPY = "copy"


class FileOperations:
    """Safe file operations that never overwrite an existing destination.

    Each call only touches its own source and destination, so one
    instance can be shared by every worker thread.
    """

    def __init__(self, chunk_size: int = COPY_CHUNK_SIZE):
        """Initialize file operations.

        Args:
            chunk_size: Buffer size for streamed copies.
        """
        self.chunk_size = chunk_size

    def transfer(self, source: Path, dest_path: Path, mode: OperationMode) -> Path:
        """Move or copy a file to an already resolved destination.

        Args:
            source: Source file path.
            dest_path: Claimed destination path.
            mode: OperationMode.MOVE or OperationMode.COPY.

        Returns:
            Final path of the file.

        Raises:
            FileProcessingError: If the operation fails.
        """
        if mode is OperationMode.MOVE:
            return self.move_file(source, dest_path)
        return self.copy_file(source, dest_path)

    def move_file(self, source: Path, dest_path: Path) -> Path:
        """Move a file to its destination.

        The file is hard-linked into place, which fails instead of
        replacing an entry that appeared after the destination was
        claimed, and then unlinked from the source.

        Args:
            source: Source file path.
            dest_path: Destination file path.

        Returns:
            Final path of moved file.

        Raises:
            FileProcessingError: If move fails.
        """
        source = Path(source)
        dest_path = Path(dest_path)
        self._check_paths(source, dest_path)

        try:
            os.link(source, dest_path, follow_symlinks=False)
        except OSError as e:
            if e.errno not in LINK_FALLBACK_ERRNOS:
                raise self._wrap("Failed to move file", source, e)
            logger.debug(f"Cannot link ({e.strerror}), copying: {source}")
            self._stream_copy(source, dest_path)

        try:
            os.unlink(source)
        except OSError as unlink_error:
            raise self._wrap(
                f"Placed at {dest_path} but could not remove source",
                source,
                unlink_error,
            )

        logger.debug(f"Moved: {source.name} -> {dest_path}", extra={"file_path": str(dest_path)})
        return dest_path

    def copy_file(self, source: Path, dest_path: Path) -> Path:
        """Copy a file to its destination, leaving the source untouched.

        Args:
            source: Source file path.
            dest_path: Destination file path.

        Returns:
            Path of copied file.

        Raises:
            FileProcessingError: If copy fails.
        """
        source = Path(source)
        dest_path = Path(dest_path)
        self._check_paths(source, dest_path)
        self._stream_copy(source, dest_path)
        logger.debug(f"Copied: {source.name} -> {dest_path}", extra={"file_path": str(dest_path)})
        return dest_path

    def _check_paths(self, source: Path, dest_path: Path) -> None:
        if not os.path.lexists(source):
            raise FileProcessingError(
                "Source file does not exist",
                file_path=str(source),
                error_code=ErrorCode.FILE_NOT_FOUND
            )
        if os.path.lexists(dest_path):
            raise FileProcessingError(
                f"Destination already exists: {dest_path}",
                file_path=str(source),
                error_code=ErrorCode.DESTINATION_EXISTS
            )

    def _stream_copy(self, source: Path, dest_path: Path) -> None:
        """Copy in chunks; a partially written destination is removed."""
        created = False
        try:
            with open(source, "rb") as src:
                with open(dest_path, "xb") as dst:
                    created = True
                    shutil.copyfileobj(src, dst, self.chunk_size)
        except OSError as e:
            if created:
                self._remove_partial(dest_path)
            raise self._wrap("Failed to copy file", source, e)

        try:
            shutil.copystat(source, dest_path)
        except OSError as e:
            logger.debug(f"Could not copy metadata to {dest_path}: {e}")

    @staticmethod
    def _remove_partial(dest_path: Path) -> None:
        try:
            os.unlink(dest_path)
        except OSError as e:
            logger.warning(f"Could not remove partial copy {dest_path}: {e}")

    @staticmethod
    def _wrap(message: str, source: Path, error: OSError) -> FileProcessingError:
        return FileProcessingError(
            f"{message}: {error}",
            file_path=str(source),
            error_code=error_code_for(error),
            cause=error,
        )
