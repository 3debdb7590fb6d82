"""
Processing Models
=================

Work items handed to workers and the outcomes they report back.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from parmove.actions.file_operations import OperationMode
from parmove.classification.classifier import SkipReason
from parmove.scanning.walker import FileEntry
from parmove.utils.exceptions import ErrorCode, error_code_for


class OutcomeStatus(Enum):
    """Terminal status of one file in a run."""
    MOVED = "moved"
    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WorkItem:
    """A classified file with its claimed, collision-free destination.

    Owned by the single worker that executes it.

    Attributes:
        entry: File discovered by the walker.
        category: Target category folder.
        destination: Claimed destination path.
        renamed: Whether the destination name was disambiguated.
    """
    entry: FileEntry
    category: str
    destination: Path
    renamed: bool = False

    @property
    def source(self) -> Path:
        return self.entry.path


@dataclass(frozen=True)
class Outcome:
    """Result of handling one file.

    Attributes:
        source: File the outcome is about.
        status: Terminal status.
        category: Category it was sorted into, if classified.
        destination: Final path on success.
        error_code: Error kind on failure.
        message: Error message on failure.
        skip_reason: Why a skipped file was left in place.
        renamed: Whether the destination name was disambiguated.
    """
    source: Path
    status: OutcomeStatus
    category: Optional[str] = None
    destination: Optional[Path] = None
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    renamed: bool = False

    @classmethod
    def success(cls, item: WorkItem, mode: OperationMode, final_path: Path) -> "Outcome":
        status = OutcomeStatus.MOVED if mode is OperationMode.MOVE else OutcomeStatus.COPIED
        return cls(
            source=item.source,
            status=status,
            category=item.category,
            destination=final_path,
            renamed=item.renamed,
        )

    @classmethod
    def failure(
        cls,
        source: Path,
        error: BaseException,
        category: Optional[str] = None,
    ) -> "Outcome":
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        return cls(
            source=source,
            status=OutcomeStatus.FAILED,
            category=category,
            error_code=error_code_for(error),
            message=message,
        )

    @classmethod
    def skipped(cls, entry: FileEntry, reason: SkipReason) -> "Outcome":
        return cls(source=entry.path, status=OutcomeStatus.SKIPPED, skip_reason=reason)

    @classmethod
    def cancelled(cls, item: WorkItem) -> "Outcome":
        return cls(source=item.source, status=OutcomeStatus.CANCELLED, category=item.category)

    @property
    def succeeded(self) -> bool:
        return self.status in (OutcomeStatus.MOVED, OutcomeStatus.COPIED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": str(self.source),
            "status": self.status.value,
            "category": self.category,
            "destination": str(self.destination) if self.destination else None,
            "error_code": self.error_code.name if self.error_code else None,
            "message": self.message,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "renamed": self.renamed,
        }
