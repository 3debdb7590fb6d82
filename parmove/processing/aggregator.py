"""
Run Aggregator
==============

Accumulates outcomes into the final RunSummary of a sorting run.
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from parmove.actions.file_operations import OperationMode
from parmove.classification.classifier import SkipReason
from parmove.processing.models import Outcome, OutcomeStatus
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FailureRecord:
    """One failed file.

    Attributes:
        path: Offending path.
        error_code: Error kind name.
        reason: Human-readable message.
    """
    path: Path
    error_code: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": str(self.path), "error_code": self.error_code, "reason": self.reason}


@dataclass(frozen=True)
class RunSummary:
    """Final report of a sorting run.

    Only built once every dispatched item has reported, so it is never
    a partial view.
    """
    mode: OperationMode
    moved: int = 0
    copied: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: int = 0
    renamed: int = 0
    skipped_by_reason: Tuple[Tuple[str, int], ...] = ()
    failures: Tuple[FailureRecord, ...] = ()
    placed: Tuple[Tuple[str, str], ...] = ()
    duration: float = 0.0

    @property
    def processed(self) -> int:
        """Files moved or copied."""
        return self.moved + self.copied

    @property
    def total(self) -> int:
        """Every file the run reported on."""
        return self.processed + self.skipped + self.failed + self.cancelled

    @property
    def exit_code(self) -> int:
        """0 when nothing failed, 1 otherwise."""
        return 0 if self.failed == 0 and self.cancelled == 0 else 1

    @property
    def success_rate(self) -> float:
        attempted = self.processed + self.failed
        if attempted == 0:
            return 1.0
        return self.processed / attempted

    def to_dict(self) -> Dict[str, Any]:
        """Convert summary to dictionary."""
        return {
            "mode": self.mode.value,
            "moved": self.moved,
            "copied": self.copied,
            "skipped": self.skipped,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "renamed": self.renamed,
            "skipped_by_reason": dict(self.skipped_by_reason),
            "failures": [f.to_dict() for f in self.failures],
            "duration": round(self.duration, 3),
        }


class RunAggregator:
    """Collects outcomes from the feeder and worker threads.

    Thread-safe: outcomes may be recorded from any thread. The summary
    is available only after finalize().
    """

    def __init__(self, mode: OperationMode):
        self.mode = mode
        self._lock = threading.Lock()
        self._counts: Dict[OutcomeStatus, int] = {status: 0 for status in OutcomeStatus}
        self._skip_reasons: Dict[SkipReason, int] = {}
        self._failures: List[FailureRecord] = []
        self._placed: List[Tuple[str, str]] = []
        self._renamed = 0
        self._started = time.perf_counter()
        self._summary: Optional[RunSummary] = None

    def record(self, outcome: Outcome) -> None:
        """Add one outcome.

        Raises:
            RuntimeError: If the run was already finalized.
        """
        with self._lock:
            if self._summary is not None:
                raise RuntimeError("Run already finalized")
            self._counts[outcome.status] += 1

            if outcome.status is OutcomeStatus.FAILED:
                code = outcome.error_code.name if outcome.error_code else "UNKNOWN_ERROR"
                self._failures.append(
                    FailureRecord(outcome.source, code, outcome.message or "")
                )
            elif outcome.status is OutcomeStatus.SKIPPED and outcome.skip_reason:
                reason = outcome.skip_reason
                self._skip_reasons[reason] = self._skip_reasons.get(reason, 0) + 1
            elif outcome.succeeded:
                self._placed.append((outcome.category, outcome.destination.name))
                if outcome.renamed:
                    self._renamed += 1

    @property
    def recorded(self) -> int:
        """Number of outcomes recorded so far."""
        with self._lock:
            return sum(self._counts.values())

    @property
    def is_finalized(self) -> bool:
        with self._lock:
            return self._summary is not None

    def collect(self, outcomes: Iterable[Outcome]) -> RunSummary:
        """Record every outcome of a stream, then finalize.

        Args:
            outcomes: Outcome stream; must end only after all workers joined.

        Returns:
            Finalized RunSummary.
        """
        for outcome in outcomes:
            self.record(outcome)
        return self.finalize()

    def finalize(self) -> RunSummary:
        """Freeze the counts into a RunSummary. Idempotent."""
        with self._lock:
            if self._summary is None:
                counts = self._counts
                self._summary = RunSummary(
                    mode=self.mode,
                    moved=counts[OutcomeStatus.MOVED],
                    copied=counts[OutcomeStatus.COPIED],
                    skipped=counts[OutcomeStatus.SKIPPED],
                    failed=counts[OutcomeStatus.FAILED],
                    cancelled=counts[OutcomeStatus.CANCELLED],
                    renamed=self._renamed,
                    skipped_by_reason=tuple(
                        sorted((r.value, n) for r, n in self._skip_reasons.items())
                    ),
                    failures=tuple(self._failures),
                    placed=tuple(sorted(self._placed)),
                    duration=time.perf_counter() - self._started,
                )
                logger.debug(f"Run finalized: {self._summary.to_dict()}")
            return self._summary

    @property
    def summary(self) -> RunSummary:
        """The finalized summary.

        Raises:
            RuntimeError: If the run has not been finalized yet.
        """
        with self._lock:
            if self._summary is None:
                raise RuntimeError("Run summary requested before the run finished")
            return self._summary
