"""
Sorting Run
===========

One sorting run: walk, classify, claim destinations, dispatch, collect.
All mutable run state (claimed destinations, outcome counts, the cancel
flag) lives on the SortRun and is discarded with it.
"""

import os
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional, Set

from parmove.actions.conflict_resolver import ConflictResolver
from parmove.actions.file_operations import FileOperations, OperationMode
from parmove.classification.classifier import ClassificationPolicy, ExtensionClassifier
from parmove.config.categories import CategoryMap
from parmove.processing.aggregator import RunAggregator, RunSummary
from parmove.processing.dispatcher import WorkerPool
from parmove.processing.models import Outcome, WorkItem
from parmove.scanning.walker import DirectoryWalker
from parmove.utils.exceptions import ErrorCode, FileProcessingError
from parmove.utils.logging_config import get_logger, new_correlation_id, set_correlation_id

logger = get_logger(__name__)

OutcomeCallback = Callable[[Outcome], None]


class SortRun:
    """State and lifecycle of a single sorting run.

    The walker, classifier and conflict resolver run on the pool's feeder
    thread; the worker threads only execute already-claimed WorkItems.
    """

    def __init__(
        self,
        root: Path,
        output_dir: Path,
        category_map: CategoryMap,
        mode: OperationMode,
        policy: Optional[ClassificationPolicy] = None,
        threads: Optional[int] = None,
        max_depth: Optional[int] = None,
        file_ops: Optional[FileOperations] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ):
        """Initialize the run.

        Args:
            root: Directory to sort.
            output_dir: Directory receiving the category folders.
            category_map: Immutable extension map.
            mode: Move or copy.
            policy: Handling of extensionless and unmatched files.
            threads: Worker count, None for host parallelism.
            max_depth: Walk depth limit, None for unlimited.
            file_ops: File operation primitives.
            on_outcome: Called for every recorded outcome, from any thread.
        """
        self.root = Path(os.path.abspath(root))
        self.output_dir = Path(os.path.abspath(output_dir))
        self.mode = mode
        self.run_id = new_correlation_id()
        self.on_outcome = on_outcome
        self.found = 0

        self.cancel_event = threading.Event()
        self.classifier = ExtensionClassifier(category_map, policy)
        self.resolver = ConflictResolver(self.output_dir)
        self.aggregator = RunAggregator(mode)
        self.pool = WorkerPool(
            mode,
            max_workers=threads,
            file_ops=file_ops,
            cancel_event=self.cancel_event,
        )
        self.walker = DirectoryWalker(
            self.root,
            max_depth=max_depth,
            exclude=self._excluded_dirs(category_map),
            on_error=self._on_walk_error,
        )

    def _excluded_dirs(self, category_map: CategoryMap) -> Set[Path]:
        """Directories holding already-sorted files.

        When the output directory is the root itself, its category
        folders are excluded instead.
        """
        if os.path.realpath(self.output_dir) != os.path.realpath(self.root):
            return {self.output_dir}
        names = set(category_map.categories)
        names.add(self.classifier.policy.fallback_category)
        return {self.output_dir / name for name in names}

    def _record(self, outcome: Outcome) -> None:
        self.aggregator.record(outcome)
        if self.on_outcome:
            self.on_outcome(outcome)

    def _observed(self, outcomes: Iterator[Outcome]) -> Iterator[Outcome]:
        for outcome in outcomes:
            if self.on_outcome:
                self.on_outcome(outcome)
            yield outcome

    def _on_walk_error(self, path: Path, error: OSError) -> None:
        failure = FileProcessingError(
            f"Cannot read {path}: {error}",
            file_path=str(path),
            error_code=ErrorCode.WALK_FAILED,
            cause=error,
        )
        self._record(Outcome.failure(path, failure))

    def work_items(self) -> Iterator[WorkItem]:
        """Walk, classify and claim destinations, one file at a time.

        Skipped files and files whose destination cannot be prepared are
        recorded directly and never become WorkItems.
        """
        for entry in self.walker.walk():
            self.found += 1
            decision = self.classifier.classify(entry)

            if not decision.is_sort:
                logger.debug(
                    f"Skipping ({decision.reason.value}): {entry.path}",
                    extra={"file_path": str(entry.path)},
                )
                self._record(Outcome.skipped(entry, decision.reason))
                continue

            try:
                destination = self.resolver.resolve(decision.category, entry.name)
            except FileProcessingError as e:
                logger.warning(
                    f"Failed to prepare destination for '{entry.path}': {e}",
                    extra={"file_path": str(entry.path), "category": decision.category},
                )
                self._record(Outcome.failure(entry.path, e, decision.category))
                continue

            yield WorkItem(
                entry=entry,
                category=decision.category,
                destination=destination,
                renamed=destination.name != entry.name,
            )

    def execute(self) -> RunSummary:
        """Run to completion and return the finalized summary."""
        set_correlation_id(self.run_id)
        logger.info(
            f"Run {self.run_id}: {self.mode.value} {self.root} -> {self.output_dir} "
            f"({self.pool.max_workers} workers)"
        )

        summary = self.aggregator.collect(self._observed(self.pool.run(self.work_items())))
        logger.info(
            f"Scanned {self.walker.directories_scanned} directories, found {self.found} files"
        )
        return summary

    def cancel(self) -> None:
        """Stop dispatching new items; in-flight operations finish."""
        self.pool.cancel()
