"""
Unit tests for the worker pool and run aggregator.
"""

import logging
import threading
from pathlib import Path

import pytest

from parmove.actions.file_operations import FileOperations, OperationMode
from parmove.classification.classifier import SkipReason
from parmove.processing.aggregator import RunAggregator
from parmove.processing.dispatcher import WorkerPool, dispatch
from parmove.processing.models import Outcome, OutcomeStatus, WorkItem
from parmove.scanning.walker import FileEntry
from parmove.utils.exceptions import ErrorCode


def make_items(tmp_path, count, category="Documents"):
    """Create source files and matching work items."""
    src = tmp_path / "src"
    out = tmp_path / "out" / category
    src.mkdir(exist_ok=True)
    out.mkdir(parents=True, exist_ok=True)
    items = []
    for i in range(count):
        path = src / f"file{i:03d}.txt"
        path.write_text(f"content {i}")
        items.append(WorkItem(
            entry=FileEntry.from_path(path),
            category=category,
            destination=out / path.name,
        ))
    return items


class TestWorkerPool:
    """Tests for WorkerPool."""

    def test_one_outcome_per_item(self, tmp_path):
        """Test every dispatched item reports exactly once."""
        items = make_items(tmp_path, 50)
        pool = WorkerPool(OperationMode.COPY, max_workers=4)

        outcomes = list(pool.run(items))

        assert len(outcomes) == 50
        assert pool.dispatched == 50
        assert {o.source for o in outcomes} == {i.source for i in items}
        assert all(o.status is OutcomeStatus.COPIED for o in outcomes)
        assert all(i.destination.exists() for i in items)

    def test_single_thread(self, tmp_path):
        items = make_items(tmp_path, 10)

        outcomes = list(dispatch(items, 1, OperationMode.MOVE))

        assert [o.status for o in outcomes] == [OutcomeStatus.MOVED] * 10
        assert not any(i.source.exists() for i in items)

    def test_empty_input(self):
        """Test an empty stream ends cleanly."""
        assert list(WorkerPool(OperationMode.COPY, max_workers=3).run([])) == []

    def test_invalid_thread_count(self):
        with pytest.raises(ValueError):
            WorkerPool(OperationMode.COPY, max_workers=0)

    def test_failure_isolated(self, tmp_path):
        """Test one failing item does not affect the others."""
        items = make_items(tmp_path, 8)
        items[3].source.unlink()

        outcomes = list(WorkerPool(OperationMode.COPY, max_workers=3).run(items))

        failed = [o for o in outcomes if o.status is OutcomeStatus.FAILED]
        assert len(outcomes) == 8
        assert len(failed) == 1
        assert failed[0].source == items[3].source
        assert failed[0].error_code == ErrorCode.FILE_NOT_FOUND
        assert failed[0].category == "Documents"

    def test_unexpected_error_isolated(self, tmp_path):
        """Test non-I/O errors also become failed outcomes."""
        class Exploding(FileOperations):
            def transfer(self, source, dest_path, mode):
                if source.name == "file001.txt":
                    raise RuntimeError("boom")
                return super().transfer(source, dest_path, mode)

        items = make_items(tmp_path, 3)
        pool = WorkerPool(OperationMode.COPY, max_workers=2, file_ops=Exploding())

        outcomes = {o.source.name: o for o in pool.run(items)}

        assert outcomes["file001.txt"].status is OutcomeStatus.FAILED
        assert outcomes["file001.txt"].error_code == ErrorCode.PROCESSING_FAILED
        assert outcomes["file001.txt"].message == "boom"
        assert outcomes["file000.txt"].succeeded

    def test_cancel_before_start(self, tmp_path):
        """Test a pre-set cancel flag dispatches nothing and leaves sources untouched."""
        items = make_items(tmp_path, 5)
        cancel = threading.Event()
        cancel.set()
        pool = WorkerPool(OperationMode.MOVE, max_workers=2, cancel_event=cancel)

        outcomes = list(pool.run(items))

        assert outcomes == []
        assert pool.dispatched == 0
        assert all(i.source.exists() for i in items)

    def test_cancel_stops_pulling_from_source(self, tmp_path):
        """Test no item is pulled from the source once cancel is set."""
        items = make_items(tmp_path, 5)
        pulled = []

        def source():
            for item in items:
                pulled.append(item)
                yield item

        cancel = threading.Event()
        cancel.set()
        pool = WorkerPool(OperationMode.MOVE, max_workers=2, cancel_event=cancel)

        assert list(pool.run(source())) == []
        assert pulled == []

    def test_failure_logged_with_context(self, tmp_path, caplog):
        """Test failure records carry the file path and category."""
        items = make_items(tmp_path, 2)
        items[0].source.unlink()

        with caplog.at_level(logging.WARNING, logger="parmove"):
            list(WorkerPool(OperationMode.COPY, max_workers=1).run(items))

        records = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(records) == 1
        assert records[0].file_path == str(items[0].source)
        assert records[0].category == "Documents"

    def test_cancel_midway(self, tmp_path):
        """Test cancelling during a run: dispatched == reported, nothing lost."""
        items = make_items(tmp_path, 40)
        pool = WorkerPool(OperationMode.MOVE, max_workers=2, queue_size=2)

        outcomes = []
        for outcome in pool.run(iter(items)):
            outcomes.append(outcome)
            if len(outcomes) == 5:
                pool.cancel()

        moved = [o for o in outcomes if o.status is OutcomeStatus.MOVED]
        cancelled = [o for o in outcomes if o.status is OutcomeStatus.CANCELLED]
        assert len(outcomes) == pool.dispatched
        assert len(moved) + len(cancelled) == len(outcomes)
        assert len(moved) < 40
        for item in items:
            # Each file is in exactly one place
            assert item.source.exists() != item.destination.exists()

    def test_source_error_reraised(self, tmp_path):
        """Test a failing work item source surfaces after the join."""
        items = make_items(tmp_path, 2)

        def source():
            yield from items
            raise RuntimeError("walk exploded")

        pool = WorkerPool(OperationMode.COPY, max_workers=2)
        seen = []
        with pytest.raises(RuntimeError, match="walk exploded"):
            for outcome in pool.run(source()):
                seen.append(outcome)

        assert len(seen) == 2


class TestRunAggregator:
    """Tests for RunAggregator."""

    def entry(self, name):
        return FileEntry.from_path(Path("/data") / name)

    def item(self, name, category="Documents", renamed=False):
        return WorkItem(
            entry=self.entry(name),
            category=category,
            destination=Path("/out") / category / name,
            renamed=renamed,
        )

    def test_counts(self):
        """Test each status is counted once."""
        aggregator = RunAggregator(OperationMode.COPY)
        aggregator.record(Outcome.success(self.item("a.txt"), OperationMode.COPY, Path("/out/a.txt")))
        aggregator.record(Outcome.success(
            self.item("b.txt", renamed=True), OperationMode.COPY, Path("/out/b (1).txt")
        ))
        aggregator.record(Outcome.skipped(self.entry("c.tmp"), SkipReason.BLACKLISTED))
        aggregator.record(Outcome.skipped(self.entry("d.tmp"), SkipReason.BLACKLISTED))
        aggregator.record(Outcome.failure(Path("/data/e.txt"), OSError(13, "Permission denied")))
        aggregator.record(Outcome.cancelled(self.item("f.txt")))

        summary = aggregator.finalize()

        assert summary.copied == 2
        assert summary.moved == 0
        assert summary.processed == 2
        assert summary.skipped == 2
        assert summary.failed == 1
        assert summary.cancelled == 1
        assert summary.renamed == 1
        assert summary.total == 6
        assert aggregator.recorded == 6
        assert dict(summary.skipped_by_reason) == {"blacklisted": 2}
        assert summary.failures[0].error_code == "PERMISSION_DENIED"
        assert summary.exit_code == 1

    def test_clean_run_exit_code(self):
        aggregator = RunAggregator(OperationMode.MOVE)
        aggregator.record(Outcome.success(self.item("a.txt"), OperationMode.MOVE, Path("/out/a.txt")))

        summary = aggregator.finalize()

        assert summary.moved == 1
        assert summary.exit_code == 0
        assert summary.success_rate == 1.0
        assert summary.placed == (("Documents", "a.txt"),)

    def test_summary_before_finalize(self):
        """Test no partial summary is ever exposed."""
        aggregator = RunAggregator(OperationMode.COPY)

        with pytest.raises(RuntimeError):
            aggregator.summary

    def test_record_after_finalize(self):
        aggregator = RunAggregator(OperationMode.COPY)
        aggregator.finalize()

        with pytest.raises(RuntimeError):
            aggregator.record(Outcome.cancelled(self.item("a.txt")))

    def test_finalize_idempotent(self):
        aggregator = RunAggregator(OperationMode.COPY)

        assert aggregator.finalize() is aggregator.finalize()
        assert aggregator.is_finalized
        assert aggregator.summary.total == 0

    def test_concurrent_records(self):
        """Test records from many threads are all counted."""
        aggregator = RunAggregator(OperationMode.COPY)

        def record_many():
            for _ in range(500):
                aggregator.record(Outcome.skipped(self.entry("x.tmp"), SkipReason.UNMATCHED))

        threads = [threading.Thread(target=record_many) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert aggregator.finalize().skipped == 4000

    def test_to_dict(self):
        aggregator = RunAggregator(OperationMode.COPY)
        aggregator.record(Outcome.skipped(self.entry("x"), SkipReason.NO_EXTENSION))

        data = aggregator.finalize().to_dict()

        assert data["mode"] == "copy"
        assert data["skipped"] == 1
        assert data["skipped_by_reason"] == {"no_extension": 1}

    def test_collect(self):
        """Test a whole outcome stream is recorded and finalized."""
        aggregator = RunAggregator(OperationMode.COPY)
        outcomes = [
            Outcome.success(self.item("a.txt"), OperationMode.COPY, Path("/out/a.txt")),
            Outcome.skipped(self.entry("b.tmp"), SkipReason.BLACKLISTED),
        ]

        summary = aggregator.collect(iter(outcomes))

        assert aggregator.is_finalized
        assert summary is aggregator.summary
        assert summary.copied == 1
        assert summary.skipped == 1
        assert summary.total == 2
