"""
parmove - Main Application
==========================

Main entry point and orchestration for the parallel file sorter.
Sorts the files of a directory into category folders by extension.
"""

import argparse
import dataclasses
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from parmove import __version__
from parmove.actions.file_operations import OperationMode
from parmove.classification.classifier import ClassificationPolicy, UnmatchedPolicy
from parmove.config.categories import CategoryMap, load_category_file, parse_blacklist
from parmove.config.settings import Config
from parmove.processing.aggregator import RunSummary
from parmove.processing.dispatcher import default_thread_count
from parmove.processing.run import OutcomeCallback, SortRun
from parmove.reporting.indexer import HtmlIndexer
from parmove.utils.exceptions import ConfigurationError, ErrorCode, SetupError
from parmove.utils.logging_config import Timer, get_logger, setup_logging
from parmove.utils.notifications import DesktopNotifier

logger = get_logger(__name__)

EXIT_FATAL = 2
EXIT_INTERRUPTED = 130


class FileSorter:
    """Main orchestrator for parmove.

    Builds the category map once, then runs sorting passes. Each call to
    sort() creates a fresh SortRun, so no state leaks between runs.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize the sorter.

        Args:
            config: Loaded configuration. Uses defaults if None.

        Raises:
            ConfigurationError: If the category file or blacklist is invalid.
        """
        self.config = config or Config()
        sorting = self.config.sorting

        overrides = load_category_file(sorting.categories_file) if sorting.categories_file else None
        blacklist = parse_blacklist(path=sorting.blacklist_file, extra=sorting.blacklist)
        self.category_map = CategoryMap.build(overrides=overrides, blacklist=blacklist)

        self.policy = ClassificationPolicy(
            treat_no_extension_as=UnmatchedPolicy(sorting.treat_no_extension_as),
            treat_unmatched_as=UnmatchedPolicy(sorting.treat_unmatched_as),
        )
        self.mode = OperationMode(sorting.mode)
        self.notifier = DesktopNotifier(self.config.notifications)
        self.indexer = HtmlIndexer(filename=self.config.index.filename)

        self._run_lock = threading.RLock()
        self._current_run: Optional[SortRun] = None

        if blacklist:
            logger.info(
                "Blacklisted extensions: " + ", ".join(f".{ext}" for ext in sorted(blacklist))
            )

    def _prepare_directories(self, root: Path) -> tuple:
        """Validate the root and create the output directory.

        Returns:
            Tuple of (root, output_dir) as absolute paths.

        Raises:
            SetupError: If either directory is unusable.
        """
        root = Path(root).expanduser().absolute()
        if not root.exists():
            raise SetupError(f"Directory does not exist: {root}", path=str(root))
        if not root.is_dir():
            raise SetupError(f"Path is not a directory: {root}", path=str(root))
        try:
            next(root.iterdir(), None)
        except OSError as e:
            raise SetupError(f"Cannot read directory {root}: {e}", path=str(root), cause=e)

        output_dir = Path(self.config.sorting.output_directory).expanduser().absolute()
        if output_dir.exists() and not output_dir.is_dir():
            raise SetupError(
                f"Output path is not a directory: {output_dir}",
                path=str(output_dir),
                error_code=ErrorCode.INVALID_OUTPUT,
            )
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SetupError(
                f"Failed to create output directory '{output_dir}': {e}",
                path=str(output_dir),
                error_code=ErrorCode.INVALID_OUTPUT,
                cause=e,
            )

        return root, output_dir

    def _log_run_plan(self) -> None:
        sorting = self.config.sorting
        if sorting.threads:
            logger.info(f"Using {sorting.threads} threads for parallel processing")
        else:
            logger.info(
                f"Using {default_thread_count()} threads for parallel processing (default)"
            )

        depth = sorting.max_depth
        if depth is None:
            logger.info("Collecting files from all subdirectories (unlimited depth)")
        elif depth == 0:
            logger.info("Collecting files from the root directory only")
        elif depth == 1:
            logger.info("Collecting files from the root directory and immediate subdirectories")
        else:
            logger.info(f"Collecting files with maximum depth of {depth} levels")

    def sort(self, root: Path, on_outcome: Optional[OutcomeCallback] = None) -> RunSummary:
        """Sort a directory.

        Args:
            root: Directory whose files are sorted.
            on_outcome: Optional progress callback, called from any thread.

        Returns:
            Finalized RunSummary.

        Raises:
            SetupError: If the root or output directory is unusable.
        """
        root, output_dir = self._prepare_directories(root)
        self._log_run_plan()

        run = SortRun(
            root=root,
            output_dir=output_dir,
            category_map=self.category_map,
            mode=self.mode,
            policy=self.policy,
            threads=self.config.sorting.threads,
            max_depth=self.config.sorting.max_depth,
            on_outcome=on_outcome,
        )

        with self._run_lock:
            self._current_run = run
        try:
            with Timer(logger, f"{self.mode.value} {root}"):
                summary = run.execute()
        finally:
            with self._run_lock:
                self._current_run = None

        self._report(summary, output_dir)
        return summary

    def cancel(self) -> bool:
        """Cancel the run in progress, if any.

        Returns:
            True if a run was cancelled.
        """
        with self._run_lock:
            run = self._current_run
        if run is None:
            return False
        run.cancel()
        return True

    def _report(self, summary: RunSummary, output_dir: Path) -> None:
        """Hand the finalized summary to the notifier and indexer."""
        logger.info(
            f"Summary: {summary.processed} processed, {summary.skipped} skipped, "
            f"{summary.failed} failed"
        )

        if self.config.notifications.enabled:
            self.notifier.notify_run_complete(summary)

        if self.config.index.enabled:
            try:
                self.indexer.generate(output_dir, summary)
            except (OSError, UnicodeError) as e:
                logger.error(f"Failed to write index: {e}")


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="parmove",
        description="Sort the files of a directory into category folders by extension"
    )
    parser.add_argument(
        'directory',
        nargs='?',
        default='.',
        type=Path,
        help='Directory to sort (default: current directory)'
    )
    parser.add_argument(
        '--output-dir', '-o',
        type=Path,
        help='The directory to sort the files into (default: sorted)'
    )
    parser.add_argument(
        '--notify', '-n',
        action='store_true',
        default=None,
        help='Send a notification when finished'
    )
    parser.add_argument(
        '--move', '-m',
        action='store_true',
        default=None,
        help='Move files instead of copying them'
    )
    parser.add_argument(
        '--blacklist', '-b',
        help="Extensions to exclude from sorting (comma-separated, e.g. 'txt,log,tmp')"
    )
    parser.add_argument(
        '--blacklist-file',
        type=Path,
        help='Path to file containing blacklisted extensions (one per line)'
    )
    parser.add_argument(
        '--threads', '-j',
        type=int,
        help='Number of threads to use (default: number of CPU cores)'
    )
    parser.add_argument(
        '--max-depth', '-d',
        type=int,
        help='Maximum depth to recurse into directories (0 = given directory only, '
             'default: unlimited)'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='TOML file defining categories (name = [extensions])'
    )
    parser.add_argument(
        '--settings',
        type=Path,
        help='YAML settings file (default: ~/.parmove/config.yaml)'
    )
    parser.add_argument(
        '--index', '-i',
        action='store_true',
        default=None,
        help='Write an HTML index of the output directory after sorting'
    )
    parser.add_argument(
        '--skip-no-extension',
        action='store_true',
        help='Leave files without an extension in place instead of sorting them into Other'
    )
    parser.add_argument(
        '--skip-unmatched',
        action='store_true',
        help='Leave files with unknown extensions in place instead of sorting them into Other'
    )
    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Do not show a progress bar'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Set logging level (overrides settings)'
    )
    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Do not write the log file'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    return parser


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Layer command-line options over the loaded settings.

    Raises:
        ConfigurationError: If a resulting value is invalid.
    """
    sorting = {}
    if args.output_dir is not None:
        sorting["output_directory"] = args.output_dir
    if args.move:
        sorting["mode"] = "move"
    if args.threads is not None:
        sorting["threads"] = args.threads
    if args.max_depth is not None:
        sorting["max_depth"] = args.max_depth
    if args.config is not None:
        sorting["categories_file"] = args.config
    if args.blacklist_file is not None:
        sorting["blacklist_file"] = args.blacklist_file
    if args.blacklist:
        sorting["blacklist"] = list(config.sorting.blacklist) + [args.blacklist]
    if args.skip_no_extension:
        sorting["treat_no_extension_as"] = "skip"
    if args.skip_unmatched:
        sorting["treat_unmatched_as"] = "skip"

    logging_overrides = {}
    if args.log_level:
        logging_overrides["level"] = args.log_level
    if args.no_log_file:
        logging_overrides["file_output"] = False

    return dataclasses.replace(
        config,
        sorting=dataclasses.replace(config.sorting, **sorting),
        notifications=dataclasses.replace(
            config.notifications,
            enabled=True if args.notify else config.notifications.enabled,
        ),
        index=dataclasses.replace(
            config.index,
            enabled=True if args.index else config.index.enabled,
        ),
        logging=dataclasses.replace(config.logging, **logging_overrides),
    )


def print_summary(summary: RunSummary) -> None:
    """Print the run summary to stdout."""
    if summary.total == 0:
        print("No files found to process.")
        return

    if summary.failures:
        print("\nErrors encountered during processing:", file=sys.stderr)
        for failure in summary.failures:
            print(f"  Failed to process '{failure.path}': {failure.reason}", file=sys.stderr)
        print(f"\nProcessing completed with {summary.failed} errors.", file=sys.stderr)

    print("\nSummary:")
    print(f"  Files processed: {summary.processed}")
    if summary.renamed:
        print(f"  Renamed on conflict: {summary.renamed}")
    if summary.skipped:
        reasons = ", ".join(f"{reason}: {count}" for reason, count in summary.skipped_by_reason)
        print(f"  Files skipped: {summary.skipped} ({reasons})")
    if summary.failed:
        print(f"  Files failed: {summary.failed}")
    if summary.cancelled:
        print(f"  Files not processed (cancelled): {summary.cancelled}")
    print(f"  Total files found: {summary.total}")


def _run_with_progress(sorter: FileSorter, root: Path, show: bool) -> RunSummary:
    operation = "Moving" if sorter.mode is OperationMode.MOVE else "Copying"
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed} files"),
        TimeElapsedColumn(),
        transient=True,
        disable=not show,
    ) as progress:
        task = progress.add_task(f"{operation} files...", total=None)
        return sorter.sort(root, on_outcome=lambda _outcome: progress.advance(task))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI support.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = apply_cli_overrides(Config.load(args.settings), args)
    except ConfigurationError as e:
        print(f"Error in configuration: {e}", file=sys.stderr)
        return EXIT_FATAL

    setup_logging(config.logging)

    try:
        sorter = FileSorter(config)
    except ConfigurationError as e:
        logger.error(f"Error loading configuration: {e}")
        return EXIT_FATAL

    interrupted = threading.Event()
    previous_handler = None
    installed = False

    def signal_handler(sig, frame):
        if interrupted.is_set():
            raise KeyboardInterrupt
        interrupted.set()
        print("\nCancelling, waiting for in-flight files...", file=sys.stderr)
        sorter.cancel()

    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, signal_handler)
        installed = True

    try:
        summary = _run_with_progress(sorter, args.directory, show=not args.no_progress)
    except SetupError as e:
        logger.error(f"Cannot start: {e}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous_handler)

    print_summary(summary)

    if interrupted.is_set():
        return EXIT_INTERRUPTED
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
