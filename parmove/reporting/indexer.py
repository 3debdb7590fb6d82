"""
HTML Indexer
============

Writes a static HTML listing of the category folders after a run.
Read-only with respect to the sorted files.
"""

import html
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from parmove.processing.aggregator import RunSummary
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)


INDEX_HTML = '''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; color: #222; }}
h1 {{ font-size: 1.4em; }}
h2 {{ font-size: 1.1em; border-bottom: 1px solid #ccc; padding-bottom: .2em; }}
table {{ border-collapse: collapse; margin-bottom: 1.5em; }}
td {{ padding: .15em 1em .15em 0; }}
td.size {{ text-align: right; color: #666; }}
.summary {{ color: #555; }}
.failures td {{ color: #a00; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p class="summary">{summary}</p>
{sections}
{failures}
</body>
</html>
'''


@dataclass
class IndexedFile:
    """A file listed in the index."""
    name: str
    relative_path: str
    size: int


@dataclass
class IndexSection:
    """A category folder and its files."""
    category: str
    files: List[IndexedFile] = field(default_factory=list)


def format_size(size: int) -> str:
    """Format a byte count for humans."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def display_name(name: str) -> str:
    """Printable form of a file name.

    Names that are not valid UTF-8 arrive surrogate-escaped; the bad
    bytes are shown as U+FFFD.
    """
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def link_target(relative_path: str) -> str:
    """Percent-encoded href built from the raw on-disk bytes."""
    return quote(os.fsencode(relative_path))


class HtmlIndexer:
    """Generates ``index.html`` for an output directory."""

    def __init__(self, filename: str = "index.html"):
        self.filename = filename

    def collect(self, output_dir: Path) -> List[IndexSection]:
        """List category folders and their files, sorted by name.

        Args:
            output_dir: Directory holding the category folders.

        Returns:
            One IndexSection per non-hidden subdirectory.
        """
        output_dir = Path(output_dir)
        sections = []

        with os.scandir(output_dir) as it:
            categories = sorted(
                (e for e in it if e.is_dir(follow_symlinks=False) and not e.name.startswith(".")),
                key=lambda e: e.name.lower(),
            )

        for category in categories:
            section = IndexSection(category=category.name)
            category_dir = Path(category.path)
            for root, dirs, files in os.walk(category_dir):
                dirs.sort()
                for name in sorted(files, key=str.lower):
                    path = Path(root) / name
                    try:
                        size = path.stat().st_size
                    except OSError as e:
                        logger.debug(f"Cannot stat {path}: {e}")
                        continue
                    section.files.append(IndexedFile(
                        name=str(path.relative_to(category_dir)),
                        relative_path=path.relative_to(output_dir).as_posix(),
                        size=size,
                    ))
            sections.append(section)

        return sections

    def render(
        self,
        output_dir: Path,
        sections: List[IndexSection],
        summary: Optional[RunSummary] = None,
    ) -> str:
        """Render the index page."""
        title = f"Index of {html.escape(display_name(str(output_dir)))}"

        total = sum(len(s.files) for s in sections)
        summary_text = (
            f"{total} files in {len(sections)} categories, "
            f"generated {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        )
        if summary is not None:
            summary_text += (
                f". Last run: {summary.processed} {summary.mode.value} "
                f"({summary.moved} moved, {summary.copied} copied), "
                f"{summary.skipped} skipped, {summary.failed} failed."
            )

        parts = []
        for section in sections:
            rows = "\n".join(
                f'<tr><td><a href="{link_target(f.relative_path)}">{html.escape(display_name(f.name))}</a></td>'
                f'<td class="size">{format_size(f.size)}</td></tr>'
                for f in section.files
            )
            parts.append(
                f"<h2>{html.escape(display_name(section.category))} ({len(section.files)})</h2>\n"
                f"<table>\n{rows}\n</table>"
            )

        failures = ""
        if summary is not None and summary.failures:
            rows = "\n".join(
                f"<tr><td>{html.escape(display_name(str(f.path)))}</td>"
                f"<td>{html.escape(f.error_code)}</td>"
                f"<td>{html.escape(display_name(f.reason))}</td></tr>"
                for f in summary.failures
            )
            failures = (
                f"<h2>Failures ({len(summary.failures)})</h2>\n"
                f'<table class="failures">\n{rows}\n</table>'
            )

        return INDEX_HTML.format(
            title=title,
            summary=html.escape(summary_text),
            sections="\n".join(parts),
            failures=failures,
        )

    def generate(self, output_dir: Path, summary: Optional[RunSummary] = None) -> Path:
        """Write the index file into the output directory.

        Args:
            output_dir: Directory holding the category folders.
            summary: Finalized summary of the run, if any.

        Returns:
            Path of the written index.

        Raises:
            OSError: If the directory cannot be read or the index written.
        """
        output_dir = Path(output_dir)
        sections = self.collect(output_dir)
        page = self.render(output_dir, sections, summary)

        index_path = output_dir / self.filename
        tmp_path = index_path.with_name(f".{self.filename}.tmp")
        tmp_path.write_text(page, encoding="utf-8")
        os.replace(tmp_path, index_path)

        logger.info(f"Wrote index: {index_path}")
        return index_path
