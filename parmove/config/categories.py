"""
Category Definitions
====================

Default category table, the immutable extension -> category map used by
the classifier, and loaders for the category file and the blacklist.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from parmove.utils.exceptions import ConfigurationError
from parmove.utils.logging_config import get_logger

logger = get_logger(__name__)


OTHER_CATEGORY = "Other"

DEFAULT_CATEGORIES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "Images": ("gif", "ico", "jpeg", "jpg", "jpg~", "png", "png~", "webp"),
    "Videos": ("mp4", "mkv", "ogv", "webm"),
    "Documents": ("pdf", "docx", "doc", "txt", "md"),
    "Audio": ("mp3", "wav", "flac", "ogg"),
    "Archives": ("zip", "tar", "gz", "rar", "bz"),
})


def normalize_extension(raw: str) -> str:
    """Normalize an extension to lower case without a leading dot.

    Args:
        raw: Extension as written by the user (".JPG", "jpg", " Png ").

    Returns:
        Normalized extension, empty string if nothing is left.
    """
    ext = raw.strip().lower()
    if ext.startswith("."):
        ext = ext[1:]
    return ext


@dataclass(frozen=True)
class CategoryMap:
    """Immutable mapping of lower-cased extensions to category names.

    Built once before traversal and shared read-only by every worker.
    Blacklisted extensions are removed from the mapping and kept
    separately so the classifier can skip them.
    """

    mapping: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    categories: Tuple[str, ...] = ()
    blacklist: FrozenSet[str] = frozenset()

    @classmethod
    def build(
        cls,
        defaults: Optional[Mapping[str, Sequence[str]]] = None,
        overrides: Optional[Mapping[str, Sequence[str]]] = None,
        blacklist: Optional[Iterable[str]] = None,
    ) -> "CategoryMap":
        """Build a category map.

        Configured categories replace the default category of the same
        name; default categories the configuration does not name remain,
        minus any extension the configuration assigns elsewhere.

        Args:
            defaults: Base category table. Uses DEFAULT_CATEGORIES if None.
            overrides: Categories from the category file.
            blacklist: Extensions to exclude from sorting.

        Returns:
            CategoryMap instance.

        Raises:
            ConfigurationError: If the overrides are structurally invalid.
        """
        defaults = DEFAULT_CATEGORIES if defaults is None else defaults
        base = _validate_categories(defaults, source="defaults")
        configured = _validate_categories(overrides or {}, source="config")

        configured_names = {name.lower() for name in configured}
        configured_exts = {ext for exts in configured.values() for ext in exts}

        merged: Dict[str, List[str]] = {}
        for name, exts in base.items():
            if name.lower() in configured_names:
                continue
            merged[name] = [ext for ext in exts if ext not in configured_exts]
        merged.update(configured)

        banned = frozenset(
            ext for ext in (normalize_extension(e) for e in (blacklist or ())) if ext
        )

        mapping: Dict[str, str] = {}
        for name, exts in merged.items():
            for ext in exts:
                if ext in banned:
                    continue
                mapping[ext] = name

        return cls(
            mapping=MappingProxyType(mapping),
            categories=tuple(merged),
            blacklist=banned,
        )

    def get_category(self, extension: Optional[str]) -> Optional[str]:
        """Get the category for an extension.

        Args:
            extension: Extension with or without the dot, any case.

        Returns:
            Category name, or None when no category claims it.
        """
        if not extension:
            return None
        return self.mapping.get(normalize_extension(extension))

    def is_blacklisted(self, extension: Optional[str]) -> bool:
        """Check if an extension is excluded from sorting."""
        if not extension:
            return False
        return normalize_extension(extension) in self.blacklist

    def extensions_for(self, category: str) -> List[str]:
        """Get the sorted extensions mapped to a category."""
        return sorted(ext for ext, name in self.mapping.items() if name == category)

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and self.get_category(extension) is not None

    def __len__(self) -> int:
        return len(self.mapping)


def _validate_categories(
    data: Mapping[str, object], source: str
) -> Dict[str, List[str]]:
    """Validate and normalize a category -> extensions table.

    Args:
        data: Raw table.
        source: Where the table came from, used in error messages.

    Returns:
        Table with normalized, de-duplicated extensions.

    Raises:
        ConfigurationError: On non-string entries, empty or duplicate
            category names, or an extension claimed twice.
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            "Categories must be a table of name = [extensions]",
            source=source,
        )

    result: Dict[str, List[str]] = {}
    seen_names: Dict[str, str] = {}
    owner: Dict[str, str] = {}

    for name, extensions in data.items():
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(
                f"Invalid category name: {name!r}", config_key=str(name), source=source
            )
        name = name.strip()
        if name.lower() == OTHER_CATEGORY.lower():
            raise ConfigurationError(
                f"'{OTHER_CATEGORY}' is reserved for unmatched files",
                config_key=name,
                source=source,
            )
        if name.lower() in seen_names:
            raise ConfigurationError(
                f"Duplicate category name: {name!r} (already defined as "
                f"{seen_names[name.lower()]!r})",
                config_key=name,
                source=source,
            )
        seen_names[name.lower()] = name

        if isinstance(extensions, (str, bytes)) or not isinstance(extensions, Sequence):
            raise ConfigurationError(
                f"Category {name!r} must be a list of extensions",
                config_key=name,
                source=source,
            )

        normalized: List[str] = []
        for raw in extensions:
            if not isinstance(raw, str):
                raise ConfigurationError(
                    f"Category {name!r} contains a non-string entry: {raw!r}",
                    config_key=name,
                    source=source,
                )
            ext = normalize_extension(raw)
            if not ext:
                raise ConfigurationError(
                    f"Category {name!r} contains an empty extension",
                    config_key=name,
                    source=source,
                )
            if ext in owner and owner[ext] != name:
                raise ConfigurationError(
                    f"Extension {ext!r} is claimed by both {owner[ext]!r} and {name!r}",
                    config_key=name,
                    source=source,
                )
            if ext not in normalized:
                normalized.append(ext)
            owner[ext] = name

        result[name] = normalized

    return result


def load_category_file(path: Path) -> Dict[str, List[str]]:
    """Load categories from a TOML file.

    Accepts either a ``[categories]`` table or top-level keys::

        [categories]
        Images = ["png", "jpg"]
        Code = [".py", ".rs"]

    Args:
        path: Path to the category file.

    Returns:
        Validated category table.

    Raises:
        ConfigurationError: If the file is unreadable or malformed.
    """
    path = Path(path).expanduser()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read category file '{path}': {e}", source=str(path), cause=e
        )
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Malformed category file '{path}': {e}", source=str(path), cause=e
        )

    table = data.get("categories", data)
    if not isinstance(table, dict):
        raise ConfigurationError(
            "'categories' must be a table", config_key="categories", source=str(path)
        )

    categories = _validate_categories(table, source=str(path))
    logger.info(f"Loaded {len(categories)} categories from {path}")
    return categories


def parse_blacklist(
    inline: Optional[str] = None,
    path: Optional[Path] = None,
    extra: Iterable[str] = (),
) -> FrozenSet[str]:
    """Parse blacklisted extensions.

    Inline text is comma- or newline-separated. The file holds one
    extension per line; blank lines and ``#`` comments are ignored.
    Both sources are unioned.

    Args:
        inline: Inline blacklist text, e.g. "txt,.LOG, tmp".
        path: Optional blacklist file.
        extra: Already-split extensions (from the settings file).

    Returns:
        Set of normalized extensions.

    Raises:
        ConfigurationError: If the blacklist file cannot be read.
    """
    result = set()

    for raw in extra:
        if not isinstance(raw, str):
            raise ConfigurationError(
                f"Blacklist entries must be strings, got {raw!r}", config_key="blacklist"
            )
        result.update(_split_entries(raw))

    if inline:
        result.update(_split_entries(inline))

    if path is not None:
        path = Path(path).expanduser()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Failed to read blacklist file '{path}': {e}", source=str(path), cause=e
            )
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            result.update(_split_entries(line))

    return frozenset(result)


def _split_entries(text: str) -> List[str]:
    """Split comma/newline separated text into normalized extensions."""
    entries = []
    for line in text.splitlines():
        for part in line.split(","):
            ext = normalize_extension(part)
            if ext:
                entries.append(ext)
    return entries
