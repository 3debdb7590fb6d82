"""
Extension Classifier
====================

Pure extension-based classification of discovered files.
Safe to call from any thread: it only reads the immutable CategoryMap.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING

from parmove.config.categories import CategoryMap, OTHER_CATEGORY

if TYPE_CHECKING:
    from parmove.scanning.walker import FileEntry


class UnmatchedPolicy(Enum):
    """What to do with files no category claims."""
    OTHER = "other"
    SKIP = "skip"


class DecisionAction(Enum):
    """Outcome of classifying one file."""
    SORT = "sort"
    SKIP = "skip"


class SkipReason(Enum):
    """Why a file was left in place."""
    BLACKLISTED = "blacklisted"
    NO_EXTENSION = "no_extension"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class ClassificationPolicy:
    """Policy for files the category map cannot place.

    Attributes:
        treat_no_extension_as: Files without an extension.
        treat_unmatched_as: Files whose extension no category claims.
        fallback_category: Folder used when a policy says OTHER.
    """
    treat_no_extension_as: UnmatchedPolicy = UnmatchedPolicy.OTHER
    treat_unmatched_as: UnmatchedPolicy = UnmatchedPolicy.OTHER
    fallback_category: str = OTHER_CATEGORY


@dataclass(frozen=True)
class Decision:
    """Classification decision for one file."""
    action: DecisionAction
    category: Optional[str] = None
    reason: Optional[SkipReason] = None

    @classmethod
    def sort(cls, category: str) -> "Decision":
        return cls(DecisionAction.SORT, category=category)

    @classmethod
    def skip(cls, reason: SkipReason) -> "Decision":
        return cls(DecisionAction.SKIP, reason=reason)

    @property
    def is_sort(self) -> bool:
        return self.action is DecisionAction.SORT


def extract_extension(filename: str) -> Optional[str]:
    """Extract the lower-cased extension of a file name.

    The extension is the text after the final dot. Names without a dot,
    dotfiles such as ``.gitignore`` and names ending in a dot have none.

    Args:
        filename: Bare file name (no directory part).

    Returns:
        Extension without the dot, or None.
    """
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem or not ext:
        return None
    return ext.lower()


def split_name(filename: str) -> tuple:
    """Split a file name into (stem, suffix) using the same rule.

    ``a.tar.gz`` -> ("a.tar", ".gz"), ``.gitignore`` -> (".gitignore", "").
    """
    if extract_extension(filename) is None:
        return filename, ""
    stem, _, ext = filename.rpartition(".")
    return stem, "." + ext


def classify(
    entry: "FileEntry",
    category_map: CategoryMap,
    policy: Optional[ClassificationPolicy] = None,
) -> Decision:
    """Decide where a file goes.

    Args:
        entry: File discovered by the walker.
        category_map: Extension -> category map.
        policy: Handling of extensionless and unmatched files.

    Returns:
        Decision.sort(category) or Decision.skip(reason).
    """
    policy = policy or ClassificationPolicy()
    extension = entry.extension

    if extension is None:
        if policy.treat_no_extension_as is UnmatchedPolicy.SKIP:
            return Decision.skip(SkipReason.NO_EXTENSION)
        return Decision.sort(policy.fallback_category)

    if category_map.is_blacklisted(extension):
        return Decision.skip(SkipReason.BLACKLISTED)

    category = category_map.get_category(extension)
    if category is not None:
        return Decision.sort(category)

    if policy.treat_unmatched_as is UnmatchedPolicy.SKIP:
        return Decision.skip(SkipReason.UNMATCHED)
    return Decision.sort(policy.fallback_category)


class ExtensionClassifier:
    """Classifier bound to one category map and policy.

    Used by a sorting run so the map and policy are fixed for its lifetime.
    """

    def __init__(
        self,
        category_map: CategoryMap,
        policy: Optional[ClassificationPolicy] = None,
    ):
        self.category_map = category_map
        self.policy = policy or ClassificationPolicy()

    def classify(self, entry: "FileEntry") -> Decision:
        """Classify one file entry."""
        return classify(entry, self.category_map, self.policy)
