"""Classification module for extension-based sorting decisions."""

from .classifier import (
    ClassificationPolicy,
    Decision,
    DecisionAction,
    ExtensionClassifier,
    SkipReason,
    UnmatchedPolicy,
    classify,
    extract_extension,
)

__all__ = [
    "ClassificationPolicy",
    "Decision",
    "DecisionAction",
    "ExtensionClassifier",
    "SkipReason",
    "UnmatchedPolicy",
    "classify",
    "extract_extension",
]
