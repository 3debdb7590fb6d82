"""
Unit tests for classification module.
"""

import pytest
from pathlib import Path

from parmove.classification.classifier import (
    ClassificationPolicy,
    Decision,
    DecisionAction,
    ExtensionClassifier,
    SkipReason,
    UnmatchedPolicy,
    classify,
    extract_extension,
    split_name,
)
from parmove.config.categories import CategoryMap, OTHER_CATEGORY
from parmove.scanning.walker import FileEntry


def entry_for(name: str) -> FileEntry:
    return FileEntry.from_path(Path("/data") / name)


class TestExtractExtension:
    """Tests for extension extraction."""

    def test_simple(self):
        assert extract_extension("photo.JPG") == "jpg"

    def test_final_dot_only(self):
        assert extract_extension("backup.tar.gz") == "gz"

    def test_no_dot(self):
        assert extract_extension("Makefile") is None

    def test_dotfile(self):
        assert extract_extension(".gitignore") is None

    def test_trailing_dot(self):
        assert extract_extension("weird.") is None

    def test_dotfile_with_extension(self):
        assert extract_extension(".bashrc.bak") == "bak"

    def test_split_name(self):
        """Test stem/suffix splitting follows the same rule."""
        assert split_name("a.txt") == ("a", ".txt")
        assert split_name("a.tar.gz") == ("a.tar", ".gz")
        assert split_name(".gitignore") == (".gitignore", "")
        assert split_name("README") == ("README", "")


class TestClassify:
    """Tests for the classify function."""

    @pytest.fixture
    def category_map(self):
        """Default category map."""
        return CategoryMap.build()

    def test_every_extension_any_case(self, category_map):
        """Test each mapped extension sorts into its category in any case."""
        for ext, category in category_map.mapping.items():
            for variant in (ext, ext.upper(), ext.capitalize()):
                decision = classify(entry_for(f"f.{variant}"), category_map)

                assert decision == Decision.sort(category)

    def test_unmatched_goes_to_other(self, category_map):
        """Test unknown extensions sort into Other by default."""
        decision = classify(entry_for("unknown.xyz"), category_map)

        assert decision.action == DecisionAction.SORT
        assert decision.category == OTHER_CATEGORY

    def test_no_extension_goes_to_other(self, category_map):
        """Test extensionless files sort into Other by default."""
        decision = classify(entry_for("LICENSE"), category_map)

        assert decision.category == OTHER_CATEGORY

    def test_no_extension_skip_policy(self, category_map):
        """Test extensionless files can be skipped."""
        policy = ClassificationPolicy(treat_no_extension_as=UnmatchedPolicy.SKIP)

        decision = classify(entry_for(".gitignore"), category_map, policy)

        assert decision == Decision.skip(SkipReason.NO_EXTENSION)
        assert not decision.is_sort

    def test_unmatched_skip_policy(self, category_map):
        """Test unknown extensions can be skipped."""
        policy = ClassificationPolicy(treat_unmatched_as=UnmatchedPolicy.SKIP)

        decision = classify(entry_for("data.xyz"), category_map, policy)

        assert decision == Decision.skip(SkipReason.UNMATCHED)

    def test_blacklist_always_skips(self):
        """Test blacklisted extensions are skipped, never sorted into Other."""
        category_map = CategoryMap.build(
            overrides={"Logs": ["log"]}, blacklist=["txt", "log", "xyz"]
        )

        for name in ("notes.txt", "NOTES.TXT", "app.log", "data.xyz"):
            decision = classify(entry_for(name), category_map)

            assert decision == Decision.skip(SkipReason.BLACKLISTED)

    def test_custom_fallback(self, category_map):
        """Test the fallback folder name comes from the policy."""
        policy = ClassificationPolicy(fallback_category="Misc")

        assert classify(entry_for("a.xyz"), category_map, policy).category == "Misc"


class TestExtensionClassifier:
    """Tests for the bound classifier."""

    def test_uses_bound_map(self):
        """Test the classifier uses its own map and policy."""
        classifier = ExtensionClassifier(
            CategoryMap.build(overrides={"Code": ["py"]}),
            ClassificationPolicy(treat_unmatched_as=UnmatchedPolicy.SKIP),
        )

        assert classifier.classify(entry_for("main.py")).category == "Code"
        assert classifier.classify(entry_for("main.zz")).reason == SkipReason.UNMATCHED

    def test_default_policy(self):
        """Test default policy sorts leftovers into Other."""
        classifier = ExtensionClassifier(CategoryMap.build())

        assert classifier.policy.treat_no_extension_as == UnmatchedPolicy.OTHER
        assert classifier.classify(entry_for("x")).category == OTHER_CATEGORY
