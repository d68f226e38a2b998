"""
Unit Tests for the Exclusion Matcher

Author: TreeMirror Project
License: MIT
"""

import pytest

from treemirror.files.exclusion import ExclusionMatcher, InvalidExclusionPattern


PATTERNS = [".md5", "._*", "*.tmp", "*cache*", r"regex:^test[0-9]+\.txt$"]


class TestPatternShapes:
    """Each pattern shape matches what it should and nothing more."""

    @pytest.mark.parametrize("name", ["._foo", "data.tmp", "mycacheX", "test42.txt", ".md5"])
    def test_excluded_names(self, name):
        assert ExclusionMatcher(PATTERNS).is_excluded(name)

    @pytest.mark.parametrize("name", ["test.txt", "readme.md", "md5", "foo._", "tmp.data", "test42.txtx"])
    def test_kept_names(self, name):
        assert not ExclusionMatcher(PATTERNS).is_excluded(name)

    def test_exact_pattern_is_not_a_substring(self):
        matcher = ExclusionMatcher(["Thumbs.db"])

        assert matcher.is_excluded("Thumbs.db")
        assert not matcher.is_excluded("Thumbs.db.bak")

    def test_generic_wildcard(self):
        matcher = ExclusionMatcher(["IMG*copy.jpg"])

        assert matcher.is_excluded("IMG_001 copy.jpg")
        assert not matcher.is_excluded("IMG_001.jpg")
        assert not matcher.is_excluded("IMG_001 copy.jpg.bak")

    def test_wildcard_escapes_regex_characters(self):
        matcher = ExclusionMatcher(["a.b*"])

        assert matcher.is_excluded("a.bc")
        assert not matcher.is_excluded("axbc")

    def test_double_star_is_not_a_substring_pattern(self):
        """A pattern of only two wildcards falls back to the generic shape."""
        matcher = ExclusionMatcher(["**"])

        assert matcher.is_excluded("anything")

    def test_regex_uses_full_match(self):
        matcher = ExclusionMatcher([r"regex:\d+"])

        assert matcher.is_excluded("123")
        assert not matcher.is_excluded("a123")


class TestPathPatterns:
    """Patterns with a separator only look at relative paths."""

    def test_path_pattern_needs_full_path(self):
        matcher = ExclusionMatcher(["build/*"])

        assert not matcher.is_excluded("out.o")
        assert matcher.is_excluded("out.o", "build/out.o")
        assert not matcher.is_excluded("out.o", "src/out.o")

    def test_name_pattern_ignores_folders_in_path(self):
        matcher = ExclusionMatcher(["cache"])

        assert not matcher.is_excluded("data.bin", "cache/data.bin")
        assert matcher.is_path_excluded("a/cache")

    def test_regex_with_separator_is_a_path_pattern(self):
        matcher = ExclusionMatcher([r"regex:tmp/.*\.log"])

        assert matcher.is_path_excluded("tmp/run.log")
        assert not matcher.is_path_excluded("var/run.log")


class TestConstruction:
    """Bad patterns fail when the matcher is built."""

    def test_invalid_regex(self):
        with pytest.raises(InvalidExclusionPattern) as error:
            ExclusionMatcher(["regex:(unclosed"])

        assert error.value.pattern == "regex:(unclosed"
        assert isinstance(error.value, ValueError)

    def test_empty_pattern(self):
        with pytest.raises(InvalidExclusionPattern, match="empty"):
            ExclusionMatcher([".md5", ""])

    def test_empty_matcher_excludes_nothing(self):
        matcher = ExclusionMatcher()

        assert not matcher
        assert not matcher.is_path_excluded("any/name")
