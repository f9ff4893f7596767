"""Tests for fswatch.watchdog.patterns: glob/regex grammar and base directories."""

from __future__ import annotations

import sys

import pytest

from fswatch.exceptions import InvalidPatternError
from fswatch.watchdog.patterns import (
    PatternMatcher,
    base_directory,
    is_recursive_pattern,
    normalize_pattern,
    split_syntax,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="posix separators")


# ---------------------------------------------------------------------------
# Glob matching
# ---------------------------------------------------------------------------


@posix_only
class TestGlobMatching:
    """PatternMatcher with the default glob grammar."""

    def test_star_stays_in_directory(self) -> None:
        matcher = PatternMatcher("foo/*.txt")
        assert matcher.matches("foo/a.txt")
        assert not matcher.matches("foo/sub/a.txt")
        assert not matcher.matches("foo/a.txt.bak")

    def test_specific_file(self) -> None:
        matcher = PatternMatcher("foo/bar.jpg")
        assert matcher.matches("foo/bar.jpg")
        assert not matcher.matches("foo/bar.jpeg")

    def test_double_star_crosses_directories(self) -> None:
        matcher = PatternMatcher("foo/**.png")
        assert matcher.matches("foo/a.png")
        assert matcher.matches("foo/bar/baz/x.png")
        assert not matcher.matches("foo/bar/x.jpg")
        assert not matcher.matches("other/x.png")

    def test_alternation(self) -> None:
        matcher = PatternMatcher("foo/*.{png,jpg}")
        assert matcher.matches("foo/a.png")
        assert matcher.matches("foo/a.jpg")
        assert not matcher.matches("foo/a.gif")

    def test_question_mark(self) -> None:
        matcher = PatternMatcher("foo/?.txt")
        assert matcher.matches("foo/a.txt")
        assert not matcher.matches("foo/ab.txt")
        assert not matcher.matches("foo//.txt")

    def test_character_classes(self) -> None:
        assert PatternMatcher("foo/[ab].txt").matches("foo/a.txt")
        assert not PatternMatcher("foo/[ab].txt").matches("foo/c.txt")
        assert PatternMatcher("foo/[!ab].txt").matches("foo/c.txt")
        assert not PatternMatcher("foo/[!ab].txt").matches("foo/a.txt")

    def test_regex_characters_are_literal(self) -> None:
        matcher = PatternMatcher("foo/a+b(1).txt")
        assert matcher.matches("foo/a+b(1).txt")
        assert not matcher.matches("foo/aab1.txt")

    def test_glob_prefix_is_accepted(self) -> None:
        assert PatternMatcher("glob:foo/*.txt").matches("foo/a.txt")

    def test_absolute_pattern(self) -> None:
        assert PatternMatcher("/var/log/*.log").matches("/var/log/syslog.log")

    def test_case_insensitive(self) -> None:
        matcher = PatternMatcher("foo/*.TXT", case_sensitive=False)
        assert matcher.matches("foo/a.txt")

    def test_accepts_path_objects(self, tmp_path) -> None:
        matcher = PatternMatcher(f"{tmp_path.as_posix()}/*.txt")
        assert matcher.matches(tmp_path / "a.txt")

    def test_doubled_backslash_is_separator(self) -> None:
        matcher = PatternMatcher(normalize_pattern("foo\\*.txt"))
        assert matcher.matches("foo/a.txt")
        assert matcher.matches("foo\\a.txt")


class TestInvalidPatterns:
    """Compilation errors surface as InvalidPatternError."""

    @pytest.mark.parametrize(
        "pattern",
        ["foo/[abc", "foo/{a,b", "foo/{a,{b,c}}", "regex:foo/(", "foo\\"],
    )
    def test_invalid(self, pattern: str) -> None:
        with pytest.raises(InvalidPatternError) as exc_info:
            PatternMatcher(pattern)
        assert exc_info.value.reason


# ---------------------------------------------------------------------------
# Regex grammar
# ---------------------------------------------------------------------------


class TestRegexMatching:
    def test_full_match(self) -> None:
        matcher = PatternMatcher(r"regex:foo/.*\.log")
        assert matcher.syntax == "regex"
        assert matcher.matches("foo/a/b.log")
        assert not matcher.matches("foo/a/b.log.1")

    def test_regex_is_not_normalized(self) -> None:
        assert normalize_pattern(r"regex:foo/.*\.log") == r"regex:foo/.*\.log"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestBaseDirectory:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("foo/*.txt", "foo"),
            ("foo/bar.jpg", "foo"),
            ("foo/bar/**.png", "foo/bar"),
            ("foo/**/*.png", "foo"),
            ("foo/*/bar/*.txt", "foo"),
            ("/tmp/x/*.txt", "/tmp/x"),
            ("/*.txt", "/"),
            ("*.txt", ""),
            ("glob:foo/*.txt", "foo"),
            (r"regex:/var/log/.*\.log", "/var/log"),
            (r"regex:/var/lo.?/x", "/var"),
            ("foo\\\\bar\\\\*.txt", "foo/bar"),
        ],
    )
    def test_base_directory(self, pattern: str, expected: str) -> None:
        assert base_directory(pattern) == expected


class TestRecursion:
    def test_double_star_is_recursive(self) -> None:
        assert is_recursive_pattern("foo/**.png")

    def test_single_star_is_not(self) -> None:
        assert not is_recursive_pattern("foo/*.png")

    def test_regex_is_never_recursive(self) -> None:
        assert not is_recursive_pattern("regex:foo/**")


class TestNormalize:
    def test_single_backslashes_doubled(self) -> None:
        assert normalize_pattern("foo\\bar\\*.txt") == "foo\\\\bar\\\\*.txt"

    def test_doubled_backslashes_kept(self) -> None:
        assert normalize_pattern("foo\\\\bar") == "foo\\\\bar"

    def test_forward_slashes_untouched(self) -> None:
        assert normalize_pattern("foo/bar/*.txt") == "foo/bar/*.txt"


def test_split_syntax() -> None:
    assert split_syntax("regex:a.*") == ("regex", "a.*")
    assert split_syntax("glob:*.txt") == ("glob", "*.txt")
    assert split_syntax("*.txt") == ("glob", "*.txt")
