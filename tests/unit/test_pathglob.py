"""Unit tests for Ant-style path glob matching."""

from __future__ import annotations

import pytest

from artifactzip.archive.pathglob import match_path, match_segment


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("*.txt", "a.txt", True),
        ("*.txt", "b.csv", False),
        ("*.txt", "sub/c.txt", False),
        ("**/*.txt", "sub/c.txt", True),
        ("**/*.txt", "a.txt", True),
        ("**/*.txt", "x/y/z/c.txt", True),
        ("sub/*", "sub/c.txt", True),
        ("sub/*", "sub/deeper/c.txt", False),
        ("sub/**", "sub/deeper/c.txt", True),
        ("sub/", "sub/deeper/c.txt", True),
        ("?.txt", "a.txt", True),
        ("?.txt", "ab.txt", False),
        ("a?c/*.log", "abc/x.log", True),
        ("**", "anything/at/all", True),
        ("**/sub/**", "a/sub/b/c", True),
        ("**/sub/**", "a/other/b/c", False),
        ("a/**/b", "a/b", True),
        ("a/**/**/b", "a/x/y/b", True),
        ("[ab].txt", "a.txt", False),
        ("[ab].txt", "[ab].txt", True),
        ("", "", True),
        ("", "a.txt", False),
    ],
)
def test_match_path(pattern: str, path: str, expected: bool) -> None:
    assert match_path(pattern, path) is expected


def test_star_does_not_cross_separator() -> None:
    assert match_segment("*", "abc")
    assert not match_path("*", "a/b")


def test_leading_separator_must_agree() -> None:
    assert match_path("/a/*", "/a/b")
    assert not match_path("/a/*", "a/b")
    assert not match_path("a/*", "/a/b")


def test_case_sensitivity() -> None:
    assert not match_path("*.TXT", "a.txt")
    assert match_path("*.TXT", "a.txt", case_sensitive=False)


def test_regex_metacharacters_are_literal() -> None:
    assert match_path("a+b(1).txt", "a+b(1).txt")
    assert not match_path("a.b", "axb")
