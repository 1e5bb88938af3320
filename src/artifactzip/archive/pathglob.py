"""Ant-style path glob matching.

Wildcards:
- `**` as a whole segment matches zero or more path segments
- `*` matches zero or more characters within one segment
- `?` matches exactly one character within one segment

A pattern ending in `/` behaves as if it ended in `/**`. There are no
character classes: `[` and `]` match literally.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache

SEPARATOR = "/"
DEEP = "**"


def _tokenize(text: str) -> list[str]:
    return [t for t in text.split(SEPARATOR) if t]


@lru_cache(maxsize=512)
def _segment_regex(segment: str, case_sensitive: bool) -> re.Pattern[str]:
    parts: list[str] = []
    for ch in segment:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts), flags)


def match_segment(pattern: str, segment: str, *, case_sensitive: bool = True) -> bool:
    """Match a single path segment against a `*`/`?` pattern."""
    return _segment_regex(pattern, case_sensitive).fullmatch(segment) is not None


def _match_tokens(pat: Sequence[str], segs: Sequence[str], case_sensitive: bool) -> bool:
    if not pat:
        return not segs

    head = pat[0]
    if head == DEEP:
        rest = pat[1:]
        while rest and rest[0] == DEEP:
            rest = rest[1:]
        if not rest:
            return True
        return any(_match_tokens(rest, segs[i:], case_sensitive) for i in range(len(segs) + 1))

    if not segs:
        return False
    if not match_segment(head, segs[0], case_sensitive=case_sensitive):
        return False
    return _match_tokens(pat[1:], segs[1:], case_sensitive)


def match_path(pattern: str, path: str, *, case_sensitive: bool = True) -> bool:
    """Return True if `path` matches the Ant-style `pattern`.

    Args:
        pattern: Glob such as `*.txt`, `**/*.log` or `docs/`
        path: `/`-separated relative path
        case_sensitive: Compare characters case-sensitively (default)

    Examples:
        match_path("*.txt", "a.txt") -> True
        match_path("*.txt", "sub/c.txt") -> False
        match_path("**/*.txt", "sub/c.txt") -> True
    """
    if pattern.startswith(SEPARATOR) != path.startswith(SEPARATOR):
        return False
    if pattern.endswith(SEPARATOR):
        pattern += DEEP
    return _match_tokens(_tokenize(pattern), _tokenize(path), case_sensitive)
