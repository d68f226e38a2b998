"""
Exclusion Matcher

Classifies names and relative paths against configured ignore patterns.

Each raw pattern is sorted into one shape when the matcher is built:

- ``regex:<expr>``      compiled regular expression, full match
- ``Thumbs.db``         exact string
- ``*cache*``           substring (leading and trailing ``*``)
- ``._*``               prefix
- ``*.tmp``             suffix
- ``a*b.txt``           any other wildcard, converted to a regex

Patterns that contain a ``/`` are matched against the full relative path;
all others against the bare name. Lookups run cheapest first: exact set,
prefixes, suffixes, substrings, regexes.

Author: TreeMirror Project
License: MIT
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Pattern, Set

from .entry import PATH_SEPARATOR, base_name
from ..utils.logger import get_logger

logger = get_logger(__name__)

REGEX_PREFIX = "regex:"
WILDCARD = "*"


class InvalidExclusionPattern(ValueError):
    """Raised when an exclusion pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid exclusion pattern {pattern!r}: {reason}")


@dataclass
class _PatternSet:
    """Patterns of one scope (bare names or full paths), split by shape."""
    exact: Set[str] = field(default_factory=set)
    prefixes: List[str] = field(default_factory=list)
    suffixes: List[str] = field(default_factory=list)
    substrings: List[str] = field(default_factory=list)
    regexes: List[Pattern] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.exact or self.prefixes or self.suffixes or self.substrings or self.regexes)

    def add(self, pattern: str):
        if pattern.startswith(REGEX_PREFIX):
            self.regexes.append(_compile(pattern, pattern[len(REGEX_PREFIX):]))
        elif WILDCARD not in pattern:
            self.exact.add(pattern)
        elif pattern.startswith(WILDCARD) and pattern.endswith(WILDCARD) and len(pattern) > 2 \
                and WILDCARD not in pattern[1:-1]:
            self.substrings.append(pattern[1:-1])
        elif pattern.endswith(WILDCARD) and WILDCARD not in pattern[:-1]:
            self.prefixes.append(pattern[:-1])
        elif pattern.startswith(WILDCARD) and WILDCARD not in pattern[1:]:
            self.suffixes.append(pattern[1:])
        else:
            expression = ".*".join(re.escape(part) for part in pattern.split(WILDCARD))
            self.regexes.append(_compile(pattern, expression))

    def matches(self, value: str) -> bool:
        if value in self.exact:
            return True
        for prefix in self.prefixes:
            if value.startswith(prefix):
                return True
        for suffix in self.suffixes:
            if value.endswith(suffix):
                return True
        for substring in self.substrings:
            if substring in value:
                return True
        for regex in self.regexes:
            if regex.fullmatch(value):
                return True
        return False


def _compile(pattern: str, expression: str) -> Pattern:
    try:
        return re.compile(expression)
    except re.error as e:
        raise InvalidExclusionPattern(pattern, str(e)) from e


class ExclusionMatcher:
    """
    Pure classifier built once from an ordered list of raw patterns.

    A name is excluded when it matches any pattern of any shape.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        """
        Build the matcher.

        Args:
            patterns: Raw pattern strings

        Raises:
            InvalidExclusionPattern: On an empty pattern or a bad regular expression
        """
        self.patterns: List[str] = list(patterns or [])
        self._name_patterns = _PatternSet()
        self._path_patterns = _PatternSet()

        for pattern in self.patterns:
            if not pattern:
                raise InvalidExclusionPattern(pattern, "pattern is empty")
            # The "regex:" marker itself never makes a pattern path-scoped
            body = pattern[len(REGEX_PREFIX):] if pattern.startswith(REGEX_PREFIX) else pattern
            if PATH_SEPARATOR in body:
                self._path_patterns.add(pattern)
            else:
                self._name_patterns.add(pattern)

        logger.debug(f"ExclusionMatcher built from {len(self.patterns)} patterns")

    def __bool__(self) -> bool:
        return bool(self._name_patterns or self._path_patterns)

    def __repr__(self) -> str:
        return f"ExclusionMatcher({self.patterns!r})"

    def is_excluded(self, name: str, full_path: Optional[str] = None) -> bool:
        """
        Check a name (and optionally its full relative path).

        Args:
            name: Bare file or folder name
            full_path: Relative path of the entry; path patterns are only
                checked when it is supplied

        Returns:
            True if any pattern matches
        """
        if self._name_patterns.matches(name):
            return True
        if full_path is not None and self._path_patterns.matches(full_path):
            return True
        return False

    def is_path_excluded(self, path: str) -> bool:
        """Check a relative path against both name and path patterns."""
        return self.is_excluded(base_name(path), path)
