"""
Asset reference pattern compiler.

Builds a matcher that locates quoted HTML attribute values of the form

    =<quote>[scheme://origin-host]<base path>/<path>.<ext>[?<query>]<quote>

where <ext> is one of the configured extension patterns. The closing quote
must equal the opening one.

Matching is done in two stages so that the cost stays linear in the size of
the document: an opener pattern finds `=` followed by a quote, the attribute
value is bounded by the next occurrence of that same quote, and an anchored
pattern decides whether the bounded value is a qualifying asset reference.
When it is not, scanning resumes one character after the opener, so an
inner `='...'` inside a rejected `"..."` value is still found.
"""

from __future__ import annotations

import re
import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from .config import ConfigurationError
from utils.validators import split_base_url


OPENER = re.compile(r"=([\"'])")


@dataclass(frozen=True)
class OriginScope:
    """Host and base path that a matched reference must live under."""
    host: Optional[str]
    base_path: str = ''

    @classmethod
    def site(cls, host: str) -> 'OriginScope':
        return cls(host=host or None, base_path='')

    @classmethod
    def uploads(cls, base_url: str) -> 'OriginScope':
        host, path = split_base_url(base_url)
        return cls(host=host, base_path=path)


@dataclass(frozen=True)
class MatchedReference:
    quote: str
    domain: Optional[str]
    path: str
    extension: str
    query: Optional[str]
    start: int
    end: int


def compile_extensions(extensions: Sequence[str]) -> str:
    """
    Validate extension patterns and join them into one alternation.

    Raises:
        ConfigurationError: if the list is empty or a pattern is malformed
    """
    if not extensions:
        raise ConfigurationError("At least one file extension is required")

    for ext in extensions:
        if not isinstance(ext, str) or not ext.strip():
            raise ConfigurationError(f"Invalid extension pattern: {ext!r}")
        try:
            re.compile(f"(?:{ext})")
        except re.error as e:
            raise ConfigurationError(f"Malformed extension pattern {ext!r}: {e}") from e

    return '|'.join(f"(?:{ext})" for ext in extensions)


class AssetPattern:
    """
    Compiled matcher for one origin scope and extension set.

    Immutable after construction; safe to share between threads.
    """

    def __init__(self, extensions: Sequence[str], scope: OriginScope):
        self.logger = logging.getLogger(__name__)
        self.extensions: Tuple[str, ...] = tuple(extensions)
        self.scope = scope

        alternation = compile_extensions(self.extensions)

        domain = ''
        if scope.host:
            domain = r"(?P<domain>(?:https?:)?//" + re.escape(scope.host) + r")?"

        # The path may not start with a slash: a value like "//other-host/x.png"
        # is a protocol-relative reference to some other host (or an already
        # rewritten CDN URL), never a local path.
        value_regex = (
            "^" + domain
            + re.escape(scope.base_path) + "/"
            + r"(?P<path>[^/\n].*)"
            + r"\.(?P<ext>" + alternation + ")"
            + r"(?P<query>\?.+)?$"
        )

        try:
            self._value = re.compile(value_regex)
        except re.error as e:
            raise ConfigurationError(f"Could not compile asset pattern: {e}") from e

        self.logger.debug(f"Compiled asset pattern: {value_regex}")

    def match_value(self, value: str, quote: str = '"',
                    start: int = 0, end: int = 0) -> Optional[MatchedReference]:
        """
        Match a single attribute value (without its quotes).

        Args:
            value: Attribute value text
            quote: Quote character that delimited the value
            start: Offset of the leading `=` in the source text
            end: Offset just past the closing quote in the source text

        Returns:
            MatchedReference, or None if the value does not qualify
        """
        if not value or '\n' in value or quote in value:
            return None

        m = self._value.match(value)
        if m is None:
            return None

        return MatchedReference(
            quote=quote,
            domain=m.group('domain') if self.scope.host else None,
            path=m.group('path'),
            extension=m.group('ext'),
            query=m.group('query'),
            start=start,
            end=end,
        )

    def iter_references(self, text: str) -> Iterator[MatchedReference]:
        """
        Yield every non-overlapping qualifying reference, left to right.
        """
        pos = 0
        while True:
            opener = OPENER.search(text, pos)
            if opener is None:
                return

            quote = opener.group(1)
            value_start = opener.end()
            close = text.find(quote, value_start)
            if close == -1:
                pos = opener.start() + 1
                continue

            ref = self.match_value(text[value_start:close], quote,
                                   start=opener.start(), end=close + 1)
            if ref is None:
                pos = opener.start() + 1
                continue

            yield ref
            pos = close + 1

    def __repr__(self) -> str:
        return f"AssetPattern(extensions={self.extensions!r}, scope={self.scope!r})"
