"""Compiled trigger rules: path globs and content tokens.

Glob syntax:
    **      zero or more whole path segments
    *       any run of characters within one segment
    ?       one character other than '/'
    [abc]   character class, [!abc] negated

A pattern containing a '/' is anchored at the start of the path, so ``src/*.py``
matches ``src/app.py`` but not ``vendor/src/app.py``. A pattern without one
matches the last segment, so ``*.java`` matches ``src/main/Foo.java``.

Tokens are literal substrings unless prefixed with ``re:``.
"""

import re
from dataclasses import dataclass
from typing import Optional

REGEX_PREFIX = "re:"


def _translate_segment(segment: str) -> str:
    """Translate one glob path segment (no '/') to a regex fragment."""
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        if c == "*":
            # Collapse runs of '*' inside a segment
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = segment.find("]", i + 2 if i + 1 < n and segment[i + 1] == "!" else i + 1)
            if j == -1:
                out.append(re.escape(c))
            else:
                body = segment[i + 1:j]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = j
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def glob_to_regex(pattern: str) -> str:
    """Translate a glob pattern to a regular expression string."""
    if not pattern:
        raise ValueError("Empty path pattern")

    anchored = "/" in pattern.rstrip("/")
    segments = pattern.strip("/").split("/")
    parts = []
    for idx, segment in enumerate(segments):
        last = idx == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]*/)*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))

    prefix = "^/?" if anchored else "(?:^|(?<=/))"
    return prefix + "".join(parts) + "$"


@dataclass(frozen=True)
class PathRule:
    """A compiled path glob."""

    pattern: str
    regex: re.Pattern

    @classmethod
    def compile(cls, pattern: str) -> "PathRule":
        return cls(pattern=pattern, regex=re.compile(glob_to_regex(pattern)))

    def match(self, path: str) -> Optional[str]:
        """Return the matched path, or None."""
        normalized = path.replace("\\", "/")
        if normalized.startswith("./"):
            normalized = normalized[2:]
        if self.regex.search(normalized):
            return normalized
        return None


@dataclass(frozen=True)
class TokenRule:
    """A compiled lexical or annotation token."""

    token: str
    regex: re.Pattern

    @classmethod
    def compile(cls, token: str, case_sensitive: bool = True) -> "TokenRule":
        if not token:
            raise ValueError("Empty trigger token")
        flags = 0 if case_sensitive else re.IGNORECASE
        if token.startswith(REGEX_PREFIX):
            expression = token[len(REGEX_PREFIX):]
            if not expression:
                raise ValueError(f"Empty regular expression in token {token!r}")
        else:
            expression = re.escape(token)
        return cls(token=token, regex=re.compile(expression, flags))

    @property
    def is_regex(self) -> bool:
        return self.token.startswith(REGEX_PREFIX)

    def search(self, content: str) -> Optional[str]:
        """Return the first matched substring, or None."""
        m = self.regex.search(content)
        if m is None:
            return None
        return m.group(0)


def validate_pattern(pattern: str) -> None:
    """Raise ValueError or re.error if a path pattern does not compile."""
    PathRule.compile(pattern)


def validate_token(token: str, case_sensitive: bool = True) -> None:
    """Raise ValueError or re.error if a token does not compile."""
    TokenRule.compile(token, case_sensitive)
