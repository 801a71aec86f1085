"""Glob patterns — compiles watch patterns to anchored regular expressions.

Supported syntax, always matched case-sensitively against ``/``-separated
relative paths:

- literal segments
- ``*``       any run of characters inside one segment
- ``**``      zero or more whole segments (must be a segment on its own)
- ``?``       exactly one character inside a segment
- ``[abc]``   character class, ``[!abc]`` / ``[^abc]`` negated
- ``{a,b}``   alternation inside one segment (no nesting)

A trailing ``/`` marks a directory pattern: it only matches directory
change records (see ``MatchRule``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from whisker._errors import MatchError

_ANY_SEGMENTS = "(?:[^/]+/)*"
_TRAILING_SEGMENTS = "[^/]+(?:/[^/]+)*"


@dataclass(frozen=True, slots=True)
class GlobPattern:
    """A compiled glob.

    Attributes:
        source: The pattern as written in configuration.
        directory: True for directory patterns (trailing ``/``).
        regex: Anchored regular expression for the path part.

    """

    source: str
    directory: bool
    regex: re.Pattern[str] = field(compare=False, repr=False)

    def matches(self, relative_path: str) -> bool:
        """Whether *relative_path* (``/``-separated, no leading slash) matches."""
        return self.regex.fullmatch(relative_path) is not None


def compile_glob(pattern: str) -> GlobPattern:
    """Compile *pattern*, raising ``MatchError`` if it is malformed."""
    if not pattern or not pattern.strip():
        raise MatchError("empty glob pattern")
    if pattern.startswith("/"):
        msg = f"glob {pattern!r} must be relative to its scope root"
        raise MatchError(msg)

    directory = pattern.endswith("/")
    body = pattern.rstrip("/")
    if not body:
        msg = f"glob {pattern!r} has no path segments"
        raise MatchError(msg)

    segments = body.split("/")
    parts: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if not segment:
            msg = f"glob {pattern!r} contains an empty path segment"
            raise MatchError(msg)
        if segment == "**":
            parts.append(_TRAILING_SEGMENTS if last else _ANY_SEGMENTS)
            continue
        if "**" in segment:
            msg = f"glob {pattern!r}: '**' must be a whole path segment"
            raise MatchError(msg)
        parts.append(_translate_segment(segment, pattern) + ("" if last else "/"))

    return GlobPattern(
        source=pattern,
        directory=directory,
        regex=re.compile("".join(parts)),
    )


def _translate_segment(segment: str, pattern: str, *, in_braces: bool = False) -> str:
    out: list[str] = []
    i = 0
    n = len(segment)
    while i < n:
        char = segment[i]
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "\\":
            i += 1
            if i == n:
                msg = f"glob {pattern!r} ends with a dangling escape"
                raise MatchError(msg)
            out.append(re.escape(segment[i]))
        elif char == "[":
            end = _class_end(segment, i)
            if end < 0:
                msg = f"glob {pattern!r} has an unclosed '['"
                raise MatchError(msg)
            out.append(_translate_class(segment[i + 1 : end], pattern))
            i = end
        elif char == "{":
            if in_braces:
                msg = f"glob {pattern!r} nests '{{' alternations"
                raise MatchError(msg)
            end = segment.find("}", i + 1)
            nested = segment.find("{", i + 1)
            if end < 0:
                msg = f"glob {pattern!r} has an unclosed '{{'"
                raise MatchError(msg)
            if 0 <= nested < end:
                msg = f"glob {pattern!r} nests '{{' alternations"
                raise MatchError(msg)
            options = segment[i + 1 : end].split(",")
            translated = [
                _translate_segment(option, pattern, in_braces=True) for option in options
            ]
            out.append("(?:" + "|".join(translated) + ")")
            i = end
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def _class_end(segment: str, start: int) -> int:
    # A ']' right after '[' (or after a leading negation) is literal.
    i = start + 1
    if i < len(segment) and segment[i] in "!^":
        i += 1
    if i < len(segment) and segment[i] == "]":
        i += 1
    return segment.find("]", i)


def _translate_class(content: str, pattern: str) -> str:
    negate = content[:1] in ("!", "^")
    if negate:
        content = content[1:]
    if not content:
        msg = f"glob {pattern!r} has an empty character class"
        raise MatchError(msg)
    escaped = content.replace("\\", "\\\\").replace("[", "\\[")
    if escaped.startswith("]"):
        escaped = "\\" + escaped
    if negate:
        return f"[^/{escaped}]"
    return f"[{escaped}]"
