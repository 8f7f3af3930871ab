"""
Delimiter scanner for {{ ... }} markers

Locates the doubled close brace that matches an already consumed doubled
open brace. String literals are honoured so that braces inside quoted text
do not disturb the depth count:

    {{ "}}" }}          -> the first }} is inside a string, skipped
    {{ {{ x }} }}       -> nested marker, depth 2 then back to 0
    {{ `a ${b} }}` }}   -> template literal, the inner }} is skipped

Outside of strings, a stray {{ inside an expression is counted as nesting
and moves the real close further right.
"""

from typing import Optional

OPEN = "{{"
CLOSE = "}}"
QUOTES = ('"', "'", "`")


def close_findMatching(text: str, start: int) -> Optional[int]:
    """
    Find the doubled close brace matching an opening doubled brace

    Scans forward from ``start`` (the offset just past the opening ``{{``)
    with a depth counter that starts at 1. Outside of strings, ``{{``
    increments and ``}}`` decrements the depth; the ``}}`` that brings it
    to 0 is the match. Inside a string (opened by ", ' or `) braces are
    ignored and a backslash skips itself and the following character.

    Args:
        text: Source text being scanned
        start: Offset just past the opening ``{{``

    Returns:
        Offset of the first ``}`` of the matching ``}}``, or None if the
        text ends before the depth returns to 0.

    Example:
        >>> close_findMatching('{{ "}}" }}', 2)
        8
        >>> close_findMatching('{{ a', 2) is None
        True
    """
    depth = 1
    pos = start
    length = len(text)
    quote: Optional[str] = None

    while pos < length:
        ch = text[pos]

        if quote is not None:
            if ch == "\\" and pos + 1 < length:
                pos += 2
                continue
            if ch == quote:
                quote = None
            pos += 1
            continue

        if ch in QUOTES:
            quote = ch
            pos += 1
            continue

        if text.startswith(OPEN, pos):
            depth += 1
            pos += 2
            continue

        if text.startswith(CLOSE, pos):
            depth -= 1
            if depth == 0:
                return pos
            pos += 2
            continue

        pos += 1

    return None
