"""
Template data models

Type-safe structures produced by the parser and consumed by the compiler.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Expression:
    """
    A single {{ ... }} marker found in the template body

    Offsets refer to the body as parsed, before any substitution. They are
    never adjusted: the compiler replaces markers from the highest start
    offset to the lowest so that earlier offsets stay valid.

    Attributes:
        raw: Trimmed text between the braces (e.g. "user.name")
        start: Offset of the opening ``{{`` in the body
        end: Offset one past the closing ``}}`` in the body
        text: The full marker span, braces included

    Example:
        For body "<p>{{ name }}</p>":
        Expression(raw="name", start=3, end=13, text="{{ name }}")
    """
    raw: str
    start: int
    end: int
    text: str


@dataclass
class ParsedTemplate:
    """
    Result of parsing a .vyu source

    Attributes:
        declarations: Trimmed script of the leading {{ ... }} block, or ""
        body: Markup following the declarations block
        expressions: Markers found in the body, in source order
    """
    declarations: str
    body: str
    expressions: List[Expression] = field(default_factory=list)


@dataclass
class DirectiveMatch:
    """
    An expression recognised as an import directive

    Returned by DirectiveRegistry.match() when a marker's raw text is
    exactly ``importCSS("...")`` or ``importJS('...')``.

    Attributes:
        name: Directive name ("importCSS" or "importJS")
        path: The quoted literal argument, quotes removed
    """
    name: str
    path: str
