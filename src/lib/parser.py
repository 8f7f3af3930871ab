"""
Parser for .vyu templates

Splits a template into its declarations block, its body, and the ordered
list of {{ ... }} expression markers found in the body.

The parser operates in two phases:
1. Declarations: if the first non-whitespace content is a {{ ... }} block,
   its trimmed inner text becomes the declarations and the rest the body
2. Expressions: the body is scanned left to right for sibling markers

Example:
    >>> parsed = Parser("{{ const t = 'Hi' }}<h1>{{ t }}</h1>").parse()
    >>> parsed.declarations
    "const t = 'Hi'"
    >>> parsed.body
    '<h1>{{ t }}</h1>'
    >>> [(e.raw, e.start, e.end) for e in parsed.expressions]
    [('t', 4, 11)]
"""

from typing import List, NoReturn, Optional, Tuple

from ..models.template import Expression, ParsedTemplate
from .errors import ParseError
from .scanner import OPEN, CLOSE, close_findMatching


class Parser:
    """
    Parser for vaayu {{ ... }} syntax

    Handles:
    - Optional leading declarations block
    - Inline expression markers (siblings, never nested lookups)
    - Braces inside string literals
    - Error reporting with character offsets
    """

    def __init__(self, source: str, debug: bool = False):
        """
        Initialize parser with source text

        Args:
            source: Raw template source (.vyu file contents)
            debug: Enable debug output for parser operations

        Attributes:
            source: Source text being parsed
            debug: Debug mode flag
            position: Offset of the marker currently being scanned
                      (within the text being scanned), for error reporting
        """
        self.source = source
        self.debug = debug
        self.position = 0

    def parse(self) -> ParsedTemplate:
        """
        Parse source text into declarations, body and expressions

        Returns:
            ParsedTemplate. An empty source yields empty declarations, an
            empty body and no expressions.

        Raises:
            ParseError: If the declarations block or any expression marker
                        is not terminated
        """
        declarations, body = self.declarations_split()
        expressions = self.expressions_find(body)

        if self.debug:
            from .log import LOG
            LOG(
                f"Parsed {len(declarations)} chars of declarations, "
                f"{len(expressions)} expressions",
                level=3,
            )

        return ParsedTemplate(
            declarations=declarations,
            body=body,
            expressions=expressions,
        )

    def declarations_split(self) -> Tuple[str, str]:
        """
        Separate a leading {{ ... }} declarations block from the body

        Only the very first non-whitespace content of the source can be a
        declarations block. Without one, the body is the source unchanged
        (leading whitespace included).

        Returns:
            (declarations, body) tuple

        Raises:
            ParseError: If the declarations block is not terminated

        Example:
            "  {{ let x = 1; }}\\n<p>{{ x }}</p>"
            → ("let x = 1;", "\\n<p>{{ x }}</p>")
        """
        trimmed = self.source.lstrip()
        if not trimmed.startswith(OPEN):
            return "", self.source

        self.position = len(self.source) - len(trimmed)
        close = close_findMatching(trimmed, len(OPEN))
        if close is None:
            self.error("unclosed declarations block", self.source)

        declarations = trimmed[len(OPEN):close].strip()
        body = trimmed[close + len(CLOSE):]
        return declarations, body

    def expressions_find(self, body: str) -> List[Expression]:
        """
        Find every top-level {{ ... }} marker in the body

        Each opening ``{{`` is matched with the scanner; any nesting inside
        a marker is resolved by that single scan, and scanning resumes just
        past the consumed ``}}``.

        Args:
            body: Template body (after the declarations block)

        Returns:
            Expressions in source order with offsets into ``body``

        Raises:
            ParseError: If a marker is not terminated

        Example:
            "a {{ x }} b {{ y }}" → [Expression("x", 2, 9, ...),
                                     Expression("y", 12, 19, ...)]
        """
        expressions: List[Expression] = []
        pos = 0

        while True:
            start = body.find(OPEN, pos)
            if start == -1:
                break

            self.position = start
            close = close_findMatching(body, start + len(OPEN))
            if close is None:
                self.error(f"unclosed expression starting at position {start}", body)

            end = close + len(CLOSE)
            expressions.append(Expression(
                raw=body[start + len(OPEN):close].strip(),
                start=start,
                end=end,
                text=body[start:end],
            ))
            pos = end

        return expressions

    def error(self, message: str, text: Optional[str] = None) -> NoReturn:
        """
        Report parser error with source context

        Raises ParseError carrying the offending offset and the text it
        refers to, so callers can render a context excerpt with a caret.

        Args:
            message: Human-readable error description
            text: Text the current position refers to (defaults to source)

        Raises:
            ParseError: Always (this is an error reporting function)
        """
        raise ParseError(
            message,
            position=self.position,
            source=self.source if text is None else text,
        )
