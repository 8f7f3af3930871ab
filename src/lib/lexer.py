"""
Custom Pygments lexer for .vyu templates

Used by the dev server to show the failing template, highlighted, on the
compile error page.

Token types:
- Markup outside markers: delegated to Pygments' HtmlLexer
- Punctuation: the {{ and }} delimiters
- Script inside markers: delegated to Pygments' JavascriptLexer

Marker boundaries come from the same scanner the parser uses, so strings
containing braces are highlighted exactly as they are compiled. An
unterminated marker is left to the HTML lexer, which is what the author
sees as the broken region.
"""

from typing import Iterator, Tuple

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers.html import HtmlLexer
from pygments.lexers.javascript import JavascriptLexer
from pygments.token import Punctuation, _TokenType

from .scanner import OPEN, CLOSE, close_findMatching


class VyuLexer(Lexer):
    """
    Lexer for vaayu page templates

    Example:
        {{ const title = 'Home' }}<h1>{{ title }}</h1>

    Tokens:
        {{            → Punctuation
        const title…  → JavaScript tokens
        }}            → Punctuation
        <h1>          → HTML tokens
    """

    name = 'Vyu'
    aliases = ['vyu', 'vaayu']
    filenames = ['*.vyu']

    def __init__(self, **options):
        super().__init__(**options)
        self.html_lexer = HtmlLexer(**options)
        self.js_lexer = JavascriptLexer(**options)

    @staticmethod
    def tokens_shift(
        lexer: Lexer, text: str, offset: int
    ) -> Iterator[Tuple[int, _TokenType, str]]:
        """Run a sub-lexer on a slice and shift its indices to the full text"""
        if not text:
            return
        for index, token, value in lexer.get_tokens_unprocessed(text):
            yield index + offset, token, value

    def get_tokens_unprocessed(self, text: str) -> Iterator[Tuple[int, _TokenType, str]]:
        pos = 0
        while True:
            start = text.find(OPEN, pos)
            if start == -1:
                break
            close = close_findMatching(text, start + len(OPEN))
            if close is None:
                break

            yield from self.tokens_shift(self.html_lexer, text[pos:start], pos)
            yield start, Punctuation, OPEN
            inner_start = start + len(OPEN)
            yield from self.tokens_shift(self.js_lexer, text[inner_start:close], inner_start)
            yield close, Punctuation, CLOSE
            pos = close + len(CLOSE)

        yield from self.tokens_shift(self.html_lexer, text[pos:], pos)


def get_lexer() -> VyuLexer:
    """
    Get the VyuLexer instance

    Returns:
        VyuLexer that keeps leading and trailing newlines intact
    """
    return VyuLexer(stripnl=False)


def source_highlight(source: str, style: str = "default") -> str:
    """
    Render template source as highlighted HTML with line numbers

    Args:
        source: Template source text
        style: Pygments style name

    Returns:
        Self-contained HTML fragment (inline styles, no stylesheet needed)
    """
    formatter = HtmlFormatter(style=style, noclasses=True, linenos='inline')
    return highlight(source, get_lexer(), formatter)
