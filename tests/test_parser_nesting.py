"""
Expression parser tests - sibling and nested markers

Tests that markers in the body are found left to right as siblings, that
a nested marker is consumed by its outer marker, and that offsets point at
the original body text.
"""

import pytest

from vaayu.lib.parser import Parser


class TestSiblingExpressions:
    """Test multiple markers at the top level"""

    def test_single_expression(self):
        """Offsets cover the marker from {{ to one past }}"""
        parsed = Parser("<p>{{ name }}</p>").parse()
        assert len(parsed.expressions) == 1
        expr = parsed.expressions[0]
        assert expr.raw == "name"
        assert expr.start == 3
        assert expr.end == 13
        assert expr.text == "{{ name }}"
        assert parsed.body[expr.start:expr.end] == expr.text

    def test_two_siblings(self):
        """Siblings are found in source order"""
        parsed = Parser("a {{ x }} b {{ y }}").parse()
        assert [(e.raw, e.start, e.end) for e in parsed.expressions] == [
            ("x", 2, 9),
            ("y", 12, 19),
        ]

    def test_adjacent_markers(self):
        """Markers with nothing between them"""
        parsed = Parser("<p>{{ a }}{{ b }}{{ c }}</p>").parse()
        assert [e.raw for e in parsed.expressions] == ["a", "b", "c"]
        assert parsed.expressions[0].end == parsed.expressions[1].start

    def test_offsets_relative_to_body(self):
        """Offsets refer to the body, not the full source"""
        parsed = Parser("{{ const a = 1 }}<i>{{ a }}</i>").parse()
        expr = parsed.expressions[0]
        assert expr.start == 3
        assert parsed.body[expr.start:expr.end] == "{{ a }}"

    def test_raw_is_trimmed(self):
        """Whitespace inside the braces is trimmed"""
        parsed = Parser("<p>{{\n   1 + 2\n}}</p>").parse()
        assert parsed.expressions[0].raw == "1 + 2"

    def test_multiline_body(self):
        """Markers on different lines"""
        source = "<ul>\n  <li>{{ a }}</li>\n  <li>{{ b }}</li>\n</ul>"
        parsed = Parser(source).parse()
        for expr in parsed.expressions:
            assert parsed.body[expr.start:expr.end] == expr.text


class TestNestedMarkers:
    """Test doubled braces inside a marker"""

    def test_nested_is_single_expression(self):
        """Inner marker becomes part of the outer expression text"""
        parsed = Parser("<p>{{ {{ x }} }}</p>").parse()
        assert len(parsed.expressions) == 1
        expr = parsed.expressions[0]
        assert expr.raw == "{{ x }}"
        assert expr.start == 3
        assert expr.end == 16

    def test_scanning_resumes_after_outer_close(self):
        """The marker after a nested one is still found"""
        parsed = Parser("<p>{{ {{ x }} }} and {{ y }}</p>").parse()
        assert [e.raw for e in parsed.expressions] == ["{{ x }}", "y"]


class TestStringsInExpressions:
    """Test braces inside string literals of expressions"""

    @pytest.mark.parametrize("raw", [
        '"}}"',
        "'}}'",
        "`}}`",
        '"{{"',
        '"a \\" }}"',
    ])
    def test_braces_in_strings(self, raw):
        """Strings containing braces stay inside the marker"""
        parsed = Parser(f"<p>{{{{ {raw} }}}}</p>").parse()
        assert len(parsed.expressions) == 1
        assert parsed.expressions[0].raw == raw

    def test_template_literal_interpolation(self):
        """Single-brace interpolation in a template literal"""
        parsed = Parser("<p>{{ `Hello ${name}` }}</p>").parse()
        assert parsed.expressions[0].raw == "`Hello ${name}`"
