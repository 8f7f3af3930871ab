"""
Import directive registry tests

Tests the purely syntactic recognition of importCSS/importJS directives
and the tags they render.
"""

import pytest

from vaayu.lib.directives import DirectiveRegistry
from vaayu.models import DirectiveCategory, DirectiveMatch


@pytest.fixture
def registry():
    return DirectiveRegistry()


class TestRecognition:
    """Test which expressions count as import directives"""

    @pytest.mark.parametrize("raw,expected", [
        ('importCSS("./a.css")', DirectiveMatch("importCSS", "./a.css")),
        ("importCSS('./a.css')", DirectiveMatch("importCSS", "./a.css")),
        ('importJS("./main.ts")', DirectiveMatch("importJS", "./main.ts")),
        ('importJS(  "./main.ts"  )', DirectiveMatch("importJS", "./main.ts")),
        ("importJS('')", DirectiveMatch("importJS", "")),
    ])
    def test_matches(self, registry, raw, expected):
        """Single call with a single quoted literal"""
        assert registry.match(raw) == expected

    @pytest.mark.parametrize("raw", [
        'importCSS(base + "a.css")',
        'importCSS("./a.css", 1)',
        'importCSS("./a.css");',
        'importCSS(`./a.css`)',
        'importCSS("./a\\".css")',
        'importCSS("./a.css\')',
        'importCSS()',
        'window.importCSS("./a.css")',
        'importFont("./a.woff")',
        '"importCSS(\\"./a.css\\")"',
    ])
    def test_falls_through(self, registry, raw):
        """Anything else is an ordinary expression"""
        assert registry.match(raw) is None


class TestRegistry:
    """Test registry contents and tag rendering"""

    def test_builtins_registered(self, registry):
        """Both import functions are registered"""
        assert set(registry.specs) == {"importCSS", "importJS"}

    def test_categories(self, registry):
        """One directive per category"""
        assert registry.get("importCSS").category == DirectiveCategory.STYLESHEET
        assert registry.get("importJS").category == DirectiveCategory.SCRIPT

    def test_stylesheet_tag(self, registry):
        """importCSS renders a stylesheet link"""
        tag = registry.get("importCSS").tag_render("/a.css")
        assert tag == '<link rel="stylesheet" href="/a.css">'

    def test_script_tag(self, registry):
        """importJS renders a module script"""
        tag = registry.get("importJS").tag_render("/main.js")
        assert tag == '<script type="module" src="/main.js"></script>'

    def test_unknown_name(self, registry):
        """Unknown directive names return None"""
        assert registry.get("importFont") is None
