"""
End-to-end compilation tests

Tests the full pipeline: .vyu source → Parser → ScriptRuntime → asset
resolution → injected HTML.
"""

import concurrent.futures
from pathlib import Path

import pytest

from vaayu.lib.compiler import Compiler, assets_inject, liveReloadScript_make
from vaayu.lib.errors import CompileError, DeclarationError, EvaluationError, ParseError
from vaayu.lib.parser import Parser
from vaayu.models import CompileOptions


@pytest.fixture
def compiler():
    return Compiler(CompileOptions())


class TestPlainPages:
    """Test pages without markers"""

    def test_unchanged_without_markers(self, compiler):
        """Markup without markers compiles unchanged"""
        source = "<!DOCTYPE html>\n<html><head><title>x</title></head><body><p>Hi</p></body></html>\n"
        result = compiler.compile(source, "index.vyu")
        assert result.html == source
        assert result.css_imports == []
        assert result.js_imports == []

    def test_empty_source(self, compiler):
        """Empty template compiles to empty output"""
        assert compiler.compile("", "index.vyu").html == ""

    def test_declarations_only(self, compiler):
        """Declarations with no body produce no output"""
        assert compiler.compile("{{ const x = 1 }}", "index.vyu").html == ""


class TestExpressions:
    """Test expression substitution"""

    @pytest.mark.parametrize("expr,expected", [
        ('"abc"', "abc"),
        ("1 + 2", "3"),
        ("1.5", "1.5"),
        ("true", "true"),
        ("[1,2]", "[1,2]"),
    ])
    def test_literal_values(self, compiler, expr, expected):
        """Marker is replaced by the value's text"""
        result = compiler.compile(f"<p>{{{{ {expr} }}}}</p>", "index.vyu")
        assert result.html == f"<p>{expected}</p>"

    def test_declarations_feed_expressions(self, compiler):
        """Bindings from the declarations block are used by expressions"""
        source = (
            "{{\n"
            "  const site = { name: 'vaayu' };\n"
            "  const items = ['a', 'b'];\n"
            "}}\n"
            "<h1>{{ site.name }}</h1>\n"
            "<ul>{{ items.map(i => `<li>${i}</li>`).join('') }}</ul>"
        )
        result = compiler.compile(source, "index.vyu")
        assert result.html == "\n<h1>vaayu</h1>\n<ul><li>a</li><li>b</li></ul>"

    def test_substitution_matches_simultaneous_replacement(self, compiler):
        """Right-to-left replacement equals replacing all spans at once"""
        source = "<p>{{ 'a much longer value' }}-{{ 1 }}-{{ '' }}-{{ 'x'.repeat(5) }}</p>"
        parsed = Parser(source).parse()
        values = {"'a much longer value'": "a much longer value", "1": "1", "''": "", "'x'.repeat(5)": "xxxxx"}

        expected = []
        pos = 0
        for expr in parsed.expressions:
            expected.append(parsed.body[pos:expr.start])
            expected.append(values[expr.raw])
            pos = expr.end
        expected.append(parsed.body[pos:])

        assert compiler.compile(source, "index.vyu").html == "".join(expected)

    def test_values_with_braces_not_rescanned(self, compiler):
        """Substituted text containing markers is not evaluated again"""
        result = compiler.compile("<p>{{ '{{ 1 + 1 }}' }}</p>", "index.vyu")
        assert result.html == "<p>{{ 1 + 1 }}</p>"


class TestImportDirectives:
    """Test importCSS/importJS directives and tag injection"""

    def test_build_mode_manifest(self):
        """Directives are removed; tags are injected in source order"""
        options = CompileOptions(manifest={"a.css": "a.1234.css"}, site_dir=Path("pages"))
        source = '<p>x</p>{{ importCSS("./a.css") }}{{ importJS("./b.js") }}'
        result = Compiler(options).compile(source, "pages/x.vyu")

        assert result.html == (
            '  <link rel="stylesheet" href="/a.1234.css">\n'
            '  <script type="module" src="/b.js"></script>\n'
            "<p>x</p>"
        )
        assert result.css_imports == ["./a.css"]
        assert result.js_imports == ["./b.js"]

    def test_injected_before_head_close(self, compiler):
        """Tags go immediately before </head>"""
        source = "<html><head><title>t</title></head><body>{{ importCSS('./a.css') }}</body></html>"
        result = compiler.compile(source, "index.vyu")
        assert result.html == (
            "<html><head><title>t</title>"
            '  <link rel="stylesheet" href="/a.css">\n'
            "</head><body></body></html>"
        )

    def test_head_close_case_insensitive(self, compiler):
        """Upper-case </HEAD> is found"""
        source = "<HTML><HEAD></HEAD><BODY>{{ importJS('./m.js') }}</BODY></HTML>"
        result = compiler.compile(source, "index.vyu")
        assert '<script type="module" src="/m.js"></script>\n</HEAD>' in result.html

    def test_injected_after_body_open(self, compiler):
        """Without a head, tags follow the <body ...> tag"""
        source = "<body class='x'>{{ importCSS('./a.css') }}<p>a</p></body>"
        result = compiler.compile(source, "index.vyu")
        assert result.html == (
            "<body class='x'>\n"
            '  <link rel="stylesheet" href="/a.css">\n'
            "<p>a</p></body>"
        )

    def test_stylesheets_before_scripts(self, compiler):
        """All links precede all scripts regardless of source order"""
        source = "<head></head>{{ importJS('./1.js') }}{{ importCSS('./2.css') }}{{ importJS('./3.js') }}"
        html = compiler.compile(source, "index.vyu").html
        assert html.index("/2.css") < html.index("/1.js") < html.index("/3.js")

    def test_nested_page_relative_path(self, tmp_path):
        """../ paths resolve against the page's directory"""
        site = tmp_path / "site"
        options = CompileOptions(manifest={"css/site.css": "assets/site-1.css"}, site_dir=site)
        source = "<head></head>{{ importCSS('../css/site.css') }}"
        result = Compiler(options).compile(source, site / "blog" / "post.vyu")
        assert 'href="/assets/site-1.css"' in result.html

    def test_computed_argument_falls_through(self, compiler):
        """A non-literal call is evaluated: import recorded, no tag"""
        source = "<head></head><p>{{ importCSS('./a' + '.css') }}</p>"
        result = compiler.compile(source, "index.vyu")
        assert result.html == "<head></head><p></p>"
        assert result.css_imports == ["./a.css"]

    def test_imports_from_declarations(self, compiler):
        """Script calls in declarations are recorded first, without tags"""
        source = "{{ importJS('./app.ts') }}<head></head>{{ importJS('./page.ts') }}"
        result = compiler.compile(source, "index.vyu")
        assert result.js_imports == ["./app.ts", "./page.ts"]
        assert result.html.count("<script") == 1

    def test_computed_imports_in_source_order(self, compiler):
        """Imports recorded by evaluated expressions keep source order"""
        source = "<head></head>{{ importCSS('a' + '.css') }}{{ importCSS('b' + '.css') }}"
        result = compiler.compile(source, "index.vyu")
        assert result.css_imports == ["a.css", "b.css"]

    def test_mixed_imports_in_source_order(self, compiler):
        """Directive literals and script calls interleave by position"""
        source = (
            "<head></head>"
            "{{ importJS('./1.js') }}"
            "{{ [importJS('./2' + '.js'), importJS('./3' + '.js')].join('') }}"
            "{{ importJS('./4.js') }}"
        )
        result = compiler.compile(source, "index.vyu")
        assert result.js_imports == ["./1.js", "./2.js", "./3.js", "./4.js"]
        html = result.html
        assert html.index("/1.js") < html.index("/4.js")
        assert "/2.js" not in html


class TestDevMode:
    """Test dev-mode URLs and the live-reload script"""

    def test_dev_urls_and_live_reload(self):
        """Assets point at the bundler and the reload script is injected"""
        options = CompileOptions(dev_mode=True, dev_server_url="http://localhost:5173", site_dir=Path("site"))
        source = "<html><head></head><body>{{ importJS('./main.ts') }}</body></html>"
        html = Compiler(options).compile(source, "site/index.vyu").html

        assert '<script type="module" src="http://localhost:5173/main.ts"></script>' in html
        assert "new EventSource('/__live_reload')" in html
        assert html.index("EventSource") < html.index("</head>")
        assert html.index("main.ts") < html.index("EventSource")

    def test_live_reload_without_imports(self):
        """Dev mode injects the reload script even with no imports"""
        html = Compiler(CompileOptions(dev_mode=True)).compile("<head></head>", "index.vyu").html
        assert html == "<head>" + liveReloadScript_make() + "</head>"


class TestAssetsInject:
    """Test the injection helper directly"""

    def test_nothing_to_inject(self):
        """No tags and not dev mode: unchanged"""
        assert assets_inject("<p>x</p>", [], [], False) == "<p>x</p>"

    def test_prepend_without_head_or_body(self):
        """Fragment pages get the block at the start"""
        html = assets_inject("<p>x</p>", ['<link rel="stylesheet" href="/a.css">'], [], False)
        assert html == '  <link rel="stylesheet" href="/a.css">\n<p>x</p>'

    def test_custom_reload_path(self):
        """The reload script embeds the given path"""
        assert "new EventSource('/events')" in liveReloadScript_make("/events")

    def test_non_ascii_before_head_close(self):
        """Characters whose lowercase form is longer do not shift the insertion point"""
        link = '<link rel="stylesheet" href="/a.css">'
        html = assets_inject("<html><head><title>İİİİİ</title></head><body></body></html>", [link], [], False)
        assert html == (
            "<html><head><title>İİİİİ</title>"
            f"  {link}\n"
            "</head><body></body></html>"
        )

    def test_non_ascii_before_body_open(self):
        """Same for the <body> fallback"""
        link = '<link rel="stylesheet" href="/a.css">'
        html = assets_inject("<p>İİ</p><BODY id='x'><p>y</p>", [link], [], False)
        assert html == f"<p>İİ</p><BODY id='x'>\n  {link}\n<p>y</p>"


class TestCompileErrors:
    """Test failures and their reporting"""

    def test_unterminated_declarations(self, compiler):
        """Unterminated declarations fail with a parse error and no output"""
        with pytest.raises(ParseError) as exc_info:
            compiler.compile("{{ let x = 1;", "index.vyu")
        assert "unclosed declarations block" in str(exc_info.value)
        assert exc_info.value.file_path == "index.vyu"

    def test_declarations_failure(self, compiler):
        """A throwing declarations block fails the compile"""
        with pytest.raises(DeclarationError):
            compiler.compile("{{ throw new Error('nope') }}<p></p>", "index.vyu")

    def test_expression_failure_names_file(self, compiler):
        """Evaluation failures carry the template path"""
        with pytest.raises(EvaluationError) as exc_info:
            compiler.compile("<p>{{ nope() }}</p>", "pages/about.vyu")
        assert str(exc_info.value).startswith("pages/about.vyu: error evaluating expression 'nope()'")

    def test_missing_file(self, compiler, tmp_path):
        """Reading a missing template is a compile error"""
        with pytest.raises(CompileError) as exc_info:
            compiler.file_compile(tmp_path / "missing.vyu")
        assert "failed to read file" in str(exc_info.value)

    def test_file_compile(self, compiler, tmp_path):
        """Templates compile from disk"""
        page = tmp_path / "index.vyu"
        page.write_text("{{ const n = 2 }}<p>{{ n * 21 }}</p>", encoding="utf-8")
        assert compiler.file_compile(page).html == "<p>42</p>"


class TestConcurrentCompiles:
    """Test that compiles sharing a Compiler do not interfere"""

    def test_parallel_compiles(self, compiler):
        """Each compile sees only its own declarations"""
        def page_compile(n):
            source = f"{{{{ const n = {n} }}}}<p>{{{{ n }}}}</p>"
            return compiler.compile(source, f"page{n}.vyu").html

        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(page_compile, range(32)))

        assert results == [f"<p>{n}</p>" for n in range(32)]
