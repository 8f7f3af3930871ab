"""
Compiler for .vyu templates to HTML

Composes the parser, the script runtime and the asset resolver:

    source ──Parser──▶ declarations / body / expressions
           ──ScriptRuntime──▶ declarations run once, expressions evaluated
           ──assetURL_resolve──▶ import directives become head tags
           ──assets_inject──▶ final HTML

Markers are replaced from the last one to the first, so the offsets of the
markers still to be processed never move.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..models.compile import CompileOptions, CompileResult
from ..models.directives import DirectiveCategory
from .directives import DirectiveRegistry
from .errors import CompileError
from .log import LOG
from .parser import Parser
from .resolver import assetURL_resolve
from .runtime import ScriptRuntime

HEAD_CLOSE = re.compile(r"</head>", re.IGNORECASE)
BODY_OPEN = re.compile(r"<body", re.IGNORECASE)


def liveReloadScript_make(path: Optional[str] = None) -> str:
    """
    Build the inline script that reloads the page on a live-reload signal

    Args:
        path: Live-reload stream path (defaults to the configured path)

    Returns:
        Script block, indented for injection into the page head
    """
    if path is None:
        from ..config import appsettings
        path = appsettings.live_reload_path
    return (
        "  <script>\n"
        f"    const es = new EventSource('{path}');\n"
        "    es.onmessage = (e) => { if (e.data === 'reload') location.reload(); };\n"
        "  </script>\n"
    )


def assets_inject(html: str, css_links: List[str], js_scripts: List[str], dev_mode: bool) -> str:
    """
    Inject asset tags into a page

    Emits all stylesheet links, then all module scripts, then (dev mode
    only) the live-reload script, each on its own line. The block goes
    immediately before the first ``</head>`` (case-insensitive); failing
    that, right after the first ``<body ...>`` tag; failing that, at the
    start of the document.

    Args:
        html: Page markup after substitution
        css_links: Rendered <link> tags in source order
        js_scripts: Rendered <script> tags in source order
        dev_mode: Whether to add the live-reload script

    Returns:
        Markup with the tags injected, or ``html`` unchanged if there is
        nothing to inject
    """
    if not css_links and not js_scripts and not dev_mode:
        return html

    parts = [f"  {tag}\n" for tag in css_links]
    parts.extend(f"  {tag}\n" for tag in js_scripts)
    if dev_mode:
        parts.append(liveReloadScript_make())
    block = "".join(parts)

    head_close = HEAD_CLOSE.search(html)
    if head_close:
        return html[:head_close.start()] + block + html[head_close.start():]

    body_open = BODY_OPEN.search(html)
    if body_open:
        tag_end = html.find(">", body_open.start())
        if tag_end != -1:
            insert_at = tag_end + 1
            return html[:insert_at] + "\n" + block + html[insert_at:]

    return block + html


class Compiler:
    """
    Compiles .vyu templates to HTML

    A Compiler holds only immutable configuration; every call to compile()
    creates and discards its own ScriptRuntime, so one Compiler can be
    shared by concurrent requests.

    Responsibilities:
    - Parse the template
    - Run declarations, evaluate expressions
    - Turn import directives into head tags
    - Inject asset tags and the dev live-reload script
    """

    def __init__(
        self,
        options: CompileOptions,
        registry: Optional[DirectiveRegistry] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            options: Compile options (mode, dev server URL, manifest, site root)
            registry: Optional directive registry (defaults to built-ins)
        """
        self.options = options
        self.directives = registry or DirectiveRegistry()

    def file_compile(self, file_path: Union[str, Path]) -> CompileResult:
        """
        Read a template from disk and compile it

        Args:
            file_path: Path to the .vyu file

        Returns:
            CompileResult

        Raises:
            CompileError: If the file cannot be read or fails to compile
        """
        try:
            source = Path(file_path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise CompileError(f"failed to read file: {e}", file_path)
        return self.compile(source, file_path)

    def compile(self, source: str, file_path: Union[str, Path]) -> CompileResult:
        """
        Compile template source to HTML

        Args:
            source: Template source text
            file_path: Path of the template (for relative asset resolution
                       and error messages)

        Returns:
            CompileResult with the final HTML and the page's imports

        Raises:
            ParseError: Unterminated declarations block or expression
            DeclarationError: Declarations script failed
            EvaluationError: An expression failed
        """
        LOG(f"Compiling {file_path}", level=2)
        try:
            return self.template_compile(source, file_path)
        except CompileError as e:
            if e.file_path is None:
                e.file_path = str(file_path)
            raise

    def template_compile(self, source: str, file_path: Union[str, Path]) -> CompileResult:
        """
        Run parse, declarations, substitution and injection

        Expressions are processed from the highest start offset down. Tags
        and imports are keyed by the start offset of the expression that
        produced them, then emitted by ascending offset so they appear in
        source order. Imports made while the declarations run come first.
        """
        from ..config import appsettings

        parsed = Parser(source).parse()

        with ScriptRuntime(
            time_limit=appsettings.script_time_limit,
            memory_limit=appsettings.script_memory_limit,
        ) as runtime:
            runtime.declarations_run(parsed.declarations)
            css_imports = list(runtime.css_imports)
            js_imports = list(runtime.js_imports)

            result = parsed.body
            # start offset -> (tags, imports) per category
            found: Dict[int, Dict[DirectiveCategory, Tuple[List[str], List[str]]]] = {}

            for expr in sorted(parsed.expressions, key=lambda e: e.start, reverse=True):
                by_category = {
                    DirectiveCategory.STYLESHEET: ([], []),
                    DirectiveCategory.SCRIPT: ([], []),
                }
                match = self.directives.match(expr.raw)
                if match is not None:
                    spec = self.directives.get(match.name)
                    url = assetURL_resolve(match.path, file_path, self.options)
                    tags, imports = by_category[spec.category]
                    tags.append(spec.tag_render(url))
                    imports.append(match.path)
                    replacement = ""
                else:
                    css_before = len(runtime.css_imports)
                    js_before = len(runtime.js_imports)
                    replacement = runtime.evaluate(expr.raw)
                    by_category[DirectiveCategory.STYLESHEET][1].extend(runtime.css_imports[css_before:])
                    by_category[DirectiveCategory.SCRIPT][1].extend(runtime.js_imports[js_before:])
                found[expr.start] = by_category

                result = result[:expr.start] + replacement + result[expr.end:]

        css_links: List[str] = []
        js_scripts: List[str] = []
        for start in sorted(found):
            css_tags, css_paths = found[start][DirectiveCategory.STYLESHEET]
            js_tags, js_paths = found[start][DirectiveCategory.SCRIPT]
            css_links.extend(css_tags)
            js_scripts.extend(js_tags)
            css_imports.extend(css_paths)
            js_imports.extend(js_paths)

        html = assets_inject(result, css_links, js_scripts, self.options.dev_mode)

        LOG(
            f"Compiled {file_path}: {len(parsed.expressions)} expressions, "
            f"{len(css_imports)} css, {len(js_imports)} js",
            level=3,
        )

        return CompileResult(html=html, css_imports=css_imports, js_imports=js_imports)
