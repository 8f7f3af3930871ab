"""
Import directive registry for vaayu

An expression whose raw text is exactly one call to a registered import
function with one quoted literal argument is an import directive:

    {{ importCSS("./style.css") }}     → <link rel="stylesheet" href="...">
    {{ importJS('./main.ts') }}        → <script type="module" src="..."></script>

Recognition is purely syntactic. Anything else (extra arguments, computed
paths, surrounding code) is an ordinary expression: the script engine runs
it, the host function records the import, and the call's result (empty
text) replaces the marker, but no tag is injected.
"""

import re
from typing import Dict, Optional

from ..models.directives import DirectiveSpec, DirectiveCategory
from ..models.template import DirectiveMatch

# name("literal") or name('literal'); whitespace allowed inside the parens
DIRECTIVE_PATTERN = re.compile(
    r"""^(?P<name>[A-Za-z_$][\w$]*)\(\s*(?:"(?P<dq>[^"\\]*)"|'(?P<sq>[^'\\]*)')\s*\)$"""
)


class DirectiveRegistry:
    """
    Registry of import directive specifications

    Maps directive names to DirectiveSpec objects that describe the tag
    each directive injects into the page head.
    """

    def __init__(self) -> None:
        """Initialize the registry with the built-in import directives"""
        self.specs: Dict[str, DirectiveSpec] = {}
        self.importDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a directive specification"""
        self.specs[spec.name] = spec

    def get(self, name: str) -> Optional[DirectiveSpec]:
        """Get directive specification by name"""
        return self.specs.get(name)

    def match(self, raw: str) -> Optional[DirectiveMatch]:
        """
        Test whether an expression is exactly an import directive

        Args:
            raw: Trimmed expression text

        Returns:
            DirectiveMatch with the directive name and literal path, or None
            if the expression is anything other than a single registered
            call with a single quoted literal argument

        Example:
            >>> DirectiveRegistry().match('importCSS( "./a.css" )')
            DirectiveMatch(name='importCSS', path='./a.css')
            >>> DirectiveRegistry().match('importCSS(base + "a.css")') is None
            True
        """
        found = DIRECTIVE_PATTERN.match(raw.strip())
        if not found or found.group('name') not in self.specs:
            return None
        path = found.group('dq')
        if path is None:
            path = found.group('sq')
        return DirectiveMatch(name=found.group('name'), path=path)

    def importDirectives_register(self) -> None:
        """Register the stylesheet and module-script import directives"""
        self.register(DirectiveSpec(
            name='importCSS',
            category=DirectiveCategory.STYLESHEET,
            tag_template='<link rel="stylesheet" href="{url}">',
        ))
        self.register(DirectiveSpec(
            name='importJS',
            category=DirectiveCategory.SCRIPT,
            tag_template='<script type="module" src="{url}"></script>',
        ))
