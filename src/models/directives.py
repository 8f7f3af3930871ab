"""
Import directive specification models

Defines the import directives a template may use to pull bundler-managed
assets into the page head, and the tag each one emits.
"""

from enum import Enum
from dataclasses import dataclass


class DirectiveCategory(Enum):
    """
    Kinds of asset an import directive can bring in

    The category also fixes the emission order of injected tags:
    stylesheets are always written before scripts.
    """
    STYLESHEET = "stylesheet"   # importCSS("...")
    SCRIPT = "script"           # importJS("...")


@dataclass
class DirectiveSpec:
    """
    Specification for an import directive

    Attributes:
        name: Function name as written in the template (e.g. "importCSS")
        category: Asset category
        tag_template: HTML tag emitted for the resolved URL; ``{url}`` is
                      replaced with the resolved asset URL
    """
    name: str
    category: DirectiveCategory
    tag_template: str

    def tag_render(self, url: str) -> str:
        """Render this directive's tag for a resolved URL"""
        return self.tag_template.format(url=url)
