"""
Models package for vaayu

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, pipeline
from .directives import DirectiveSpec, DirectiveCategory
from .template import Expression, ParsedTemplate, DirectiveMatch
from .compile import CompileOptions, CompileResult
from .manifest import Manifest, ManifestEntry

__all__ = [
    "ProgramState",
    "pipeline",
    "DirectiveSpec",
    "DirectiveCategory",
    "Expression",
    "ParsedTemplate",
    "DirectiveMatch",
    "CompileOptions",
    "CompileResult",
    "Manifest",
    "ManifestEntry",
]
