"""
vaayu - Template compiler and dev server for .vyu pages

Core library: parser, script runtime, compiler, build and dev server.
"""

__version__ = "1.0.0"

from .parser import Parser
from .compiler import Compiler
from .directives import DirectiveRegistry
from .build import Builder, BuildReport
from .devserver import DevServer
from .errors import VaayuError, CompileError, ParseError
from .log import LOG, state_connectToLogger

__all__ = [
    "Parser",
    "Compiler",
    "DirectiveRegistry",
    "Builder",
    "BuildReport",
    "DevServer",
    "VaayuError",
    "CompileError",
    "ParseError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
