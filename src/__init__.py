"""
vaayu - Template compiler and dev server for .vyu pages

HTML pages with embedded {{ JavaScript }}, compiled to static HTML with
bundler-aware asset URLs, and served with live reload during development.
"""

__version__ = "1.0.0"

from .lib import Parser, Compiler, DirectiveRegistry, Builder, DevServer, LOG, state_connectToLogger

__all__ = [
    "Parser",
    "Compiler",
    "DirectiveRegistry",
    "Builder",
    "DevServer",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
