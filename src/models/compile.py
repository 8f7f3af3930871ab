"""
Compile option and result models
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class CompileOptions:
    """
    Options controlling a single template compile

    Attributes:
        dev_mode: Resolve assets against the bundler dev server and inject
                  the live-reload script
        dev_server_url: Base URL of the bundler dev server (dev mode only)
        manifest: Source path -> built file mapping (build mode only)
        site_dir: Site root; relative asset paths are re-expressed against it
    """
    dev_mode: bool = False
    dev_server_url: str = ""
    manifest: Dict[str, str] = field(default_factory=dict)
    site_dir: Optional[Path] = None


@dataclass
class CompileResult:
    """
    Output of a successful compile

    Attributes:
        html: Final markup with markers substituted and asset tags injected
        css_imports: Stylesheet paths imported by the page
        js_imports: Script paths imported by the page
    """
    html: str
    css_imports: List[str] = field(default_factory=list)
    js_imports: List[str] = field(default_factory=list)
