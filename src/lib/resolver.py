"""
Asset URL resolution

Turns the path written in an import directive into the URL the browser
should load, which depends on the compile mode:

    dev mode     ./main.ts  →  http://localhost:5173/main.ts
    build mode   ./main.ts  →  /assets/main-4f2a.js   (manifest hit)
                 ./logo.css →  /logo.css              (manifest miss)
"""

import os
from pathlib import Path
from typing import Union

from ..models.compile import CompileOptions
from .log import LOG

RELATIVE_PREFIXES = ("./", "../")


def sitePath_relativize(path: str, file_path: Union[str, Path], site_dir: Path) -> str:
    """
    Re-express a file-relative asset path relative to the site root

    Args:
        path: Asset path starting with ./ or ../
        file_path: Template the path appears in
        site_dir: Site root directory

    Returns:
        POSIX path relative to ``site_dir``, or ``path`` unchanged when no
        relative path can be computed (e.g. different drives)

    Example:
        sitePath_relativize("../css/a.css", "site/blog/post.vyu", Path("site"))
        → "css/a.css"
    """
    target = os.path.normpath(os.path.join(os.path.dirname(str(file_path)), path))
    try:
        rel = os.path.relpath(target, str(site_dir))
    except ValueError:
        return path
    return Path(rel).as_posix()


def assetURL_resolve(path: str, file_path: Union[str, Path], options: CompileOptions) -> str:
    """
    Compute the output URL for an imported asset

    1. Paths starting with ./ or ../ are resolved against the template's
       directory and re-expressed relative to the site root.
    2. A leading ./ is stripped.
    3. Dev mode: bundler dev server URL + "/" + path.
       Build mode: "/" + manifest[path] if mapped, else "/" + path.

    Args:
        path: Asset path as written in the directive
        file_path: Template being compiled
        options: Compile options (mode, dev server URL, manifest, site root)

    Returns:
        URL for the asset tag
    """
    resolved = path
    if resolved.startswith(RELATIVE_PREFIXES) and options.site_dir is not None:
        resolved = sitePath_relativize(resolved, file_path, options.site_dir)

    if resolved.startswith("./"):
        resolved = resolved[2:]

    if options.dev_mode:
        url = f"{options.dev_server_url.rstrip('/')}/{resolved}"
    elif resolved in options.manifest:
        url = "/" + options.manifest[resolved]
    else:
        url = "/" + resolved

    LOG(f"Resolved asset {path} → {url}", level=3)
    return url
