"""
Bundler manifest reader

Reads ``<dist>/.vite/manifest.json`` and flattens it into the
source path → emitted file mapping the compiler consults in build mode.
"""

from pathlib import Path
from typing import Dict, Union

from pydantic import ValidationError

from ..models.manifest import Manifest
from .errors import ManifestError
from .log import LOG

MANIFEST_RELPATH = Path(".vite") / "manifest.json"


def manifest_read(dist_dir: Union[str, Path]) -> Dict[str, str]:
    """
    Read and flatten the bundler manifest

    Args:
        dist_dir: Build output directory the bundler wrote into

    Returns:
        Mapping from source asset path to emitted file; companion
        stylesheets are exposed under ``<source>.css``

    Raises:
        ManifestError: If the manifest is missing, unreadable or malformed
    """
    manifest_path = Path(dist_dir) / MANIFEST_RELPATH
    try:
        data = manifest_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ManifestError(f"failed to read manifest: {e}")

    try:
        manifest = Manifest.model_validate_json(data)
    except ValidationError as e:
        raise ManifestError(f"failed to parse manifest: {e}")

    return manifest.mapping_flatten()


def manifest_load(dist_dir: Union[str, Path]) -> Dict[str, str]:
    """
    Read the manifest, degrading to an empty mapping on failure

    Pages still render without a manifest; their asset URLs simply point
    at the unprocessed source paths.
    """
    try:
        mapping = manifest_read(dist_dir)
    except ManifestError as e:
        LOG(f"Warning: Could not read bundler manifest: {e}", level=1, severity="WARNING")
        return {}
    LOG(f"Loaded manifest with {len(mapping)} entries", level=2)
    return mapping
