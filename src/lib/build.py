"""
Batch site build

Produces a deployable directory from a site:

    site/index.vyu        →  dist/index.html
    site/blog/post.vyu    →  dist/blog/post.html
    site/img/logo.png     →  dist/img/logo.png      (copied verbatim)
    site/main.ts, *.css   →  left to the bundler

Any compile, write or copy failure aborts the build with a BuildError
naming the file.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..models.compile import CompileOptions
from .bundler import bundle_build, dependencies_ensure
from .compiler import Compiler
from .errors import BuildError, CompileError
from .log import LOG
from .manifest import manifest_load


@dataclass
class BuildReport:
    """
    Summary of a finished build

    Attributes:
        dist_dir: Output directory
        pages: (source, output) site-relative pairs for compiled templates
        assets: Site-relative paths of files copied verbatim
        manifest_entries: Number of manifest mappings used for asset URLs
    """
    dist_dir: Path
    pages: List[Tuple[str, str]] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)
    manifest_entries: int = 0


class Builder:
    """
    Builds a site into an output directory

    Steps: install bundler deps → bundler build → read manifest →
    compile templates → copy static files.
    """

    def __init__(
        self,
        site_dir: Union[str, Path],
        dist_dir: Union[str, Path],
        vite_dir: Optional[Union[str, Path]] = None,
        skip_bundler: bool = False,
    ) -> None:
        """
        Args:
            site_dir: Directory containing .vyu templates and static files
            dist_dir: Output directory
            vite_dir: Bundler project directory (required unless skip_bundler)
            skip_bundler: Compile and copy only; never invoke npm
        """
        self.site_dir = Path(site_dir)
        self.dist_dir = Path(dist_dir)
        self.vite_dir = Path(vite_dir) if vite_dir is not None else None
        self.skip_bundler = skip_bundler or self.vite_dir is None

    def build(self) -> BuildReport:
        """
        Run the full build

        Returns:
            BuildReport

        Raises:
            BundlerError: If the bundler install or build fails
            BuildError: If a page fails to compile or a file cannot be written
        """
        from ..config import appsettings

        LOG(f"Building site {self.site_dir} → {self.dist_dir}", level=1)
        report = BuildReport(dist_dir=self.dist_dir)

        if not self.skip_bundler:
            dependencies_ensure(self.vite_dir)
            LOG("Building assets with Vite...", level=1)
            bundle_build(self.vite_dir, self.dist_dir)
        else:
            self.dist_dir.mkdir(parents=True, exist_ok=True)

        manifest = manifest_load(self.dist_dir)
        report.manifest_entries = len(manifest)

        LOG(f"Compiling {appsettings.template_extension} files...", level=1)
        report.pages = self.pages_compile(manifest)

        LOG("Copying static assets...", level=1)
        report.assets = self.staticAssets_copy()

        LOG(f"Build complete! Output in: {self.dist_dir}", level=1)
        return report

    def files_walk(self) -> Iterator[Tuple[Path, str]]:
        """
        Yield (absolute path, site-relative POSIX path) for every site file

        The output directory is skipped when it lives inside the site.
        """
        dist = self.dist_dir.resolve()
        for dirpath, dirnames, filenames in os.walk(self.site_dir):
            dirnames[:] = sorted(
                d for d in dirnames if (Path(dirpath) / d).resolve() != dist
            )
            for name in sorted(filenames):
                path = Path(dirpath) / name
                yield path, path.relative_to(self.site_dir).as_posix()

    def pages_compile(self, manifest: Dict[str, str]) -> List[Tuple[str, str]]:
        """
        Compile every template to an .html file under the output directory

        Args:
            manifest: Source → emitted file mapping for asset URLs

        Returns:
            (source, output) site-relative pairs

        Raises:
            BuildError: On the first compile or write failure
        """
        from ..config import appsettings

        compiler = Compiler(CompileOptions(
            dev_mode=False,
            manifest=manifest,
            site_dir=self.site_dir,
        ))
        pages: List[Tuple[str, str]] = []

        for path, rel in self.files_walk():
            if path.suffix != appsettings.template_extension:
                continue
            out_rel = rel[: -len(appsettings.template_extension)] + ".html"
            out_path = self.dist_dir / out_rel

            try:
                result = compiler.file_compile(path)
            except CompileError as e:
                raise BuildError(f"failed to compile: {e}", rel)

            try:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_text(result.html, encoding='utf-8')
            except OSError as e:
                raise BuildError(f"failed to write {out_path}: {e}", rel)

            LOG(f"  ✓ {rel} → {out_rel}", level=1)
            pages.append((rel, out_rel))

        return pages

    def staticAssets_copy(self) -> List[str]:
        """
        Copy every file the compiler and bundler do not handle

        Returns:
            Site-relative paths of copied files

        Raises:
            BuildError: On the first copy failure
        """
        from ..config import appsettings

        skipped = {ext.lower() for ext in appsettings.bundled_extensions}
        copied: List[str] = []

        for path, rel in self.files_walk():
            if path.suffix.lower() in skipped:
                continue
            dest = self.dist_dir / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, dest)
            except OSError as e:
                raise BuildError(f"failed to copy: {e}", rel)
            LOG(f"  ✓ {rel} (static)", level=1)
            copied.append(rel)

        return copied
