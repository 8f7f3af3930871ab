"""
Command pipeline state

ProgramState carries the run from one stage of ``vaayu`` to the next; each
stage copies it, fills in what it resolved, and hands the copy on:

    env_check ──▶ site_build ──▶ site_serve ──▶ results_report
      dirs,        buildReport     serveOK        (reads only)
      ports, URLs
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar

PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Everything the command knows about the current run.

    Attributes from the command line:
        inputdir: Site directory (.vyu pages, static files, asset sources)
        outputdir: Build output directory
        verbosity: 1 normal, 2 verbose, 3 debug
        serve: Run the dev server instead of building
        port: Dev server port; None defers to vaayu.yaml, then settings
        viteDir: Bundler project directory; None means auto-detect
        noBundler: Never invoke npm
        configFile: Explicit vaayu.yaml path

    Attributes resolved by env_check:
        envOK: Environment checks passed
        siteDir, distDir: Site and output directories as Paths
        viteSourceDir: Bundler project directory, None when not used
        devPort: Port the dev server will bind
        viteDevURL: Bundler dev server URL used for dev-mode asset URLs

    Attributes set by later stages:
        buildReport: BuildReport from site_build
        serveOK: site_serve returned after a clean shutdown
    """

    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    serve: bool = field(default=False)
    port: Optional[int] = field(default=None)
    viteDir: Optional[str] = field(default=None)
    noBundler: bool = field(default=False)
    configFile: Optional[str] = field(default=None)

    envOK: bool = field(default=False)
    siteDir: Path = field(default=Path("."))
    distDir: Path = field(default=Path("."))
    viteSourceDir: Optional[Path] = field(default=None)
    devPort: int = field(default=0)
    viteDevURL: str = field(default="")
    buildReport: Optional[Any] = field(default=None)
    serveOK: bool = field(default=False)

    @classmethod
    def state_createFromNamespace(
        cls: Type[PS], options: Namespace, inputdir: Path, outputdir: Path
    ) -> PS:
        """
        Build the initial state from parsed options and the two positionals.

        Options that are not ProgramState fields (chris_plugin adds a few of
        its own) are ignored.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        values = {k: v for k, v in vars(options).items() if k in known}
        values.update(inputdir=inputdir, outputdir=outputdir)
        return cls(**values)

    def copy(self: PS) -> PS:
        """Shallow copy, so a stage never mutates its input"""
        return dataclasses.replace(self)


def pipeline(initial_state: PS, *stages: Callable[[PS], PS]) -> PS:
    """
    Thread a state through stages, left to right.

    Example:
        pipeline(state, env_check, site_build, results_report)
        # == results_report(site_build(env_check(state)))
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
