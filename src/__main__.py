#!/usr/bin/env python3
"""
vaayu - Template compiler and dev server for .vyu pages

Compiles HTML templates with embedded JavaScript into static HTML, with
asset URLs resolved against a Vite bundler, and serves them with live
reload during development.

The command is a ChRIS-style plugin: chris_plugin supplies the two
positional directories and wraps main().

Template anatomy:
    {{ const title = 'Home' }}                             ← declarations
    <html><head>{{ importCSS('./style.css') }}</head><body>
      <h1>{{ title }}</h1>                                  ← expression
      {{ importJS("./main.ts") }}                           ← import directive
    </body></html>

Project layout:
    project/
      vaayu.yaml        optional: vite_dir, port, vite_dev_url
      site/             .vyu pages, static files, .ts/.css sources
      vite/             bundler project (package.json, vite.config.ts)

Usage:
    vaayu site/ dist/                  # batch build into dist/
    vaayu site/ dist/ --serve          # dev server with live reload

Examples:
    # Build without touching npm (pages and static files only)
    vaayu site/ dist/ --noBundler

    # Dev server on another port with an explicit bundler directory
    vaayu site/ dist/ --serve --port 4000 --viteDir frontend/

    # Verbose output
    vaayu site/ dist/ -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import Builder, DevServer, __version__, LOG, state_connectToLogger
from .lib.errors import VaayuError
from .config import appsettings, ProjectConfig, ProjectConfigError, CONFIG_FILENAME
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
  __   ____ _  __ _ _   _ _   _
  \ \ / / _` |/ _` | | | | | | |
   \ V / (_| | (_| | |_| | |_| |
    \_/ \__,_|\__,_|\__, |\__,_|
                    |___/
  Templates with a breath of JavaScript
"""

# Define CLI arguments
parser = ArgumentParser(
    description="vaayu - compile .vyu templates to static HTML, or serve them with live reload",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--serve",
    action="store_true",
    default=False,
    help="Run the dev server instead of a batch build",
)

parser.add_argument(
    "--port",
    default=None,
    type=int,
    help="Dev server port (overrides vaayu.yaml and VAAYU_DEV_PORT)",
)

parser.add_argument(
    "--viteDir",
    default=None,
    type=str,
    help="Bundler project directory. Defaults to vaayu.yaml's vite_dir, then a vite/ next to the site",
)

parser.add_argument(
    "--noBundler",
    action="store_true",
    default=False,
    help="Never invoke npm; compile pages and copy static files only",
)

parser.add_argument(
    "--configFile",
    default=None,
    type=str,
    help=f"Project config file. Defaults to {CONFIG_FILENAME} next to the site directory",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def viteDir_resolve(state: ProgramState, config: ProjectConfig, config_base: Path) -> ProgramState:
    """
    Decide which bundler directory to use, if any.

    Precedence: --viteDir, then vite_dir from the config file, then a vite/
    directory next to the site. An explicitly named directory must exist; a
    missing default only disables the bundler.

    Args:
        state: Program state being populated by env_check
        config: Loaded project config
        config_base: Directory the config file lives in

    Returns:
        The same state with viteSourceDir and noBundler settled
    """
    if state.noBundler:
        state.viteSourceDir = None
        return state

    explicit = True
    if state.viteDir:
        vite_dir = Path(state.viteDir)
    elif config.vite_dir:
        vite_dir = config.path_resolve(config.vite_dir, config_base)
    else:
        explicit = False
        vite_dir = state.siteDir.parent / "vite"

    if not vite_dir.is_dir():
        if explicit:
            print(f"Error: Vite directory not found: {vite_dir}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
        LOG(f"Warning: no Vite directory at {vite_dir}, running without the bundler",
            level=1, severity="WARNING")
        state.noBundler = True
        state.viteSourceDir = None
        return state

    state.viteSourceDir = vite_dir
    return state


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve directories, ports and URLs.

    Loads the optional project config file and merges it under the command
    line options.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - siteDir: Site directory
            - distDir: Output directory (created in build mode)
            - viteSourceDir: Bundler project directory, or None
            - devPort: Effective dev server port
            - viteDevURL: Effective bundler dev server URL
            - envOK: True if environment is valid

    Exits:
        1 if the site directory, an explicit bundler directory or the
        config file is invalid
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    state.siteDir = Path(state.inputdir)
    if not state.siteDir.is_dir():
        print(f"Error: Site directory not found: {state.siteDir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)
    LOG(f"Site directory: {state.siteDir}", level=2)

    if state.configFile:
        config_path = Path(state.configFile)
        if not config_path.is_file():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
    else:
        config_path = state.siteDir.resolve().parent / CONFIG_FILENAME

    try:
        config = ProjectConfig.load(config_path)
    except ProjectConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)
    if config_path.exists():
        LOG(f"Project config: {config_path}", level=2)

    state = viteDir_resolve(state, config, config_path.parent)
    LOG(f"Vite directory: {state.viteSourceDir or '(none)'}", level=2)

    if state.port is not None:
        state.devPort = state.port
    elif config.port is not None:
        state.devPort = config.port
    else:
        state.devPort = appsettings.dev_port
    state.viteDevURL = config.vite_dev_url or appsettings.vite_dev_url

    state.distDir = Path(state.outputdir)
    if not state.serve:
        state.distDir.mkdir(parents=True, exist_ok=True)
        LOG(f"Output directory: {state.distDir}", level=2)

    state.envOK = True
    return state


def site_build(inputstate: ProgramState) -> ProgramState:
    """
    Build the site into the output directory (batch mode only).

    Args:
        inputstate: Program state with resolved directories

    Returns:
        ProgramState with added field:
            - buildReport: BuildReport of pages compiled and files copied

    Exits:
        1 if the bundler, a page compile or a file copy fails
    """

    state = inputstate.copy()
    if state.serve:
        return state

    builder = Builder(
        site_dir=state.siteDir,
        dist_dir=state.distDir,
        vite_dir=state.viteSourceDir,
        skip_bundler=state.noBundler,
    )
    try:
        state.buildReport = builder.build()
    except VaayuError as e:
        print(f"Build error: {e}", file=sys.stderr)
        sys.exit(1)
    return state


def site_serve(inputstate: ProgramState) -> ProgramState:
    """
    Run the dev server until interrupted (serve mode only).

    Args:
        inputstate: Program state with resolved directories and port

    Returns:
        ProgramState with added field:
            - serveOK: True once the server has shut down cleanly

    Exits:
        1 if the server cannot start
    """

    state = inputstate.copy()
    if not state.serve:
        return state

    server = DevServer(
        site_dir=state.siteDir,
        vite_dir=state.viteSourceDir,
        port=state.devPort,
        vite_dev_url=state.viteDevURL,
    )
    try:
        server.serve_forever()
    except (VaayuError, OSError) as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)

    state.serveOK = True
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display a summary of the run.

    Args:
        inputstate: Program state after build or serve

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state: ProgramState = inputstate.copy()

    if state.serve:
        LOG("Dev server stopped", level=2)
        return state

    report = state.buildReport
    if report is None:
        print("Error: Build failed", file=sys.stderr)
        sys.exit(1)

    LOG("\n✓ Build successful!", level=1)
    LOG(f"  Output: {report.dist_dir}", level=1)
    LOG(f"  Pages:  {len(report.pages)}", level=1)
    LOG(f"  Static: {len(report.assets)}", level=1)
    if report.manifest_entries:
        LOG(f"  Bundled asset mappings: {report.manifest_entries}", level=2)
    return state


@chris_plugin(
    parser=parser,
    title="vaayu - template compiler and dev server",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - build a site, or serve it with live reload.

    Orchestrates the pipeline:
        1. env_check: Validate paths, load vaayu.yaml, settle ports/URLs
        2. site_build: Bundle, compile and copy into outputdir (build mode)
        3. site_serve: Run the dev server until SIGINT/SIGTERM (--serve)
        4. results_report: Summarize

    Args:
        options: CLI arguments from argparse
            - serve: bool - Run the dev server
            - port: Optional[int] - Dev server port
            - viteDir: Optional[str] - Bundler project directory
            - noBundler: bool - Skip npm entirely
            - configFile: Optional[str] - Project config file
            - verbosity: int - Logging verbosity level (1-3)
        inputdir: Site directory containing .vyu templates
        outputdir: Build output directory

    Note:
        @chris_plugin parses the command line and calls this with the
        parsed options and the two positional directories.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # every stage logs at this run's verbosity
    state_connectToLogger(state)

    pipeline(state, env_check, site_build, site_serve, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
