"""
Command pipeline tests

Tests the env_check -> site_build -> results_report stages directly,
without going through the chris_plugin argument parser.
"""

from argparse import Namespace

import pytest

from vaayu.__main__ import env_check, parser, pipeline, results_report, site_build
from vaayu.models import ProgramState


@pytest.fixture
def project(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.vyu").write_text("<html><head></head><body>{{ 'hi' }}</body></html>", encoding="utf-8")
    (site / "logo.svg").write_text("<svg/>", encoding="utf-8")
    return tmp_path


def state_make(project, **overrides):
    options = Namespace(**{
        "serve": False, "port": None, "viteDir": None, "noBundler": False,
        "configFile": None, "verbosity": 0, **overrides,
    })
    return ProgramState.state_createFromNamespace(
        options=options, inputdir=project / "site", outputdir=project / "dist"
    )


class TestArguments:
    """Test CLI argument defaults"""

    def test_defaults(self):
        """Build mode with bundler and settings-driven port"""
        assert parser.get_default("serve") is False
        assert parser.get_default("port") is None
        assert parser.get_default("noBundler") is False
        assert parser.get_default("verbosity") == 1

    def test_state_from_namespace(self, project):
        """Options land on ProgramState fields"""
        state = state_make(project, serve=True, port=4000, noBundler=True)
        assert state.serve is True
        assert state.port == 4000
        assert state.noBundler is True


class TestEnvCheck:
    """Test environment resolution"""

    def test_missing_site(self, tmp_path):
        """A missing site directory exits"""
        state = ProgramState(inputdir=tmp_path / "nope", outputdir=tmp_path / "dist")
        with pytest.raises(SystemExit):
            env_check(state)

    def test_no_vite_dir_disables_bundler(self, project):
        """Without a vite/ next to the site the bundler is skipped"""
        state = env_check(state_make(project))
        assert state.envOK
        assert state.noBundler is True
        assert state.viteSourceDir is None
        assert state.distDir.is_dir()

    def test_default_vite_dir(self, project):
        """A vite/ directory next to the site is picked up"""
        (project / "vite").mkdir()
        state = env_check(state_make(project))
        assert state.viteSourceDir == project / "vite"
        assert state.noBundler is False

    def test_explicit_vite_dir_missing(self, project):
        """A named bundler directory must exist"""
        with pytest.raises(SystemExit):
            env_check(state_make(project, viteDir=str(project / "frontend")))

    def test_config_file(self, project):
        """vaayu.yaml next to the site supplies port and bundler settings"""
        (project / "frontend").mkdir()
        (project / "vaayu.yaml").write_text(
            "vite_dir: frontend\nport: 4321\nvite_dev_url: http://localhost:5999\n", encoding="utf-8"
        )
        state = env_check(state_make(project))
        assert state.viteSourceDir.resolve() == (project / "frontend").resolve()
        assert state.devPort == 4321
        assert state.viteDevURL == "http://localhost:5999"

    def test_cli_port_wins(self, project):
        """--port overrides the config file"""
        (project / "vaayu.yaml").write_text("port: 4321\n", encoding="utf-8")
        state = env_check(state_make(project, port=5000, noBundler=True))
        assert state.devPort == 5000

    def test_invalid_config(self, project):
        """A malformed config file exits"""
        (project / "vaayu.yaml").write_text("unknown_key: 1\n", encoding="utf-8")
        with pytest.raises(SystemExit):
            env_check(state_make(project))


class TestBuildPipeline:
    """Test a full build through the pipeline"""

    def test_build(self, project):
        """Pages are compiled and static files copied"""
        state = pipeline(state_make(project, noBundler=True), env_check, site_build, results_report)
        assert state.buildReport is not None
        assert (project / "dist" / "index.html").read_text(encoding="utf-8") == (
            "<html><head></head><body>hi</body></html>"
        )
        assert (project / "dist" / "logo.svg").exists()

    def test_build_failure_exits(self, project):
        """A broken page exits non-zero"""
        (project / "site" / "bad.vyu").write_text("<p>{{ nope }}</p>", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            pipeline(state_make(project, noBundler=True), env_check, site_build, results_report)
        assert exc_info.value.code == 1
