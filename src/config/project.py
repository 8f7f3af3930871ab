"""
Project configuration file

An optional ``vaayu.yaml`` at the project root, next to the site directory,
pins the bundler directory and ports a project uses, so they need not be
repeated on the command line:

    vite_dir: vite
    port: 3000
    vite_dev_url: http://localhost:5173

Precedence: command line > vaayu.yaml > AppSettings defaults.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from ..lib.errors import VaayuError

CONFIG_FILENAME = "vaayu.yaml"


class ProjectConfigError(VaayuError):
    """Raised when vaayu.yaml exists but cannot be loaded"""
    pass


class ProjectConfig(BaseModel):
    """Values read from vaayu.yaml; every field is optional"""

    model_config = ConfigDict(extra="forbid")

    vite_dir: Optional[str] = None
    port: Optional[int] = None
    vite_dev_url: Optional[str] = None

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """
        Load and validate a project config file.

        A missing file yields an empty config.

        Args:
            path: Path to vaayu.yaml

        Returns:
            ProjectConfig instance

        Raises:
            ProjectConfigError: If the file is unreadable, not valid YAML,
                                or contains unknown or mistyped keys
        """
        if not path.exists():
            return cls()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ProjectConfigError(f"Failed to parse {path.name}: {e}")
        except OSError as e:
            raise ProjectConfigError(f"Failed to load {path.name}: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ProjectConfigError(f"{path.name} must contain a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ProjectConfigError(f"Invalid {path.name}: {e}")

    def path_resolve(self, value: Optional[str], base: Path) -> Optional[Path]:
        """Resolve a configured directory relative to the config file's directory"""
        if value is None:
            return None
        candidate = Path(value)
        return candidate if candidate.is_absolute() else base / candidate
