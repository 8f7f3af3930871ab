"""
Configuration package for vaayu

Provides application settings via environment variables using pydantic-settings,
and the optional per-project vaayu.yaml file.
"""

from .settings import appsettings, AppSettings
from .project import ProjectConfig, ProjectConfigError, CONFIG_FILENAME

__all__ = ["appsettings", "AppSettings", "ProjectConfig", "ProjectConfigError", "CONFIG_FILENAME"]
