"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use VAAYU_ prefix (e.g., VAAYU_DEV_PORT=4000).

Settings can also be loaded from a .env file in the project root.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use VAAYU_ prefix.

    Examples:
        VAAYU_DEV_PORT=4000
        VAAYU_VITE_DEV_URL=http://localhost:5174
        VAAYU_DEBOUNCE_MS=250
    """

    model_config = SettingsConfigDict(
        env_prefix="VAAYU_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Template configuration
    template_extension: str = Field(
        default=".vyu",
        description="File extension of page templates",
    )

    index_page: str = Field(
        default="index",
        description="Template name served for the root path",
    )

    # Dev server configuration
    dev_host: str = Field(
        default="127.0.0.1",
        description="Interface the dev server binds to",
    )

    dev_port: int = Field(
        default=3000,
        description="Port the dev server listens on",
    )

    vite_dev_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the bundler dev server used for asset URLs in dev mode",
    )

    live_reload_path: str = Field(
        default="/__live_reload",
        description="Path of the Server-Sent-Events live-reload stream",
    )

    sse_keepalive_s: float = Field(
        default=15.0,
        description="Seconds between keep-alive comments on an idle live-reload stream",
    )

    shutdown_grace_s: float = Field(
        default=5.0,
        description="Seconds in-flight requests get to finish on server shutdown",
    )

    # Watcher configuration
    debounce_ms: int = Field(
        default=100,
        description="Quiet period after the last change before clients are told to reload",
    )

    watch_extensions: List[str] = Field(
        default=[".vyu", ".css", ".ts", ".js"],
        description="File extensions whose changes trigger a reload",
    )

    # Build configuration
    bundled_extensions: List[str] = Field(
        default=[".vyu", ".ts", ".js", ".tsx", ".jsx", ".css"],
        description="Extensions handled by the compiler or the bundler, never copied verbatim",
    )

    # Bundler configuration
    bundler_grace_s: float = Field(
        default=5.0,
        description="Seconds the bundler dev process gets to exit before it is killed",
    )

    bundler_startup_s: float = Field(
        default=2.0,
        description="Seconds to wait after spawning the bundler dev server",
    )

    # Script engine configuration
    script_time_limit: Optional[float] = Field(
        default=None,
        description="Per-compile CPU time limit for template scripts, in seconds",
    )

    script_memory_limit: Optional[int] = Field(
        default=None,
        description="Per-compile memory limit for template scripts, in bytes",
    )

    def templatePath_make(self, page: str) -> str:
        """
        Build a template file name for a page name.

        Args:
            page: Page name without extension (e.g. "about", "blog/post")

        Returns:
            Page name with the template extension appended

        Example:
            >>> settings = AppSettings()
            >>> settings.templatePath_make('about')
            'about.vyu'
        """
        return f"{page}{self.template_extension}"


# Singleton instance - import this in your code
appsettings = AppSettings()
