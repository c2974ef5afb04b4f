"""Configuration management for blockmeta."""

import os
from dataclasses import dataclass, field
from pathlib import Path

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
BROWSER_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "image/avif,image/webp,*/*;q=0.8"
)


@dataclass
class HTTPConfig:
    """Page fetch configuration.

    Attributes:
        timeout_seconds: Transport timeout; no retries are attempted.
        user_agent: User-Agent header sent with page requests.
        accept: Accept header sent with page requests.
        accept_language: Accept-Language header sent with page requests.
        referer: Optional Referer header.
        cookies: Cookies sent with every request (credentials included).
        follow_redirects: Whether to follow HTTP redirects.
    """

    timeout_seconds: float = 30.0
    user_agent: str = BROWSER_USER_AGENT
    accept: str = BROWSER_ACCEPT
    accept_language: str = "zh-CN,zh;q=0.9,en;q=0.8"
    referer: str | None = None
    cookies: dict[str, str] = field(default_factory=dict)
    follow_redirects: bool = True

    def headers(self) -> dict[str, str]:
        """Request headers for page fetches."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
        }
        if self.referer:
            headers["Referer"] = self.referer
        return headers


@dataclass
class AssetConfig:
    """Cover/asset download configuration."""

    download_user_agent: str = BROWSER_USER_AGENT
    default_mime_type: str = "image/png"
    timeout_seconds: float = 30.0


@dataclass
class ApplierConfig:
    """Block update configuration."""

    title_brackets: tuple[str, str] = ("《", "》")


@dataclass
class Config:
    """Main application configuration.

    Built once at startup and handed to each pipeline.
    """

    rules_path: Path | None = None
    log_level: str = "INFO"
    http: HTTPConfig = field(default_factory=HTTPConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    applier: ApplierConfig = field(default_factory=ApplierConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()

        if path := os.environ.get("BLOCKMETA_RULES"):
            config.rules_path = Path(path)

        if level := os.environ.get("BLOCKMETA_LOG_LEVEL"):
            config.log_level = level.upper()

        if timeout := os.environ.get("BLOCKMETA_TIMEOUT"):
            config.http.timeout_seconds = float(timeout)
            config.assets.timeout_seconds = float(timeout)

        if user_agent := os.environ.get("BLOCKMETA_USER_AGENT"):
            config.http.user_agent = user_agent
            config.assets.download_user_agent = user_agent

        return config
