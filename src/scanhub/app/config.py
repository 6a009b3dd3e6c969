from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_NAME = "scanhub"


def _default_home() -> Path:
    """Get default home directory using platformdirs."""
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_cache_dir)


class DirectoryConfig(BaseModel):
    """Directory configuration with computed paths."""

    home: Path = Field(
        default_factory=_default_home,
        description="Base directory for all scanhub data",
    )

    @computed_field
    @property
    def logs_dir(self) -> Path:
        """Directory for JSONL scan logs."""
        path = self.home / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @computed_field
    @property
    def workspace_dir(self) -> Path:
        """Parent of the throwaway clone directories."""
        path = self.home / "workspaces"
        path.mkdir(parents=True, exist_ok=True)
        return path


class AuthSettings(BaseModel):
    """Hosting platform tokens. Unset tokens mean anonymous access."""

    github_token: str | None = Field(default=None, description="GitHub personal access token")
    gitlab_token: str | None = Field(default=None, description="GitLab personal or project access token")
    bitbucket_token: str | None = Field(default=None, description="Bitbucket repository or workspace access token")
    gitea_token: str | None = Field(default=None, description="Gitea/Forgejo/Codeberg access token")


class CacheConfig(BaseModel):
    ttl_seconds: float = Field(default=3600.0, description="Lifetime of a cached scan report")
    max_entries: int = Field(default=100, ge=1, description="Cached reports kept before eviction")
    cleanup_interval_seconds: float = Field(default=300.0, gt=0, description="Period of the expired-entry sweep")


class ScannerConfig(BaseModel):
    enabled: list[str] = Field(
        default_factory=lambda: ["semgrep", "gitleaks"],
        description="Scanners to run, in order",
    )
    timeout_seconds: float = Field(default=300.0, gt=0, description="Wall-clock limit per scanner run")
    parallel: bool = Field(default=True, description="Run scanners concurrently")
    max_workers: int = Field(default=4, ge=1, description="Thread pool size for parallel scanners")


class GitConfig(BaseModel):
    clone_timeout_seconds: float = Field(default=300.0, gt=0, description="Wall-clock limit for git clone and ls-remote")
    api_timeout_seconds: float = Field(default=15.0, gt=0, description="Timeout for hosting platform API requests")
    clone_depth: int | None = Field(
        default=None,
        ge=1,
        description="History depth of scan clones (None = full history, which secret scanning needs)",
    )


class WebhookConfig(BaseModel):
    urls: list[str] = Field(default_factory=list, description="Endpoints that receive scan.completed and scan.failed events")
    secret: str | None = Field(default=None, description="HMAC-SHA256 key for the X-Webhook-Signature header")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout of each webhook POST")


class AnalysisConfig(BaseModel):
    metadata_workers: int = Field(default=4, ge=1, description="Thread pool size for batch metadata lookups")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")
    console_output: bool = Field(default=False, description="Human-readable log lines on stderr")
    file_output: bool = Field(default=False, description="Append JSON lines to <logs_dir>/<logger_name>.jsonl")
    logger_name: str = Field(default="scanhub")


class AppConfig(BaseSettings):
    """Root application configuration.

    All configuration is loaded from environment variables with SCANHUB_ prefix.
    Use double underscore for nested config: SCANHUB_AUTH__GITHUB_TOKEN

    Example env vars:
        export SCANHUB_AUTH__GITHUB_TOKEN=ghp_xxxxxxxxxxxxx
        export SCANHUB_CACHE__TTL_SECONDS=7200
        export SCANHUB_SCANNERS__ENABLED='["semgrep"]'
        export SCANHUB_GIT__CLONE_TIMEOUT_SECONDS=120
        export SCANHUB_LOGGING__FILE_OUTPUT=true
        export SCANHUB_WEBHOOKS__URLS='["https://hooks.example.com/scan"]'
        export SCANHUB_DIRECTORIES__HOME=/custom/path
    """

    model_config = SettingsConfigDict(
        env_prefix="SCANHUB_",
        env_nested_delimiter="__",
        frozen=True,
        extra="forbid",
    )

    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scanners: ScannerConfig = Field(default_factory=ScannerConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    webhooks: WebhookConfig = Field(default_factory=WebhookConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
