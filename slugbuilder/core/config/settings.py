"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from slugbuilder.core.config.loader import DEFAULT_CONFIG_PATH, ConfigLoader


class BuildSettings(BaseSettings):
    """Build pipeline configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLUGBUILDER_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_dir: Path = Field(
        default=Path("/tmp/slugbuilder"),
        description="Root for source caches, buildpack cache and build trees",
    )
    cache_dir: Path = Field(
        default=Path("/tmp/slugbuilder-cache"),
        description="Root for per-application compile caches",
    )
    output_dir: Path = Field(
        default=Path("."),
        description="Directory slugs are written to",
    )
    stack: str = Field(
        default="cedar-14",
        description="Value exported to buildpacks as STACK",
    )
    buildpacks: list[str] = Field(
        default_factory=list,
        description="Buildpacks used when a request names none",
    )
    inherit_env: list[str] = Field(
        default_factory=lambda: ["PATH", "LANG", "LC_ALL", "TZ", "TMPDIR"],
        description="Host variables passed through to build scripts",
    )
    use_fast_compressor: bool = Field(
        default=True,
        description="Compress slugs with the fast compressor when installed",
    )
    fast_compressor: str = Field(
        default="pigz",
        description="Parallel gzip program handed to tar",
    )
    command_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout for each external command in seconds (None = no limit)",
    )
    terminate_grace: float = Field(
        default=5.0,
        ge=0,
        description="Seconds between terminate and kill of a cancelled command",
    )
    keep_failed_builds: bool = Field(
        default=False,
        description="Keep the build tree and env dir of failed builds for inspection",
    )
    cache_lock_timeout: int = Field(
        default=600,
        ge=0,
        description="Seconds to wait for the shared cache lock",
    )

    @field_validator("base_dir", "cache_dir", "output_dir", mode="before")
    @classmethod
    def validate_dir(cls, v: str | Path) -> Path:
        """Expand user home in directory settings."""
        return Path(v).expanduser()


class GitSettings(BaseSettings):
    """Git operation configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLUGBUILDER_GIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="github.com",
        description="Host used for org/name shorthands",
    )
    protocol: Literal["https", "ssh"] = Field(
        default="ssh",
        description="Protocol used to fetch shorthand repositories",
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Retry attempts for network operations",
    )
    retry_delay: int = Field(
        default=5,
        ge=0,
        le=60,
        description="Retry delay in seconds",
    )
    buildpack_clone_depth: int = Field(
        default=1,
        ge=0,
        description="Clone depth for unpinned buildpacks (0 = full)",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLUGBUILDER_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="INFO",
        description="Log level",
    )
    format: str = Field(
        default="[%(name)s] %(message)s",
        description="Log format string",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    use_rich: bool = Field(
        default=True,
        description="Use Rich console for output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v: str | None) -> Path | None:
        """Validate and convert file to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SLUGBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    build: BuildSettings = Field(default_factory=BuildSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def buildpacks_dir(self) -> Path:
        """Return the shared buildpack cache root."""
        return self.build.base_dir / "buildpacks"

    @property
    def git_cache_dir(self) -> Path:
        """Return the shared application source cache root."""
        return self.build.base_dir / "git"

    @property
    def environment_dir(self) -> Path:
        """Return the root of per-build user environment directories."""
        return self.build.base_dir / "environment"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Settings instance with values from YAML.
        """
        loader = ConfigLoader(path)
        loader.load()

        return cls(
            build=BuildSettings(**loader.get_section("build")),
            git=GitSettings(**loader.get_section("git")),
            logging=LoggingSettings(**loader.get_section("logging")),
        )

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from default locations.

        Priority: config/default.yaml > environment variables > .env > defaults

        Returns:
            Settings instance.
        """
        if DEFAULT_CONFIG_PATH.exists():
            return cls.from_yaml(DEFAULT_CONFIG_PATH)

        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings singleton.
    """
    return Settings.load()
