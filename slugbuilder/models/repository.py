"""Repository and buildpack data models."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class GitProtocol(str, Enum):
    """Protocol a repository is fetched with."""

    HTTPS = "https"
    SSH = "ssh"
    FILE = "file"


class RepositoryLocation(BaseModel):
    """A parsed repository or buildpack reference."""

    host: str | None = Field(
        default=None,
        description="Git host, or the root directory for file:// locations",
    )
    org: str = Field(description="Organization or user owning the repository")
    name: str = Field(description="Repository name without .git or #fragment")
    pinned_commit: str | None = Field(
        default=None,
        description="Commit the reference is pinned to",
    )
    protocol: GitProtocol | None = Field(
        default=None,
        description="Protocol the reference was written with (None = shorthand)",
    )

    model_config = {"frozen": True}

    @property
    def full_name(self) -> str:
        """Return ``org/name``."""
        return f"{self.org}/{self.name}"

    def __str__(self) -> str:
        """Return string representation."""
        if self.pinned_commit:
            return f"{self.full_name}#{self.pinned_commit}"
        return self.full_name


class Buildpack(BaseModel):
    """A buildpack resolved to a slot in the shared buildpack cache."""

    url: str = Field(description="Normalized fetch URL")
    location: RepositoryLocation = Field(description="Parsed buildpack reference")
    cache_key: str = Field(description="Cache slot name, distinct per pinned commit")
    path: Path = Field(description="Cache slot directory")

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        """Return the buildpack repository name."""
        return self.location.name

    @property
    def pinned_commit(self) -> str | None:
        """Return the commit the buildpack is pinned to, if any."""
        return self.location.pinned_commit

    @property
    def detect_script(self) -> Path:
        """Return the path of ``bin/detect``."""
        return self.path / "bin" / "detect"

    @property
    def compile_script(self) -> Path:
        """Return the path of ``bin/compile``."""
        return self.path / "bin" / "compile"

    @property
    def release_script(self) -> Path:
        """Return the path of ``bin/release``."""
        return self.path / "bin" / "release"

    @property
    def export_file(self) -> Path:
        """Return the path of the ``export`` file written by compile."""
        return self.path / "export"
