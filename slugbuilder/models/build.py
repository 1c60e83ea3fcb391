"""Build request and result data models."""

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

BuildCallback = Callable[[dict[str, Any]], Any]


class BuildStage(str, Enum):
    """Stages of a build, in execution order."""

    SETUP = "setup"
    ENVIRONMENT = "environment"
    PRE_COMPILE = "pre_compile"
    DETECT = "detect"
    COMPILE = "compile"
    RELEASE = "release"
    POST_COMPILE = "post_compile"
    PACKAGE = "package"
    REPORT = "report"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BuildRequest(BaseModel):
    """Immutable input of a single build."""

    repo: str = Field(description="Repository shorthand (org/name) or URL")
    git_ref: str = Field(description="Branch, tag or commit to build")
    repo_url: str | None = Field(
        default=None,
        description="Explicit fetch URL overriding the one derived from repo",
    )
    buildpacks: list[str] | None = Field(
        default=None,
        description="Buildpacks to run (None = configured list)",
    )
    slug_name: str | None = Field(
        default=None,
        description="Artifact name overriding the generated one",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="User environment variables",
    )
    clear_cache: bool = Field(
        default=False,
        description="Wipe the shared caches before building",
    )
    prebuild: BuildCallback | None = Field(
        default=None,
        description="Called with {repo, git_ref, url} before the build",
    )
    postbuild: BuildCallback | None = Field(
        default=None,
        description="Called with build details after packaging",
    )

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("env", mode="before")
    @classmethod
    def stringify_env(cls, v: dict[Any, Any] | None) -> dict[str, str]:
        """Coerce environment keys and values to strings."""
        if v is None:
            return {}
        return {str(key): str(value) for key, value in v.items()}


class BuildStats(BaseModel):
    """Durations (seconds) of the stages that ran, and the slug size."""

    setup: float | None = None
    build: float | None = None
    compile: float | None = None
    package: float | None = None
    slug_size_mb: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for callbacks and logging."""
        return self.model_dump()


class BuildResult(BaseModel):
    """Outcome of a build, produced once and never mutated."""

    success: bool = Field(description="Whether a slug was produced")
    repo: str = Field(description="Repository the build was requested for")
    git_ref: str = Field(description="Requested git reference")
    sha: str | None = Field(default=None, description="Commit that was built")
    request_id: str = Field(description="Identifier of this build")
    stats: BuildStats = Field(default_factory=BuildStats)
    artifact_path: Path | None = Field(default=None, description="Path of the slug")
    process_types: list[str] = Field(default_factory=list)
    captured_output: str = Field(default="", description="Full build log")
    stage: BuildStage = Field(
        default=BuildStage.SUCCEEDED,
        description="Stage the build was in when it finished",
    )
    error_type: str | None = Field(default=None, description="Failure class name")
    error_message: str | None = Field(default=None)
    error_output: str | None = Field(
        default=None,
        description="Captured output of the failing command",
    )

    model_config = {"frozen": True}

    @property
    def setup_duration(self) -> float | None:
        return self.stats.setup

    @property
    def build_duration(self) -> float | None:
        return self.stats.build

    @property
    def compile_duration(self) -> float | None:
        return self.stats.compile

    @property
    def package_duration(self) -> float | None:
        return self.stats.package

    @property
    def artifact_size_mb(self) -> int | None:
        return self.stats.slug_size_mb

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display, without the build log."""
        return {
            "success": self.success,
            "repo": self.repo,
            "git_ref": self.git_ref,
            "sha": self.sha,
            "request_id": self.request_id,
            "stats": self.stats.to_dict(),
            "artifact_path": str(self.artifact_path) if self.artifact_path else None,
            "process_types": list(self.process_types),
            "stage": self.stage.value,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }
