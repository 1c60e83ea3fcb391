"""Data models module."""

from slugbuilder.models.build import (
    BuildCallback,
    BuildRequest,
    BuildResult,
    BuildStage,
    BuildStats,
)
from slugbuilder.models.repository import Buildpack, GitProtocol, RepositoryLocation
from slugbuilder.models.workspace import BuildWorkspace, WorkspaceStatus

__all__ = [
    "BuildCallback",
    "BuildRequest",
    "BuildResult",
    "BuildStage",
    "BuildStats",
    "Buildpack",
    "GitProtocol",
    "RepositoryLocation",
    "BuildWorkspace",
    "WorkspaceStatus",
]
