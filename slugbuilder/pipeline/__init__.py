"""Build pipeline - source acquisition, buildpacks, packaging and sessions."""

from slugbuilder.pipeline.buildpacks import BuildpackCache
from slugbuilder.pipeline.environment import EnvironmentContext, parse_exports, read_env_file
from slugbuilder.pipeline.executor import PipelineExecutor, PipelineReport
from slugbuilder.pipeline.git_operations import GitOperations
from slugbuilder.pipeline.git_url import GitURLResolver
from slugbuilder.pipeline.lock import CacheLock
from slugbuilder.pipeline.output import BuildLog
from slugbuilder.pipeline.packager import ArtifactPackager
from slugbuilder.pipeline.process import ProcessResult, ProcessRunner
from slugbuilder.pipeline.process_types import ProcessTypeResolver
from slugbuilder.pipeline.session import BuildSession
from slugbuilder.pipeline.source import SourceRepository
from slugbuilder.pipeline.workspace import WorkspaceManager

__all__ = [
    # Orchestration
    "BuildSession",
    "PipelineExecutor",
    "PipelineReport",
    # Source and buildpacks
    "GitURLResolver",
    "GitOperations",
    "SourceRepository",
    "BuildpackCache",
    # Environment
    "EnvironmentContext",
    "parse_exports",
    "read_env_file",
    # Packaging and reporting
    "ArtifactPackager",
    "ProcessTypeResolver",
    # Infrastructure
    "BuildLog",
    "CacheLock",
    "ProcessResult",
    "ProcessRunner",
    "WorkspaceManager",
]
