"""Exception definitions module."""

from slugbuilder.core.exceptions.errors import (
    BuildCancelledError,
    BuildpackError,
    CacheLockTimeoutError,
    CheckoutFailedError,
    CompileFailedError,
    ConfigurationError,
    FetchFailedError,
    GitError,
    HookFailedError,
    InvalidBuildpackError,
    InvalidEnvironmentError,
    InvalidIdentifierError,
    NoBuildpackDetectedError,
    NoBuildpackSpecifiedError,
    PackagingFailedError,
    ProcessFailedError,
    ReleaseFailedError,
    SlugbuilderError,
    WorkspaceError,
)

__all__ = [
    "SlugbuilderError",
    "InvalidIdentifierError",
    "GitError",
    "FetchFailedError",
    "CheckoutFailedError",
    "NoBuildpackSpecifiedError",
    "ProcessFailedError",
    "BuildpackError",
    "InvalidBuildpackError",
    "CompileFailedError",
    "ReleaseFailedError",
    "NoBuildpackDetectedError",
    "HookFailedError",
    "PackagingFailedError",
    "BuildCancelledError",
    "InvalidEnvironmentError",
    "WorkspaceError",
    "CacheLockTimeoutError",
    "ConfigurationError",
]
