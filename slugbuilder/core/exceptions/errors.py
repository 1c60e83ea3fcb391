"""Custom exception definitions for Slugbuilder."""

from typing import Any


class SlugbuilderError(Exception):
    """Base exception for all Slugbuilder errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class InvalidIdentifierError(SlugbuilderError):
    """Exception raised for malformed repository or buildpack references."""

    def __init__(
        self,
        message: str,
        identifier: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize identifier error.

        Args:
            message: Error message.
            identifier: The identifier that could not be parsed.
            details: Additional error details.
        """
        details = details or {}
        if identifier is not None:
            details["identifier"] = identifier
        self.identifier = identifier
        super().__init__(message, details)


class GitError(SlugbuilderError):
    """Exception raised for Git operation errors."""

    def __init__(
        self,
        message: str,
        repo_url: str | None = None,
        git_ref: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize Git error.

        Args:
            message: Error message.
            repo_url: Repository URL that caused the error.
            git_ref: Git reference (branch/tag/commit) involved.
            details: Additional error details.
        """
        details = details or {}
        if repo_url:
            details["repo_url"] = repo_url
        if git_ref:
            details["git_ref"] = git_ref
        super().__init__(message, details)


class FetchFailedError(GitError):
    """Clone, fetch or pull of a repository failed."""


class CheckoutFailedError(GitError):
    """Neither ``origin/<ref>`` nor ``<ref>`` could be checked out."""


class NoBuildpackSpecifiedError(SlugbuilderError):
    """The resolved buildpack list is empty."""


class ProcessFailedError(SlugbuilderError):
    """Base for failures of an external script, carrying its captured output."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output: str = "",
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize process failure.

        Args:
            message: Error message.
            exit_code: Exit status of the process, if it exited.
            output: Combined captured stdout and stderr.
            stderr: Captured stderr only.
            details: Additional error details.
        """
        details = details or {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        self.exit_code = exit_code
        self.output = output
        self.stderr = stderr
        super().__init__(message, details)


class BuildpackError(ProcessFailedError):
    """Base exception for buildpack stage failures."""

    def __init__(
        self,
        message: str,
        buildpack: str | None = None,
        exit_code: int | None = None,
        output: str = "",
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if buildpack:
            details["buildpack"] = buildpack
        self.buildpack = buildpack
        super().__init__(message, exit_code, output, stderr, details)


class InvalidBuildpackError(BuildpackError):
    """A buildpack directory does not expose a required script."""


class CompileFailedError(BuildpackError):
    """A buildpack ``compile`` script exited non-zero."""


class ReleaseFailedError(BuildpackError):
    """A buildpack ``release`` script exited non-zero."""


class NoBuildpackDetectedError(BuildpackError):
    """No buildpack claimed the source tree."""


class HookFailedError(ProcessFailedError):
    """A pre-compile or post-compile hook exited non-zero."""

    def __init__(
        self,
        message: str,
        hook: str | None = None,
        exit_code: int | None = None,
        output: str = "",
        stderr: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if hook:
            details["hook"] = hook
        self.hook = hook
        super().__init__(message, exit_code, output, stderr, details)


class PackagingFailedError(ProcessFailedError):
    """The archiver exited non-zero."""


class BuildCancelledError(SlugbuilderError):
    """The build was cancelled while a command was running."""


class InvalidEnvironmentError(SlugbuilderError):
    """A user environment variable cannot be materialized."""


class WorkspaceError(SlugbuilderError):
    """Exception raised for build workspace management errors."""

    def __init__(
        self,
        message: str,
        workspace_name: str | None = None,
        workspace_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize workspace error.

        Args:
            message: Error message.
            workspace_name: Token of the workspace.
            workspace_path: Path to the workspace.
            details: Additional error details.
        """
        details = details or {}
        if workspace_name:
            details["workspace_name"] = workspace_name
        if workspace_path:
            details["workspace_path"] = workspace_path
        super().__init__(message, details)


class CacheLockTimeoutError(SlugbuilderError):
    """The shared cache lock could not be acquired in time."""


class ConfigurationError(SlugbuilderError):
    """Exception raised for configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message.
            config_key: Configuration key that caused the error.
            details: Additional error details.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)
