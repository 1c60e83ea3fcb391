"""Workspace management for per-build directories."""

import shutil
import uuid

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import WorkspaceError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.models.workspace import BuildWorkspace, WorkspaceStatus

logger = get_logger(__name__)


def _ref_segment(git_ref: str) -> str:
    return git_ref.replace("/", ".")


class WorkspaceManager:
    """Creates and disposes the directories a single build owns.

    Layout: ``<base>/<org>/<name>/<ref>/<token>`` for the build tree and
    ``<base>/environment/<token>`` for user variable files.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the workspace manager.

        Args:
            settings: Settings providing the base directory.
        """
        self.settings = settings or get_settings()
        self._workspaces: dict[str, BuildWorkspace] = {}

    def _generate_token(self) -> str:
        return uuid.uuid4().hex[:12]

    def create(self, org: str, name: str, git_ref: str, token: str | None = None) -> BuildWorkspace:
        """Create fresh build and env directories.

        Args:
            org: Repository organization.
            name: Repository name.
            git_ref: Git reference being built.
            token: Optional token. Auto-generated if not provided.

        Returns:
            BuildWorkspace for the created directories.

        Raises:
            WorkspaceError: If the token is in use or directories cannot be created.
        """
        token = token or self._generate_token()
        if token in self._workspaces:
            raise WorkspaceError(f"Workspace already exists: {token}", workspace_name=token)

        base_dir = self.settings.build.base_dir
        build_dir = base_dir / org / name / _ref_segment(git_ref) / token
        env_dir = self.settings.environment_dir / token

        try:
            if build_dir.exists():
                shutil.rmtree(build_dir)
            build_dir.mkdir(parents=True)
            (build_dir / ".profile.d").mkdir()
            env_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise WorkspaceError(
                f"Failed to create workspace directories: {build_dir}",
                workspace_name=token,
                workspace_path=str(build_dir),
                details={"error": str(e)},
            ) from e

        workspace = BuildWorkspace(token=token, build_dir=build_dir, env_dir=env_dir)
        workspace.mark_active()
        self._workspaces[token] = workspace
        logger.debug(f"Created workspace {token} at {build_dir}")
        return workspace

    def get(self, token: str) -> BuildWorkspace | None:
        """Get workspace info by token."""
        return self._workspaces.get(token)

    def cleanup(self, token: str) -> bool:
        """Remove a workspace's build and env directories.

        Args:
            token: Workspace token.

        Returns:
            True if cleanup succeeded.

        Raises:
            WorkspaceError: If workspace not found.
        """
        workspace = self._workspaces.get(token)
        if not workspace:
            raise WorkspaceError(f"Workspace not found: {token}", workspace_name=token)

        if workspace.status == WorkspaceStatus.DISPOSED:
            return True

        workspace.mark_cleanup()
        removed = True
        try:
            for path in (workspace.build_dir, workspace.env_dir):
                if path.exists():
                    shutil.rmtree(path)
                    logger.debug(f"Removed workspace directory: {path}")
        except OSError as e:
            logger.warning(f"Failed to remove workspace directory for {token}: {e}")
            removed = False
        finally:
            workspace.mark_disposed()
            del self._workspaces[token]

        return removed

    def release(self, token: str) -> BuildWorkspace:
        """Stop tracking a workspace without removing its directories.

        Raises:
            WorkspaceError: If workspace not found.
        """
        workspace = self._workspaces.pop(token, None)
        if workspace is None:
            raise WorkspaceError(f"Workspace not found: {token}", workspace_name=token)
        return workspace
