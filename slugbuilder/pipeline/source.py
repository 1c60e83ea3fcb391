"""Application source acquisition: cached clone, checkout and build tree copy."""

import shutil
from pathlib import Path

from git import Repo

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import GitError, WorkspaceError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.models.repository import RepositoryLocation
from slugbuilder.pipeline.git_operations import GitOperations
from slugbuilder.pipeline.output import BuildLog

logger = get_logger(__name__)

_EXCLUDED_ENTRIES = {".git", ".", ".."}


class SourceRepository:
    """A long-lived cache clone of an application repository.

    The clone under ``<base>/git/<org>/<name>`` is shared across builds and
    never mutated by buildpacks; each build works on its own copy made by
    ``materialize_build_tree``.
    """

    def __init__(
        self,
        location: RepositoryLocation,
        url: str,
        git_operations: GitOperations | None = None,
        log: BuildLog | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the source repository.

        Args:
            location: Parsed repository location.
            url: URL to clone from.
            git_operations: Git operations instance.
            log: Build log for progress lines.
            settings: Settings providing the cache root.
        """
        self.settings = settings or get_settings()
        self.location = location
        self.url = url
        self.log = log or BuildLog()
        self.git_operations = git_operations or GitOperations(log=self.log, settings=self.settings)
        self.cache_git_dir = self.settings.git_cache_dir / location.org / location.name
        self._resolved_sha: str | None = None
        self._repo: Repo | None = None

    @property
    def resolved_sha(self) -> str:
        """Return the commit checked out by ``checkout``.

        Raises:
            GitError: If no checkout has completed yet.
        """
        if self._resolved_sha is None:
            raise GitError(
                "Repository has not been checked out",
                repo_url=self.url,
            )
        return self._resolved_sha

    def ensure_cloned(self) -> Repo:
        """Clone into the cache directory unless it already exists.

        An existing cache directory is trusted and only fetched later.

        Returns:
            The cached Repo.

        Raises:
            FetchFailedError: If the clone fails.
        """
        if self.cache_git_dir.exists():
            logger.debug(f"Using cached clone at {self.cache_git_dir}")
            self._repo = self.git_operations.open_repo(self.cache_git_dir)
            return self._repo

        self.log.title(f"Fetching {self.location.full_name}")
        self.cache_git_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._repo = self.git_operations.clone(self.url, self.cache_git_dir)
        except GitError:
            shutil.rmtree(self.cache_git_dir, ignore_errors=True)
            raise
        return self._repo

    def checkout(self, git_ref: str) -> str:
        """Fetch every remote ref and check out ``git_ref``.

        Args:
            git_ref: Branch, tag or commit.

        Returns:
            The resolved commit SHA.

        Raises:
            FetchFailedError: If fetching fails.
            CheckoutFailedError: If the ref cannot be checked out.
        """
        repo = self._repo or self.ensure_cloned()
        self._resolved_sha = None

        self.git_operations.fetch_all(repo)
        self.git_operations.checkout(repo, git_ref)
        self._resolved_sha = self.git_operations.rev_parse(repo, "HEAD")

        logger.info(f"Checked out {self.location.full_name}@{git_ref} ({self._resolved_sha})")
        return self._resolved_sha

    def materialize_build_tree(self, build_dir: Path) -> Path:
        """Copy the checked-out tree, dotfiles included, into build_dir.

        Args:
            build_dir: Fresh per-build directory.

        Returns:
            build_dir.

        Raises:
            WorkspaceError: If copying fails.
        """
        self.log.text(f"Saving application to {build_dir}")
        build_dir.mkdir(parents=True, exist_ok=True)

        try:
            for entry in self.cache_git_dir.iterdir():
                if entry.name in _EXCLUDED_ENTRIES:
                    continue
                target = build_dir / entry.name
                if entry.is_dir() and not entry.is_symlink():
                    shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
                else:
                    shutil.copy2(entry, target, follow_symlinks=False)
        except OSError as e:
            raise WorkspaceError(
                f"Failed to copy application to {build_dir}",
                workspace_path=str(build_dir),
                details={"error": str(e)},
            ) from e

        return build_dir
