"""Git operations wrapper with retry support."""

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import CheckoutFailedError, FetchFailedError, GitError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.pipeline.output import BuildLog

T = TypeVar("T")

logger = get_logger(__name__)


class GitOperations:
    """Handles clone, fetch, checkout and sync operations."""

    def __init__(
        self,
        retry_attempts: int | None = None,
        retry_delay: int | None = None,
        log: BuildLog | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize Git operations.

        Args:
            retry_attempts: Number of attempts for network operations.
            retry_delay: Delay between retries in seconds.
            log: Build log receiving git command output.
            settings: Settings supplying values not passed explicitly.
        """
        settings = settings or get_settings()

        self.retry_attempts = retry_attempts or settings.git.retry_attempts
        self.retry_delay = retry_delay if retry_delay is not None else settings.git.retry_delay
        self.log = log

    def _retry_operation(
        self,
        operation: Callable[..., T],
        description: str,
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Execute a network operation with retry logic.

        Args:
            operation: Callable to execute.
            description: What the operation does, for messages.
            *args: Positional arguments for the operation.
            **kwargs: Keyword arguments for the operation.

        Returns:
            Result of the operation.

        Raises:
            FetchFailedError: If all attempts fail.
        """
        last_error: GitCommandError | None = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                return operation(*args, **kwargs)
            except GitCommandError as e:
                last_error = e
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.retry_attempts}): {e}"
                )
                if attempt < self.retry_attempts:
                    logger.info(f"Retrying in {self.retry_delay} seconds...")
                    time.sleep(self.retry_delay)

        raise FetchFailedError(
            f"{description} failed after {self.retry_attempts} attempts",
            details={
                "last_error": str(last_error),
                "stderr": (last_error.stderr or "").strip() if last_error else "",
            },
        )

    def _echo(self, output: str) -> None:
        if self.log is None or not output:
            return
        for line in output.splitlines():
            self.log.text(line)

    def open_repo(self, path: Path) -> Repo:
        """Open an existing Git repository.

        Args:
            path: Path to the repository.

        Returns:
            Repo object.

        Raises:
            GitError: If repository cannot be opened.
        """
        try:
            return Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitError(
                f"Not a valid Git repository: {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

    def clone(self, repo_url: str, target_path: Path, depth: int = 0) -> Repo:
        """Clone a Git repository.

        Args:
            repo_url: URL of the repository to clone.
            target_path: Local path to clone into.
            depth: Clone depth (0 = full clone).

        Returns:
            Cloned Repo object.

        Raises:
            FetchFailedError: If clone fails.
        """
        logger.info(f"Cloning repository: {repo_url}")

        clone_kwargs: dict[str, Any] = {
            "url": repo_url,
            "to_path": str(target_path),
        }
        if depth > 0:
            clone_kwargs["depth"] = depth

        def _clone() -> Repo:
            return Repo.clone_from(**clone_kwargs)

        try:
            repo = self._retry_operation(_clone, f"Clone of {repo_url}")
        except FetchFailedError as e:
            raise FetchFailedError(
                f"Failed to clone {repo_url}",
                repo_url=repo_url,
                details=e.details,
            ) from e

        logger.info(f"Successfully cloned {repo_url} to {target_path}")
        return repo

    def fetch_all(self, repo: Repo) -> None:
        """Fetch all remotes, tags included.

        Raises:
            FetchFailedError: If the fetch fails.
        """
        output = self._retry_operation(
            repo.git.fetch, f"Fetch in {repo.working_dir}", "--all", "--tags"
        )
        self._echo(output)

    def checkout(self, repo: Repo, git_ref: str) -> None:
        """Checkout ``origin/<ref>``, falling back to ``<ref>``.

        Trying the remote-tracking name first means branch names always resolve
        to the latest fetched tip; the fallback handles tags and commit SHAs.

        Args:
            repo: Repo object.
            git_ref: Branch, tag or commit.

        Raises:
            CheckoutFailedError: If neither form can be checked out.
        """
        logger.info(f"Checking out {git_ref}")

        try:
            self._echo(repo.git.checkout(f"origin/{git_ref}"))
            return
        except GitCommandError as e:
            logger.debug(f"origin/{git_ref} not checked out: {e}")

        try:
            self._echo(repo.git.checkout(git_ref))
        except GitCommandError as e:
            raise CheckoutFailedError(
                f"Failed to fetch and checkout: {git_ref}",
                git_ref=git_ref,
                details={"error": str(e), "stderr": (e.stderr or "").strip()},
            ) from e

    def rev_parse(self, repo: Repo, rev: str = "HEAD") -> str:
        """Return the full SHA a revision points to.

        Raises:
            GitError: If the revision cannot be resolved.
        """
        try:
            return repo.git.rev_parse(rev).strip()
        except GitCommandError as e:
            raise GitError(
                f"Failed to resolve revision: {rev}",
                git_ref=rev,
                details={"error": str(e)},
            ) from e

    def sync(self, repo: Repo) -> None:
        """Discard local changes and pull the remote tip.

        Raises:
            FetchFailedError: If the reset or pull fails.
        """
        try:
            self._echo(repo.git.reset("--hard"))
        except GitCommandError as e:
            raise FetchFailedError(
                f"Failed to reset {repo.working_dir}",
                details={"error": str(e)},
            ) from e
        output = self._retry_operation(repo.git.pull, f"Pull in {repo.working_dir}")
        self._echo(output)

    def pin(self, repo: Repo, commit: str) -> None:
        """Fetch and hard-reset the working copy to an exact commit.

        Raises:
            FetchFailedError: If the fetch fails.
            CheckoutFailedError: If the commit cannot be checked out.
        """
        self.fetch_all(repo)
        try:
            self._echo(repo.git.checkout(commit))
            self._echo(repo.git.reset("--hard", commit))
        except GitCommandError as e:
            raise CheckoutFailedError(
                f"Failed to pin {repo.working_dir} to {commit}",
                git_ref=commit,
                details={"error": str(e), "stderr": (e.stderr or "").strip()},
            ) from e
