"""Shared buildpack cache: resolution, fetching, updating and pinning."""

import shutil
from collections.abc import Sequence

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import GitError, NoBuildpackSpecifiedError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.models.repository import Buildpack
from slugbuilder.pipeline.git_operations import GitOperations
from slugbuilder.pipeline.git_url import GitURLResolver
from slugbuilder.pipeline.output import BuildLog

logger = get_logger(__name__)


class BuildpackCache:
    """Buildpack checkouts under ``<base>/buildpacks/<cache_key>``.

    Slots are never evicted; ``wipe`` is the only way to clear them. Builds
    sharing a base directory must be serialized by the caller.
    """

    def __init__(
        self,
        resolver: GitURLResolver | None = None,
        git_operations: GitOperations | None = None,
        log: BuildLog | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the buildpack cache.

        Args:
            resolver: Resolver for buildpack URLs.
            git_operations: Git operations instance.
            log: Build log for progress lines.
            settings: Settings providing cache roots and clone depth.
        """
        self.settings = settings or get_settings()
        self.log = log or BuildLog()
        self.resolver = resolver or GitURLResolver(settings=self.settings)
        self.git_operations = git_operations or GitOperations(log=self.log, settings=self.settings)
        self.root = self.settings.buildpacks_dir

    def resolve(
        self,
        buildpack_urls: Sequence[str],
        extra_buildpack_url: str | None = None,
    ) -> list[Buildpack]:
        """Turn buildpack identifiers into cache slots, in order.

        Args:
            buildpack_urls: Configured or requested buildpacks.
            extra_buildpack_url: Buildpack appended to the list (e.g. BUILDPACK_URL).

        Returns:
            Ordered buildpacks.

        Raises:
            NoBuildpackSpecifiedError: If the resulting list is empty.
            InvalidIdentifierError: If an identifier cannot be parsed.
        """
        identifiers = list(buildpack_urls)
        if extra_buildpack_url:
            identifiers.append(extra_buildpack_url)
        if not identifiers:
            raise NoBuildpackSpecifiedError("Could not detect buildpack: no buildpack specified")

        buildpacks = []
        for identifier in identifiers:
            location = self.resolver.parse(identifier)
            cache_key = self.resolver.cache_key(location)
            buildpacks.append(
                Buildpack(
                    url=self.resolver.normalize(location),
                    location=location,
                    cache_key=cache_key,
                    path=self.root / cache_key,
                )
            )
        return buildpacks

    def fetch(self, buildpacks: Sequence[Buildpack]) -> list[Buildpack]:
        """Clone absent buildpacks and force-sync present ones.

        Args:
            buildpacks: Resolved buildpacks.

        Returns:
            The same buildpacks, now present in the cache.

        Raises:
            FetchFailedError: If cloning or updating fails.
            CheckoutFailedError: If a pinned commit cannot be checked out.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        for buildpack in buildpacks:
            self.ensure(buildpack)
        return list(buildpacks)

    def ensure(self, buildpack: Buildpack) -> Buildpack:
        """Bring one buildpack slot up to date."""
        if not buildpack.path.exists():
            self.log.title(f"Fetching buildpack: {buildpack.cache_key}")
            depth = 0 if buildpack.pinned_commit else self.settings.git.buildpack_clone_depth
            try:
                repo = self.git_operations.clone(buildpack.url, buildpack.path, depth=depth)
            except GitError:
                shutil.rmtree(buildpack.path, ignore_errors=True)
                raise
        else:
            self.log.title(f"Updating buildpack: {buildpack.cache_key}")
            repo = self.git_operations.open_repo(buildpack.path)
            if not buildpack.pinned_commit:
                self.git_operations.sync(repo)

        if buildpack.pinned_commit:
            self.git_operations.pin(repo, buildpack.pinned_commit)
            logger.info(f"Pinned {buildpack.name} to {buildpack.pinned_commit}")

        return buildpack

    def wipe(self) -> None:
        """Delete every shared cache and recreate the empty roots."""
        roots = [self.root, self.settings.git_cache_dir, self.settings.build.cache_dir]
        for root in roots:
            if root.exists():
                logger.info(f"Removing cache {root}")
                shutil.rmtree(root)
        for root in roots:
            root.mkdir(parents=True, exist_ok=True)
        self.log.title("Cleared build caches")
