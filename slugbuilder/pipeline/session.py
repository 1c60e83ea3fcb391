"""A single build request, end to end.

BuildSession owns setup (source checkout and build tree), the environment,
the buildpack pipeline, packaging, reporting and cleanup. Every
SlugbuilderError raised along the way ends the build with a failed
BuildResult instead of propagating, so a long-running worker can keep
serving requests.
"""

import time
import uuid
from pathlib import Path
from typing import Any

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import ProcessFailedError, SlugbuilderError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.models.build import BuildCallback, BuildRequest, BuildResult, BuildStage, BuildStats
from slugbuilder.models.repository import RepositoryLocation
from slugbuilder.models.workspace import BuildWorkspace
from slugbuilder.pipeline.buildpacks import BuildpackCache
from slugbuilder.pipeline.environment import EnvironmentContext
from slugbuilder.pipeline.executor import PipelineExecutor
from slugbuilder.pipeline.git_operations import GitOperations
from slugbuilder.pipeline.git_url import GitURLResolver
from slugbuilder.pipeline.lock import CacheLock
from slugbuilder.pipeline.output import BuildLog, OutputSink
from slugbuilder.pipeline.packager import ArtifactPackager
from slugbuilder.pipeline.process import ProcessRunner
from slugbuilder.pipeline.process_types import ProcessTypeResolver
from slugbuilder.pipeline.source import SourceRepository
from slugbuilder.pipeline.workspace import WorkspaceManager

logger = get_logger(__name__)

SLUG_EXTENSION = ".tgz"


def _elapsed(start: float) -> float:
    return round(time.monotonic() - start, 2)


class BuildSession:
    """Runs one BuildRequest to completion."""

    def __init__(
        self,
        request: BuildRequest,
        settings: Settings | None = None,
        output: OutputSink | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            request: What to build.
            settings: Settings for every component of the build.
            output: Sink receiving each build log line as it is produced.
        """
        self.request = request
        self.settings = settings or get_settings()
        self.request_id = uuid.uuid4().hex
        self.log = BuildLog(output)

        self.runner = ProcessRunner(
            log=self.log,
            timeout=self.settings.build.command_timeout,
            terminate_grace=self.settings.build.terminate_grace,
        )
        self.resolver = GitURLResolver(settings=self.settings)
        self.git_operations = GitOperations(log=self.log, settings=self.settings)
        self.workspaces = WorkspaceManager(settings=self.settings)
        self.buildpack_cache = BuildpackCache(
            resolver=self.resolver,
            git_operations=self.git_operations,
            log=self.log,
            settings=self.settings,
        )
        self.packager = ArtifactPackager(self.runner, settings=self.settings)
        self.process_type_resolver = ProcessTypeResolver()
        self.lock = CacheLock(
            self.settings.build.base_dir,
            timeout=self.settings.build.cache_lock_timeout,
        )

        self.stage = BuildStage.SETUP
        self.stats = BuildStats()
        self.location: RepositoryLocation | None = None
        self.source: SourceRepository | None = None
        self.workspace: BuildWorkspace | None = None
        self.executor: PipelineExecutor | None = None
        self.slug_path: Path | None = None
        self.process_types: list[str] = []
        self._setup_complete = False
        self._finished = False

    @property
    def url(self) -> str | None:
        """Return the URL the application is fetched from."""
        return self.source.url if self.source else self.request.repo_url

    @property
    def sha(self) -> str | None:
        """Return the built commit, once checked out."""
        if self.source is None:
            return None
        try:
            return self.source.resolved_sha
        except SlugbuilderError:
            return None

    @property
    def app_cache_dir(self) -> Path:
        """Return the application's compile cache, ``<cache_dir>/<org>/<name>``."""
        if self.location is None:
            raise SlugbuilderError("Build has not been set up")
        return self.settings.build.cache_dir / self.location.org / self.location.name

    def setup(self) -> None:
        """Acquire the cache lock, check out the source and copy the build tree.

        Raises:
            SlugbuilderError: Any setup failure. The lock and workspace are
                released before the error propagates.
        """
        if self._finished:
            raise SlugbuilderError(
                "Build session has already finished",
                details={"request_id": self.request_id},
            )
        if self._setup_complete:
            return

        start = time.monotonic()
        self.stage = BuildStage.SETUP
        try:
            self.lock.acquire()
            self._create_dirs()
            if self.request.clear_cache:
                self.buildpack_cache.wipe()

            self.location = self.resolver.parse(self.request.repo)
            url = self.request.repo_url or self.resolver.normalize(self.location)
            self.source = SourceRepository(
                self.location,
                url,
                git_operations=self.git_operations,
                log=self.log,
                settings=self.settings,
            )
            self.source.ensure_cloned()
            self.source.checkout(self.request.git_ref)

            self.workspace = self.workspaces.create(
                self.location.org, self.location.name, self.request.git_ref
            )
            self.source.materialize_build_tree(self.workspace.build_dir)
        except (SlugbuilderError, OSError):
            self.stats = self.stats.model_copy(update={"setup": _elapsed(start)})
            self._finish(success=False)
            raise

        self.stats = self.stats.model_copy(update={"setup": _elapsed(start)})
        self._setup_complete = True

    def build(self) -> BuildResult:
        """Run the build, setting up first if needed.

        Returns:
            BuildResult; ``success`` is False when any stage failed.
        """
        start: float | None = None
        success = False
        error: Exception | None = None
        try:
            self.setup()
            start = time.monotonic()
            self._build_and_release()
            success = True
        except (SlugbuilderError, OSError) as e:
            error = e
            if self.executor is not None:
                self._record_compile(self.executor.report.compile_duration)
            if self.executor is not None and self.stage in (
                BuildStage.PRE_COMPILE,
                BuildStage.DETECT,
                BuildStage.COMPILE,
                BuildStage.RELEASE,
                BuildStage.POST_COMPILE,
            ):
                self.stage = self.executor.stage
            if self.slug_path is not None:
                self.slug_path.unlink(missing_ok=True)
        finally:
            if start is not None:
                self.stats = self.stats.model_copy(update={"build": _elapsed(start)})
            self._finish(success)

        if error is not None:
            return self._failure(error)

        self.log.title(f"Setup completed in {self.stats.setup} seconds")
        self.log.title(f"Build completed in {self.stats.build} seconds")
        self.log.text(f"Application compiled in {self.stats.compile} seconds")
        self.log.text(f"Slug compressed in {self.stats.package} seconds")
        self.stage = BuildStage.SUCCEEDED

        return BuildResult(
            success=True,
            repo=self.request.repo,
            git_ref=self.request.git_ref,
            sha=self.sha,
            request_id=self.request_id,
            stats=self.stats,
            artifact_path=self.slug_path,
            process_types=self.process_types,
            captured_output=self.log.output,
            stage=BuildStage.SUCCEEDED,
        )

    run = build

    def cancel(self) -> None:
        """Cancel the build; the running command is terminated and cleanup still runs."""
        logger.info(f"Cancelling build {self.request_id}")
        self.runner.cancel()

    def close(self) -> None:
        """Release the workspace and lock of a session that will not be built."""
        self._finish(success=False)

    def __enter__(self) -> "BuildSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self.close()

    def _create_dirs(self) -> None:
        for directory in (
            self.settings.build.base_dir,
            self.settings.buildpacks_dir,
            self.settings.git_cache_dir,
            self.settings.environment_dir,
            self.settings.build.cache_dir,
            self.settings.build.output_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def _build_and_release(self) -> None:
        _, workspace = self._require_setup()
        build_dir = workspace.build_dir

        self._callback(
            self.request.prebuild,
            "prebuild",
            {"repo": self.request.repo, "git_ref": self.request.git_ref, "url": self.url},
        )

        self.stage = BuildStage.ENVIRONMENT
        environment = EnvironmentContext(user_env=self.request.env, settings=self.settings)
        environment.assemble(build_dir, self.app_cache_dir, self.request_id, self.sha or "")
        environment.materialize_user_env(workspace.env_dir)
        self.log.title("Build environment")
        for line in environment.describe():
            self.log.text(line)

        buildpack_urls = (
            self.request.buildpacks
            if self.request.buildpacks is not None
            else self.settings.build.buildpacks
        )
        buildpacks = self.buildpack_cache.resolve(
            buildpack_urls, environment.environ.get("BUILDPACK_URL")
        )
        self.buildpack_cache.fetch(buildpacks)

        self.stage = BuildStage.PRE_COMPILE
        self.executor = PipelineExecutor(
            build_dir=build_dir,
            cache_dir=self.app_cache_dir,
            env_dir=workspace.env_dir,
            environment=environment,
            runner=self.runner,
            log=self.log,
        )
        report = self.executor.run(buildpacks)
        self._record_compile(report.compile_duration)

        self.stage = BuildStage.PACKAGE
        self.slug_path = self.settings.build.output_dir.resolve() / self._slug_name()
        start = time.monotonic()
        size = self.packager.package(build_dir, self.slug_path)
        self.stats = self.stats.model_copy(
            update={"package": _elapsed(start), "slug_size_mb": size}
        )
        self.log.title(f"Slug size is {size} Megabytes.")

        self.stage = BuildStage.REPORT
        self.process_types = self.process_type_resolver.resolve(build_dir)
        self.log.title(f"Process Types: {', '.join(self.process_types)}")

        self._callback(
            self.request.postbuild,
            "postbuild",
            {
                "repo": self.request.repo,
                "git_ref": self.request.git_ref,
                "git_sha": self.sha,
                "url": self.url,
                "request_id": self.request_id,
                "stats": self.stats.to_dict(),
                "slug": str(self.slug_path),
            },
        )

    def _require_setup(self) -> tuple[RepositoryLocation, BuildWorkspace]:
        if self.location is None or self.workspace is None:
            raise SlugbuilderError("Build has not been set up")
        return self.location, self.workspace

    def _record_compile(self, duration: float) -> None:
        self.stats = self.stats.model_copy(update={"compile": round(duration, 2)})

    def _slug_name(self) -> str:
        if self.request.slug_name:
            name = self.request.slug_name
            return name if name.endswith(SLUG_EXTENSION) else f"{name}{SLUG_EXTENSION}"

        location, workspace = self._require_setup()
        parts = [
            location.org,
            location.name,
            self.request.git_ref.replace("/", "."),
            self.sha or "unknown",
            workspace.token,
        ]
        return ".".join(parts) + SLUG_EXTENSION

    def _callback(self, callback: BuildCallback | None, name: str, args: dict[str, Any]) -> None:
        if callback is None:
            return
        try:
            callback(args)
        except Exception as e:
            raise SlugbuilderError(
                f"{name} callback failed: {e}",
                details={"callback": name, "error_type": type(e).__name__},
            ) from e

    def _failure(self, error: Exception) -> BuildResult:
        failed_stage = self.stage
        self.stage = BuildStage.FAILED
        message = error.message if isinstance(error, SlugbuilderError) else str(error)
        error_output = error.output if isinstance(error, ProcessFailedError) else None

        self.log.title(f"Failed to create slug: {message}")
        logger.error(f"Build {self.request_id} failed during {failed_stage.value}: {error}")

        return BuildResult(
            success=False,
            repo=self.request.repo,
            git_ref=self.request.git_ref,
            sha=self.sha,
            request_id=self.request_id,
            stats=self.stats,
            artifact_path=None,
            process_types=self.process_types,
            captured_output=self.log.output,
            stage=failed_stage,
            error_type=type(error).__name__,
            error_message=message,
            error_output=error_output,
        )

    def _finish(self, success: bool) -> None:
        """Dispose of the workspace per the cleanup policy and release the lock."""
        if self._finished:
            return
        self._finished = True
        try:
            if self.workspace is not None and self.workspaces.get(self.workspace.token):
                if success or not self.settings.build.keep_failed_builds:
                    self.workspaces.cleanup(self.workspace.token)
                else:
                    self.workspaces.release(self.workspace.token)
                    self.log.text(f"Kept build directory {self.workspace.build_dir}")
                    self.log.text(f"Kept environment directory {self.workspace.env_dir}")
        finally:
            self.lock.release()
