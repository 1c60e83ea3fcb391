"""Staged execution of hooks and buildpacks against a build tree.

Stages run in order: pre-compile hook, then for each buildpack detect ->
compile -> release, then the post-compile hook. The first failing stage
aborts the pipeline.
"""

import os
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from slugbuilder.core.exceptions.errors import (
    CompileFailedError,
    HookFailedError,
    InvalidBuildpackError,
    NoBuildpackDetectedError,
    ReleaseFailedError,
)
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.models.build import BuildStage
from slugbuilder.models.repository import Buildpack
from slugbuilder.pipeline.environment import EnvironmentContext
from slugbuilder.pipeline.output import BuildLog
from slugbuilder.pipeline.process import ProcessResult, ProcessRunner

logger = get_logger(__name__)

PRE_COMPILE_HOOK = "pre-compile"
POST_COMPILE_HOOK = "post-compile"
RELEASE_FILE = ".release"


@dataclass
class PipelineReport:
    """What a pipeline run did.

    Attributes:
        compile_duration: Total seconds spent in compile scripts.
        detected: Cache keys of the buildpacks that claimed the tree.
        exports: Variables exported by buildpacks, in application order.
        hooks: Hooks that ran.
    """

    compile_duration: float = 0.0
    detected: list[str] = field(default_factory=list)
    exports: dict[str, str] = field(default_factory=dict)
    hooks: list[str] = field(default_factory=list)


class PipelineExecutor:
    """Runs the hook and buildpack stages of one build."""

    def __init__(
        self,
        build_dir: Path,
        cache_dir: Path,
        env_dir: Path,
        environment: EnvironmentContext,
        runner: ProcessRunner,
        log: BuildLog | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            build_dir: Per-build source tree.
            cache_dir: Application compile cache passed to compile.
            env_dir: Directory of user variable files passed to compile.
            environment: Live build environment.
            runner: Runner for every script.
            log: Build log.
        """
        self.build_dir = build_dir
        self.cache_dir = cache_dir
        self.env_dir = env_dir
        self.environment = environment
        self.runner = runner
        self.log = log or runner.log
        self.stage = BuildStage.PRE_COMPILE
        self.report = PipelineReport()

    def run(self, buildpacks: Sequence[Buildpack]) -> PipelineReport:
        """Run every stage.

        Args:
            buildpacks: Buildpacks in the order they are tried.

        Returns:
            PipelineReport of the run.

        Raises:
            HookFailedError: If a hook exits non-zero.
            InvalidBuildpackError: If a buildpack lacks a required script.
            CompileFailedError: If a compile script exits non-zero.
            ReleaseFailedError: If a release script exits non-zero.
            NoBuildpackDetectedError: If no buildpack claims the tree.
            BuildCancelledError: If the build is cancelled.
        """
        self.report = PipelineReport()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.stage = BuildStage.PRE_COMPILE
        self.run_hook(PRE_COMPILE_HOOK)

        for buildpack in buildpacks:
            self.stage = BuildStage.DETECT
            if not self.detect(buildpack):
                continue
            self.report.detected.append(buildpack.cache_key)

            self.stage = BuildStage.COMPILE
            self.compile(buildpack)
            self.report.exports.update(self.environment.apply_exports(buildpack.export_file))

            self.stage = BuildStage.RELEASE
            self.release(buildpack)

        if not self.report.detected:
            self.stage = BuildStage.DETECT
            raise NoBuildpackDetectedError(
                "Could not detect buildpack: no buildpack claimed the application",
                details={"buildpacks": [bp.cache_key for bp in buildpacks]},
            )

        self.stage = BuildStage.POST_COMPILE
        self.run_hook(POST_COMPILE_HOOK)

        return self.report

    def _script(self, buildpack: Buildpack, script: Path) -> Path:
        if not script.is_file():
            raise InvalidBuildpackError(
                f"Buildpack {buildpack.cache_key} has no bin/{script.name}",
                buildpack=buildpack.cache_key,
                details={"path": str(script)},
            )
        return script

    def _run(self, command: list[str | Path], echo: bool = True) -> ProcessResult:
        return self.runner.run(
            command,
            cwd=self.build_dir,
            env=self.environment.environ,
            echo=echo,
        )

    def detect(self, buildpack: Buildpack) -> bool:
        """Run ``bin/detect``; exit status 0 means the buildpack claims the tree."""
        script = self._script(buildpack, buildpack.detect_script)
        result = self._run([script, self.build_dir], echo=False)
        if not result.success:
            logger.debug(f"{buildpack.cache_key} did not detect (exit {result.return_code})")
            return False

        framework = result.stdout.strip() or buildpack.name
        self.log.title(f"{framework} app detected")
        return True

    def compile(self, buildpack: Buildpack) -> float:
        """Run ``bin/compile <build_dir> <cache_dir> <env_dir>``.

        The time taken is added to the report even when the compile fails.

        Returns:
            Seconds the compile took.
        """
        script = self._script(buildpack, buildpack.compile_script)
        buildpack.export_file.unlink(missing_ok=True)

        start_time = time.monotonic()
        result = self._run([script, self.build_dir, self.cache_dir, self.env_dir])
        duration = time.monotonic() - start_time
        self.report.compile_duration += duration

        if not result.success:
            raise CompileFailedError(
                f"Couldn't compile application using buildpack {buildpack.cache_key}",
                buildpack=buildpack.cache_key,
                exit_code=result.return_code,
                output=result.output,
                stderr=result.stderr,
            )
        return duration

    def release(self, buildpack: Buildpack) -> Path:
        """Run ``bin/release <build_dir>`` and write its stdout to ``.release``.

        Returns:
            Path of the release file.
        """
        script = self._script(buildpack, buildpack.release_script)
        result = self._run([script, self.build_dir], echo=False)

        release_file = self.build_dir / RELEASE_FILE
        release_file.write_text(result.stdout, encoding="utf-8")

        if not result.success:
            raise ReleaseFailedError(
                f"Couldn't release application using buildpack {buildpack.cache_key}",
                buildpack=buildpack.cache_key,
                exit_code=result.return_code,
                output=result.output,
                stderr=result.stderr,
            )
        return release_file

    def run_hook(self, name: str) -> bool:
        """Run ``<build_dir>/bin/<name>`` if it exists.

        Returns:
            Whether the hook ran.

        Raises:
            HookFailedError: If the hook exits non-zero.
        """
        hook = self.build_dir / "bin" / name
        if not hook.is_file():
            return False
        if not os.access(hook, os.X_OK):
            logger.warning(f"Skipping {name} hook: {hook} is not executable")
            return False

        self.log.title(f"Running {name} hook")
        result = self._run([hook])
        if not result.success:
            raise HookFailedError(
                f"{name} hook failed",
                hook=name,
                exit_code=result.return_code,
                output=result.output,
                stderr=result.stderr,
            )
        self.report.hooks.append(name)
        return True
