"""Slug packaging with tar."""

import shutil
from pathlib import Path

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import PackagingFailedError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.pipeline.process import ProcessRunner

logger = get_logger(__name__)

SLUGIGNORE_FILE = ".slugignore"
BYTES_PER_MB = 1024 * 1024


class ArtifactPackager:
    """Creates the gzip-compressed tar slug of a build directory."""

    def __init__(self, runner: ProcessRunner, settings: Settings | None = None) -> None:
        """Initialize the packager.

        Args:
            runner: Runner for the tar command.
            settings: Settings selecting the compressor.
        """
        self.runner = runner
        self.settings = settings or get_settings()

    def compression_args(self) -> list[str]:
        """Return tar's compression flags, preferring the fast compressor."""
        if self.settings.build.use_fast_compressor:
            compressor = shutil.which(self.settings.build.fast_compressor)
            if compressor:
                return [f"--use-compress-program={compressor}"]
            logger.debug(f"{self.settings.build.fast_compressor} not found, using gzip")
        return ["-z"]

    def command(self, build_dir: Path, output_path: Path) -> list[str]:
        """Return the tar command packaging build_dir into output_path."""
        command = ["tar", "--exclude=.git", *self.compression_args()]
        slugignore = build_dir / SLUGIGNORE_FILE
        if slugignore.is_file():
            command += ["-X", str(slugignore)]
        command += ["-C", str(build_dir), "-cf", str(output_path), "."]
        return command

    def package(self, build_dir: Path, output_path: Path) -> int:
        """Archive build_dir into output_path.

        Args:
            build_dir: Compiled build tree.
            output_path: Slug file to write.

        Returns:
            Slug size in whole megabytes (truncated).

        Raises:
            PackagingFailedError: If tar exits non-zero.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result = self.runner.run(self.command(build_dir, output_path), cwd=build_dir)
        if not result.success:
            raise PackagingFailedError(
                "Couldn't create slugfile",
                exit_code=result.return_code,
                output=result.output,
                stderr=result.stderr,
                details={"slug": str(output_path)},
            )
        return slug_size_mb(output_path)


def slug_size_mb(path: Path) -> int:
    """Return the size of a file in megabytes, rounded down."""
    return path.stat().st_size // BYTES_PER_MB
