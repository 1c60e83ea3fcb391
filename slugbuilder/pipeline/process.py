"""Blocking subprocess execution with streamed output and cancellation.

Every external command of a build (buildpack scripts, hooks, tar) goes through
ProcessRunner. stdout and stderr are read line by line on reader threads,
forwarded to the build log and kept for the result.
"""

import os
import signal
import subprocess
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from slugbuilder.core.exceptions.errors import BuildCancelledError
from slugbuilder.core.logger.logger import get_logger
from slugbuilder.pipeline.output import BuildLog

logger = get_logger(__name__)

_POLL_INTERVAL = 0.1


@dataclass
class ProcessResult:
    """Result of a command execution.

    Attributes:
        command: The command that was executed.
        return_code: Exit code (127 if it could not be started, -1 on timeout).
        stdout: Captured standard output, verbatim.
        stderr: Captured standard error, verbatim.
        duration_seconds: Wall time of the command.
        timed_out: Whether the command was killed by the timeout.
    """

    command: list[str]
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.return_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Return stdout followed by stderr."""
        return self.stdout + self.stderr

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "command": " ".join(self.command),
            "return_code": self.return_code,
            "duration_seconds": self.duration_seconds,
            "timed_out": self.timed_out,
        }


class ProcessRunner:
    """Runs commands one at a time on behalf of a single build."""

    def __init__(
        self,
        log: BuildLog | None = None,
        timeout: int | None = None,
        terminate_grace: float = 5.0,
    ) -> None:
        """Initialize the runner.

        Args:
            log: Build log receiving streamed output lines.
            timeout: Maximum time for each command in seconds (None = no limit).
            terminate_grace: Seconds to wait after SIGTERM before SIGKILL.
        """
        self.log = log or BuildLog()
        self.timeout = timeout
        self.terminate_grace = terminate_grace
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Cancel the in-flight command and every later one."""
        self._cancel_event.set()

    def check_cancelled(self) -> None:
        """Raise BuildCancelledError if the build was cancelled."""
        if self.cancelled:
            raise BuildCancelledError("Build cancelled")

    def run(
        self,
        command: Sequence[str | Path],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        echo: bool = True,
        echo_stderr: bool = True,
    ) -> ProcessResult:
        """Run a command to completion.

        Args:
            command: Program and arguments.
            cwd: Working directory.
            env: Complete environment of the child (None = inherit).
            echo: Whether stdout lines are written to the build log.
            echo_stderr: Whether stderr lines are written to the build log.

        Returns:
            ProcessResult with the exit status and captured output.

        Raises:
            BuildCancelledError: If the build is cancelled before or during the command.
        """
        self.check_cancelled()

        argv = [str(part) for part in command]
        logger.debug(f"Running: {' '.join(argv)} (cwd={cwd})")
        start_time = time.monotonic()

        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            message = f"{argv[0]}: {e.strerror or e}\n"
            if echo_stderr:
                self.log.write(message)
            return ProcessResult(
                command=argv,
                return_code=126 if isinstance(e, PermissionError) else 127,
                stderr=message,
                duration_seconds=time.monotonic() - start_time,
            )

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        readers = [
            threading.Thread(
                target=self._read_stream,
                args=(process.stdout, stdout_lines, echo),
                daemon=True,
            ),
            threading.Thread(
                target=self._read_stream,
                args=(process.stderr, stderr_lines, echo_stderr),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        deadline = start_time + self.timeout if self.timeout else None
        while True:
            try:
                process.wait(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if self.cancelled:
                    self._terminate(process)
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    timed_out = True
                    self._terminate(process)
                    break

        for reader in readers:
            reader.join()

        result = ProcessResult(
            command=argv,
            return_code=-1 if timed_out else process.returncode,
            stdout="".join(stdout_lines),
            stderr="".join(stderr_lines),
            duration_seconds=time.monotonic() - start_time,
            timed_out=timed_out,
        )

        if self.cancelled:
            raise BuildCancelledError(
                f"Build cancelled while running {argv[0]}",
                details=result.to_dict(),
            )
        if timed_out:
            message = f"Command timed out after {self.timeout} seconds\n"
            result.stderr += message
            self.log.write(message)

        return result

    def _read_stream(self, stream: IO[bytes] | None, sink: list[str], echo: bool) -> None:
        if stream is None:
            return
        with stream:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace")
                sink.append(line)
                if echo:
                    self.log.write(line)

    def _terminate(self, process: subprocess.Popen) -> None:
        """Terminate the command's process group, escalating to SIGKILL."""
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            return
        try:
            process.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {process.pid} ignored SIGTERM, killing")
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            process.wait()
