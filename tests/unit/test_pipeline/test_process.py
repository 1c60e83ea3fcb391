"""Tests for ProcessRunner."""

import threading
import time
from pathlib import Path

import pytest

from slugbuilder.core.exceptions.errors import BuildCancelledError
from slugbuilder.pipeline.output import BuildLog
from slugbuilder.pipeline.process import ProcessRunner
from tests.helpers import write_script


class TestProcessRunner:
    """Tests for ProcessRunner class."""

    def test_streams_and_captures(self, temp_dir: Path) -> None:
        """Test that stdout and stderr are logged as they arrive and kept apart."""
        received: list[str] = []
        runner = ProcessRunner(log=BuildLog(received.append))

        result = runner.run(["/bin/sh", "-c", "echo out; echo err >&2; exit 3"], cwd=temp_dir)

        assert result.return_code == 3
        assert not result.success
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.output == "out\nerr\n"
        assert "out" in received
        assert "err" in received

    def test_echo_disabled(self, temp_dir: Path) -> None:
        """Test that output can be captured without logging."""
        log = BuildLog()
        runner = ProcessRunner(log=log)

        result = runner.run(["/bin/sh", "-c", "echo quiet"], cwd=temp_dir, echo=False)

        assert result.success
        assert result.stdout == "quiet\n"
        assert log.lines == []

    def test_echo_per_stream(self, temp_dir: Path) -> None:
        """Test that stderr is still logged when stdout logging is off."""
        log = BuildLog()
        runner = ProcessRunner(log=log)

        result = runner.run(
            ["/bin/sh", "-c", "echo data; echo warning >&2"], cwd=temp_dir, echo=False
        )

        assert result.stdout == "data\n"
        assert log.lines == ["warning"]

        runner.run(["/bin/sh", "-c", "echo hidden >&2"], cwd=temp_dir, echo_stderr=False)
        assert "hidden" not in log.lines

    def test_explicit_environment(self, temp_dir: Path) -> None:
        """Test that the child sees exactly the given environment."""
        runner = ProcessRunner()

        result = runner.run(
            ["/bin/sh", "-c", 'echo "$ONLY_VAR:${HOME:-unset}"'],
            cwd=temp_dir,
            env={"ONLY_VAR": "value"},
        )

        assert result.stdout == "value:unset\n"

    def test_working_directory(self, temp_dir: Path) -> None:
        """Test that the command runs in cwd."""
        result = ProcessRunner().run(["/bin/pwd"], cwd=temp_dir)
        assert Path(result.stdout.strip()).resolve() == temp_dir.resolve()

    def test_missing_program(self, temp_dir: Path) -> None:
        """Test that a missing program is reported as exit status 127."""
        result = ProcessRunner().run([temp_dir / "missing"], cwd=temp_dir)

        assert result.return_code == 127
        assert "missing" in result.stderr

    def test_not_executable(self, temp_dir: Path) -> None:
        """Test that a non-executable file is reported as exit status 126."""
        script = temp_dir / "script.sh"
        script.write_text("#!/bin/sh\necho hi\n")

        result = ProcessRunner().run([script], cwd=temp_dir)

        assert result.return_code == 126

    def test_timeout(self, temp_dir: Path) -> None:
        """Test that a command exceeding the timeout is killed."""
        log = BuildLog()
        runner = ProcessRunner(log=log, timeout=1, terminate_grace=1)

        start = time.monotonic()
        result = runner.run(["/bin/sh", "-c", "sleep 30"], cwd=temp_dir)

        assert time.monotonic() - start < 10
        assert result.timed_out
        assert result.return_code == -1
        assert "Command timed out after 1 seconds" in result.stderr
        assert "Command timed out after 1 seconds" in log.lines

    def test_cancel_running_command(self, temp_dir: Path) -> None:
        """Test that cancel terminates the running command's process group."""
        runner = ProcessRunner(terminate_grace=1)
        marker = temp_dir / "finished"
        script = write_script(temp_dir / "slow.sh", f"#!/bin/sh\nsleep 30\ntouch {marker}\n")

        timer = threading.Timer(0.5, runner.cancel)
        timer.start()
        start = time.monotonic()
        try:
            with pytest.raises(BuildCancelledError):
                runner.run([script], cwd=temp_dir)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 10
        assert not marker.exists()

    def test_cancelled_runner_refuses_new_commands(self, temp_dir: Path) -> None:
        """Test that nothing runs after cancellation."""
        runner = ProcessRunner()
        runner.cancel()
        marker = temp_dir / "ran"

        with pytest.raises(BuildCancelledError):
            runner.run(["/bin/sh", "-c", f"touch {marker}"], cwd=temp_dir)

        assert runner.cancelled
        assert not marker.exists()
