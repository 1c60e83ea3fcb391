"""Tests for CLI display module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from slugbuilder.cli.display import (
    print_build_line,
    show_error,
    show_request,
    show_result,
    show_success,
)
from slugbuilder.models.build import BuildRequest, BuildResult, BuildStage, BuildStats


class TestDisplayFunctions:
    """Test display functions."""

    @patch("slugbuilder.cli.display.console")
    def test_print_build_line(self, mock_console: MagicMock) -> None:
        """Test that titles and detail lines are printed verbatim."""
        print_build_line("-----> Node.js app detected")
        print_build_line("       [not markup]")

        printed = [call.args[0] for call in mock_console.print.call_args_list]
        assert "Node.js app detected" in printed[0]
        assert printed[1] == "       \\[not markup]"

    @patch("slugbuilder.cli.display.console")
    def test_panels(self, mock_console: MagicMock) -> None:
        """Test success and error panels."""
        show_success("Success", "Slug written")
        show_error("Error", "Build failed")
        assert mock_console.print.called

    @patch("slugbuilder.cli.display.console")
    def test_show_request(self, mock_console: MagicMock) -> None:
        """Test request summary display."""
        show_request(
            BuildRequest(
                repo="acme/app",
                git_ref="main",
                buildpacks=["heroku/nodejs"],
                env={"SECRET": "value"},
            )
        )
        assert mock_console.print.called

    @patch("slugbuilder.cli.display.console")
    def test_show_result(self, mock_console: MagicMock) -> None:
        """Test result display for success and failure."""
        show_result(
            BuildResult(
                success=True,
                repo="acme/app",
                git_ref="main",
                sha="abc",
                request_id="req",
                stats=BuildStats(setup=1.0, build=2.0, compile=1.5, package=0.2, slug_size_mb=3),
                artifact_path=Path("/tmp/slug.tgz"),
                process_types=["web", "worker"],
            )
        )
        show_result(
            BuildResult(
                success=False,
                repo="acme/app",
                git_ref="main",
                request_id="req",
                stage=BuildStage.DETECT,
                error_type="NoBuildpackDetectedError",
                error_message="Could not detect buildpack",
            )
        )
        assert mock_console.print.call_count >= 4
