"""Tests for CLI main module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from slugbuilder.cli.main import main, parse_env_options
from slugbuilder.core.config.settings import Settings
from slugbuilder.core.exceptions.errors import ConfigurationError
from slugbuilder.models.build import BuildRequest, BuildResult, BuildStage


def _result(success: bool, **kwargs) -> BuildResult:
    return BuildResult(
        success=success,
        repo="heroku/node-js-sample",
        git_ref="master",
        request_id="req",
        **kwargs,
    )


class TestMainCommand:
    """Test main CLI command."""

    def test_version_flag(self) -> None:
        """Test version flag."""
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "Slugbuilder version 0.1.0" in result.output

    def test_help_without_command(self) -> None:
        """Test that running without a command shows help."""
        runner = CliRunner()
        result = runner.invoke(main, [])
        assert result.exit_code == 0
        assert "build" in result.output
        assert "clear-cache" in result.output


class TestParseEnvOptions:
    """Tests for KEY=VALUE parsing."""

    def test_parse(self) -> None:
        """Test values containing '=' and empty values."""
        assert parse_env_options(("A=1", "URL=postgres://h/db?x=y", "EMPTY=")) == {
            "A": "1",
            "URL": "postgres://h/db?x=y",
            "EMPTY": "",
        }

    @pytest.mark.parametrize("value", ["NOVALUE", "=value"])
    def test_invalid(self, value: str) -> None:
        """Test that malformed values are rejected."""
        with pytest.raises(click.BadParameter):
            parse_env_options((value,))


@patch("slugbuilder.cli.main.setup_logging")
class TestBuildCommand:
    """Test build command."""

    @patch("slugbuilder.cli.main.execute_build")
    @patch("slugbuilder.cli.main.load_settings")
    def test_build_success(
        self,
        mock_load: MagicMock,
        mock_execute: MagicMock,
        mock_logging: MagicMock,
        settings: Settings,
        temp_dir: Path,
    ) -> None:
        """Test that options become a BuildRequest."""
        mock_load.return_value = settings
        mock_execute.return_value = _result(True, artifact_path=temp_dir / "slug.tgz")

        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "build",
                "heroku/node-js-sample",
                "master",
                "-b",
                "heroku/heroku-buildpack-nodejs",
                "-b",
                "heroku/heroku-buildpack-ruby#v150",
                "-e",
                "NODE_ENV=production",
                "--slug-name",
                "sample",
                "--clear-cache",
                "-q",
            ],
        )

        assert result.exit_code == 0, result.output
        request, passed_settings = mock_execute.call_args.args
        assert isinstance(request, BuildRequest)
        assert request.buildpacks == [
            "heroku/heroku-buildpack-nodejs",
            "heroku/heroku-buildpack-ruby#v150",
        ]
        assert request.env == {"NODE_ENV": "production"}
        assert request.slug_name == "sample"
        assert request.clear_cache is True
        assert passed_settings is settings
        assert mock_execute.call_args.kwargs == {"quiet": True}

    @patch("slugbuilder.cli.main.execute_build")
    @patch("slugbuilder.cli.main.load_settings")
    def test_build_without_buildpacks(
        self,
        mock_load: MagicMock,
        mock_execute: MagicMock,
        mock_logging: MagicMock,
        settings: Settings,
    ) -> None:
        """Test that no -b options defer to the configured buildpacks."""
        mock_load.return_value = settings
        mock_execute.return_value = _result(True)

        runner = CliRunner()
        runner.invoke(main, ["build", "acme/app", "main", "--url", "file:///srv/acme/app.git"])

        request = mock_execute.call_args.args[0]
        assert request.buildpacks is None
        assert request.repo_url == "file:///srv/acme/app.git"

    @patch("slugbuilder.cli.main.execute_build")
    @patch("slugbuilder.cli.main.load_settings")
    def test_build_failure_exit_code(
        self,
        mock_load: MagicMock,
        mock_execute: MagicMock,
        mock_logging: MagicMock,
        settings: Settings,
    ) -> None:
        """Test that a failed build exits with status 1."""
        mock_load.return_value = settings
        mock_execute.return_value = _result(
            False,
            stage=BuildStage.COMPILE,
            error_type="CompileFailedError",
            error_message="Couldn't compile application",
        )

        runner = CliRunner()
        result = runner.invoke(main, ["build", "acme/app", "main"])

        assert result.exit_code == 1

    @patch("slugbuilder.cli.main.execute_build")
    @patch("slugbuilder.cli.main.load_settings")
    def test_invalid_env_option(
        self,
        mock_load: MagicMock,
        mock_execute: MagicMock,
        mock_logging: MagicMock,
        settings: Settings,
    ) -> None:
        """Test that a malformed --env is a usage error."""
        mock_load.return_value = settings

        runner = CliRunner()
        result = runner.invoke(main, ["build", "acme/app", "main", "-e", "NOVALUE"])

        assert result.exit_code == 2
        mock_execute.assert_not_called()

    @patch("slugbuilder.cli.main.load_settings")
    def test_configuration_error(self, mock_load: MagicMock, mock_logging: MagicMock) -> None:
        """Test that a bad configuration exits with status 1."""
        mock_load.side_effect = ConfigurationError("Invalid YAML in configuration file")

        runner = CliRunner()
        result = runner.invoke(main, ["build", "acme/app", "main"])

        assert result.exit_code == 1


class TestClearCacheCommand:
    """Test clear-cache command."""

    @patch("slugbuilder.cli.main.load_settings")
    def test_clear_cache(self, mock_load: MagicMock, settings: Settings) -> None:
        """Test that every cache root is emptied."""
        mock_load.return_value = settings
        slot = settings.buildpacks_dir / "heroku__heroku-buildpack-nodejs"
        slot.mkdir(parents=True)
        (settings.build.cache_dir / "acme" / "app").mkdir(parents=True)

        runner = CliRunner()
        result = runner.invoke(main, ["clear-cache"])

        assert result.exit_code == 0, result.output
        assert not slot.exists()
        assert list(settings.build.cache_dir.iterdir()) == []
        assert settings.buildpacks_dir.is_dir()
