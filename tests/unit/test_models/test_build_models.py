"""Tests for build and repository models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from slugbuilder.models import (
    BuildRequest,
    BuildResult,
    BuildStage,
    BuildStats,
    Buildpack,
    RepositoryLocation,
)


class TestBuildRequest:
    """Tests for BuildRequest model."""

    def test_defaults(self) -> None:
        """Test the optional fields."""
        request = BuildRequest(repo="heroku/node-js-sample", git_ref="master")

        assert request.buildpacks is None
        assert request.env == {}
        assert request.clear_cache is False
        assert request.prebuild is None

    def test_env_values_stringified(self) -> None:
        """Test that environment values are coerced to strings."""
        request = BuildRequest(repo="a/b", git_ref="main", env={"PORT": 5000, "DEBUG": True})
        assert request.env == {"PORT": "5000", "DEBUG": "True"}

    def test_frozen(self) -> None:
        """Test that requests cannot be modified."""
        request = BuildRequest(repo="a/b", git_ref="main")
        with pytest.raises(ValidationError):
            request.git_ref = "other"


class TestBuildResult:
    """Tests for BuildResult model."""

    def test_durations_and_dict(self) -> None:
        """Test the convenience properties and dictionary form."""
        result = BuildResult(
            success=True,
            repo="a/b",
            git_ref="main",
            sha="abc",
            request_id="req",
            stats=BuildStats(setup=1.5, build=10.0, compile=8.25, package=1.0, slug_size_mb=42),
            artifact_path=Path("/slugs/a.b.main.abc.tok.tgz"),
            process_types=["web"],
            captured_output="-----> done\n",
        )

        assert result.setup_duration == 1.5
        assert result.compile_duration == 8.25
        assert result.artifact_size_mb == 42

        data = result.to_dict()
        assert data["artifact_path"] == "/slugs/a.b.main.abc.tok.tgz"
        assert data["stage"] == "succeeded"
        assert data["stats"]["slug_size_mb"] == 42
        assert "captured_output" not in data

    def test_failure_fields(self) -> None:
        """Test a failed result."""
        result = BuildResult(
            success=False,
            repo="a/b",
            git_ref="main",
            request_id="req",
            stage=BuildStage.COMPILE,
            error_type="CompileFailedError",
            error_message="Couldn't compile application",
            error_output="npm ERR!\n",
        )

        assert result.artifact_path is None
        assert result.build_duration is None
        assert result.to_dict()["stage"] == "compile"


class TestBuildpack:
    """Tests for Buildpack model."""

    def test_script_paths(self, temp_dir: Path) -> None:
        """Test the paths derived from the cache slot."""
        buildpack = Buildpack(
            url="https://github.com/heroku/heroku-buildpack-ruby.git",
            location=RepositoryLocation(
                org="heroku", name="heroku-buildpack-ruby", pinned_commit="v150"
            ),
            cache_key="heroku__heroku-buildpack-rubyv150",
            path=temp_dir / "heroku__heroku-buildpack-rubyv150",
        )

        assert buildpack.name == "heroku-buildpack-ruby"
        assert buildpack.pinned_commit == "v150"
        assert buildpack.detect_script == buildpack.path / "bin" / "detect"
        assert buildpack.compile_script == buildpack.path / "bin" / "compile"
        assert buildpack.release_script == buildpack.path / "bin" / "release"
        assert buildpack.export_file == buildpack.path / "export"
