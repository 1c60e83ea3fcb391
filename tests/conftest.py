"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from git import Repo

from slugbuilder.core.config.settings import (
    BuildSettings,
    GitSettings,
    LoggingSettings,
    Settings,
)
from slugbuilder.models.repository import Buildpack, GitProtocol, RepositoryLocation
from tests.helpers import commit_all, write_buildpack_scripts


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test.

    Yields:
        Path to the temporary directory.
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Create settings rooted in the temporary directory.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Settings instance.
    """
    return Settings(
        build=BuildSettings(
            base_dir=temp_dir / "base",
            cache_dir=temp_dir / "cache",
            output_dir=temp_dir / "slugs",
            buildpacks=[],
            use_fast_compressor=False,
            cache_lock_timeout=5,
        ),
        git=GitSettings(
            host="github.com",
            protocol="https",
            retry_attempts=1,
            retry_delay=0,
        ),
        logging=LoggingSettings(use_rich=False),
    )


@pytest.fixture
def remote_root(temp_dir: Path) -> Path:
    """Directory holding the "remote" repositories used as file:// origins."""
    root = temp_dir / "remote"
    root.mkdir()
    return root


@pytest.fixture
def make_repo(remote_root: Path) -> Callable[..., tuple[Repo, str]]:
    """Factory creating a committed repository at ``<remote_root>/<org>/<name>.git``.

    Returns:
        Callable taking org, name and a {relative path: content} mapping and
        returning the Repo and its file:// URL.
    """

    def _make(org: str, name: str, files: dict[str, str] | None = None) -> tuple[Repo, str]:
        path = remote_root / org / f"{name}.git"
        path.mkdir(parents=True)
        repo = Repo.init(path)
        for relative, content in (files or {"README.md": "# Sample\n"}).items():
            target = path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        commit_all(repo, "Initial commit")
        return repo, f"file://{remote_root}/{org}/{name}.git"

    return _make


@pytest.fixture
def make_git_buildpack(remote_root: Path) -> Callable[..., tuple[Repo, str]]:
    """Factory creating a buildpack repository with executable scripts.

    Returns:
        Callable taking a name and script bodies and returning the Repo and
        its file:// URL under the ``buildpacks`` org.
    """

    def _make(name: str, **scripts: str) -> tuple[Repo, str]:
        path = remote_root / "buildpacks" / f"{name}.git"
        path.mkdir(parents=True)
        repo = Repo.init(path)
        write_buildpack_scripts(path, **scripts)
        commit_all(repo, "Add buildpack scripts")
        return repo, f"file://{remote_root}/buildpacks/{name}.git"

    return _make


@pytest.fixture
def sample_app(make_repo: Callable[..., tuple[Repo, str]]) -> tuple[Repo, str]:
    """An application repository acme/app with dotfiles, a Procfile and dependencies."""
    return make_repo(
        "acme",
        "app",
        {
            "README.md": "# App\n",
            "app.js": "console.log('hi')\n",
            "Procfile": "web: node app.js\n",
            ".env": "# app defaults\nFROM_DOTENV=yes\nSHARED=dotenv\n",
            ".profile.d/app.sh": "export APP=1\n",
            "node_modules/lib/index.js": "module.exports = 1\n",
        },
    )


@pytest.fixture
def build_dir(temp_dir: Path) -> Path:
    """An empty per-build directory."""
    path = temp_dir / "build"
    path.mkdir()
    return path


@pytest.fixture
def local_buildpack(temp_dir: Path) -> Callable[..., Buildpack]:
    """Factory creating a buildpack directory without git, for executor tests."""

    def _make(name: str, **scripts: str) -> Buildpack:
        path = write_buildpack_scripts(temp_dir / "buildpacks" / name, **scripts)
        location = RepositoryLocation(
            host=str(temp_dir / "buildpacks"),
            org="local",
            name=name,
            protocol=GitProtocol.FILE,
        )
        return Buildpack(
            url=f"file://{path}",
            location=location,
            cache_key=f"local__{name}",
            path=path,
        )

    return _make
