"""Helpers for building repositories and buildpacks in tests."""

import stat
from pathlib import Path

from git import Repo

DETECT_ALWAYS = "#!/bin/sh\necho Test\nexit 0\n"
DETECT_NEVER = "#!/bin/sh\nexit 1\n"
COMPILE_NOOP = "#!/bin/sh\nexit 0\n"
RELEASE_DEFAULT = (
    "#!/bin/sh\n"
    "cat <<YAML\n"
    "---\n"
    "default_process_types:\n"
    "  web: npm start\n"
    "YAML\n"
)


def write_script(path: Path, body: str) -> Path:
    """Write an executable script."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_buildpack_scripts(
    path: Path,
    detect: str = DETECT_ALWAYS,
    compile: str = COMPILE_NOOP,
    release: str = RELEASE_DEFAULT,
) -> Path:
    """Write bin/detect, bin/compile and bin/release under path."""
    write_script(path / "bin" / "detect", detect)
    write_script(path / "bin" / "compile", compile)
    write_script(path / "bin" / "release", release)
    return path


def commit_all(repo: Repo, message: str) -> str:
    """Stage every file of the working tree and commit it.

    Returns:
        The new commit SHA.
    """
    root = Path(repo.working_tree_dir)
    paths = [
        str(p.relative_to(root))
        for p in root.rglob("*")
        if p.is_file() and ".git" not in p.relative_to(root).parts
    ]
    repo.index.add(paths)
    return repo.index.commit(message).hexsha
