"""Process types declared by the Procfile and buildpack release metadata."""

from pathlib import Path
from typing import Any

import yaml

from slugbuilder.core.logger.logger import get_logger
from slugbuilder.pipeline.executor import RELEASE_FILE

logger = get_logger(__name__)

PROCFILE = "Procfile"


def _load_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8", errors="replace"))
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unparsable {path.name}: {e}")
        return {}
    if not isinstance(data, dict):
        if data is not None:
            logger.warning(f"Ignoring {path.name}: not a mapping")
        return {}
    return data


class ProcessTypeResolver:
    """Merges Procfile entries with a buildpack's ``default_process_types``."""

    def commands(self, build_dir: Path) -> dict[str, Any]:
        """Return process type name to command, release entries winning."""
        process_types = dict(_load_mapping(build_dir / PROCFILE))

        defaults = _load_mapping(build_dir / RELEASE_FILE).get("default_process_types")
        if isinstance(defaults, dict):
            process_types.update(defaults)

        return {str(name): command for name, command in process_types.items()}

    def resolve(self, build_dir: Path) -> list[str]:
        """Return the ordered process type names of a build."""
        return list(self.commands(build_dir))
