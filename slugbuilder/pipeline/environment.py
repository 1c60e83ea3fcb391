"""Build environment assembly and buildpack export propagation.

The environment of a build is an explicit mapping handed to every subprocess;
the host process's ``os.environ`` is only read (for passthrough variables) and
never modified. Layers, later overriding earlier:

0. passthrough host variables (``build.inherit_env``)
1. ``<cache_dir>/env``
2. ``<build_dir>/.env``
3. STACK, REQUEST_ID, SOURCE_VERSION, HOME, APP_DIR
4. user variables
5. variables exported by each buildpack's compile step
"""

import os
import re
from collections.abc import Iterator, Mapping, MutableMapping
from pathlib import Path

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import InvalidEnvironmentError
from slugbuilder.core.logger.logger import get_logger

logger = get_logger(__name__)

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DOUBLE_QUOTE_ESCAPES = '"\\$`\n'

MASK = "********"


def read_env_file(path: Path) -> dict[str, str]:
    """Read a ``KEY=VALUE`` file.

    Comment lines (``#``) and lines without a key and a value separated by
    ``=`` are skipped. A missing file yields an empty mapping.
    """
    if not path.is_file():
        return {}

    variables: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split("=", 1)
        if len(parts) != 2 or not parts[0]:
            continue
        variables[parts[0]] = parts[1]
    return variables


def _expand(text: str, pos: int, env: Mapping[str, str]) -> tuple[str, int]:
    """Expand the parameter reference starting at ``text[pos] == "$"``.

    Handles ``$NAME``, ``${NAME}`` and ``${NAME:-default}``. Command
    substitutions and anything else are returned literally.

    Returns:
        The expansion and the position after the reference.
    """
    nxt = pos + 1
    if text.startswith("{", nxt):
        end = text.find("}", nxt)
        if end != -1:
            body = text[nxt + 1 : end]
            name, sep, default = body.partition(":-")
            if _NAME_RE.fullmatch(name):
                value = env.get(name, "")
                if sep and not value:
                    value = default
                return value, end + 1
        return "$", nxt

    if text.startswith("(", nxt):
        depth = 0
        for index in range(nxt, len(text)):
            if text[index] == "(":
                depth += 1
            elif text[index] == ")":
                depth -= 1
                if depth == 0:
                    return text[pos : index + 1], index + 1
        return text[pos:], len(text)

    match = _NAME_RE.match(text, nxt)
    if match:
        return env.get(match.group(), ""), match.end()
    return "$", nxt


def _statements(text: str, env: Mapping[str, str]) -> Iterator[list[str]]:
    """Split shell-like text into statements of words.

    Expansion reads ``env`` lazily, one statement at a time, so assignments
    applied by the consumer are visible to the following statements.
    """
    words: list[str] = []
    current: list[str] = []
    in_word = False
    i = 0
    n = len(text)

    def flush() -> None:
        nonlocal current, in_word
        if in_word:
            words.append("".join(current))
        current = []
        in_word = False

    while i < n:
        c = text[i]
        if c == "\\":
            if text.startswith("\n", i + 1):
                i += 2
                continue
            current.append(text[i + 1 : i + 2])
            in_word = True
            i += 2
        elif c == "'":
            end = text.find("'", i + 1)
            end = n if end == -1 else end
            current.append(text[i + 1 : end])
            in_word = True
            i = end + 1
        elif c == '"':
            in_word = True
            i += 1
            while i < n and text[i] != '"':
                ch = text[i]
                if ch == "\\" and i + 1 < n and text[i + 1] in _DOUBLE_QUOTE_ESCAPES:
                    if text[i + 1] != "\n":
                        current.append(text[i + 1])
                    i += 2
                elif ch == "$":
                    value, i = _expand(text, i, env)
                    current.append(value)
                else:
                    current.append(ch)
                    i += 1
            i += 1
        elif c == "$":
            value, i = _expand(text, i, env)
            current.append(value)
            in_word = True
        elif c == "#" and not in_word:
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif c in " \t":
            flush()
            i += 1
        elif c in "\n;":
            flush()
            if words:
                yield words
                words = []
            i += 1
        else:
            current.append(c)
            in_word = True
            i += 1

    flush()
    if words:
        yield words


def parse_exports(text: str, env: MutableMapping[str, str]) -> dict[str, str]:
    """Apply the ``export KEY=VALUE`` statements of ``text`` to ``env``.

    Values may be double-quoted, single-quoted or bare, span lines inside
    quotes or with backslash continuations. ``$NAME`` references are expanded
    against ``env`` as it stands when the statement is reached. Statements
    other than ``export`` are ignored.

    Returns:
        The variables that were set, in order.
    """
    exported: dict[str, str] = {}
    for words in _statements(text, env):
        if words[0] != "export":
            continue
        for word in words[1:]:
            name, sep, value = word.partition("=")
            if not sep or not _NAME_RE.fullmatch(name):
                continue
            env[name] = value
            exported[name] = value
    return exported


class EnvironmentContext:
    """The layered environment of one build."""

    def __init__(
        self,
        user_env: Mapping[str, str] | None = None,
        host_env: Mapping[str, str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the environment context.

        Args:
            user_env: User supplied variables.
            host_env: Environment passthrough variables are read from (default os.environ).
            settings: Settings providing the stack name and passthrough list.
        """
        self.settings = settings or get_settings()
        self.user_env = dict(user_env or {})
        self._host_env = host_env if host_env is not None else os.environ
        self._environ: dict[str, str] = {}

    @property
    def environ(self) -> dict[str, str]:
        """Return a copy of the current build environment."""
        return dict(self._environ)

    def capture(self, build_dir: Path, cache_dir: Path) -> dict[str, str]:
        """Read the persisted ``env`` file and the app's ``.env`` file.

        Args:
            build_dir: Per-build source tree.
            cache_dir: Application compile cache.

        Returns:
            Variables of both files, ``.env`` winning on conflicts.
        """
        layers = read_env_file(cache_dir / "env")
        layers.update(read_env_file(build_dir / ".env"))
        return layers

    def assemble(
        self,
        build_dir: Path,
        cache_dir: Path,
        request_id: str,
        source_version: str,
    ) -> dict[str, str]:
        """Build the environment from every layer, replacing any previous one.

        Args:
            build_dir: Per-build source tree (also HOME and APP_DIR).
            cache_dir: Application compile cache.
            request_id: Identifier of the build.
            source_version: Commit being built.

        Returns:
            A copy of the assembled environment.
        """
        environ = {
            name: self._host_env[name]
            for name in self.settings.build.inherit_env
            if name in self._host_env
        }
        environ.update(self.capture(build_dir, cache_dir))
        environ.update(
            {
                "STACK": self.settings.build.stack,
                "REQUEST_ID": request_id,
                "SOURCE_VERSION": source_version,
                "HOME": str(build_dir),
                "APP_DIR": str(build_dir),
            }
        )
        environ.update(self.user_env)
        self._environ = environ
        return self.environ

    def materialize_user_env(self, env_dir: Path) -> Path:
        """Write each user variable to ``<env_dir>/<KEY>``.

        Args:
            env_dir: Per-build environment directory.

        Returns:
            env_dir.

        Raises:
            InvalidEnvironmentError: If a key cannot be used as a file name.
        """
        env_dir.mkdir(parents=True, exist_ok=True)
        for key, value in self.user_env.items():
            if not key or key in (".", "..") or "/" in key or "\0" in key:
                raise InvalidEnvironmentError(
                    f"Invalid environment variable name: {key!r}",
                    details={"env_dir": str(env_dir)},
                )
            path = env_dir / key
            path.write_text(value, encoding="utf-8")
            path.chmod(0o600)
        return env_dir

    def apply_exports(self, export_file: Path) -> dict[str, str]:
        """Merge the variables of a buildpack ``export`` file into the environment.

        Args:
            export_file: File written by a buildpack's compile step.

        Returns:
            Variables that were set. Empty if the file does not exist.
        """
        if not export_file.is_file():
            return {}
        text = export_file.read_text(encoding="utf-8", errors="replace")
        exported = parse_exports(text, self._environ)
        if exported:
            logger.debug(f"Applied exports from {export_file}: {', '.join(exported)}")
        return exported

    def describe(self) -> list[str]:
        """Return sorted ``KEY=VALUE`` lines, masking user supplied values."""
        return [
            f"{key}={MASK if key in self.user_env else value}"
            for key, value in sorted(self._environ.items())
        ]
