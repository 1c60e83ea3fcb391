"""Parsing of repository and buildpack references into fetchable URLs.

Accepted forms, each optionally followed by ``#<commit>`` to pin a commit:

- ``org/name``
- ``https://host/org/name.git``
- ``git@host:org/name.git``
- ``file:///path/to/org/name.git``
"""

import re

from slugbuilder.core.config.settings import Settings, get_settings
from slugbuilder.core.exceptions.errors import InvalidIdentifierError
from slugbuilder.models.repository import GitProtocol, RepositoryLocation

_SEGMENT = r"[A-Za-z0-9_.-]+"

_SHORTHAND_RE = re.compile(rf"^(?P<org>{_SEGMENT})/(?P<name>{_SEGMENT})$")
_HTTPS_RE = re.compile(
    rf"^https?://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<org>{_SEGMENT})/(?P<name>{_SEGMENT})/?$"
)
_SSH_RE = re.compile(
    rf"^(?:ssh://)?(?P<user>[A-Za-z0-9_.-]+)@(?P<host>[^:/]+)[:/](?P<org>{_SEGMENT})/(?P<name>{_SEGMENT})$"
)
_FILE_RE = re.compile(
    rf"^file://(?P<host>/(?:.*/)?)(?P<org>{_SEGMENT})/(?P<name>{_SEGMENT})/?$"
)


def _strip_git_suffix(name: str) -> str:
    return name[: -len(".git")] if name.endswith(".git") else name


class GitURLResolver:
    """Turns repository identifiers into locations, URLs and cache keys."""

    def __init__(
        self,
        host: str | None = None,
        protocol: GitProtocol | str | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            host: Default host for shorthand identifiers.
            protocol: Default protocol for shorthand identifiers.
            settings: Settings supplying the defaults not passed explicitly.
        """
        settings = settings or get_settings()
        self.host = host or settings.git.host
        self.protocol = GitProtocol(protocol or settings.git.protocol)

    def parse(self, identifier: str) -> RepositoryLocation:
        """Parse an identifier into a RepositoryLocation.

        Args:
            identifier: Shorthand or URL, optionally with a ``#commit`` pin.

        Returns:
            Parsed location.

        Raises:
            InvalidIdentifierError: If the identifier matches no accepted form.
        """
        raw = identifier.strip() if identifier else ""
        if not raw:
            raise InvalidIdentifierError("Empty repository identifier", identifier=identifier)

        reference, sep, fragment = raw.partition("#")
        pinned_commit: str | None = None
        if sep:
            if not fragment or any(c.isspace() for c in fragment):
                raise InvalidIdentifierError(
                    f"Invalid pinned commit in: {identifier}", identifier=identifier
                )
            pinned_commit = fragment

        host: str | None = None
        protocol: GitProtocol | None
        if match := _FILE_RE.match(reference):
            protocol = GitProtocol.FILE
            host = match.group("host").rstrip("/") or "/"
        elif match := _HTTPS_RE.match(reference):
            protocol = GitProtocol.HTTPS
            host = match.group("host")
        elif match := _SSH_RE.match(reference):
            protocol = GitProtocol.SSH
            host = match.group("host")
        elif match := _SHORTHAND_RE.match(reference):
            protocol = None
        else:
            raise InvalidIdentifierError(
                f"Unrecognized repository identifier: {identifier}",
                identifier=identifier,
            )

        name = _strip_git_suffix(match.group("name"))
        if not name or name in (".", ".."):
            raise InvalidIdentifierError(
                f"Missing repository name in: {identifier}", identifier=identifier
            )

        return RepositoryLocation(
            host=host,
            org=match.group("org"),
            name=name,
            pinned_commit=pinned_commit,
            protocol=protocol,
        )

    def normalize(
        self,
        location: RepositoryLocation,
        protocol: GitProtocol | str | None = None,
    ) -> str:
        """Build the fetch URL for a location.

        Local (``file``) locations always normalize to a file URL. Otherwise
        the explicit protocol wins, then the protocol the identifier was
        written with, then the configured default.

        Args:
            location: Parsed location.
            protocol: Protocol to use.

        Returns:
            Fetchable URL without the commit pin.
        """
        if location.protocol == GitProtocol.FILE:
            root = "" if location.host in (None, "/") else location.host
            return f"file://{root}/{location.org}/{location.name}.git"

        chosen = GitProtocol(protocol or location.protocol or self.protocol)
        if chosen == GitProtocol.FILE:
            raise InvalidIdentifierError(
                f"Cannot fetch remote repository over file://: {location}",
                identifier=str(location),
            )

        host = location.host or self.host
        if chosen == GitProtocol.HTTPS:
            return f"https://{host}/{location.org}/{location.name}.git"
        return f"git@{host}:{location.org}/{location.name}.git"

    def resolve_url(self, identifier: str, protocol: GitProtocol | str | None = None) -> str:
        """Parse and normalize in one step."""
        return self.normalize(self.parse(identifier), protocol)

    @staticmethod
    def cache_key(location: RepositoryLocation) -> str:
        """Return the buildpack cache slot name for a location.

        Distinct pinned commits of the same buildpack get distinct keys.
        """
        return f"{location.org}__{location.name}{location.pinned_commit or ''}"
