"""Module containing the function to parse repository specifiers."""

from __future__ import annotations

from typing import Iterable

from gitsnap.config import DEFAULT_HOST, DEFAULT_PROTOCOL, KNOWN_GIT_HOSTS
from gitsnap.schemas import CloneMode, RepoDescriptor
from gitsnap.utils.exceptions import BadSpecifierError, UnsupportedHostError
from gitsnap.utils.logging_config import get_logger
from gitsnap.utils.query_parser_utils import split_host_prefix, split_path, split_ref

# Initialize logger for this module
logger = get_logger(__name__)


def supported_hosts(default_host: str = DEFAULT_HOST) -> set[str]:
    """Return the known git hosts plus ``default_host``."""
    return {*KNOWN_GIT_HOSTS, default_host.lower()}


def parse_specifier(
    specifier: str,
    *,
    default_host: str = DEFAULT_HOST,
    hosts: Iterable[str] | None = None,
) -> RepoDescriptor:
    """Parse a repository specifier and return a ``RepoDescriptor``.

    Accepted forms include ``user/repo``, ``github.com/user/repo``, ``https://gitlab.com/user/repo``,
    ``git@bitbucket.org:user/repo.git`` and ``gitlab.com:user/repo``, each optionally followed by
    ``/sub/dir`` and ``#ref``.

    Parameters
    ----------
    specifier : str
        The specifier to parse.
    default_host : str
        Host assumed when the specifier has no host prefix.
    hosts : Iterable[str] | None
        Supported hosts. Defaults to ``KNOWN_GIT_HOSTS`` plus ``default_host``.

    Returns
    -------
    RepoDescriptor
        The parsed descriptor.

    Raises
    ------
    BadSpecifierError
        If the specifier does not match the grammar.
    UnsupportedHostError
        If the host is not supported.

    """
    source = specifier.strip()
    if not source:
        msg = "could not parse an empty specifier"
        raise BadSpecifierError(msg, src=specifier)

    body, ref = split_ref(source)
    protocol, host, path = split_host_prefix(body)
    user, name, subdir = split_path(path, source=source)

    site = host or default_host.lower()
    allowed = {h.lower() for h in hosts} if hosts is not None else supported_hosts(default_host)
    if site not in allowed:
        msg = f"gitsnap supports {', '.join(sorted(allowed))}, received {site}"
        raise UnsupportedHostError(msg, src=specifier, site=site)

    protocol = protocol or DEFAULT_PROTOCOL
    descriptor = RepoDescriptor(
        protocol=protocol,
        site=site,
        user=user,
        name=name,
        ref=ref or "HEAD",
        subdir=subdir,
        url=f"{protocol}://{site}/{user}/{name}",
        ssh_url=f"git@{site}:{user}/{name}",
        mode=CloneMode.ARCHIVE,
    )
    logger.debug("Parsed specifier", extra={"src": specifier, "url": descriptor.url, "ref": descriptor.ref})
    return descriptor
