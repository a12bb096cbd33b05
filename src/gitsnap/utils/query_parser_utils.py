"""Tokenizer helpers for repository specifiers.

A specifier has the shape ``[(proto://host/ | git@host: | host:)] user/name[/subpath]*[#ref]``. Each helper
below consumes one part of it and returns the remainder, so every optional group can be tested on its own.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from gitsnap.utils.exceptions import BadSpecifierError

SUPPORTED_PROTOCOLS: tuple[str, ...] = ("http", "https")

_PROTOCOL_PATTERN = re.compile(r"^(?P<protocol>[A-Za-z][A-Za-z0-9+.-]*)://(?P<rest>.*)$")
_SCP_PATTERN = re.compile(r"^git@(?P<host>[^:/\s]+)[:/](?P<rest>.*)$")
_HOST_COLON_PATTERN = re.compile(r"^(?P<host>[^:/\s]+):(?P<rest>.*)$")
_SEGMENT_PATTERN = re.compile(r"^[^\s#]+$")


class HostPrefix(NamedTuple):
    """Result of ``split_host_prefix``."""

    protocol: str | None
    host: str | None
    path: str


class RepoPath(NamedTuple):
    """Result of ``split_path``."""

    user: str
    name: str
    subdir: str | None


def split_ref(specifier: str) -> tuple[str, str | None]:
    """Split a trailing ``#ref`` off a specifier.

    Parameters
    ----------
    specifier : str
        The raw specifier.

    Returns
    -------
    tuple[str, str | None]
        The specifier without the ref, and the ref (``None`` when absent).

    Raises
    ------
    BadSpecifierError
        If a ``#`` is present but the ref after it is empty or contains whitespace.

    """
    body, sep, ref = specifier.partition("#")
    if not sep:
        return body, None
    if not ref or any(c.isspace() for c in ref):
        msg = f"could not parse {specifier}"
        raise BadSpecifierError(msg, src=specifier)
    return body, ref


def split_host_prefix(body: str) -> HostPrefix:
    """Split the optional protocol and host prefix off a specifier body.

    Recognised prefixes are ``proto://host/``, ``git@host:`` (or ``git@host/``), ``host:`` and a bare dotted
    ``host/`` when at least ``user/name`` follow it. Anything else is treated as a host-less ``user/name`` path.

    Parameters
    ----------
    body : str
        The specifier without its ``#ref``.

    Returns
    -------
    HostPrefix
        Protocol (lower-cased, or ``None``), host (lower-cased, or ``None``) and the remaining path.

    Raises
    ------
    BadSpecifierError
        If a protocol is present but is not ``http``/``https``, or is not followed by a dotted host.

    """
    match = _PROTOCOL_PATTERN.match(body)
    if match:
        protocol = match.group("protocol").lower()
        if protocol not in SUPPORTED_PROTOCOLS:
            msg = f"could not parse {body}: unsupported protocol '{protocol}'"
            raise BadSpecifierError(msg, src=body)
        host, sep, path = match.group("rest").partition("/")
        if not sep or not _looks_like_domain(host):
            msg = f"could not parse {body}"
            raise BadSpecifierError(msg, src=body)
        return HostPrefix(protocol, host.lower(), path)

    match = _SCP_PATTERN.match(body)
    if match:
        return HostPrefix(None, match.group("host").lower(), match.group("rest"))

    match = _HOST_COLON_PATTERN.match(body)
    if match:
        return HostPrefix(None, match.group("host").lower(), match.group("rest"))

    first, sep, rest = body.partition("/")
    min_parts_after_host = 2
    if sep and _looks_like_domain(first) and len(_segments(rest)) >= min_parts_after_host:
        return HostPrefix(None, first.lower(), rest)

    return HostPrefix(None, None, body)


def split_path(path: str, *, source: str) -> RepoPath:
    """Split ``user/name[/subpath]*`` into its parts.

    A trailing ``.git`` is stripped from ``name`` and a single trailing slash is tolerated.

    Parameters
    ----------
    path : str
        The path left after the host prefix.
    source : str
        The full specifier, used in error messages.

    Returns
    -------
    RepoPath
        The user, the repository name and the subdirectory (``None`` when absent).

    Raises
    ------
    BadSpecifierError
        If fewer than two segments are present or a segment contains whitespace.

    """
    if path.endswith("/"):
        path = path[:-1]
    parts = path.split("/")
    min_path_parts = 2
    if len(parts) < min_path_parts or not all(_SEGMENT_PATTERN.match(part) for part in parts):
        msg = f"could not parse {source}"
        raise BadSpecifierError(msg, src=source)

    user, raw_name, *subdir_parts = parts
    name = raw_name.removesuffix(".git")
    if not name:
        msg = f"could not parse {source}"
        raise BadSpecifierError(msg, src=source)

    return RepoPath(user, name, "/".join(subdir_parts) or None)


def _segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _looks_like_domain(host: str) -> bool:
    name, dot, tld = host.partition(".")
    return bool(name and dot and tld) and ":" not in host
