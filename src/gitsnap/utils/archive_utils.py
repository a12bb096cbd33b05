"""Utility functions for downloading and extracting repository archives."""

from __future__ import annotations

import asyncio
import os
import tarfile
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import httpx

from gitsnap.config import DEFAULT_TIMEOUT
from gitsnap.utils.exceptions import CouldNotFetchError, ExtractionError
from gitsnap.utils.logging_config import get_logger

if TYPE_CHECKING:
    from gitsnap.schemas import RepoDescriptor

# Initialize logger for this module
logger = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024
_HAS_DATA_FILTER = hasattr(tarfile, "data_filter")


def archive_url(descriptor: RepoDescriptor, commit: str) -> str:
    """Return the host-specific URL of the ``.tar.gz`` snapshot of ``commit``.

    Parameters
    ----------
    descriptor : RepoDescriptor
        The repository.
    commit : str
        The commit hash.

    Returns
    -------
    str
        The archive URL.

    """
    if descriptor.site == "gitlab.com":
        return f"{descriptor.url}/repository/archive.tar.gz?ref={commit}"
    if descriptor.site == "bitbucket.org":
        return f"{descriptor.url}/get/{commit}.tar.gz"
    return f"{descriptor.url}/archive/{commit}.tar.gz"


async def download_archive(url: str, target: Path, *, proxy: str | None = None) -> None:
    """Stream ``url`` into ``target``.

    The body is written to a sibling ``.part`` file that is renamed into place once complete, so a failed
    download never leaves a truncated archive in the cache.

    Parameters
    ----------
    url : str
        The archive URL.
    target : Path
        Destination file.
    proxy : str | None
        HTTP(S) proxy URL.

    Raises
    ------
    CouldNotFetchError
        If the request fails or returns a non-success status.

    """
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(f"{target.name}.part")

    logger.info("Downloading archive", extra={"url": url, "target": str(target)})
    try:
        async with httpx.AsyncClient(proxy=proxy, follow_redirects=True, timeout=DEFAULT_TIMEOUT) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        fh.write(chunk)
        os.replace(partial, target)
    except (httpx.HTTPError, OSError) as exc:
        partial.unlink(missing_ok=True)
        msg = f"could not download {url}"
        raise CouldNotFetchError(msg, original=exc, url=url) from exc


async def extract_archive(archive: Path, dest: Path, subdir: str | None = None) -> None:
    """Extract ``archive`` into ``dest`` without its top-level directory.

    Parameters
    ----------
    archive : Path
        The ``.tar.gz`` file.
    dest : Path
        Directory to extract into; created if missing.
    subdir : str | None
        Only extract this subtree, stripped to its full depth.

    Raises
    ------
    ExtractionError
        If the archive is unreadable, contains unsafe members, or lacks ``subdir``.

    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _extract, archive, dest, subdir)


def _extract(archive: Path, dest: Path, subdir: str | None) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:gz") as tar:
            members = _select_members(tar.getmembers(), dest, subdir, archive=archive)
            if _HAS_DATA_FILTER:
                tar.extractall(dest, members=members, filter="data")
            else:
                tar.extractall(dest, members=members)  # noqa: S202 (members are sanitised in _select_members)
    except (tarfile.TarError, OSError) as exc:
        msg = f"could not extract {archive}"
        raise ExtractionError(msg, original=exc, archive=str(archive)) from exc


def _select_members(
    members: list[tarfile.TarInfo],
    dest: Path,
    subdir: str | None,
    *,
    archive: Path,
) -> list[tarfile.TarInfo]:
    """Rename members so that the prefix ``<top>[/subdir]`` is stripped, dropping everything outside it."""
    prefix = _archive_prefix(members, subdir)
    if prefix is None:
        msg = f"{archive} is empty"
        raise ExtractionError(msg, archive=str(archive))

    depth = len(prefix.parts)
    root = dest.resolve()
    selected: list[tarfile.TarInfo] = []
    for member in members:
        path = PurePosixPath(member.name)
        if path.parts[:depth] != prefix.parts or len(path.parts) == depth:
            continue

        relative = PurePosixPath(*path.parts[depth:])
        if not _is_within(root, root / relative):
            msg = f"refusing to extract {member.name} outside of {dest}"
            raise ExtractionError(msg, archive=str(archive))

        if member.islnk():
            link = PurePosixPath(member.linkname)
            if link.parts[:depth] != prefix.parts:
                continue
            member.linkname = str(PurePosixPath(*link.parts[depth:]))

        member.name = str(relative)
        selected.append(member)

    if subdir and not selected:
        msg = f"{subdir} not found in {archive}"
        raise ExtractionError(msg, archive=str(archive), subdir=subdir)
    return selected


def _archive_prefix(members: list[tarfile.TarInfo], subdir: str | None) -> PurePosixPath | None:
    for member in members:
        # Skip the pax global header some hosts prepend.
        if member.type in (tarfile.XGLTYPE, tarfile.XHDTYPE):
            continue
        parts = PurePosixPath(member.name).parts
        if not parts:
            continue
        top = PurePosixPath(parts[0])
        return top / subdir if subdir else top
    return None


def _is_within(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root)
    except ValueError:
        return False
    return True
