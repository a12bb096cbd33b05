"""Utility functions for interacting with Git repositories."""

from __future__ import annotations

import asyncio
import functools
import re
import sys
from pathlib import Path
from typing import Any, Callable, Final, Iterable, TypeVar

import git

from gitsnap.config import DEFAULT_TIMEOUT
from gitsnap.schemas import RefEntry, RefType
from gitsnap.utils.exceptions import AsyncTimeoutError, BadRefError, CouldNotFetchError, GitCloneError
from gitsnap.utils.logging_config import get_logger
from gitsnap.utils.timeout_wrapper import async_timeout

# Initialize logger for this module
logger = get_logger(__name__)

T = TypeVar("T")

_REF_PATTERN: Final = re.compile(r"^refs/(\w+)/(.+)$")
_REF_TYPES: Final[dict[str, RefType]] = {
    "heads": RefType.BRANCH,
    "tags": RefType.TAG,
}


async def _run_in_executor(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def ensure_git_installed() -> None:
    """Ensure Git is installed and accessible on the system.

    On Windows, this also checks whether Git is configured to support long file paths.

    Raises
    ------
    GitCloneError
        If Git is not installed or not accessible.

    """
    try:
        git_cmd = git.Git()
        git_cmd.version()
    except Exception as exc:
        msg = "Git is not installed or not accessible. Please install Git first."
        raise GitCloneError(msg, original=exc) from exc

    if sys.platform == "win32":
        try:
            longpaths_value = git_cmd.config("core.longpaths")
            if longpaths_value.lower() != "true":
                logger.warning(
                    "Git clone may fail on Windows due to long file paths. "
                    "Consider enabling long path support with: 'git config --global core.longpaths true'. "
                    "Note: This command may require administrator privileges.",
                    extra={"platform": "windows", "longpaths_enabled": False},
                )
        except git.GitCommandError:
            # Ignore if checking 'core.longpaths' fails.
            pass


def parse_ls_remote(output: str) -> list[RefEntry]:
    """Parse ``git ls-remote`` output into ``RefEntry`` rows, keeping the listing order.

    Parameters
    ----------
    output : str
        Raw ``git ls-remote`` output (``<hash>\\t<ref>`` per line).

    Returns
    -------
    list[RefEntry]
        One entry per non-empty line.

    Raises
    ------
    BadRefError
        If a line cannot be parsed.

    """
    refs: list[RefEntry] = []
    for line in output.splitlines():
        if not line.strip():
            continue

        commit, _, ref = line.partition("\t")
        if ref == "HEAD":
            refs.append(RefEntry(type=RefType.HEAD, hash=commit))
            continue

        match = _REF_PATTERN.match(ref)
        if not match:
            msg = f"could not parse {ref}"
            raise BadRefError(msg, ref=ref)

        kind, name = match.groups()
        refs.append(RefEntry(type=_REF_TYPES.get(kind, RefType.REF), name=name, hash=commit))

    return refs


@async_timeout(DEFAULT_TIMEOUT)
async def _ls_remote(url: str) -> str:
    return await _run_in_executor(git.Git().ls_remote, url)


async def fetch_remote_refs(url: str) -> list[RefEntry]:
    """List the refs of a remote repository.

    Parameters
    ----------
    url : str
        The URL of the remote repository.

    Returns
    -------
    list[RefEntry]
        The listed refs, in ``git ls-remote`` order.

    Raises
    ------
    CouldNotFetchError
        If the remote cannot be listed, the listing times out, or its output cannot be parsed.

    """
    logger.debug("Listing remote refs", extra={"url": url})
    try:
        output = await _ls_remote(url)
        refs = parse_ls_remote(output)
    except (git.CommandError, AsyncTimeoutError, BadRefError, OSError) as exc:
        msg = f"could not fetch remote {url}"
        raise CouldNotFetchError(msg, original=exc, url=url) from exc

    logger.debug("Listed remote refs", extra={"url": url, "count": len(refs)})
    return refs


async def clone_into(url: str, local_path: Path, *, commit: str | None = None, ref: str | None = None) -> None:
    """Shallow-clone ``url`` into ``local_path`` and check out ``commit`` (or ``ref``).

    When ``commit`` is known it is fetched explicitly, since a shallow clone of the default branch may not
    contain it. Otherwise ``ref`` (if not ``HEAD``) selects the branch or tag to clone.

    Parameters
    ----------
    url : str
        The clone URL (HTTPS or SSH).
    local_path : Path
        Directory to clone into. Must not exist or be empty.
    commit : str | None
        Commit hash to check out.
    ref : str | None
        Branch or tag name, used when ``commit`` is ``None``.

    Raises
    ------
    GitCloneError
        If any git operation fails.

    """
    await ensure_git_installed()

    logger.info("Executing git clone operation", extra={"url": url, "local_path": str(local_path)})
    try:
        if commit:
            repo = await _run_in_executor(
                git.Repo.clone_from,
                url,
                str(local_path),
                depth=1,
                no_checkout=True,
            )
            logger.debug("Fetching specific commit", extra={"commit": commit})
            await _run_in_executor(repo.git.fetch, "--depth=1", "origin", commit)
            logger.info("Checking out commit", extra={"commit": commit})
            await _run_in_executor(repo.git.checkout, commit)
        else:
            clone_kwargs: dict[str, Any] = {"depth": 1, "single_branch": True}
            if ref and ref != "HEAD":
                clone_kwargs["branch"] = ref
            await _run_in_executor(git.Repo.clone_from, url, str(local_path), **clone_kwargs)
    except git.CommandError as exc:
        msg = f"git clone {url} failed: {exc}"
        raise GitCloneError(msg, original=exc, url=url) from exc

    logger.info("Git clone completed successfully", extra={"local_path": str(local_path)})


def head_commit(local_path: Path) -> str | None:
    """Return the checked-out commit of the repository at ``local_path``, if it can be read."""
    try:
        return git.Repo(str(local_path)).head.commit.hexsha
    except (git.InvalidGitRepositoryError, git.NoSuchPathError, ValueError):
        return None


def first_match(refs: Iterable[RefEntry], name: str) -> RefEntry | None:
    """Return the first entry named ``name``, in listing order."""
    return next((entry for entry in refs if entry.name == name), None)
