"""Module containing functions for materializing a repository snapshot into a local directory."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from gitsnap.config import TMP_BASE_PATH
from gitsnap.ref_resolver import resolve_hash
from gitsnap.schemas import CloneMode, CloneOptions, CloneResult, EventCode
from gitsnap.utils.archive_utils import archive_url, download_archive, extract_archive
from gitsnap.utils.exceptions import (
    CouldNotFetchError,
    DestinationNotEmptyError,
    ExtractionError,
    GitCloneError,
)
from gitsnap.utils.git_utils import clone_into, head_commit
from gitsnap.utils.logging_config import get_logger
from gitsnap.utils.os_utils import (
    ensure_directory_exists_or_create,
    is_empty_dir,
    make_scratch_dir,
    merge_tree,
    remove_tree,
)

if TYPE_CHECKING:
    from gitsnap.cache import CacheStore
    from gitsnap.reporting import Reporter
    from gitsnap.schemas import CacheRecord, RepoDescriptor

# Initialize logger for this module
logger = get_logger(__name__)


async def clone_repo(
    descriptor: RepoDescriptor,
    destination: Path,
    *,
    options: CloneOptions,
    cache: CacheStore,
    reporter: Reporter,
    tmp_root: Path = TMP_BASE_PATH,
) -> CloneResult:
    """Materialize ``descriptor`` into ``destination`` without version-control metadata.

    Archive mode resolves the ref, reuses or downloads ``{hash}.tar.gz`` and extracts it; any download or
    extraction failure downgrades to a git clone over HTTPS. VCS mode clones over SSH and falls back to
    HTTPS, never touching the archive cache.

    Parameters
    ----------
    descriptor : RepoDescriptor
        The repository, ref and subdirectory to clone.
    destination : Path
        Target directory. It must be empty or missing unless ``options.force`` is set.
    options : CloneOptions
        The clone options.
    cache : CacheStore
        The archive and ref cache.
    reporter : Reporter
        Receives progress events.
    tmp_root : Path
        Base directory for intermediate git clones.

    Returns
    -------
    CloneResult
        The descriptor, destination and resolved hash.

    Raises
    ------
    DestinationNotEmptyError
        If ``destination`` is not empty and ``options.force`` is not set.
    MissingRefError
        If the ref cannot be resolved.
    GitCloneError
        If every clone strategy failed.

    """
    check_destination(destination, force=options.force, reporter=reporter)

    mode = options.mode or descriptor.mode
    logger.info(
        "Starting clone operation",
        extra={"url": descriptor.url, "ref": descriptor.ref, "destination": str(destination), "mode": str(mode)},
    )

    record = cache.load_record(descriptor)
    commit = await resolve_hash(descriptor, record, reporter=reporter, cache_only=options.cache)

    if mode == CloneMode.ARCHIVE:
        await _clone_with_archive(
            descriptor,
            destination,
            commit,
            record,
            options=options,
            cache=cache,
            reporter=reporter,
            tmp_root=tmp_root,
        )
    else:
        commit = await _clone_with_git(descriptor, destination, commit, reporter=reporter, tmp_root=tmp_root)

    target = f" to {destination}" if str(destination) != "." else ""
    reporter.success(
        EventCode.SUCCESS,
        f"cloned {descriptor.slug}#{descriptor.ref}{target}",
        descriptor=descriptor,
        destination=destination,
        hash=commit,
    )
    return CloneResult(descriptor=descriptor, destination=destination, resolved_hash=commit)


def check_destination(destination: Path, *, force: bool, reporter: Reporter) -> None:
    """Refuse to clone into a non-empty ``destination`` unless ``force`` is set.

    Raises
    ------
    DestinationNotEmptyError
        If ``destination`` has entries and ``force`` is ``False``, or is not a directory at all.

    """
    if destination.exists() and not destination.is_dir():
        msg = f"destination {destination} exists and is not a directory, aborting"
        raise DestinationNotEmptyError(msg, destination=str(destination))

    if is_empty_dir(destination):
        reporter.verbose(EventCode.DEST_IS_EMPTY, "destination directory is empty")
        return

    if not force:
        msg = "destination directory is not empty, aborting. Use --force to override"
        raise DestinationNotEmptyError(msg, destination=str(destination))

    reporter.info(EventCode.DEST_NOT_EMPTY, "destination directory is not empty. Using --force, continuing")


async def _clone_with_archive(
    descriptor: RepoDescriptor,
    destination: Path,
    commit: str,
    record: CacheRecord,
    *,
    options: CloneOptions,
    cache: CacheStore,
    reporter: Reporter,
    tmp_root: Path,
) -> None:
    archive = cache.archive_path(descriptor, commit)
    url = archive_url(descriptor, commit)

    try:
        if archive.exists():
            reporter.verbose(EventCode.FILE_EXISTS, f"{archive} already exists locally", archive=str(archive))
        else:
            if options.proxy:
                reporter.verbose(EventCode.PROXY, f"using proxy {options.proxy}", proxy=options.proxy)
            reporter.verbose(EventCode.DOWNLOADING, f"downloading {url} to {archive}", url=url)
            await download_archive(url, archive, proxy=options.proxy)

        source = f"{descriptor.subdir} from " if descriptor.subdir else ""
        reporter.verbose(EventCode.EXTRACTING, f"extracting {source}{archive} to {destination}")
        await ensure_directory_exists_or_create(destination)
        try:
            await extract_archive(archive, destination, descriptor.subdir)
        except ExtractionError:
            # A corrupt cached archive would otherwise fail every later clone of this hash.
            archive.unlink(missing_ok=True)
            raise

        # Only hashes with an archive on disk are recorded.
        cache.update_hash(descriptor, descriptor.ref, commit, record)
        cache.record_access(descriptor, descriptor.ref, record)
    except (CouldNotFetchError, ExtractionError) as exc:
        logger.warning("Archive clone failed", extra={"url": url, "error": exc.message})
        reporter.warn(
            EventCode.DOWNGRADE,
            f'download {url} failed, automatically downgrade to "git clone"',
            descriptor=descriptor,
            destination=destination,
        )
        await _git_clone_to_destination(f"{descriptor.url}.git", descriptor, destination, commit, tmp_root=tmp_root)


async def _clone_with_git(
    descriptor: RepoDescriptor,
    destination: Path,
    commit: str,
    *,
    reporter: Reporter,
    tmp_root: Path,
) -> str:
    try:
        return await _git_clone_to_destination(descriptor.ssh_url, descriptor, destination, commit, tmp_root=tmp_root)
    except GitCloneError as exc:
        https_url = f"{descriptor.url}.git"
        logger.warning("SSH clone failed", extra={"url": descriptor.ssh_url, "error": exc.message})
        reporter.warn(
            EventCode.DOWNGRADE,
            f"git clone {descriptor.ssh_url} failed, retrying over {descriptor.protocol}",
            descriptor=descriptor,
            destination=destination,
        )
        return await _git_clone_to_destination(https_url, descriptor, destination, commit, tmp_root=tmp_root)


async def _git_clone_to_destination(
    url: str,
    descriptor: RepoDescriptor,
    destination: Path,
    commit: str | None,
    *,
    tmp_root: Path,
) -> str:
    """Clone into a scratch directory, then move the tree (or ``subdir``) into ``destination`` without ``.git``."""
    await ensure_directory_exists_or_create(tmp_root)
    scratch = make_scratch_dir(tmp_root, "clone")
    checkout = scratch / descriptor.name
    try:
        await clone_into(url, checkout, commit=commit, ref=descriptor.ref)
        resolved = head_commit(checkout) or commit or ""

        source = checkout / descriptor.subdir if descriptor.subdir else checkout
        if not source.is_dir():
            msg = f"{descriptor.subdir} not found in {url}"
            raise GitCloneError(msg, url=url, subdir=descriptor.subdir)

        await ensure_directory_exists_or_create(destination)
        merge_tree(source, destination, overwrite=True, ignore=lambda path: path.name == ".git")
    finally:
        remove_tree(scratch)

    return resolved
