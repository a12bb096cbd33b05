"""Resolution of ref selectors to commit hashes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from gitsnap.config import MIN_HASH_PREFIX_LENGTH
from gitsnap.schemas import EventCode, RefEntry, RefType
from gitsnap.utils.exceptions import CouldNotFetchError, MissingRefError
from gitsnap.utils.git_utils import fetch_remote_refs, first_match
from gitsnap.utils.logging_config import get_logger

if TYPE_CHECKING:
    from gitsnap.reporting import Reporter
    from gitsnap.schemas import CacheRecord, RepoDescriptor

# Initialize logger for this module
logger = get_logger(__name__)


def select_ref(refs: Sequence[RefEntry], selector: str, reporter: Reporter) -> str | None:
    """Pick the hash ``selector`` designates in a ref listing.

    An exact name match wins; for an annotated tag the peeled commit (``<tag>^{}``) is returned instead of
    the tag object. Failing that, a selector of at least ``MIN_HASH_PREFIX_LENGTH`` characters matches the
    first listed hash it prefixes.

    Parameters
    ----------
    refs : Sequence[RefEntry]
        The remote listing, in listing order.
    selector : str
        Branch, tag or partial hash.
    reporter : Reporter
        Receives a verbose ``FOUND_MATCH`` event on an exact match.

    Returns
    -------
    str | None
        The selected hash, or ``None`` if nothing matches.

    """
    entry = first_match(refs, selector)
    if entry is not None:
        if entry.type == RefType.TAG:
            peeled = first_match(refs, f"{selector}^{{}}")
            if peeled is not None:
                entry = peeled
        reporter.verbose(EventCode.FOUND_MATCH, f"found matching commit hash: {entry.hash}", hash=entry.hash)
        return entry.hash

    if len(selector) < MIN_HASH_PREFIX_LENGTH:
        return None

    return next((entry.hash for entry in refs if entry.hash.startswith(selector)), None)


def hash_from_cache(descriptor: RepoDescriptor, record: CacheRecord, reporter: Reporter) -> str | None:
    """Return the cached hash of ``descriptor.ref``, announcing it with a ``USING_CACHE`` event."""
    commit = record.ref_to_hash.get(descriptor.ref)
    if commit is None:
        return None
    reporter.info(EventCode.USING_CACHE, f"using cached commit hash {commit}", hash=commit)
    return commit


async def resolve_hash(
    descriptor: RepoDescriptor,
    record: CacheRecord,
    *,
    reporter: Reporter,
    cache_only: bool = False,
) -> str:
    """Resolve ``descriptor.ref`` to a commit hash.

    The remote listing is consulted first; if it cannot be fetched, the last hash cached for the ref is
    used. In ``cache_only`` mode the remote listing is skipped entirely.

    Parameters
    ----------
    descriptor : RepoDescriptor
        The repository and ref to resolve.
    record : CacheRecord
        The repository's cache record.
    reporter : Reporter
        Receives ``COULD_NOT_FETCH``, ``USING_CACHE`` and ``FOUND_MATCH`` events.
    cache_only : bool
        Only consult the cache (default: ``False``).

    Returns
    -------
    str
        The commit hash.

    Raises
    ------
    MissingRefError
        If neither the remote listing nor the cache yields a hash.

    """
    if cache_only:
        commit = hash_from_cache(descriptor, record, reporter)
    else:
        try:
            refs = await fetch_remote_refs(descriptor.url)
        except CouldNotFetchError as exc:
            reporter.warn(EventCode.COULD_NOT_FETCH, exc.message, url=descriptor.url)
            if exc.original is not None:
                reporter.verbose(EventCode.COULD_NOT_FETCH, str(exc.original))
            commit = hash_from_cache(descriptor, record, reporter)
        else:
            if descriptor.ref == "HEAD":
                head = next((entry for entry in refs if entry.type == RefType.HEAD), None)
                commit = head.hash if head else None
            else:
                commit = select_ref(refs, descriptor.ref, reporter)

    if not commit:
        msg = f"could not find commit hash for {descriptor.ref}"
        raise MissingRefError(msg, ref=descriptor.ref)

    logger.debug("Resolved ref", extra={"ref": descriptor.ref, "commit": commit})
    return commit
