"""Main entry point for cloning a repository snapshot and running its directives."""

from __future__ import annotations

import asyncio
from pathlib import Path

from gitsnap.cache import CacheStore
from gitsnap.cloning import clone_repo
from gitsnap.config import CACHE_BASE_PATH, TMP_BASE_PATH, get_proxy
from gitsnap.directives import DirectivePipeline, read_manifest
from gitsnap.query_parser import parse_specifier
from gitsnap.reporting import EventHandler, Reporter
from gitsnap.schemas import CloneMode, CloneOptions, CloneResult
from gitsnap.utils.logging_config import get_logger

# Initialize logger for this module
logger = get_logger(__name__)


class Snapshotter:
    """Bind a cache, a scratch directory and a proxy to the clone-then-run-directives operation.

    Nested ``clone`` directives call back into ``run`` so they share the same cache and settings.

    Parameters
    ----------
    cache : CacheStore
        The archive and ref cache.
    proxy : str | None
        HTTPS proxy used for archive downloads.
    tmp_root : Path
        Base directory for stashes and intermediate git clones.

    """

    def __init__(
        self,
        cache: CacheStore,
        *,
        proxy: str | None = None,
        tmp_root: Path = TMP_BASE_PATH,
    ) -> None:
        self.cache = cache
        self.proxy = proxy
        self.tmp_root = tmp_root

    async def run(
        self,
        source: str,
        destination: Path,
        *,
        force: bool = False,
        cache: bool = False,
        reporter: Reporter,
        mode: CloneMode | None = None,
    ) -> CloneResult:
        """Parse ``source``, clone it into ``destination`` and run the directives it ships."""
        descriptor = parse_specifier(source)
        options = CloneOptions(force=force, cache=cache, mode=mode, proxy=self.proxy)

        result = await clone_repo(
            descriptor,
            destination,
            options=options,
            cache=self.cache,
            reporter=reporter,
            tmp_root=self.tmp_root,
        )

        directives = read_manifest(destination)
        if directives:
            logger.info("Running directives", extra={"count": len(directives), "destination": str(destination)})
            pipeline = DirectivePipeline(
                destination,
                reporter=reporter,
                clone_func=self.run,
                tmp_root=self.tmp_root,
            )
            await pipeline.run(directives)

        return result


async def clone_async(
    source: str,
    destination: str | Path = ".",
    *,
    force: bool = False,
    cache: bool = False,
    verbose: bool = False,
    mode: CloneMode | str | None = None,
    cache_dir: str | Path | None = None,
    proxy: str | None = None,
    on_event: EventHandler | None = None,
) -> CloneResult:
    """Materialize a snapshot of ``source`` into ``destination``.

    The specifier is parsed, its ref resolved (falling back to the cache when the remote is unreachable),
    the snapshot downloaded or cloned, and the ``.gitsnap.json`` directives shipped in it are executed.

    Parameters
    ----------
    source : str
        Repository specifier, e.g. ``user/repo``, ``gitlab.com/user/repo/sub/dir#v1.2``.
    destination : str | Path
        Target directory (default: the current directory).
    force : bool
        Clone into a non-empty destination (default: ``False``).
    cache : bool
        Only use cached ref resolutions, skipping the remote listing (default: ``False``).
    verbose : bool
        Deliver verbose events (default: ``False``).
    mode : CloneMode | str | None
        ``"archive"`` or ``"vcs"`` to override the host's default mode.
    cache_dir : str | Path | None
        Cache root (default: ``GITSNAP_CACHE_DIR`` or ``~/.gitsnap``).
    proxy : str | None
        HTTPS proxy for archive downloads (default: the ``https_proxy`` environment variable).
    on_event : EventHandler | None
        Callback receiving every delivered event.

    Returns
    -------
    CloneResult
        The descriptor, destination and resolved hash of the top-level clone.

    """
    logger.info("Starting snapshot", extra={"source": source, "destination": str(destination)})
    clone_mode = CloneMode(mode) if mode is not None else None

    snapshotter = Snapshotter(
        CacheStore(Path(cache_dir) if cache_dir is not None else CACHE_BASE_PATH),
        proxy=proxy if proxy is not None else get_proxy(),
    )
    reporter = Reporter(on_event, verbose=verbose)
    return await snapshotter.run(
        source,
        Path(destination),
        force=force,
        cache=cache,
        reporter=reporter,
        mode=clone_mode,
    )


def clone(
    source: str,
    destination: str | Path = ".",
    *,
    force: bool = False,
    cache: bool = False,
    verbose: bool = False,
    mode: CloneMode | str | None = None,
    cache_dir: str | Path | None = None,
    proxy: str | None = None,
    on_event: EventHandler | None = None,
) -> CloneResult:
    """Provide a synchronous wrapper around ``clone_async``.

    See Also
    --------
    ``clone_async`` : The asynchronous version of this function.

    """
    return asyncio.run(
        clone_async(
            source,
            destination,
            force=force,
            cache=cache,
            verbose=verbose,
            mode=mode,
            cache_dir=cache_dir,
            proxy=proxy,
            on_event=on_event,
        ),
    )
