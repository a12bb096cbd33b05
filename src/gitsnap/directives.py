"""Post-clone directive pipeline.

A cloned tree may carry a ``.gitsnap.json`` manifest at its root: a JSON array of directives such as::

    [
        {"action": "remove", "files": ["LICENSE", "docs"]},
        {"action": "clone", "src": "acme/shared-config", "cache": false, "verbose": true}
    ]

The manifest is deleted as soon as it is read. The first ``clone`` directive moves the current destination
contents into a stash so the nested clone starts from an empty directory; once every directive has run, the
stash is merged back without overwriting what the nested clones wrote. If a nested clone fails, the stash is
left where it is and the destination is in an undefined, partially updated state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Protocol, Sequence

from pydantic import ValidationError
from typing_extensions import assert_never

from gitsnap.config import DIRECTIVES_FILE_NAME, TMP_BASE_PATH
from gitsnap.schemas import CloneDirective, Directive, DirectiveList, EventCode, RemoveDirective
from gitsnap.utils.exceptions import GitsnapError, ManifestError
from gitsnap.utils.logging_config import get_logger
from gitsnap.utils.os_utils import make_scratch_dir, merge_tree, remove_path, remove_tree

if TYPE_CHECKING:
    from gitsnap.reporting import Reporter
    from gitsnap.schemas import CloneResult

# Initialize logger for this module
logger = get_logger(__name__)


class CloneFunc(Protocol):
    """Signature of the full parse, resolve and clone operation used for nested ``clone`` directives."""

    def __call__(
        self,
        source: str,
        destination: Path,
        *,
        force: bool,
        cache: bool,
        reporter: Reporter,
    ) -> Awaitable[CloneResult]: ...


def read_manifest(destination: Path) -> list[Directive] | None:
    """Read and delete the directives manifest of ``destination``.

    Parameters
    ----------
    destination : Path
        The directory a clone was just materialized into.

    Returns
    -------
    list[Directive] | None
        The directives in file order, or ``None`` if there is no manifest.

    Raises
    ------
    ManifestError
        If the manifest is not valid JSON or does not describe a list of directives.

    """
    manifest = destination / DIRECTIVES_FILE_NAME
    try:
        raw = manifest.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        msg = f"could not read {manifest}"
        raise ManifestError(msg, original=exc, path=str(manifest)) from exc

    # Single use: the manifest never survives into the final tree.
    manifest.unlink(missing_ok=True)

    try:
        return DirectiveList.validate_python(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        msg = f"invalid directives in {manifest}: {exc}"
        raise ManifestError(msg, original=exc, path=str(manifest)) from exc


class DirectivePipeline:
    """Run manifest directives against a destination, with stash/restore around nested clones.

    Parameters
    ----------
    destination : Path
        The directory the directives operate on.
    reporter : Reporter
        Receives ``REMOVED`` and ``FILE_DOES_NOT_EXIST`` events.
    clone_func : CloneFunc
        Callable performing a whole clone operation for nested ``clone`` directives.
    tmp_root : Path
        Base directory for the stash.

    """

    def __init__(
        self,
        destination: Path,
        *,
        reporter: Reporter,
        clone_func: CloneFunc,
        tmp_root: Path = TMP_BASE_PATH,
    ) -> None:
        self.destination = destination
        self.reporter = reporter
        self.clone_func = clone_func
        self.tmp_root = tmp_root
        self.stash_dir: Path | None = None

    async def run(self, directives: Sequence[Directive]) -> None:
        """Execute ``directives`` in order, then restore the stash if one was taken.

        Raises
        ------
        GitsnapError
            If a nested clone fails. The stash is not restored in that case.

        """
        for index, directive in enumerate(directives):
            logger.debug("Running directive", extra={"index": index, "action": directive.action})
            if isinstance(directive, CloneDirective):
                await self._clone(directive)
            elif isinstance(directive, RemoveDirective):
                self._remove(directive)
            else:
                assert_never(directive)

        if self.stash_dir is not None:
            self._restore()

    def _stash(self) -> None:
        if self.stash_dir is not None:
            return
        self.tmp_root.mkdir(parents=True, exist_ok=True)
        self.stash_dir = make_scratch_dir(self.tmp_root, "stash")
        merge_tree(self.destination, self.stash_dir, overwrite=True)
        logger.debug("Stashed destination", extra={"stash": str(self.stash_dir)})

    def _restore(self) -> None:
        if self.stash_dir is None:
            return
        merge_tree(self.stash_dir, self.destination, overwrite=False)
        remove_tree(self.stash_dir)
        logger.debug("Restored destination", extra={"stash": str(self.stash_dir)})
        self.stash_dir = None

    async def _clone(self, directive: CloneDirective) -> None:
        self._stash()
        try:
            await self.clone_func(
                directive.src,
                self.destination,
                force=True,
                cache=directive.cache,
                reporter=self.reporter.child(verbose=directive.verbose),
            )
        except GitsnapError:
            logger.error(
                "Nested clone failed; destination content before the pipeline is kept in the stash",
                extra={"src": directive.src, "stash": str(self.stash_dir)},
            )
            raise

    def _remove(self, directive: RemoveDirective) -> None:
        removed: list[str] = []
        for file in directive.files:
            path = self._resolve(self.destination, file)
            stashed = self._resolve(self.stash_dir, file) if self.stash_dir is not None else None
            found = [p for p in (path, stashed) if p is not None and (p.exists() or p.is_symlink())]

            if not found:
                self.reporter.warn(
                    EventCode.FILE_DOES_NOT_EXIST,
                    f"action wants to remove {file} but it does not exist",
                    file=file,
                )
                continue

            is_dir = any(p.is_dir() and not p.is_symlink() for p in found)
            for p in found:
                remove_path(p)
            removed.append(f"{file}/" if is_dir else file)

        if removed:
            self.reporter.info(EventCode.REMOVED, f"removed: {', '.join(removed)}", files=removed)

    @staticmethod
    def _resolve(root: Path, file: str) -> Path | None:
        """Return ``root / file`` if it stays inside ``root``, else ``None``."""
        base = root.resolve()
        target = base / file
        # Keep the leaf unresolved so that a symlink is removed rather than its target.
        candidate = target.resolve() if target.name == ".." else target.parent.resolve() / target.name
        try:
            candidate.relative_to(base)
        except ValueError:
            return None
        if candidate == base:
            return None
        return candidate
