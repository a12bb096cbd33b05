"""Utility functions for working with the operating system."""

from __future__ import annotations

import errno
import shutil
import stat
import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from types import TracebackType


async def ensure_directory_exists_or_create(path: Path) -> None:
    """Ensure the directory exists, creating it if necessary.

    Parameters
    ----------
    path : Path
        The path to ensure exists.

    Raises
    ------
    OSError
        If the directory cannot be created.

    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create directory {path}: {exc}"
        raise OSError(msg) from exc


def is_empty_dir(path: Path) -> bool:
    """Return ``True`` if ``path`` does not exist or is an empty directory."""
    if not path.exists():
        return True
    return path.is_dir() and not any(path.iterdir())


def make_scratch_dir(base: Path, prefix: str) -> Path:
    """Create and return a fresh, uniquely named directory under ``base``."""
    path = base / f"{prefix}-{uuid.uuid4().hex}"
    path.mkdir(parents=True)
    return path


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree."""
    if path.is_dir() and not path.is_symlink():
        remove_tree(path)
    else:
        path.unlink()


def remove_tree(path: Path) -> None:
    """Remove a directory tree, clearing read-only bits that block deletion (e.g. git pack files)."""
    kwargs = {}
    if sys.version_info >= (3, 12):
        kwargs["onexc"] = _handle_remove_readonly
    else:
        kwargs["onerror"] = _handle_remove_readonly
    shutil.rmtree(path, **kwargs)


def merge_tree(src: Path, dest: Path, *, overwrite: bool, ignore: Callable[[Path], bool] | None = None) -> None:
    """Move the contents of ``src`` into ``dest``, merging directories.

    Parameters
    ----------
    src : Path
        Directory whose contents are moved. It is left in place; subdirectories emptied by the move are removed.
    dest : Path
        Target directory; created if missing.
    overwrite : bool
        Replace files that already exist in ``dest``. When ``False`` those files are kept and the ``src``
        copy is left behind.
    ignore : Callable[[Path], bool] | None
        Predicate on source paths that should be skipped entirely.

    """
    dest.mkdir(parents=True, exist_ok=True)
    for entry in sorted(src.iterdir()):
        if ignore is not None and ignore(entry):
            continue
        target = dest / entry.name

        if entry.is_dir() and not entry.is_symlink():
            if target.exists() and not target.is_dir():
                if not overwrite:
                    continue
                target.unlink()
            if ignore is None and not target.exists():
                shutil.move(str(entry), str(target))
                continue
            merge_tree(entry, target, overwrite=overwrite, ignore=ignore)
            # Drop the source directory once everything in it has moved.
            if not any(entry.iterdir()):
                entry.rmdir()
            continue

        if target.exists() or target.is_symlink():
            if not overwrite:
                continue
            remove_path(target)
        shutil.move(str(entry), str(target))


def _handle_remove_readonly(
    func: Callable,
    path: str,
    exc_info: BaseException | tuple[type[BaseException], BaseException, TracebackType],
) -> None:
    """Handle permission errors raised by ``shutil.rmtree()``.

    * Makes the target writable (removes the read-only attribute).
    * Retries the original operation (``func``) once.

    """
    # 'onerror' passes a (type, value, tb) tuple; 'onexc' passes the exception
    if isinstance(exc_info, tuple):  # 'onerror' (Python <3.12)
        exc: BaseException = exc_info[1]
    else:  # 'onexc' (Python 3.12+)
        exc = exc_info

    # Handle only'Permission denied' and 'Operation not permitted'
    if not isinstance(exc, OSError) or exc.errno not in {errno.EACCES, errno.EPERM}:
        raise exc

    # Make the target writable
    Path(path).chmod(stat.S_IWRITE)
    func(path)
