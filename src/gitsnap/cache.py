"""On-disk cache of resolved ref hashes and downloaded archives.

Layout::

    {root}/{site}/{user}/{name}/
    ├── map.json        # ref selector -> commit hash
    ├── access.json     # ref selector -> last access (ISO-8601)
    └── {hash}.tar.gz   # downloaded archives

There is no cross-process locking; concurrent invocations on the same repository may race.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from gitsnap.config import ACCESS_FILE_NAME, MAP_FILE_NAME
from gitsnap.schemas import CacheRecord
from gitsnap.utils.logging_config import get_logger

if TYPE_CHECKING:
    from gitsnap.schemas import RepoDescriptor

# Initialize logger for this module
logger = get_logger(__name__)


class CacheStore:
    """Per-repository cache rooted at an explicit directory.

    Parameters
    ----------
    root : Path
        Base directory of the cache.

    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def repo_dir(self, descriptor: RepoDescriptor) -> Path:
        """Return the cache directory of ``descriptor``, keyed by site, user and name."""
        return self.root / descriptor.site / descriptor.user / descriptor.name

    def archive_path(self, descriptor: RepoDescriptor, commit: str) -> Path:
        """Return the archive file path for ``commit``."""
        return self.repo_dir(descriptor) / f"{commit}.tar.gz"

    def load_record(self, descriptor: RepoDescriptor) -> CacheRecord:
        """Load the cache record of ``descriptor``; missing or unreadable files yield empty mappings."""
        directory = self.repo_dir(descriptor)
        return CacheRecord(
            ref_to_hash=_read_mapping(directory / MAP_FILE_NAME),
            access_log=_read_mapping(directory / ACCESS_FILE_NAME),
        )

    def record_access(self, descriptor: RepoDescriptor, ref: str, record: CacheRecord | None = None) -> None:
        """Stamp ``ref`` with the current time in the access log and persist it.

        Parameters
        ----------
        descriptor : RepoDescriptor
            The repository whose access log is updated.
        ref : str
            The ref selector that was used.
        record : CacheRecord | None
            In-memory record to update as well. When ``None`` the log is re-read from disk.

        """
        log = record.access_log if record is not None else _read_mapping(self.repo_dir(descriptor) / ACCESS_FILE_NAME)
        log[ref] = datetime.now(timezone.utc).isoformat()
        _write_mapping(self.repo_dir(descriptor) / ACCESS_FILE_NAME, log)

    def update_hash(self, descriptor: RepoDescriptor, ref: str, commit: str, record: CacheRecord) -> None:
        """Point ``ref`` at ``commit`` and evict the previous archive if nothing else uses it.

        Parameters
        ----------
        descriptor : RepoDescriptor
            The repository the record belongs to.
        ref : str
            The ref selector being updated.
        commit : str
            The newly resolved commit hash.
        record : CacheRecord
            The loaded record; mutated in place and persisted.

        """
        previous = record.ref_to_hash.get(ref)
        if previous == commit:
            return

        if previous and not record.is_referenced(previous, exclude=ref):
            self._evict(descriptor, previous)

        record.ref_to_hash[ref] = commit
        _write_mapping(self.repo_dir(descriptor) / MAP_FILE_NAME, record.ref_to_hash)

    def _evict(self, descriptor: RepoDescriptor, commit: str) -> None:
        archive = self.archive_path(descriptor, commit)
        try:
            archive.unlink()
        except OSError:
            # Stale archives are only wasted disk space.
            logger.debug("Could not evict archive", extra={"archive": str(archive)})
        else:
            logger.info("Evicted orphaned archive", extra={"archive": str(archive)})


def _read_mapping(path: Path) -> dict[str, str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable cache file", extra={"path": str(path), "error": str(exc)})
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring malformed cache file", extra={"path": str(path)})
        return {}
    return {str(key): str(value) for key, value in data.items()}


def _write_mapping(path: Path, mapping: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mapping, indent=2), encoding="utf-8")
