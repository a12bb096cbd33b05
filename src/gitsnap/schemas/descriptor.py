"""Schema for parsed repository specifiers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from gitsnap.utils.compat_typing import StrEnum


class CloneMode(StrEnum):
    """How a repository snapshot is materialized."""

    ARCHIVE = "archive"
    VCS = "vcs"


class RepoDescriptor(BaseModel):  # pylint: disable=too-many-instance-attributes
    """Immutable description of a repository, a ref and an optional subdirectory.

    Attributes
    ----------
    protocol : str
        ``http`` or ``https``.
    site : str
        The hosting domain (e.g. ``github.com``).
    user : str
        The owner of the repository.
    name : str
        The repository name, without any ``.git`` suffix.
    ref : str
        Branch, tag, (partial) commit hash or ``HEAD`` (default: ``"HEAD"``).
    subdir : str | None
        Subdirectory of the repository to extract, without leading or trailing slashes.
    url : str
        ``{protocol}://{site}/{user}/{name}``.
    ssh_url : str
        ``git@{site}:{user}/{name}``.
    mode : CloneMode
        The default clone strategy for this host.

    """

    model_config = ConfigDict(frozen=True)

    protocol: str
    site: str
    user: str
    name: str
    ref: str = "HEAD"
    subdir: str | None = None
    url: str
    ssh_url: str
    mode: CloneMode = CloneMode.ARCHIVE

    @property
    def slug(self) -> str:
        """Return ``user/name``."""
        return f"{self.user}/{self.name}"
