"""Schema for the cloning process."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 (typing-only-standard-library-import) needed for type checking (pydantic)

from pydantic import BaseModel, Field

from gitsnap.schemas.descriptor import CloneMode, RepoDescriptor


class CloneOptions(BaseModel):
    """Options controlling a single clone operation.

    Attributes
    ----------
    force : bool
        Clone into a non-empty destination (default: ``False``).
    cache : bool
        Resolve refs from the local cache only, skipping the remote listing (default: ``False``).
    mode : CloneMode | None
        Override the descriptor's clone mode.
    proxy : str | None
        HTTPS proxy used for archive downloads.

    """

    force: bool = Field(default=False)
    cache: bool = Field(default=False)
    mode: CloneMode | None = None
    proxy: str | None = None


class CloneResult(BaseModel):
    """Outcome of a successful clone."""

    descriptor: RepoDescriptor
    destination: Path
    resolved_hash: str | None = None
