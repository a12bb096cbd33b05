"""Schema for the per-repository cache state."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CacheRecord(BaseModel):
    """Persistent cache state of one repository.

    Attributes
    ----------
    ref_to_hash : dict[str, str]
        Last commit hash each ref selector resolved to. Stored in ``map.json``.
    access_log : dict[str, str]
        ISO-8601 timestamp of the last use of each ref selector. Stored in ``access.json``.

    """

    ref_to_hash: dict[str, str] = Field(default_factory=dict)
    access_log: dict[str, str] = Field(default_factory=dict)

    def is_referenced(self, commit: str, *, exclude: str | None = None) -> bool:
        """Return whether any ref other than ``exclude`` still maps to ``commit``."""
        return any(value == commit for ref, value in self.ref_to_hash.items() if ref != exclude)
