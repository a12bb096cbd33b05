"""Schema for entries of a remote ref listing."""

from __future__ import annotations

from pydantic import BaseModel

from gitsnap.utils.compat_typing import StrEnum


class RefType(StrEnum):
    """Kind of a listed remote ref."""

    HEAD = "HEAD"
    BRANCH = "branch"
    TAG = "tag"
    REF = "ref"


class RefEntry(BaseModel):
    """One line of ``git ls-remote`` output. ``HEAD`` entries carry no name."""

    type: RefType
    name: str | None = None
    hash: str
