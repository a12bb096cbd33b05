"""Schema for the events emitted while cloning."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field

from gitsnap.utils.compat_typing import StrEnum


class EventLevel(StrEnum):
    """Severity of an event."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"


class EventCode(StrEnum):
    """Stable event codes."""

    DEST_NOT_EMPTY = "DEST_NOT_EMPTY"
    DEST_IS_EMPTY = "DEST_IS_EMPTY"
    USING_CACHE = "USING_CACHE"
    FOUND_MATCH = "FOUND_MATCH"
    FILE_EXISTS = "FILE_EXISTS"
    DOWNLOADING = "DOWNLOADING"
    EXTRACTING = "EXTRACTING"
    PROXY = "PROXY"
    REMOVED = "REMOVED"
    FILE_DOES_NOT_EXIST = "FILE_DOES_NOT_EXIST"
    SUCCESS = "SUCCESS"
    MISSING_REF = "MISSING_REF"
    BAD_SRC = "BAD_SRC"
    UNSUPPORTED_HOST = "UNSUPPORTED_HOST"
    COULD_NOT_FETCH = "COULD_NOT_FETCH"
    BAD_REF = "BAD_REF"
    DOWNGRADE = "DOWNGRADE"


class Event(BaseModel):
    """A single reported event.

    Attributes
    ----------
    level : EventLevel
        The severity of the event.
    code : EventCode
        The stable event code.
    message : str
        Human readable message.
    context : dict[str, Any]
        Additional structured context (descriptor, destination, URL, ...).

    """

    level: EventLevel
    code: EventCode
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
