"""Module containing the schemas for the gitsnap package."""

from gitsnap.schemas.cache import CacheRecord
from gitsnap.schemas.cloning import CloneOptions, CloneResult
from gitsnap.schemas.descriptor import CloneMode, RepoDescriptor
from gitsnap.schemas.directives import CloneDirective, Directive, DirectiveList, RemoveDirective
from gitsnap.schemas.events import Event, EventCode, EventLevel
from gitsnap.schemas.refs import RefEntry, RefType

__all__ = [
    "CacheRecord",
    "CloneDirective",
    "CloneMode",
    "CloneOptions",
    "CloneResult",
    "Directive",
    "DirectiveList",
    "Event",
    "EventCode",
    "EventLevel",
    "RefEntry",
    "RefType",
    "RemoveDirective",
    "RepoDescriptor",
]
