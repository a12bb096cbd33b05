"""gitsnap: materialize history-free snapshots of remote Git repositories."""

from gitsnap.entrypoint import clone, clone_async

__all__ = ["clone", "clone_async"]
