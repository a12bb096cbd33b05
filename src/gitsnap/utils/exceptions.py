"""Custom exceptions for the gitsnap package."""

from __future__ import annotations

from typing import Any


class AsyncTimeoutError(Exception):
    """Exception raised when an async operation exceeds its timeout limit.

    This exception is used by the ``async_timeout`` decorator to signal that the wrapped
    asynchronous function has exceeded the specified time limit for execution.
    """


class GitsnapError(Exception):
    """Base class for every failure gitsnap reports.

    Attributes
    ----------
    code : str
        Stable machine-readable error code, shared with the event taxonomy.
    message : str
        Human readable description.
    context : dict[str, Any]
        Additional structured context (URL, ref, path, ...).
    original : BaseException | None
        The wrapped underlying error, if any.

    """

    code = "ERROR"

    def __init__(self, message: str, *, original: BaseException | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.original = original
        if original is not None:
            self.__cause__ = original


class BadSpecifierError(GitsnapError):
    """Exception raised when a repository specifier does not match the grammar."""

    code = "BAD_SRC"


class UnsupportedHostError(GitsnapError):
    """Exception raised when a specifier names a host outside the supported set."""

    code = "UNSUPPORTED_HOST"


class DestinationNotEmptyError(GitsnapError):
    """Exception raised when the destination holds files and ``force`` was not given."""

    code = "DEST_NOT_EMPTY"


class CouldNotFetchError(GitsnapError):
    """Exception raised when a remote listing or archive download fails."""

    code = "COULD_NOT_FETCH"


class BadRefError(GitsnapError):
    """Exception raised when a ``git ls-remote`` line cannot be parsed."""

    code = "BAD_REF"


class MissingRefError(GitsnapError):
    """Exception raised when no commit hash can be found for the requested ref."""

    code = "MISSING_REF"


class ExtractionError(GitsnapError):
    """Exception raised when a downloaded archive cannot be extracted."""

    code = "EXTRACT_FAILED"


class GitCloneError(GitsnapError):
    """Exception raised when a direct ``git clone`` fails."""

    code = "GIT_CLONE_FAILED"


class ManifestError(GitsnapError):
    """Exception raised when the directives manifest cannot be read or validated."""

    code = "BAD_MANIFEST"
