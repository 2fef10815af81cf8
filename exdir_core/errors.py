"""Exceptions raised by exdir stores.

Each class also derives from the builtin exception that plain Python code would
raise in the same situation, so `except FileNotFoundError` and the like keep
working. Failing filesystem calls are not wrapped, their `OSError` propagates.
"""


class ExdirError(Exception):
    """Base class of all store errors."""


class NotFoundError(ExdirError, FileNotFoundError):
    """A store or object that was required to exist is absent."""


class AlreadyExistsError(ExdirError, FileExistsError):
    """The target name is occupied, or removal of existing data was not allowed."""


class InvalidFormatError(ExdirError, ValueError):
    """A directory exists, but does not carry a valid envelope of the expected type."""


class InvalidArgumentError(ExdirError, ValueError):
    """Unrecognized open mode, or a name rejected by the naming policy."""


class LockContentionError(ExdirError, BlockingIOError):
    """Another handle already holds the write lock of the store."""


class ReadOnlyError(ExdirError, PermissionError):
    """A modification was attempted through a read-only handle."""


class ClosedError(ExdirError, ValueError):
    """The file owning the object was closed."""
