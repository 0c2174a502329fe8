"""Exception types raised by Claude Explorer."""


class ExplorerError(Exception):
    """Base class for all Claude Explorer errors."""


class IndexNotBuiltError(ExplorerError, RuntimeError):
    """A query was issued before the index was built."""


class InvalidInputError(ExplorerError, ValueError):
    """The snapshot passed to a build or load step is malformed."""
