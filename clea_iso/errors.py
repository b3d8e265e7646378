"""
Exception types for the linkage pipeline.

Only errors that callers are expected to handle get their own class.
Everything else propagates as the built-in exception that raised it.
"""


class LinkageError(Exception):
    """Base class for pipeline errors."""


class InputIntegrityError(LinkageError, ValueError):
    """A source, reference or override table is missing required columns."""


class JoinFanoutError(LinkageError, ValueError):
    """The override join would duplicate match rows."""


class OracleError(LinkageError, RuntimeError):
    """The similarity oracle returned output that cannot be used."""
