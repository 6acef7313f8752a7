"""
Exceptions raised by coseq.
"""


class CoseqError(Exception):
    """Base class for coseq errors."""


class PipelineMisuseError(CoseqError):
    """
    A pipeline was used in a way its configuration does not allow.

    Raised synchronously at call time, e.g. when an async-only stage is
    attached to a chain pinned to the synchronous strategy.
    """
