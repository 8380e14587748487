"""Exception hierarchy and exit codes for dbtop.

Decoding problems, unsupported server features, sampling failures and bad
command-line input each get their own type so the poll loop and the CLI can
decide what is fatal and what is only reported.
"""

from enum import IntEnum


class Exit(IntEnum):
    """Process exit codes."""

    OK = 0
    FAILURE = 1
    BAD_INPUT = 2
    UNSUPPORTED = 3


class DbtopError(Exception):
    """Base class for all dbtop errors."""


class DecodeError(DbtopError):
    """Raised when a server reply cannot be turned into a snapshot."""


class UnsupportedFeature(DecodeError):
    """Raised when the server cannot report the requested shape."""


class TransientSampleFailure(DbtopError):
    """A sample attempt failed after at least one earlier success."""


class FatalStartupFailure(DbtopError):
    """The very first sample attempt failed; there is nothing to show."""


class BadOptions(DbtopError):
    """Raised for invalid or conflicting command-line options."""


__all__ = [
    "Exit",
    "DbtopError",
    "DecodeError",
    "UnsupportedFeature",
    "TransientSampleFailure",
    "FatalStartupFailure",
    "BadOptions",
]
