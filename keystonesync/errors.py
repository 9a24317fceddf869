"""
Exceptions raised by KeystoneSync.
"""


class KeystoneSyncError(Exception):
    """Base class for library errors."""


class PreconditionViolation(KeystoneSyncError, RuntimeError):
    """A caller invoked an operation the current state does not support.

    These are not recoverable: they mean the caller disagrees with what the
    host reported and should surface immediately.
    """


class SeasonDataNotRequested(PreconditionViolation):
    """Seasonal data was loaded before the host request batch was issued."""


class ProtocolViolation(KeystoneSyncError):
    """An inbound peer message broke the message contract."""
