"""Custom exception hierarchy for vmsync."""

from __future__ import annotations


class VmSyncError(Exception):
    """Base exception for all vmsync errors."""


class ConfigError(VmSyncError):
    """Invalid or missing configuration."""


class TransportError(VmSyncError):
    """Daemon call failed (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class UnavailableError(TransportError):
    """The daemon could not be reached at all (refused, socket missing)."""


class WriteFailedError(TransportError):
    """A settings write was rejected by the daemon.

    The remote settings synchronizer never lets this escape to callers of
    ``set``; the UI only reacts to the value fetched after invalidation.
    """


class InitializationError(VmSyncError):
    """A component was used before its required handle was installed.

    Raised when the persisted-store settings are read or written before
    :meth:`vmsync.context.SyncContext.install_store` was called.  This is a
    programming error and is not meant to be recovered from.
    """


class GraphError(VmSyncError):
    """Misuse of the cache graph (e.g. reading a disposed node)."""
