"""
Error taxonomy for the Dokploy reconcilers.

Client-level errors describe what the remote API said. Reconciler-level
errors describe which lifecycle operation failed and carry the remote
message verbatim so the caller can show it to the user.
"""

from typing import Optional


class DokployAPIError(Exception):
    """Raised by the API client when a remote call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class RemoteNotFound(DokployAPIError):
    """The addressed remote object does not exist."""


class ReconcileError(Exception):
    """Base class for errors surfaced by a reconciliation pass."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RemoteCreateError(ReconcileError):
    """Remote create call failed."""


class RemoteReadError(ReconcileError):
    """Remote read call failed for a reason other than not-found."""


class RemoteUpdateError(ReconcileError):
    """Remote update call failed."""


class RemoteDeleteError(ReconcileError):
    """Remote delete call failed for a reason other than not-found."""


class DecodeError(ReconcileError):
    """A configured value cannot be represented (bad args or env entry)."""


class ImmutableFieldError(ReconcileError):
    """An in-place update tried to change a replace-triggering field."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(
            f"Fields cannot be updated in place: {', '.join(self.fields)}"
        )


class SecondaryOperationWarning(UserWarning):
    """A follow-up call failed after the primary operation committed."""

    def __init__(self, summary: str, detail: str):
        self.summary = summary
        self.detail = detail
        super().__init__(f"{summary}: {detail}")
