"""
Ledger error taxonomy.

Rejections are caller-correctable validation failures: nothing was
written and retrying the same request will fail the same way. They
subclass ValueError so the routers can treat them like any other
bad input.

Failures mean the unit of work could not be committed. Nothing is
visible to readers and the identical request may be retried,
ideally with the same idempotency key.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class NotFound(LedgerError, ValueError):
    """A referenced product, party or transaction does not exist."""


class _Rejection(LedgerError, ValueError):

    def __init__(self, reason: str, message: str, **details):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.details = details

    @property
    def is_not_found(self) -> bool:
        return self.reason.endswith("NOT_FOUND")

    def to_dict(self) -> dict:
        return {
            "reason": self.reason,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


class PostingRejected(_Rejection):
    """A posting request failed validation."""


class ReversalRejected(_Rejection):
    """A reversal request failed validation."""


class PostingFailed(LedgerError):
    """The posting could not be committed."""


class ReversalFailed(LedgerError):
    """The reversal could not be committed."""
