"""
Queue failures.

Every failing queue operation raises one of these and leaves the ledger
exactly as it was before the call. Messages match the revert strings of the
deployed contract so either the class or the text can be matched.
"""


class QueueError(Exception):
    """Base class for bid queue failures."""

    message = "queue error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


class AlreadyInitialized(QueueError):
    message = "Initializable: contract is already initialized"


class NotInitialized(QueueError):
    message = "queue not initialized"


class InvalidBid(QueueError):
    message = "invalid bid"


class NotSubmitter(QueueError):
    message = "must be submitter"


class BidInactive(QueueError):
    message = "bid inactive"


class LockupNotElapsed(QueueError):
    message = "lockupPeriod not over"


class NotFullMember(QueueError):
    message = "not full member of moloch"


class InvalidAmount(QueueError):
    message = "invalid amount"


class TransferFailed(QueueError):
    message = "token transfer failed"


class ReentrantCall(QueueError):
    message = "reentrant call"


__all__ = [
    "QueueError",
    "AlreadyInitialized",
    "NotInitialized",
    "InvalidBid",
    "NotSubmitter",
    "BidInactive",
    "LockupNotElapsed",
    "NotFullMember",
    "InvalidAmount",
    "TransferFailed",
    "ReentrantCall",
]
