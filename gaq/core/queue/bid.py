"""
Bid - The escrowed record tracked by a BidEscrowQueue.
"""

from dataclasses import dataclass, replace
from enum import IntEnum

from gaq.crypto import bytes_to_hex


class BidStatus(IntEnum):
    """Lifecycle state of a bid."""
    ACTIVE = 0      # Escrowed, owned by its submitter
    ACCEPTED = 1    # Settled to the destination (terminal)
    CANCELED = 2    # Refunded to the submitter (terminal)

    @property
    def is_terminal(self) -> bool:
        return self is not BidStatus.ACTIVE


@dataclass
class Bid:
    """
    A token-backed bid held in escrow.

    Attributes:
        bid_id: Sequential identifier, assigned at creation
        amount: Tokens currently escrowed for this bid
        submitter: Address that created the bid
        details: Opaque payload describing what is bid for
        created_at: Chain timestamp at submission
        status: Lifecycle state
    """
    bid_id: int
    amount: int
    submitter: bytes
    details: bytes
    created_at: int
    status: BidStatus = BidStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is BidStatus.ACTIVE

    def copy(self) -> "Bid":
        return replace(self)

    def to_row(self) -> tuple:
        """Storage row (bid_id, amount, submitter, details, created_at, status)."""
        return (self.bid_id, self.amount, self.submitter, self.details, self.created_at, int(self.status))

    @classmethod
    def from_row(cls, row: tuple) -> "Bid":
        bid_id, amount, submitter, details, created_at, status = row
        return cls(
            bid_id=bid_id,
            amount=amount,
            submitter=bytes(submitter),
            details=bytes(details),
            created_at=created_at,
            status=BidStatus(status),
        )

    def __repr__(self) -> str:
        return (
            f"Bid(id={self.bid_id}, amount={self.amount}, "
            f"submitter={bytes_to_hex(self.submitter)[:10]}, status={self.status.name})"
        )
