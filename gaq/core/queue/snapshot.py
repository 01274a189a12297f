"""
Snapshot - Portable export of a queue's persisted state surface.

A snapshot captures the configuration written by `init`, the bid counter
and every bid record. Addresses and payloads are 0x-hex strings and
amounts are plain integers, so the JSON form is readable by any consumer.
"""

from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from gaq.core.queue.bid import Bid, BidStatus
from gaq.crypto import bytes_to_hex, hex_to_bytes
from gaq.utils.validation import validate_hex_string


def _check_hex(value: str, name: str, expected_bytes=None) -> str:
    valid, err = validate_hex_string(value, name, expected_bytes)
    if not valid:
        raise ValueError(err)
    return value.lower()


class BidRecord(BaseModel):
    """Serialized bid."""

    bid_id: int = Field(ge=0)
    amount: int = Field(ge=0)
    submitter: str
    details: str
    created_at: int = Field(ge=0)
    status: BidStatus

    @field_validator("submitter")
    @classmethod
    def _submitter_is_address(cls, v: str) -> str:
        return _check_hex(v, "submitter", 20)

    @field_validator("details")
    @classmethod
    def _details_is_hex(cls, v: str) -> str:
        return _check_hex(v, "details")

    @classmethod
    def from_bid(cls, bid: Bid) -> "BidRecord":
        return cls(
            bid_id=bid.bid_id,
            amount=bid.amount,
            submitter=bytes_to_hex(bid.submitter),
            details=bytes_to_hex(bid.details),
            created_at=bid.created_at,
            status=bid.status,
        )

    def to_bid(self) -> Bid:
        return Bid(
            bid_id=self.bid_id,
            amount=self.amount,
            submitter=hex_to_bytes(self.submitter),
            details=hex_to_bytes(self.details),
            created_at=self.created_at,
            status=BidStatus(self.status),
        )


class QueueSnapshot(BaseModel):
    """Serialized queue: configuration, counter and bid mapping."""

    address: str
    token: str
    membership: str
    destination: str
    lockup_duration: int = Field(ge=0)
    min_shares: int = Field(ge=0)
    next_bid_id: int = Field(ge=0)
    bids: List[BidRecord] = Field(default_factory=list)

    @field_validator("address", "token", "membership", "destination")
    @classmethod
    def _is_address(cls, v: str, info) -> str:
        return _check_hex(v, info.field_name, 20)

    @model_validator(mode="after")
    def _ids_are_dense(self) -> "QueueSnapshot":
        ids = [b.bid_id for b in self.bids]
        if ids != list(range(self.next_bid_id)):
            raise ValueError(f"bid ids must be 0..{self.next_bid_id - 1} in order, got {ids}")
        for b in self.bids:
            if b.status is not BidStatus.ACTIVE and b.amount != 0:
                raise ValueError(f"closed bid {b.bid_id} still holds {b.amount}")
        return self

    @property
    def escrowed_total(self) -> int:
        return sum(b.amount for b in self.bids if b.status is BidStatus.ACTIVE)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "QueueSnapshot":
        return cls.model_validate_json(data)


def save_snapshot(snapshot: QueueSnapshot, path: Union[str, Path]) -> Path:
    """Write a snapshot as JSON; returns the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.to_json())
    return path


def load_snapshot(path: Union[str, Path]) -> QueueSnapshot:
    return QueueSnapshot.from_json(Path(path).read_text())
