"""
Events - Observable side effects of queue and factory operations.

Each event has a fixed signature; `args` yields its fields in signature
order, which is what off-chain consumers index on:

    NewBid(amount, submitter, bid_id, details)
    BidIncreased(new_amount, bid_id)
    BidWithdrawn(new_amount, bid_id)
    BidCanceled(bid_id)
    BidAccepted(accepter, bid_id)
    QueueCreated(queue_address)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from gaq.crypto import bytes_to_hex, hex_to_bytes
from gaq.utils.logger import get_logger

logger = get_logger("events")


EVENT_SIGNATURES: Dict[str, Tuple[str, ...]] = {
    "NewBid": ("amount", "submitter", "bid_id", "details"),
    "BidIncreased": ("new_amount", "bid_id"),
    "BidWithdrawn": ("new_amount", "bid_id"),
    "BidCanceled": ("bid_id",),
    "BidAccepted": ("accepter", "bid_id"),
    "QueueCreated": ("queue_address",),
}

# Fields holding addresses or opaque payloads
BYTES_FIELDS = frozenset({"submitter", "accepter", "queue_address", "details"})


@dataclass
class Event:
    """
    A single emitted event.

    Attributes:
        name: Event name (key of EVENT_SIGNATURES)
        address: Emitting contract address
        block_number: Block the event was emitted in
        timestamp: Chain timestamp at emission
        fields: Field values keyed by name
    """
    name: str
    address: bytes
    block_number: int
    timestamp: int
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def args(self) -> Tuple[Any, ...]:
        """Field values in signature order."""
        return tuple(self.fields[f] for f in EVENT_SIGNATURES[self.name])

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def to_dict(self) -> dict:
        """JSON-safe representation (bytes become 0x-hex)."""
        return {
            "name": self.name,
            "address": bytes_to_hex(self.address),
            "block_number": self.block_number,
            "timestamp": self.timestamp,
            "fields": {
                k: bytes_to_hex(v) if isinstance(v, bytes) else v
                for k, v in self.fields.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        fields = {}
        for k, v in data["fields"].items():
            if k in BYTES_FIELDS:
                v = hex_to_bytes(v)
            fields[k] = v
        return cls(
            name=data["name"],
            address=hex_to_bytes(data["address"]),
            block_number=data["block_number"],
            timestamp=data["timestamp"],
            fields=fields,
        )


def make_event(name: str, address: bytes, block_number: int, timestamp: int, *args: Any) -> Event:
    """Build an event from positional args in signature order."""
    signature = EVENT_SIGNATURES.get(name)
    if signature is None:
        raise ValueError(f"Unknown event: {name}")
    if len(args) != len(signature):
        raise ValueError(f"{name} takes {len(signature)} args, got {len(args)}")
    return Event(
        name=name,
        address=address,
        block_number=block_number,
        timestamp=timestamp,
        fields=dict(zip(signature, args)),
    )


class EventLog:
    """
    Append-only log of emitted events with optional subscribers.

    Subscribers are called synchronously after an event is appended. The
    chain appends only events of completed calls, so a failing subscriber
    cannot undo the call that emitted the event; its exception is logged
    and the remaining subscribers still run.
    """

    def __init__(self):
        self.events: List[Event] = []
        self._subscribers: List[Tuple[Optional[str], Callable[[Event], None]]] = []

    def append(self, event: Event) -> None:
        self.events.append(event)
        logger.debug(f"{event.name}{event.args} from {bytes_to_hex(event.address)[:10]}")
        for name, callback in self._subscribers:
            if name is None or name == event.name:
                try:
                    callback(event)
                except Exception as e:
                    logger.error(f"Subscriber error on {event.name}: {e}")

    def subscribe(self, callback: Callable[[Event], None], name: Optional[str] = None) -> None:
        """Register a callback for all events, or only those named `name`."""
        self._subscribers.append((name, callback))

    def filter(self, name: Optional[str] = None, address: Optional[bytes] = None) -> List[Event]:
        """Events matching name and/or emitting address, oldest first."""
        return [
            e for e in self.events
            if (name is None or e.name == name)
            and (address is None or e.address == address)
        ]

    def last(self, name: Optional[str] = None, address: Optional[bytes] = None) -> Optional[Event]:
        matching = self.filter(name, address)
        return matching[-1] if matching else None

    def __len__(self) -> int:
        return len(self.events)
