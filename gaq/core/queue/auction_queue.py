"""
BidEscrowQueue - Escrowed bid queue gated by guild membership.

Conceptual Background:
---------------------
Anyone may lock tokens in the queue as a bid for some resource or
privilege. A guild member holding at least `min_shares` voting shares may
accept any active bid, which settles its escrow to a fixed destination.
Until then the bid belongs to its submitter, who may top it up at any time
and, once the lock-up has elapsed, withdraw from it or cancel it.

Lifecycle:
---------
    ACTIVE --accept_bid--> ACCEPTED   (funds -> destination)
    ACTIVE --cancel_bid--> CANCELED   (funds -> submitter)
    increase_bid / withdraw_bid mutate `amount` and stay ACTIVE

Guards run in a fixed order so the reported failure is predictable:
existence, then ownership or membership, then status, then lock-up, then
amount.

Atomicity:
---------
Every entry point runs as one chain execution frame. Bid records are
replaced, never edited in place, and every write (bid, counter, token
balances) is journaled with the frame. Storage is written last, in one
SQLite transaction. If a guard, a transfer or the storage write raises,
the frame is reverted and nothing changes. Events reach the log and its
subscribers only after the call completes. A nested call into the same
queue (e.g. from a token callback) is rejected.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from gaq.core.chain import Chain, Contract
from gaq.core.errors import (
    AlreadyInitialized,
    BidInactive,
    InvalidAmount,
    InvalidBid,
    LockupNotElapsed,
    NotFullMember,
    NotInitialized,
    NotSubmitter,
    QueueError,
    ReentrantCall,
    TransferFailed,
)
from gaq.core.events import Event
from gaq.core.queue.bid import Bid, BidStatus
from gaq.core.queue.snapshot import BidRecord, QueueSnapshot
from gaq.core.storage import StorageManager
from gaq.crypto import bytes_to_hex, hex_to_bytes, short_hex
from gaq.utils.logger import get_logger
from gaq.utils.validation import (
    MAX_DETAILS_SIZE,
    require,
    validate_address,
    validate_amount,
    validate_bid_id,
    validate_details,
    validate_duration,
)

logger = get_logger("queue")


@dataclass(frozen=True)
class QueueConfig:
    """
    Configuration written once by `init`.

    Attributes:
        token: Address of the escrowed token
        membership: Address of the membership registry
        destination: Payee of accepted bids
        lockup_duration: Seconds before a submitter may withdraw or cancel
        min_shares: Voting shares required to accept a bid
    """
    token: bytes
    membership: bytes
    destination: bytes
    lockup_duration: int
    min_shares: int


class BidEscrowQueue(Contract):
    """
    Escrow ledger of bids.

    Construction only allocates storage; `init` must be called exactly once
    before any other entry point.

    Attributes:
        config: Frozen configuration (None until initialized)
        next_bid_id: Id the next bid will get; also the exclusive upper
            bound of valid ids
    """

    def __init__(
        self,
        chain: Chain,
        address: Optional[bytes] = None,
        storage_manager: Optional[StorageManager] = None,
        max_details_size: int = MAX_DETAILS_SIZE,
    ):
        """
        Args:
            chain: Host chain (clock, contracts, event log)
            address: Pre-assigned address; None = assigned on deploy
            storage_manager: Persistence manager. None = in-memory only.
            max_details_size: Largest accepted bid payload in bytes
        """
        super().__init__(chain, address)
        self.max_details_size = max_details_size

        self.config: Optional[QueueConfig] = None
        self.next_bid_id: int = 0
        self._bids: Dict[int, Bid] = {}

        self._initialized = False
        self._entered = False

        self.storage_manager = storage_manager
        if storage_manager and address is not None:
            self._load_from_storage()

    # =========================================================================
    # Initialization
    # =========================================================================

    def init(
        self,
        token: bytes,
        membership: bytes,
        destination: bytes,
        lockup_duration: int,
        min_shares: int,
    ) -> None:
        """
        Write the queue configuration. Callable once.

        Raises:
            AlreadyInitialized: on any call after the first
            ValueError: on malformed configuration values
        """
        with self._call("init"):
            if self._initialized:
                raise AlreadyInitialized()

            require(validate_address(token, "token"))
            require(validate_address(membership, "membership"))
            require(validate_address(destination, "destination"))
            require(validate_duration(lockup_duration, "lockup_duration"))
            require(validate_amount(min_shares, "min_shares"))

            if self.address is None:
                self.chain.deploy(self)

            self._journal_attr("config", "_initialized")
            self.config = QueueConfig(
                token=bytes(token),
                membership=bytes(membership),
                destination=bytes(destination),
                lockup_duration=lockup_duration,
                min_shares=min_shares,
            )
            self._initialized = True

            if self.storage_manager:
                self.storage_manager.persist_config(
                    self.address, token, membership, destination, lockup_duration, min_shares
                )

        logger.info(
            f"Queue {short_hex(self.address)} initialized: lockup={lockup_duration}s, "
            f"min_shares={min_shares}, destination={short_hex(destination)}"
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Bid Operations
    # =========================================================================

    def submit_bid(self, sender: bytes, amount: int, details: bytes) -> int:
        """
        Escrow `amount` tokens from `sender` as a new bid.

        Args:
            sender: Bidder address (must have approved the queue)
            amount: Tokens to escrow, > 0
            details: Opaque payload describing what is bid for

        Returns:
            The new bid id

        Raises:
            InvalidAmount: amount is not a positive integer
            TransferFailed: the token refused the pull
        """
        with self._call("submit_bid"):
            require(validate_address(sender, "sender"))
            require(validate_details(details, self.max_details_size))
            valid, err = validate_amount(amount, allow_zero=False)
            if not valid:
                raise InvalidAmount(err)

            self._pull(sender, amount)

            bid = Bid(
                bid_id=self.next_bid_id,
                amount=amount,
                submitter=bytes(sender),
                details=bytes(details),
                created_at=self.chain.timestamp,
            )
            self._store(bid)
            self._journal_attr("next_bid_id")
            self.next_bid_id += 1

            event = self._emit("NewBid", amount, bid.submitter, bid.bid_id, bid.details)
            self._persist(bid, event)

        logger.info(f"Bid {bid.bid_id} submitted by {short_hex(sender)}: {amount}")
        return bid.bid_id

    def increase_bid(self, sender: bytes, extra_amount: int, bid_id: int) -> int:
        """
        Escrow `extra_amount` more tokens on an active bid.

        Returns:
            The bid's new amount

        Raises:
            InvalidBid, NotSubmitter, BidInactive, InvalidAmount, TransferFailed
        """
        with self._call("increase_bid"):
            bid = self._owned_active_bid(sender, bid_id).copy()
            valid, err = validate_amount(extra_amount, "extra_amount", allow_zero=False)
            if not valid:
                raise InvalidAmount(err)

            self._pull(sender, extra_amount)
            bid.amount += extra_amount
            self._store(bid)

            event = self._emit("BidIncreased", bid.amount, bid_id)
            self._persist(bid, event)

        logger.info(f"Bid {bid_id} increased by {extra_amount} to {bid.amount}")
        return bid.amount

    def withdraw_bid(self, sender: bytes, withdraw_amount: int, bid_id: int) -> int:
        """
        Return part of an active bid's escrow to its submitter.

        The bid stays ACTIVE even when drained to zero.

        Returns:
            The bid's new amount

        Raises:
            InvalidBid, NotSubmitter, BidInactive, LockupNotElapsed,
            InvalidAmount (more than escrowed), TransferFailed
        """
        with self._call("withdraw_bid"):
            bid = self._owned_active_bid(sender, bid_id).copy()
            self._require_unlocked(bid)

            valid, err = validate_amount(withdraw_amount, "withdraw_amount")
            if not valid:
                raise InvalidAmount(err)
            if withdraw_amount > bid.amount:
                raise InvalidAmount(f"withdraw_amount {withdraw_amount} exceeds bid amount {bid.amount}")

            bid.amount -= withdraw_amount
            self._store(bid)
            self._push(bid.submitter, withdraw_amount)

            event = self._emit("BidWithdrawn", bid.amount, bid_id)
            self._persist(bid, event)

        logger.info(f"Bid {bid_id} withdrew {withdraw_amount}, {bid.amount} left")
        return bid.amount

    def cancel_bid(self, sender: bytes, bid_id: int) -> int:
        """
        Refund an active bid in full and close it.

        Returns:
            The refunded amount

        Raises:
            InvalidBid, NotSubmitter, BidInactive, LockupNotElapsed, TransferFailed
        """
        with self._call("cancel_bid"):
            bid = self._owned_active_bid(sender, bid_id).copy()
            self._require_unlocked(bid)

            refund = bid.amount
            bid.amount = 0
            bid.status = BidStatus.CANCELED
            self._store(bid)
            self._push(bid.submitter, refund)

            event = self._emit("BidCanceled", bid_id)
            self._persist(bid, event)

        logger.info(f"Bid {bid_id} canceled, refunded {refund}")
        return refund

    def accept_bid(self, sender: bytes, bid_id: int) -> int:
        """
        Settle an active bid's escrow to the destination.

        Not subject to the lock-up, and `sender` need not be the submitter.

        Returns:
            The settled amount

        Raises:
            InvalidBid, NotFullMember, BidInactive, TransferFailed
        """
        with self._call("accept_bid"):
            bid = self._get_bid(bid_id).copy()

            shares = self._membership().shares_of(sender)
            if shares < self.config.min_shares:
                raise NotFullMember()

            if not bid.is_active:
                raise BidInactive()

            payout = bid.amount
            bid.amount = 0
            bid.status = BidStatus.ACCEPTED
            self._store(bid)
            self._push(self.config.destination, payout)

            event = self._emit("BidAccepted", bytes(sender), bid_id)
            self._persist(bid, event)

        logger.info(f"Bid {bid_id} accepted by {short_hex(sender)}, {payout} settled")
        return payout

    # =========================================================================
    # Views
    # =========================================================================

    def bids(self, bid_id: int) -> Bid:
        """Copy of a bid record."""
        return self._get_bid(bid_id).copy()

    get_bid = bids

    def all_bids(self) -> List[Bid]:
        return [self._bids[i].copy() for i in range(self.next_bid_id)]

    def active_bids(self) -> List[Bid]:
        return [b.copy() for b in self._bids.values() if b.is_active]

    def escrowed_total(self) -> int:
        """Tokens owed to active bids; never more than the queue's balance."""
        return sum(b.amount for b in self._bids.values() if b.is_active)

    def lockup_ends_at(self, bid_id: int) -> int:
        self._require_initialized()
        return self._get_bid(bid_id).created_at + self.config.lockup_duration

    def is_unlocked(self, bid_id: int) -> bool:
        return self.chain.timestamp >= self.lockup_ends_at(bid_id)

    def stats(self) -> dict:
        """Get queue statistics."""
        by_status = {s.name.lower(): 0 for s in BidStatus}
        for bid in self._bids.values():
            by_status[bid.status.name.lower()] += 1

        return {
            "address": bytes_to_hex(self.address) if self.address else None,
            "initialized": self._initialized,
            "next_bid_id": self.next_bid_id,
            "bids": by_status,
            "escrowed_total": self.escrowed_total(),
        }

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> QueueSnapshot:
        """Export the persisted state surface."""
        self._require_initialized()
        return QueueSnapshot(
            address=bytes_to_hex(self.address),
            token=bytes_to_hex(self.config.token),
            membership=bytes_to_hex(self.config.membership),
            destination=bytes_to_hex(self.config.destination),
            lockup_duration=self.config.lockup_duration,
            min_shares=self.config.min_shares,
            next_bid_id=self.next_bid_id,
            bids=[BidRecord.from_bid(b) for b in self.all_bids()],
        )

    @classmethod
    def from_snapshot(cls, chain: Chain, snapshot: QueueSnapshot) -> "BidEscrowQueue":
        """
        Rebuild an initialized queue from an exported snapshot.

        The queue is deployed at the snapshot's address. Token and
        membership contracts are looked up on `chain` when used.
        """
        queue = cls(chain, address=hex_to_bytes(snapshot.address))
        queue.config = QueueConfig(
            token=hex_to_bytes(snapshot.token),
            membership=hex_to_bytes(snapshot.membership),
            destination=hex_to_bytes(snapshot.destination),
            lockup_duration=snapshot.lockup_duration,
            min_shares=snapshot.min_shares,
        )
        for record in snapshot.bids:
            bid = record.to_bid()
            queue._bids[bid.bid_id] = bid
        queue.next_bid_id = snapshot.next_bid_id
        queue._initialized = True
        chain.deploy(queue)
        return queue

    # =========================================================================
    # Guards
    # =========================================================================

    @contextmanager
    def _call(self, operation: str) -> Iterator[None]:
        """Run an entry point serialized, non-reentrant and logged."""
        with self.chain.execute():
            if self._entered:
                raise ReentrantCall(f"reentrant call to {operation}")
            self._entered = True
            try:
                if operation != "init":
                    self._require_initialized()
                yield
            except QueueError as e:
                logger.warning(f"{operation} rejected: {e}")
                raise
            finally:
                self._entered = False

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitialized()

    def _get_bid(self, bid_id: int) -> Bid:
        require(validate_bid_id(bid_id))
        if bid_id < 0 or bid_id >= self.next_bid_id:
            raise InvalidBid()
        return self._bids[bid_id]

    def _owned_active_bid(self, sender: bytes, bid_id: int) -> Bid:
        bid = self._get_bid(bid_id)
        if bid.submitter != sender:
            raise NotSubmitter()
        if not bid.is_active:
            raise BidInactive()
        return bid

    def _require_unlocked(self, bid: Bid) -> None:
        if self.chain.timestamp < bid.created_at + self.config.lockup_duration:
            raise LockupNotElapsed()

    def _store(self, bid: Bid) -> None:
        """Write a bid record; the enclosing call restores the old one on failure."""
        self._journal_key(self._bids, bid.bid_id)
        self._bids[bid.bid_id] = bid

    # =========================================================================
    # Collaborators
    # =========================================================================

    def _token(self):
        return self.chain.contract_at(self.config.token)

    def _membership(self):
        return self.chain.contract_at(self.config.membership)

    def _pull(self, owner: bytes, amount: int) -> None:
        success, err = self._token().transfer_from(self.address, owner, self.address, amount)
        if not success:
            raise TransferFailed(err)

    def _push(self, to: bytes, amount: int) -> None:
        success, err = self._token().transfer(self.address, to, amount)
        if not success:
            raise TransferFailed(err)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _persist(self, bid: Bid, event: Event) -> None:
        # Last step of every operation: a storage error reverts the whole call
        if self.storage_manager:
            self.storage_manager.persist_bid(self.address, bid.to_row(), self.next_bid_id, event.to_dict())

    def _load_from_storage(self) -> None:
        """Load configuration and bids from storage manager."""
        state = self.storage_manager.load_queue_state(self.address)
        if state is None:
            return

        config, rows = state
        self.config = QueueConfig(
            token=config["token"],
            membership=config["membership"],
            destination=config["destination"],
            lockup_duration=config["lockup_duration"],
            min_shares=config["min_shares"],
        )
        for row in rows:
            bid = Bid.from_row(row)
            self._bids[bid.bid_id] = bid
        self.next_bid_id = config["next_bid_id"]
        self._initialized = True

        logger.info(f"Loaded queue {short_hex(self.address)}: {len(self._bids)} bids, next id {self.next_bid_id}")

    def __repr__(self) -> str:
        addr = short_hex(self.address) if self.address else "undeployed"
        return f"BidEscrowQueue({addr}, bids={self.next_bid_id}, escrowed={self.escrowed_total()})"
