"""
Chain - In-process host environment for GAQ contracts.

Conceptual Background:
---------------------
The queue was designed for a serialized ledger: every call runs to
completion before the next starts, reads a block timestamp, and addresses
other contracts by their 20-byte address. `Chain` reproduces exactly that:

1. **Clock**: block number and timestamp, advanced by `mine()` and
   `increase_time()` (the evm_mine / evm_increaseTime analogues)
2. **Contract directory**: address -> deployed contract object
3. **Execution frames**: one re-entrant lock shared by all contracts, so
   state-mutating calls never interleave. Each frame journals undo
   actions; a frame that raises rolls back every change made inside it,
   nested calls included, the way a reverted transaction does.
4. **Event log**: events emitted inside a frame are held back and appended
   (and delivered to subscribers) only once the outermost frame completes
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional

from gaq.core.config import DEV_CHAIN_ID
from gaq.core.events import Event, EventLog, make_event
from gaq.crypto import ZERO_ADDRESS, bytes_to_hex, contract_address
from gaq.utils.logger import get_logger

logger = get_logger("chain")

# Seconds a block advances the clock
DEFAULT_BLOCK_TIME = 1


class Contract:
    """
    Base for anything deployed on a Chain.

    Subclasses get an address once deployed and emit events through the
    chain's log.
    """

    def __init__(self, chain: "Chain", address: Optional[bytes] = None):
        self.chain = chain
        self.address = address

    def _emit(self, name: str, *args: Any) -> Event:
        event = make_event(name, self.address, self.chain.block_number, self.chain.timestamp, *args)
        self.chain.publish(event)
        return event

    def _journal_attr(self, *names: str) -> None:
        """Record attributes so the enclosing call restores them on failure."""
        for name in names:
            old = getattr(self, name)
            self.chain.journal(lambda name=name, old=old: setattr(self, name, old))

    def _journal_key(self, mapping: dict, key: Hashable) -> None:
        """Record `mapping[key]` (or its absence) for the enclosing call."""
        if key in mapping:
            old = mapping[key]
            self.chain.journal(lambda: mapping.__setitem__(key, old))
        else:
            self.chain.journal(lambda: mapping.pop(key, None))

    def __repr__(self) -> str:
        addr = bytes_to_hex(self.address)[:10] if self.address else "undeployed"
        return f"{type(self).__name__}({addr})"


class Chain:
    """
    Simulated serialized ledger.

    Attributes:
        chain_id: Chain identifier (selects default lock-up periods)
        block_number: Current block height
        timestamp: Current block timestamp in seconds
        events: Log of every emitted event
    """

    def __init__(
        self,
        chain_id: int = DEV_CHAIN_ID,
        start_time: Optional[int] = None,
        block_time: int = DEFAULT_BLOCK_TIME,
    ):
        self.chain_id = chain_id
        self.block_number = 0
        self.timestamp = int(time.time()) if start_time is None else start_time
        self.block_time = block_time
        self.events = EventLog()

        self._contracts: Dict[bytes, Contract] = {}
        self._nonces: Dict[bytes, int] = {}
        self._lock = threading.RLock()

        # Open execution frames, their undo journal and held-back events
        self._depth = 0
        self._journal: List[Callable[[], None]] = []
        self._pending: List[Event] = []

        logger.debug(f"Chain {chain_id} started at t={self.timestamp}")

    # =========================================================================
    # Clock
    # =========================================================================

    def mine(self, blocks: int = 1) -> int:
        """Advance `blocks` blocks; returns the new block number."""
        with self._lock:
            self.block_number += blocks
            self.timestamp += blocks * self.block_time
        return self.block_number

    def increase_time(self, seconds: int) -> int:
        """Move the clock forward without producing a block."""
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards: {seconds}")
        with self._lock:
            self.timestamp += seconds
        return self.timestamp

    def set_timestamp(self, timestamp: int) -> None:
        if timestamp < self.timestamp:
            raise ValueError(f"Timestamp {timestamp} is before current {self.timestamp}")
        with self._lock:
            self.timestamp = timestamp

    # =========================================================================
    # Contracts
    # =========================================================================

    def next_address(self, creator: bytes = ZERO_ADDRESS) -> bytes:
        """Address the next deployment by `creator` will receive."""
        return contract_address(creator, self._nonces.get(creator, 0))

    def deploy(self, contract: Contract, creator: bytes = ZERO_ADDRESS) -> bytes:
        """
        Register a contract, assigning it an address if it has none.

        Returns:
            The contract's address
        """
        with self.execute():
            assigned = contract.address is None
            if assigned:
                contract.address = self.next_address(creator)
            if contract.address in self._contracts:
                address = contract.address
                if assigned:
                    contract.address = None
                raise ValueError(f"Address {bytes_to_hex(address)} already in use")

            nonce = self._nonces.get(creator, 0)
            self._nonces[creator] = nonce + 1
            self._contracts[contract.address] = contract
            self.journal(lambda: self._undeploy(contract, creator, nonce, assigned))

        logger.debug(f"Deployed {contract!r}")
        return contract.address

    def _undeploy(self, contract: Contract, creator: bytes, nonce: int, assigned: bool) -> None:
        self._contracts.pop(contract.address, None)
        self._nonces[creator] = nonce
        if assigned:
            contract.address = None

    def contract_at(self, address: bytes) -> Contract:
        contract = self._contracts.get(address)
        if contract is None:
            raise LookupError(f"No contract at {bytes_to_hex(address)}")
        return contract

    def has_contract(self, address: bytes) -> bool:
        return address in self._contracts

    def contracts(self) -> List[Contract]:
        return list(self._contracts.values())

    # =========================================================================
    # Execution
    # =========================================================================

    @contextmanager
    def execute(self) -> Iterator["Chain"]:
        """
        Run a state-mutating call as one frame.

        Frames nest. If the body raises, every change journaled since the
        frame opened is undone and its held-back events are dropped. When
        the outermost frame completes, its events are appended to the log.
        """
        with self._lock:
            mark, event_mark = len(self._journal), len(self._pending)
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._revert_to(mark, event_mark)
                raise
            finally:
                self._depth -= 1

            if self._depth == 0:
                pending = self._pending
                self._journal, self._pending = [], []
                for event in pending:
                    self.events.append(event)

    def journal(self, undo: Callable[[], None]) -> None:
        """Register an undo action with the open frame (no-op outside one)."""
        if self._depth:
            self._journal.append(undo)

    def publish(self, event: Event) -> None:
        """Append `event`, holding it back while a frame is open."""
        if self._depth:
            self._pending.append(event)
        else:
            self.events.append(event)

    def _revert_to(self, mark: int, event_mark: int) -> None:
        undone = self._journal[mark:]
        del self._journal[mark:]
        del self._pending[event_mark:]
        for undo in reversed(undone):
            undo()
        if undone:
            logger.debug(f"Reverted {len(undone)} changes")

    def __repr__(self) -> str:
        return f"Chain(id={self.chain_id}, block={self.block_number}, t={self.timestamp})"
