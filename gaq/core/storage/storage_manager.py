from pathlib import Path
from typing import List, Optional, Tuple

from gaq.core.storage.sqlite_adapter import BidRow, SQLiteAdapter
from gaq.crypto import hex_to_bytes
from gaq.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages persistent storage for queue instances.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Queue configuration and bid counter
    - Bid records
    - Event history
    - Metadata (chain clock)
    """

    def __init__(self, data_dir: Path, db_name: str = "gaq.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Chain State (Metadata)
    # =========================================================================

    def save_clock(self, block_number: int, timestamp: int):
        """Save the chain height and timestamp."""
        self.adapter.set_chain_meta("block_number", str(block_number))
        self.adapter.set_chain_meta("timestamp", str(timestamp))

    def get_clock(self) -> Optional[Tuple[int, int]]:
        """Get the saved (block_number, timestamp)."""
        n = self.adapter.get_chain_meta("block_number")
        t = self.adapter.get_chain_meta("timestamp")
        if n is not None and t is not None:
            return int(n), int(t)
        return None

    # =========================================================================
    # Queue State
    # =========================================================================

    def persist_config(
        self,
        queue_address: bytes,
        token: bytes,
        membership: bytes,
        destination: bytes,
        lockup_duration: int,
        min_shares: int,
        event: Optional[dict] = None,
    ):
        """
        Persist the configuration written by init.

        Args:
            event: Event.to_dict() of the QueueCreated event announcing the
                queue, stored in the same transaction
        """
        event_row = None
        if event is not None:
            event_row = (
                hex_to_bytes(event["address"]),
                event["name"],
                event["block_number"],
                event["timestamp"],
                event,
            )
        self.adapter.save_config(
            queue_address, token, membership, destination, lockup_duration, min_shares, event_row
        )

    def persist_bid(
        self,
        queue_address: bytes,
        bid: BidRow,
        next_bid_id: int,
        event: Optional[dict] = None,
    ):
        """
        Atomically persist a bid mutation with its event.

        Args:
            queue_address: Owning queue
            bid: Bid row after the mutation
            next_bid_id: Queue counter after the mutation
            event: Event.to_dict() of the emitted event
        """
        event_row = None
        if event is not None:
            event_row = (event["name"], event["block_number"], event["timestamp"], event)
        self.adapter.persist_bid_update(queue_address, bid, next_bid_id, event_row)

    def load_queue_state(self, queue_address: bytes) -> Optional[Tuple[dict, List[BidRow]]]:
        """
        Load full queue state.

        Returns:
            (config, bids) or None if the queue was never initialized here
            config: dict with token, membership, destination,
                    lockup_duration, min_shares, next_bid_id
            bids: List[BidRow] ordered by id
        """
        config = self.adapter.get_config(queue_address)
        if config is None:
            return None
        return config, self.adapter.get_bids(queue_address)

    def load_events(self, address: Optional[bytes] = None) -> List[dict]:
        return self.adapter.get_events(address)

    def list_queues(self) -> List[bytes]:
        return self.adapter.get_queue_addresses()

    def close(self):
        self.adapter.close()
