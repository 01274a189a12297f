"""
QueueFactory - Deploys independent BidEscrowQueue instances.

Each call to `create` derives a fresh address from the factory address and
its deployment nonce, constructs a queue there, initializes it once and
emits QueueCreated(queue_address). Instances share nothing but the chain
(and, if given, the database file, where rows are keyed by queue address).
"""

from typing import Dict, List, Optional, Type

from gaq.core.chain import Chain, Contract
from gaq.core.config import GAQConfig
from gaq.core.queue.auction_queue import BidEscrowQueue
from gaq.core.storage import StorageManager
from gaq.crypto import bytes_to_hex, short_hex
from gaq.utils.logger import get_logger

logger = get_logger("factory")


class QueueFactory(Contract):
    """
    Factory of escrow queues.

    Attributes:
        config: Defaults for lock-up and min shares
        template: Queue class instantiated by `create`
        instances: Address -> queue, in creation order
    """

    def __init__(
        self,
        chain: Chain,
        config: Optional[GAQConfig] = None,
        storage_manager: Optional[StorageManager] = None,
        template: Type[BidEscrowQueue] = BidEscrowQueue,
        address: Optional[bytes] = None,
    ):
        super().__init__(chain, address)
        self.config = config or GAQConfig(chain_id=chain.chain_id)
        self.storage_manager = storage_manager
        self.template = template

        self.instances: Dict[bytes, BidEscrowQueue] = {}

    def create(
        self,
        token: bytes,
        membership: bytes,
        destination: bytes,
        lockup_duration: int,
        min_shares: int,
    ) -> bytes:
        """
        Deploy and initialize a new queue.

        Returns:
            Address of the new queue
        """
        if self.address is None:
            self.chain.deploy(self)

        with self.chain.execute():
            queue = self.template(self.chain, max_details_size=self.config.max_details_size)
            queue_address = self.chain.deploy(queue, creator=self.address)
            queue.init(token, membership, destination, lockup_duration, min_shares)

            self._journal_key(self.instances, queue_address)
            self.instances[queue_address] = queue
            event = self._emit("QueueCreated", queue_address)

            # Config row and QueueCreated share one transaction, written last
            if self.storage_manager:
                c = queue.config
                self.storage_manager.persist_config(
                    queue_address, c.token, c.membership, c.destination,
                    c.lockup_duration, c.min_shares, event.to_dict(),
                )
                queue.storage_manager = self.storage_manager

        logger.info(f"Factory {short_hex(self.address)} created queue {bytes_to_hex(queue_address)}")
        return queue_address

    def create_default(self, token: bytes, membership: bytes, destination: bytes) -> bytes:
        """Create a queue with this chain's lock-up period and default min shares."""
        return self.create(
            token,
            membership,
            destination,
            self.config.lockup_for_chain(self.chain.chain_id),
            self.config.default_min_shares,
        )

    def get_queue(self, address: bytes) -> Optional[BidEscrowQueue]:
        return self.instances.get(address)

    def queues(self) -> List[BidEscrowQueue]:
        return list(self.instances.values())

    def stats(self) -> dict:
        return {
            "queues": len(self.instances),
            "total_escrowed": sum(q.escrowed_total() for q in self.instances.values()),
        }
