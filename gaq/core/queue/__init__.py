"""Escrowed bid queue and its factory"""
from gaq.core.queue.bid import Bid, BidStatus
from gaq.core.queue.snapshot import (
    BidRecord,
    QueueSnapshot,
    save_snapshot,
    load_snapshot,
)
from gaq.core.queue.auction_queue import BidEscrowQueue, QueueConfig
from gaq.core.queue.factory import QueueFactory

__all__ = [
    "Bid",
    "BidStatus",
    "BidRecord",
    "QueueSnapshot",
    "save_snapshot",
    "load_snapshot",
    "BidEscrowQueue",
    "QueueConfig",
    "QueueFactory",
]
