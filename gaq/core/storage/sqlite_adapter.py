import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from gaq.utils.logger import get_logger

logger = get_logger("storage.sqlite")

# (bid_id, amount, submitter, details, created_at, status)
BidRow = Tuple[int, int, bytes, bytes, int, int]


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Queue configuration and bid counter per queue address.
    2. Bid records keyed by (queue address, bid id).
    3. Event history in emission order.
    4. Free-form chain metadata.

    Token quantities are stored as decimal TEXT since they can exceed
    SQLite's 64-bit INTEGER range.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Queue configuration (one row per queue instance)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS queue_config (
                    queue_address BLOB PRIMARY KEY,
                    token BLOB NOT NULL,
                    membership BLOB NOT NULL,
                    destination BLOB NOT NULL,
                    lockup_duration TEXT NOT NULL,
                    min_shares TEXT NOT NULL,
                    next_bid_id INTEGER NOT NULL DEFAULT 0
                )
            """)

            # 2. Bids
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bids (
                    queue_address BLOB NOT NULL,
                    bid_id INTEGER NOT NULL,
                    amount TEXT NOT NULL,
                    submitter BLOB NOT NULL,
                    details BLOB NOT NULL,
                    created_at INTEGER NOT NULL,
                    status INTEGER NOT NULL,
                    PRIMARY KEY (queue_address, bid_id)
                )
            """)

            # 3. Events
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    address BLOB NOT NULL,
                    name TEXT NOT NULL,
                    block_number INTEGER NOT NULL,
                    timestamp INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_address ON events(address);")

            # 4. Chain State (Metadata)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chain_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

    def close(self):
        """Close the current thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn

    # =========================================================================
    # Queue Configuration
    # =========================================================================

    def save_config(
        self,
        queue_address: bytes,
        token: bytes,
        membership: bytes,
        destination: bytes,
        lockup_duration: int,
        min_shares: int,
        event: Optional[Tuple[bytes, str, int, int, dict]] = None,
    ):
        """
        Insert a queue configuration, optionally with the event announcing it.

        Args:
            event: Optional (address, name, block_number, timestamp, data),
                written in the same transaction
        """
        conn = self._get_conn()
        with conn:
            conn.execute(
                """INSERT INTO queue_config
                   (queue_address, token, membership, destination, lockup_duration, min_shares)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (queue_address, token, membership, destination, str(lockup_duration), str(min_shares))
            )
            if event is not None:
                address, name, block_number, timestamp, data = event
                conn.execute(
                    "INSERT INTO events (address, name, block_number, timestamp, data) VALUES (?, ?, ?, ?, ?)",
                    (address, name, block_number, timestamp, json.dumps(data))
                )

    def get_config(self, queue_address: bytes) -> Optional[Dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT * FROM queue_config WHERE queue_address = ?", (queue_address,))
        row = cursor.fetchone()
        if row is None:
            return None
        return {
            "token": row["token"],
            "membership": row["membership"],
            "destination": row["destination"],
            "lockup_duration": int(row["lockup_duration"]),
            "min_shares": int(row["min_shares"]),
            "next_bid_id": row["next_bid_id"],
        }

    def get_queue_addresses(self) -> List[bytes]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT queue_address FROM queue_config ORDER BY rowid ASC")
        return [row["queue_address"] for row in cursor]

    # =========================================================================
    # Bids
    # =========================================================================

    def get_bids(self, queue_address: bytes) -> List[BidRow]:
        """Get all bids of a queue ordered by id."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT * FROM bids WHERE queue_address = ? ORDER BY bid_id ASC",
            (queue_address,)
        )
        return [
            (row["bid_id"], int(row["amount"]), row["submitter"], row["details"],
             row["created_at"], row["status"])
            for row in cursor
        ]

    def persist_bid_update(
        self,
        queue_address: bytes,
        bid: BidRow,
        next_bid_id: int,
        event: Optional[Tuple[str, int, int, dict]] = None,
    ):
        """
        Atomically persist a bid record, the queue counter and its event.

        Args:
            queue_address: Owning queue
            bid: Bid row to upsert
            next_bid_id: Counter value after the operation
            event: Optional (name, block_number, timestamp, data)
        """
        bid_id, amount, submitter, details, created_at, status = bid
        conn = self._get_conn()
        with conn:
            conn.execute(
                """INSERT OR REPLACE INTO bids
                   (queue_address, bid_id, amount, submitter, details, created_at, status)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (queue_address, bid_id, str(amount), submitter, details, created_at, status)
            )
            conn.execute(
                "UPDATE queue_config SET next_bid_id = ? WHERE queue_address = ?",
                (next_bid_id, queue_address)
            )
            if event is not None:
                name, block_number, timestamp, data = event
                conn.execute(
                    "INSERT INTO events (address, name, block_number, timestamp, data) VALUES (?, ?, ?, ?, ?)",
                    (queue_address, name, block_number, timestamp, json.dumps(data))
                )

    # =========================================================================
    # Events
    # =========================================================================

    def get_events(self, address: Optional[bytes] = None) -> List[dict]:
        """Get events (optionally of one emitter) in emission order."""
        conn = self._get_conn()
        if address is None:
            cursor = conn.execute("SELECT data FROM events ORDER BY seq ASC")
        else:
            cursor = conn.execute("SELECT data FROM events WHERE address = ? ORDER BY seq ASC", (address,))
        return [json.loads(row["data"]) for row in cursor]

    # =========================================================================
    # Chain State Operations
    # =========================================================================

    def set_chain_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO chain_state (key, value) VALUES (?, ?)", (key, value))

    def get_chain_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM chain_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None
