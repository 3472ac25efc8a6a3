"""
store.py - Ledger Store implementations

The store is the only persistence component. Each entity kind (loans, loan
requests, user profiles) lives in its own LedgerStore keyed by id.

Classes:
- InMemoryStore: dict-backed store, insertion ordered
- SqliteStore: durable store, one table per entity kind, JSON payloads
- LedgerStores: bundle of the three per-kind stores the API works against

Functions:
- encode_record / decode_record: JSON codec for the frozen record types

There are no multi-key transactions. Each put() is atomic on its own.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, fields
from enum import Enum
import json
import re
import sqlite3
import threading
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from .core import LedgerStore, Loan, LoanRequest, LoanStatus, RequestStatus, UserProfile


R = TypeVar("R")

# Fields that hold enums, per record type. Everything else is a JSON scalar.
_ENUM_FIELDS: Dict[type, Dict[str, Type[Enum]]] = {
    Loan: {'status': LoanStatus},
    LoanRequest: {'status': RequestStatus},
    UserProfile: {},
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ============================================================================
# RECORD CODEC
# ============================================================================

def encode_record(record: Any) -> str:
    """Serialize a record dataclass to a JSON string. Enums are stored by value."""
    data = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in asdict(record).items()
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def decode_record(record_type: Type[R], payload: str) -> R:
    """
    Rebuild a record from encode_record() output.

    Keys the record type does not define are ignored, so payloads written
    by a newer schema with extra fields still load.
    """
    if record_type not in _ENUM_FIELDS:
        raise TypeError(f"No codec registered for {record_type.__name__}")
    raw = json.loads(payload)
    known = {f.name for f in fields(record_type)}
    data = {key: value for key, value in raw.items() if key in known}
    for key, enum_type in _ENUM_FIELDS[record_type].items():
        if key in data and data[key] is not None:
            data[key] = enum_type(data[key])
    return record_type(**data)


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class InMemoryStore(Generic[R]):
    """
    Dict-backed LedgerStore.

    Upserting an existing id keeps its original position, so values()
    reflects first-insertion order.
    """

    def __init__(self):
        self._records: Dict[str, R] = {}

    def put(self, record_id: str, record: R) -> None:
        self._records[record_id] = record

    def get(self, record_id: str) -> Optional[R]:
        return self._records.get(record_id)

    def values(self) -> Tuple[R, ...]:
        return tuple(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __repr__(self):
        return f"InMemoryStore({len(self._records)} records)"


# ============================================================================
# SQLITE STORE
# ============================================================================

class SqliteStore(Generic[R]):
    """
    Durable LedgerStore backed by one SQLite table.

    Each put() is a single upsert committed in its own transaction, so a
    crash leaves either the old record or the new one, never a mix.
    Connections are per thread; readers on other threads see every
    committed put. close() closes the connection of every thread.

    Args:
        db_path: Path to the database file
        table: Table name for this entity kind
        record_type: Record dataclass stored in the table
    """

    def __init__(self, db_path: str, table: str, record_type: Type[R]):
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name {table!r}")
        if record_type not in _ENUM_FIELDS:
            raise TypeError(f"No codec registered for {record_type.__name__}")
        self.db_path = db_path
        self.table = table
        self.record_type = record_type
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "connection", None)
        if conn is None:
            # Each connection is only used by its own thread; close() may run on any thread
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    def _ensure_table(self) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    payload TEXT NOT NULL
                )
            """)

    def put(self, record_id: str, record: R) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute(
                f"INSERT INTO {self.table} (id, payload) VALUES (?, ?) "
                f"ON CONFLICT(id) DO UPDATE SET payload = excluded.payload",
                (record_id, encode_record(record)),
            )

    def get(self, record_id: str) -> Optional[R]:
        conn = self._get_connection()
        row = conn.execute(
            f"SELECT payload FROM {self.table} WHERE id = ?", (record_id,)
        ).fetchone()
        if row is None:
            return None
        return decode_record(self.record_type, row[0])

    def values(self) -> Tuple[R, ...]:
        conn = self._get_connection()
        rows = conn.execute(f"SELECT payload FROM {self.table} ORDER BY seq").fetchall()
        return tuple(decode_record(self.record_type, row[0]) for row in rows)

    def __len__(self) -> int:
        conn = self._get_connection()
        return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]

    def close(self) -> None:
        """
        Close every connection this store has opened, on any thread.

        A thread that uses the store afterwards opens a fresh connection.
        """
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        # Threads reconnect on next use
        self._local = threading.local()

    def __repr__(self):
        return f"SqliteStore({self.db_path!r}, table={self.table!r})"


# ============================================================================
# STORE BUNDLE
# ============================================================================

@dataclass
class LedgerStores:
    """The three per-kind stores a LoanLedger reads and writes."""
    loans: LedgerStore[Loan]
    requests: LedgerStore[LoanRequest]
    profiles: LedgerStore[UserProfile]

    @classmethod
    def in_memory(cls) -> LedgerStores:
        return cls(loans=InMemoryStore(), requests=InMemoryStore(), profiles=InMemoryStore())

    @classmethod
    def sqlite(cls, db_path: str) -> LedgerStores:
        """All three kinds in one database file, one table each."""
        return cls(
            loans=SqliteStore(db_path, "loans", Loan),
            requests=SqliteStore(db_path, "loan_requests", LoanRequest),
            profiles=SqliteStore(db_path, "user_profiles", UserProfile),
        )

    def close(self) -> None:
        for store in (self.loans, self.requests, self.profiles):
            close = getattr(store, "close", None)
            if close is not None:
                close()
