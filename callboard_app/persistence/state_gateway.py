"""Durable key-value persistence of per-symbol signal state."""

import json
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import structlog

from ..errors import PersistenceError
from ..registry import SymbolRegistry
from ..state.codec import LEGACY_POINTER_FIELDS, decode_symbol_state
from ..state.families import ChannelFamily
from ..state.models import SymbolState
from ..state.store import empty_symbol_state
from ..utils.time import epoch_seconds, expiry_epoch, format_wall_time

DEFAULT_TTL_DAYS = 15


@dataclass
class StoredState:
    """One persisted row."""
    symbol: str
    state_data: dict[str, Any]
    last_updated: str
    expires_at: int


class StateGateway:
    """
    SQLite-backed state persistence keyed by symbol.

    Every save rewrites the symbol's whole state blob and pushes its expiry
    out by ``ttl_days``. Expiry is best-effort reclamation of abandoned
    symbols: expired rows are skipped on load and removed by purge_expired().
    """

    def __init__(self, db_path: str = "callboard.db", ttl_days: int = DEFAULT_TTL_DAYS):
        self.db_path = Path(db_path)
        self.ttl_days = ttl_days
        self.logger = structlog.get_logger("state.gateway")
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS symbol_states (
                    symbol TEXT PRIMARY KEY,
                    state_data TEXT NOT NULL,
                    last_updated TEXT NOT NULL,
                    expires_at INTEGER NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_symbol_states_expires_at
                ON symbol_states(expires_at)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", error=str(e))
            raise
        finally:
            if conn:
                conn.close()

    def save(self, symbol: str, state: SymbolState) -> None:
        """
        Write the full state blob for one symbol.

        Args:
            symbol: Symbol key
            state: State to persist

        Raises:
            PersistenceError: If the write fails
        """
        with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute("""
                        INSERT OR REPLACE INTO symbol_states (
                            symbol, state_data, last_updated, expires_at
                        ) VALUES (?, ?, ?, ?)
                    """, (
                        symbol,
                        json.dumps(state.to_dict()),
                        format_wall_time(),
                        expiry_epoch(self.ttl_days),
                    ))
                    conn.commit()

            except (sqlite3.Error, TypeError, ValueError) as e:
                raise PersistenceError(
                    f"Failed to persist state for {symbol}: {e}",
                    operation="save",
                    target=symbol,
                ) from e

        self.logger.debug("Persisted symbol state", symbol=symbol)

    def load_all(self, registry: SymbolRegistry) -> dict[str, SymbolState]:
        """
        Load every unexpired row for a symbol still in the registry.

        Persisted fields are merged over a fresh empty state, so channels
        added since the row was written start out as None.

        Raises:
            PersistenceError: If the table cannot be scanned
        """
        try:
            rows = self.scan()
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to scan persisted states: {e}",
                operation="load_all",
                target=str(self.db_path),
            ) from e

        now = epoch_seconds()
        states: dict[str, SymbolState] = {}

        for row in rows:
            if row.symbol not in registry:
                self.logger.debug("Ignoring persisted state for retired symbol", symbol=row.symbol)
                continue
            if row.expires_at <= now:
                self.logger.debug("Ignoring expired persisted state", symbol=row.symbol)
                continue
            try:
                states[row.symbol] = decode_symbol_state(row.state_data, empty_symbol_state())
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(
                    "Skipping undecodable persisted state",
                    symbol=row.symbol,
                    error=str(e),
                )

        self.logger.info(
            "Loaded persisted states",
            rows=len(rows),
            loaded=len(states),
        )
        return states

    def scan(self) -> list[StoredState]:
        """Return every stored row, expired or not."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM symbol_states ORDER BY symbol
            """).fetchall()

        stored = []
        for row in rows:
            try:
                stored.append(self._row_to_stored_state(row))
            except json.JSONDecodeError as e:
                self.logger.warning("Skipping corrupt state row", symbol=row["symbol"], error=str(e))
        return stored

    def get(self, symbol: str) -> Optional[StoredState]:
        """Get the stored row for one symbol."""
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT * FROM symbol_states WHERE symbol = ?
            """, (symbol,)).fetchone()

        return self._row_to_stored_state(row) if row else None

    def purge_expired(self) -> int:
        """Delete rows whose expiry has passed."""
        try:
            with self._lock, self._get_connection() as conn:
                cursor = conn.execute("""
                    DELETE FROM symbol_states WHERE expires_at <= ?
                """, (epoch_seconds(),))
                conn.commit()
                deleted = cursor.rowcount

        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to purge expired states: {e}",
                operation="purge_expired",
                target=str(self.db_path),
            ) from e

        self.logger.info("Purged expired states", deleted=deleted)
        return deleted

    def clear_family(self, family: ChannelFamily) -> int:
        """
        Null every channel of ``family`` in every stored row.

        The family's last-active pointer is cleared too, including the flat
        pointer field of rows written by earlier deployments. Rows that are
        not JSON objects are left untouched. Each row keeps its existing
        expiry. Returns the number of rows rewritten.
        """
        legacy_fields = [
            field for field, family_id in LEGACY_POINTER_FIELDS.items()
            if family_id == family.family_id
        ]
        cleared = 0
        try:
            with self._lock, self._get_connection() as conn:
                rows = conn.execute("SELECT symbol, state_data FROM symbol_states").fetchall()

                for row in rows:
                    data = json.loads(row["state_data"])
                    if not isinstance(data, dict):
                        self.logger.warning("Skipping non-object state row", symbol=row["symbol"])
                        continue
                    for key in family.keys:
                        data[key] = None
                    if isinstance(data.get("lastActive"), dict):
                        data["lastActive"][family.family_id] = None
                    for field in legacy_fields:
                        if field in data:
                            data[field] = None

                    conn.execute("""
                        UPDATE symbol_states SET state_data = ?, last_updated = ?
                        WHERE symbol = ?
                    """, (json.dumps(data), format_wall_time(), row["symbol"]))
                    cleared += 1

                conn.commit()

        except (sqlite3.Error, json.JSONDecodeError) as e:
            raise PersistenceError(
                f"Failed to clear family {family.family_id}: {e}",
                operation="clear_family",
                target=family.family_id,
            ) from e

        self.logger.info("Cleared channel family", family=family.family_id, rows=cleared)
        return cleared

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        with self._get_connection() as conn:
            total = conn.execute("SELECT COUNT(*) FROM symbol_states").fetchone()[0]
            expired = conn.execute("""
                SELECT COUNT(*) FROM symbol_states WHERE expires_at <= ?
            """, (epoch_seconds(),)).fetchone()[0]

        return {
            "total_rows": total,
            "expired_rows": expired,
            "ttl_days": self.ttl_days,
        }

    def _row_to_stored_state(self, row: sqlite3.Row) -> StoredState:
        """Convert database row to StoredState object."""
        return StoredState(
            symbol=row["symbol"],
            state_data=json.loads(row["state_data"]),
            last_updated=row["last_updated"],
            expires_at=row["expires_at"],
        )
