"""SQLite order store backing the paper order server."""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fxticket.models import Order, OrderStatus


class OrderStore:
    """SQLite-based store for placed orders and their amendments."""

    REQUIRED_TABLES = [
        "orders",
        "amendments",
    ]

    def __init__(self, db_path: Path):
        """Initialize the order store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS orders (
                    order_id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    currency_pair TEXT NOT NULL,
                    side TEXT NOT NULL,
                    order_type TEXT NOT NULL,
                    amount REAL NOT NULL,
                    ccy TEXT NOT NULL,
                    status TEXT NOT NULL,
                    data TEXT NOT NULL
                )
            """)

            # One row per accepted amendment, payload as sent by the client
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS amendments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id TEXT NOT NULL,
                    amended_at TEXT NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Orders ====================

    def save_order(self, order: Order) -> None:
        """Insert or replace an order.

        Args:
            order: Order to save. Must carry an order id, pair, side,
                order type and amount.

        Raises:
            ValueError: If a required attribute is missing.
        """
        if not order.order_id or order.amount is None or order.side is None \
                or order.order_type is None or not order.currency_pair:
            raise ValueError("Order is missing required attributes")

        now = datetime.now().isoformat()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT created_at FROM orders WHERE order_id = ?", (order.order_id,)
            )
            row = cursor.fetchone()
            created_at = row["created_at"] if row else now
            cursor.execute(
                """
                INSERT OR REPLACE INTO orders
                (order_id, created_at, updated_at, currency_pair, side, order_type,
                 amount, ccy, status, data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.order_id,
                    created_at,
                    now,
                    order.currency_pair,
                    order.side.value,
                    order.order_type.value,
                    order.amount.amount,
                    order.amount.ccy,
                    (order.status or OrderStatus.PENDING_LIVE).value,
                    order.model_dump_json(exclude_none=True),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order by id.

        Returns:
            The order, or None if unknown.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT data FROM orders WHERE order_id = ?", (order_id,))
            row = cursor.fetchone()
            return Order.model_validate_json(row["data"]) if row else None
        finally:
            conn.close()

    def get_orders(self, status: Optional[str] = None) -> list[Order]:
        """Get orders, most recent first.

        Args:
            status: Optional status filter.

        Returns:
            List of orders.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if status:
                cursor.execute(
                    "SELECT data FROM orders WHERE status = ? ORDER BY created_at DESC",
                    (status,),
                )
            else:
                cursor.execute("SELECT data FROM orders ORDER BY created_at DESC")
            return [Order.model_validate_json(row["data"]) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update_status(self, order_id: str, status: OrderStatus) -> bool:
        """Set the status of an order.

        Returns:
            True if the order exists, False otherwise.
        """
        order = self.get_order(order_id)
        if order is None:
            return False
        self.save_order(order.model_copy(update={"status": status}))
        return True

    # ==================== Amendments ====================

    def log_amendment(self, order_id: str, payload: dict[str, Any]) -> None:
        """Record an accepted amendment."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO amendments (order_id, amended_at, payload) VALUES (?, ?, ?)",
                (order_id, datetime.now().isoformat(), json.dumps(payload, default=str)),
            )
            conn.commit()
        finally:
            conn.close()

    def get_amendments(self, order_id: str) -> list[dict[str, Any]]:
        """Get the amendments of an order, oldest first."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT payload FROM amendments WHERE order_id = ? ORDER BY id",
                (order_id,),
            )
            return [json.loads(row["payload"]) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_stats(self) -> dict:
        """Get order counts by status."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT status, COUNT(*) AS n FROM orders GROUP BY status")
            return {row["status"]: row["n"] for row in cursor.fetchall()}
        finally:
            conn.close()
