"""DuckDB store for reward idempotency and the mint audit trail.

`swap_transaction_id` is the table's primary key, so at most one row, and at
most one open claim, can exist per swap. Rows move pending -> confirmed, or
pending -> failed. Failed rows can be claimed again by a retried request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import duckdb
import pandas as pd

from pegasus.config import get_settings

PENDING = "pending"
CONFIRMED = "confirmed"
FAILED = "failed"


def get_connection(path: Path | str | None = None) -> duckdb.DuckDBPyConnection:
    """Get a DuckDB connection, creating tables if needed."""
    if path is None:
        path = get_settings().duckdb_path
    if str(path) != ":memory:":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = duckdb.connect(str(path))
    _create_tables(conn)
    return conn


def _create_tables(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS reward_transactions (
            swap_transaction_id VARCHAR NOT NULL PRIMARY KEY,
            user_address VARCHAR NOT NULL,
            swap_amount_usd VARCHAR NOT NULL,
            reward_amount_wei VARCHAR,
            status VARCHAR NOT NULL,
            mint_tx_hash VARCHAR,
            block_number BIGINT,
            error VARCHAR,
            attempts INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        )
    """)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def claim_reward(
    conn: duckdb.DuckDBPyConnection,
    swap_transaction_id: str,
    user_address: str,
    swap_amount_usd: str,
) -> bool:
    """Open the idempotency window for a swap. False if already pending or rewarded."""
    now = _now()
    row = conn.execute(
        "SELECT status FROM reward_transactions WHERE swap_transaction_id = ?",
        [swap_transaction_id],
    ).fetchone()
    if row is None:
        try:
            conn.execute(
                """
                INSERT INTO reward_transactions
                    (swap_transaction_id, user_address, swap_amount_usd, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [swap_transaction_id, user_address, swap_amount_usd, PENDING, now, now],
            )
        except duckdb.ConstraintException:
            return False
        return True
    if row[0] != FAILED:
        return False
    conn.execute(
        """
        UPDATE reward_transactions
        SET status = ?, user_address = ?, swap_amount_usd = ?, error = NULL,
            attempts = attempts + 1, updated_at = ?
        WHERE swap_transaction_id = ? AND status = ?
        """,
        [PENDING, user_address, swap_amount_usd, now, swap_transaction_id, FAILED],
    )
    return True


def set_reward_amount(conn: duckdb.DuckDBPyConnection, swap_transaction_id: str, reward_amount_wei: int) -> None:
    conn.execute(
        "UPDATE reward_transactions SET reward_amount_wei = ?, updated_at = ? WHERE swap_transaction_id = ?",
        [str(reward_amount_wei), _now(), swap_transaction_id],
    )


def confirm_reward(
    conn: duckdb.DuckDBPyConnection,
    swap_transaction_id: str,
    mint_tx_hash: str,
    block_number: int,
) -> None:
    conn.execute(
        """
        UPDATE reward_transactions
        SET status = ?, mint_tx_hash = ?, block_number = ?, error = NULL, updated_at = ?
        WHERE swap_transaction_id = ?
        """,
        [CONFIRMED, mint_tx_hash, block_number, _now(), swap_transaction_id],
    )


def fail_reward(
    conn: duckdb.DuckDBPyConnection,
    swap_transaction_id: str,
    error: str,
    mint_tx_hash: str | None = None,
) -> None:
    conn.execute(
        """
        UPDATE reward_transactions
        SET status = ?, error = ?, mint_tx_hash = COALESCE(?, mint_tx_hash), updated_at = ?
        WHERE swap_transaction_id = ?
        """,
        [FAILED, error[:1024], mint_tx_hash, _now(), swap_transaction_id],
    )


def get_reward(conn: duckdb.DuckDBPyConnection, swap_transaction_id: str) -> dict | None:
    cursor = conn.execute(
        "SELECT * FROM reward_transactions WHERE swap_transaction_id = ?",
        [swap_transaction_id],
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return dict(zip([col[0] for col in cursor.description], row))


def get_rewards(
    conn: duckdb.DuckDBPyConnection,
    user_address: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> pd.DataFrame:
    """Retrieve reward records as a DataFrame, newest first."""
    query = "SELECT * FROM reward_transactions WHERE 1 = 1"
    params: list = []
    if user_address:
        query += " AND lower(user_address) = ?"
        params.append(user_address.lower())
    if status:
        query += " AND status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC"
    if limit:
        query += f" LIMIT {int(limit)}"
    return conn.execute(query, params).fetchdf()


def count_rewards(conn: duckdb.DuckDBPyConnection, status: str = CONFIRMED) -> int:
    result = conn.execute(
        "SELECT COUNT(*) FROM reward_transactions WHERE status = ?", [status]
    ).fetchone()
    return result[0] if result else 0
