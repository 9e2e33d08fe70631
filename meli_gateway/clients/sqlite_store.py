"""SQLite-backed record storage for seller credentials and local orders."""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


class SQLiteStore:
    """Key-value store of JSON documents addressed by (pk, sk)."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self._db_path, check_same_thread=False)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def put_item(self, item: Dict[str, Any]) -> None:
        """Insert or fully replace the record keyed by the item's pk/sk."""
        pk = item.get("pk")
        sk = item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                (pk, sk, json.dumps(item)),
            )

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def delete_item(self, *, partition_key: str, sort_key: str) -> bool:
        """Delete a record, returning whether anything was removed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )
        return cursor.rowcount > 0

    def list_items(
        self, *, partition_key: str, sort_key_prefix: str = ""
    ) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM records WHERE pk = ? AND sk LIKE ? ORDER BY sk",
                (partition_key, f"{sort_key_prefix}%"),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["SQLiteStore"]
