# occapi/store.py
"""
Shared key/value store backed by the ``tempstore`` table.

Every write stamps the row with a UNIX timestamp, which the fetcher uses to
decide whether cached data is stale. Values are opaque strings.
"""
import time

from .db import connect_db, delete, query

DEFAULT_COLLECTION = "occapi_client"


class SharedTempStore:
    """Key/value pairs scoped to one collection."""

    def __init__(self, collection: str = DEFAULT_COLLECTION):
        self.collection = collection

    def _row(self, key: str) -> dict | None:
        rows = query("tempstore", {"collection": self.collection, "key": key})
        return rows[0] if rows else None

    def get(self, key: str) -> str | None:
        row = self._row(key)
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        conn = connect_db()
        conn.execute(
            """
            INSERT OR REPLACE INTO tempstore (collection, key, value, updated)
            VALUES (?, ?, ?, ?)
            """,
            (self.collection, key, value, int(time.time()))
        )
        conn.commit()
        conn.close()

    def delete(self, key: str) -> None:
        delete("tempstore", {"collection": self.collection, "key": key})

    def get_metadata(self, key: str) -> dict | None:
        """Return ``{"key": ..., "updated": ...}`` for a stored key, or None."""
        row = self._row(key)
        if not row:
            return None
        return {"key": row["key"], "updated": row["updated"]}

    def keys(self, prefix: str | None = None) -> list[str]:
        sql = "SELECT key FROM tempstore WHERE collection = ?"
        params = [self.collection]
        if prefix:
            sql += " AND key LIKE ? ESCAPE '\\'"
            escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            params.append(f"{escaped}%")
        sql += " ORDER BY key"

        conn = connect_db()
        rows = conn.execute(sql, params).fetchall()
        conn.close()
        return [r["key"] for r in rows]

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; returns the count."""
        removed = 0
        for key in self.keys(prefix):
            self.delete(key)
            removed += 1
        return removed
