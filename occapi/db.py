import os
import sqlite3

from . import settings


def connect_db() -> sqlite3.Connection:
    """Open (or create) the SQLite database file and return its connection.

    Rows come back as ``sqlite3.Row`` so they can be read by column name.
    """
    db_dir = os.path.dirname(os.path.abspath(settings.DB_FILE))
    os.makedirs(db_dir, exist_ok=True)
    conn = sqlite3.connect(settings.DB_FILE)
    conn.row_factory = sqlite3.Row
    return conn

def create_table(table: str, schema: dict[str, str]) -> None:
    """
    Create a table if it doesn’t exist.

    Args:
      table: Name of the table.
      schema: Mapping of column_name → SQL type/constraints.
                e.g. {"id": "INTEGER PRIMARY KEY", "name": "TEXT NOT NULL"}
    """
    columns_sql = ", ".join(f"{col} {typ}".strip() for col, typ in schema.items())
    sql = f"CREATE TABLE IF NOT EXISTS {table} ({columns_sql})"
    conn = connect_db()
    conn.execute(sql)
    conn.commit()
    conn.close()

def insert(table: str, row: dict[str, object]) -> int:
    """
    Insert a single row and return its rowid.
    """
    cols = list(row)
    placeholders = ", ".join("?" for _ in cols)
    sql = f'INSERT INTO {table} ({", ".join(cols)}) VALUES ({placeholders})'

    conn = connect_db()
    cursor = conn.execute(sql, [row[col] for col in cols])
    conn.commit()
    rowid = cursor.lastrowid
    conn.close()
    return rowid

def insert_many(table: str, rows: list[dict[str, object]]) -> int:
    """
    Bulk-insert (or replace) a list of dictionaries into the given table.

    Args:
      table: Table name.
      rows: Each dict’s keys must exactly match table column names.

    Returns:
      Number of rows inserted.
    """
    if not rows:
        return 0

    cols = sorted({k for row in rows for k in row})
    placeholders = ", ".join("?" for _ in cols)
    sql = f'INSERT OR REPLACE INTO {table} ({", ".join(cols)}) VALUES ({placeholders})'
    values = [
        tuple(row.get(col) for col in cols)    # use .get -> None for missing
        for row in rows
    ]

    conn = connect_db()
    conn.executemany(sql, values)
    conn.commit()
    conn.close()
    return len(values)

def _where(filters: dict[str, object] | None) -> tuple[str, list]:
    if not filters:
        return "", []
    clauses = [f"{col} = ?" for col in filters]
    return " WHERE " + " AND ".join(clauses), list(filters.values())

def update(table: str, values: dict[str, object], filters: dict[str, object]) -> int:
    """
    UPDATE rows matching the equality filters. Returns the number of rows changed.
    """
    if not values:
        return 0
    set_clause = ", ".join(f"{col} = ?" for col in values)
    where_sql, params = _where(filters)
    sql = f"UPDATE {table} SET {set_clause}{where_sql}"

    conn = connect_db()
    cursor = conn.execute(sql, list(values.values()) + params)
    conn.commit()
    changed = cursor.rowcount
    conn.close()
    return changed

def delete(table: str, filters: dict[str, object]) -> int:
    """
    DELETE rows matching the equality filters. Returns the number of rows removed.
    """
    where_sql, params = _where(filters)
    conn = connect_db()
    cursor = conn.execute(f"DELETE FROM {table}{where_sql}", params)
    conn.commit()
    removed = cursor.rowcount
    conn.close()
    return removed

def query(table: str, filters: dict[str, object] | None = None, order_by: str | None = None) -> list[dict]:
    """
    SELECT * FROM table with optional equality filters.

    Args:
      table: Table name.
      filters: Optional dict of {column: value} for WHERE clauses.
      order_by: Optional ORDER BY expression.

    Returns:
      List of result rows as dicts.
    """
    where_sql, params = _where(filters)
    sql = f"SELECT * FROM {table}{where_sql}"
    if order_by:
        sql += f" ORDER BY {order_by}"

    conn = connect_db()
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return [dict(row) for row in rows]

def add_columns_if_missing(table: str, columns: dict[str, str]) -> None:
    """
    Adds missing columns to an existing SQLite table without dropping it.

    Args:
      table: Table name.
      columns: Dict of {column_name: column_type}.
    """
    conn = connect_db()
    cursor = conn.cursor()

    # Get existing column names
    cursor.execute(f"PRAGMA table_info({table})")
    existing_columns = [row[1] for row in cursor.fetchall()]

    # Add any columns that don't already exist
    for col_name, col_type in columns.items():
        if col_name not in existing_columns:
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {col_name} {col_type}")

    conn.commit()
    conn.close()
