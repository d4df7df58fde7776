"""
Persistence Store: the only durable state in postdesk.

Wraps a process-wide psycopg2 connection pool and exposes a small
table-access API (insert, get, update, list) over the `users` and `posts`
tables. Route handlers never write SQL themselves; they reach the store
through `current_app.extensions["store"]`.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import psycopg2.errors
from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool

from postdesk.database.db_connection import create_pool, get_db
from postdesk.errors import DuplicateKey, NotFound, ValidationError

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# --- COLUMN WHITELISTS ---
# Columns a caller may set on insert.
INSERTABLE = {
    "users": {"username", "pin_hash"},
    "posts": {"media_url", "caption", "approved", "approved_by", "comments"},
}

# Columns a caller may change after insert. media_url is immutable.
UPDATABLE = {
    "users": set(),
    "posts": {"caption", "approved", "approved_by", "comments"},
}

# Columns usable in a get() predicate.
LOOKUP = {
    "users": {"id", "username"},
    "posts": {"id"},
}


def _serialize(row: Any) -> Dict[str, Any]:
    """Convert a DictCursor row into a JSON-ready dict."""
    out = dict(row)
    for key, value in out.items():
        if isinstance(value, datetime):
            out[key] = value.isoformat()
    return out


def _check_columns(table: str, columns, allowed: Dict[str, set]) -> None:
    if table not in allowed:
        raise ValidationError(f"Unknown table: {table}")
    bad = set(columns) - allowed[table]
    if bad:
        raise ValidationError(f"Columns not allowed on {table}: {', '.join(sorted(bad))}")


class Store:
    """
    Table access over a shared connection pool.

    Each operation borrows one connection and runs one statement, so every
    insert or update is atomic on its own. There are no multi-statement
    transactions and no row-level locking; concurrent writers to the
    same row resolve as last-write-wins.
    """

    def __init__(self, pool: ThreadedConnectionPool, maxconn: int = 10):
        self.pool = pool
        # One slot per pooled connection; callers wait here when all are busy
        self.slots = threading.BoundedSemaphore(maxconn)

    @classmethod
    def connect(cls, dsn: str, maxconn: int = 10) -> "Store":
        """Open the process-wide pool. Call once at startup."""
        return cls(create_pool(dsn, maxconn=maxconn), maxconn=maxconn)

    def close(self) -> None:
        self.pool.closeall()

    # --- SCHEMA ---
    def init_schema(self) -> None:
        """
        Create tables if they are missing.

        Idempotent: schema.sql only uses CREATE TABLE IF NOT EXISTS, so this
        runs on every startup.
        """
        ddl = SCHEMA_PATH.read_text(encoding="utf-8")
        with get_db(self.pool, self.slots) as conn:
            with conn.cursor() as cur:
                cur.execute(ddl)
        logging.info("Database schema is up to date.")

    # --- WRITE ---
    def insert(self, table: str, fields: Dict[str, Any]) -> int:
        """
        Insert one row and return its generated id.

        Raises:
            ValidationError: Unknown table or column, or no fields.
            DuplicateKey: A unique constraint was violated.
        """
        if not fields:
            raise ValidationError("No fields to insert")
        _check_columns(table, fields, INSERTABLE)

        columns = list(fields)
        query = sql.SQL("INSERT INTO {table} ({cols}) VALUES ({vals}) RETURNING id;").format(
            table=sql.Identifier(table),
            cols=sql.SQL(", ").join(map(sql.Identifier, columns)),
            vals=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )

        try:
            with get_db(self.pool, self.slots) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, [fields[c] for c in columns])
                    row = cur.fetchone()
        except psycopg2.errors.UniqueViolation as e:
            raise DuplicateKey(f"Duplicate value in {table}") from e

        return row["id"]

    def update(self, table: str, row_id: int, fields: Dict[str, Any]) -> None:
        """
        Overwrite the given columns on one row.

        Raises:
            ValidationError: Unknown table, immutable column, or no fields.
            NotFound: No row has this id.
        """
        if not fields:
            raise ValidationError("No fields to update")
        _check_columns(table, fields, UPDATABLE)

        columns = list(fields)
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder()) for c in columns
        ]
        if table == "posts":
            assignments.append(sql.SQL("updated_at = CURRENT_TIMESTAMP"))

        query = sql.SQL("UPDATE {table} SET {assign} WHERE id = %s;").format(
            table=sql.Identifier(table),
            assign=sql.SQL(", ").join(assignments),
        )

        with get_db(self.pool, self.slots) as conn:
            with conn.cursor() as cur:
                cur.execute(query, [fields[c] for c in columns] + [row_id])
                updated = cur.rowcount

        if updated == 0:
            raise NotFound(f"No row in {table} with id {row_id}")

    # --- READ ---
    def get(self, table: str, **predicate: Any) -> Optional[Dict[str, Any]]:
        """
        Return the single row matching every `column=value` pair, or None.

        Example:
            store.get("users", username="alice")
        """
        if not predicate:
            raise ValidationError("get() needs at least one predicate")
        _check_columns(table, predicate, LOOKUP)

        columns = list(predicate)
        where = sql.SQL(" AND ").join(
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder()) for c in columns
        )
        query = sql.SQL("SELECT * FROM {table} WHERE {where} LIMIT 1;").format(
            table=sql.Identifier(table), where=where
        )

        with get_db(self.pool, self.slots) as conn:
            with conn.cursor() as cur:
                cur.execute(query, [predicate[c] for c in columns])
                row = cur.fetchone()

        return _serialize(row) if row else None

    def list(self, table: str) -> List[Dict[str, Any]]:
        """Return every row of a table in insertion (id) order."""
        if table not in LOOKUP:
            raise ValidationError(f"Unknown table: {table}")

        query = sql.SQL("SELECT * FROM {table} ORDER BY id ASC;").format(
            table=sql.Identifier(table)
        )

        with get_db(self.pool, self.slots) as conn:
            with conn.cursor() as cur:
                cur.execute(query)
                rows = cur.fetchall()

        return [_serialize(r) for r in rows]
