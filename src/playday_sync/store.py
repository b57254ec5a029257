"""playday_sync.store

Record Store helpers for the ``locations`` table.

Thin psycopg wrappers; the caller manages the transaction.  Column names are
always taken from the canonical field table and composed with psycopg.sql,
never interpolated from payload keys.
"""

from __future__ import annotations

from typing import Any, Mapping

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from playday_sync.fields import RECORD_ID

TABLE = "locations"


def _columns(values: Mapping[str, Any]) -> list[str]:
    return list(values.keys())


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def find_location_id(conn: psycopg.Connection, record_id: str) -> int | None:
    row = conn.execute(
        "SELECT id FROM locations WHERE record_id = %s",
        (record_id,),
    ).fetchone()
    return int(row[0]) if row else None


def count_locations(conn: psycopg.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) FROM locations").fetchone()
    return int(row[0])


def fetch_locations(
    conn: psycopg.Connection,
    account_name: str | None = None,
) -> list[dict[str, Any]]:
    """Return location rows as dicts, newest first."""
    with conn.cursor(row_factory=dict_row) as cur:
        if account_name is not None:
            cur.execute(
                "SELECT * FROM locations WHERE account_name = %s "
                "ORDER BY created_at DESC, id DESC",
                (account_name,),
            )
        else:
            cur.execute("SELECT * FROM locations ORDER BY created_at DESC, id DESC")
        return cur.fetchall()


def fetch_location(conn: psycopg.Connection, location_id: int) -> dict[str, Any] | None:
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute("SELECT * FROM locations WHERE id = %s", (location_id,))
        return cur.fetchone()


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def insert_location(
    conn: psycopg.Connection,
    values: Mapping[str, Any],
) -> tuple[int, bool]:
    """Insert a location; returns (id, inserted).

    A concurrent delivery may have created the same record_id between the
    caller's lookup and this insert.  In that case the row is merged
    non-destructively (stored values survive incoming NULLs) and inserted is
    False.
    """
    cols = _columns(values)
    merge_cols = [c for c in cols if c != RECORD_ID]
    if merge_cols:
        on_conflict = sql.SQL("DO UPDATE SET {}, updated_at = now()").format(
            sql.SQL(", ").join(
                sql.SQL("{col} = COALESCE(EXCLUDED.{col}, {table}.{col})").format(
                    col=sql.Identifier(c), table=sql.Identifier(TABLE),
                )
                for c in merge_cols
            )
        )
    else:
        on_conflict = sql.SQL("DO UPDATE SET updated_at = {table}.updated_at").format(
            table=sql.Identifier(TABLE),
        )
    query = sql.SQL(
        """
        INSERT INTO {table} ({cols})
        VALUES ({placeholders})
        ON CONFLICT (record_id) {on_conflict}
        RETURNING id, (xmax = 0) AS inserted
        """
    ).format(
        table=sql.Identifier(TABLE),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in cols),
        on_conflict=on_conflict,
    )
    row = conn.execute(query, [values[c] for c in cols]).fetchone()
    return int(row[0]), bool(row[1])


def update_location(
    conn: psycopg.Connection,
    location_id: int,
    values: Mapping[str, Any],
) -> None:
    """Overwrite the given columns only, stamping updated_at."""
    cols = _columns(values)
    query = sql.SQL(
        "UPDATE {table} SET {assignments}, updated_at = now() WHERE id = {id}"
    ).format(
        table=sql.Identifier(TABLE),
        assignments=sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder())
            for c in cols
        ),
        id=sql.Placeholder(),
    )
    conn.execute(query, [values[c] for c in cols] + [location_id])
