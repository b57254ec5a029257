"""playday_sync.fetch_content

Content-fetch read side (--mode fetch_content): returns every stored
location keyed by display names, in the {"records": [...]} envelope the
website's loader script expects.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import psycopg

from playday_sync.display import to_display_record
from playday_sync.shared import RunCounters
from playday_sync.store import fetch_locations


def fetch_content(
    conn: psycopg.Connection,
    account_name: str | None = None,
) -> dict[str, Any]:
    rows = fetch_locations(conn, account_name)
    return {"records": [to_display_record(r) for r in rows]}


def _run_fetch_content(
    run_id: str,
    db_dsn: str,
    counters: RunCounters,
    account_name: str | None,
    output_path: str | None,
) -> None:
    try:
        with psycopg.connect(db_dsn) as conn:
            content = fetch_content(conn, account_name)
    except psycopg.Error as e:
        click.echo(f"[{run_id}] FATAL: content fetch failed with DB error: {e}", err=True)
        sys.exit(1)

    counters.records_exported = len(content["records"])
    payload = json.dumps(content, ensure_ascii=False, indent=2)
    if output_path:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload, encoding="utf-8")
        click.echo(f"[{run_id}] Wrote {counters.records_exported} record(s) to {out}")
    else:
        click.echo(payload)
