"""playday_sync.import_airtable_export

One-time migration of the legacy Airtable base (--mode airtable_export).

Input is the CSV export of the "Данные" table: one row per location, Airtable
column names as headers ("Название ЛК", "тайм-карта 1 часа",
"Тайм карта (1 час)", "Пополнение 1", ...) plus a "Record ID" column holding
the Airtable record id (a RECORD_ID() formula field).

Each row goes through the same Field Normalizer and Reconciler as webhook
deliveries, so the migration obeys the non-destructive merge policy: a
rerun, or a migration after the website already pushed newer data, never
blanks a stored field.

The whole file is loaded in one transaction with a SAVEPOINT per row; any
row-level DB error or a reject rate above threshold rolls everything back.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path

import click
import psycopg

from playday_sync.fields import RECORD_ID, aliases_for, resolve
from playday_sync.reconcile import reconcile
from playday_sync.shared import RejectWriter, RunCounters
from playday_sync.transform import transform_payload


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# At least one header of each group must be present.
NAME_HEADERS = ("Название ЛК", "Название")
RECORD_ID_HEADERS = aliases_for(RECORD_ID)


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def normalize_headers(raw: dict[str, str]) -> dict[str, str]:
    """Return a new dict with header keys whitespace-stripped."""
    return {k.strip(): v for k, v in raw.items() if k is not None}


def check_headers(fieldnames: list[str]) -> list[str]:
    """Return missing-header problems (empty when valid)."""
    present = {f.strip() for f in fieldnames}
    problems = []
    if not present.intersection(NAME_HEADERS):
        problems.append(" | ".join(NAME_HEADERS))
    if not present.intersection(RECORD_ID_HEADERS):
        problems.append(" | ".join(RECORD_ID_HEADERS))
    return problems


def transform_airtable_row(row: dict[str, str]) -> tuple[dict, list[str]]:
    """Return (canonical_map, unknown_columns) for one export row."""
    result = transform_payload(row)
    return result.values, result.unknown_keys


def _process_row(
    conn: psycopg.Connection,
    row: dict[str, str],
    counters: RunCounters,
    rejects: RejectWriter,
) -> None:
    canonical, _unknown = transform_airtable_row(row)
    if not canonical.get(RECORD_ID):
        rejects.write(row, "missing_record_id")
        counters.rows_rejected += 1
        return
    result = reconcile(conn, canonical)
    counters.record(result)


def _run_rows(
    conn: psycopg.Connection,
    raw_rows: list[dict[str, str]],
    counters: RunCounters,
    rejects: RejectWriter,
) -> None:
    for idx, row in enumerate(raw_rows):
        sp_name = f"row_{idx}"
        conn.execute(f"SAVEPOINT {sp_name}")
        try:
            _process_row(conn, row, counters, rejects)
            conn.execute(f"RELEASE SAVEPOINT {sp_name}")
        except Exception as e:
            conn.execute(f"ROLLBACK TO SAVEPOINT {sp_name}")
            rejects.write(row, f"db_error: {e}")
            counters.rows_rejected += 1
            counters.db_phase_errors += 1


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

def _run_airtable_export(
    run_id: str,
    db_dsn: str,
    counters: RunCounters,
    rejects: RejectWriter,
    csv_path: str,
    max_reject_rate: float,
    dry_run: bool,
) -> None:
    # Pre-scan
    csv_file = Path(csv_path)
    raw_rows: list[dict[str, str]] = []

    with csv_file.open(encoding="utf-8-sig") as fh:
        reader = csv.DictReader(fh)
        fieldnames = reader.fieldnames or []
        missing = check_headers(fieldnames)
        if missing:
            click.echo(f"[{run_id}] FATAL: missing headers: {missing}", err=True)
            sys.exit(1)

        for raw_row in reader:
            row = normalize_headers(raw_row)
            counters.rows_read += 1
            raw_rows.append(row)

    unknown_columns = sorted(h.strip() for h in fieldnames if resolve(h.strip()) is None)
    if unknown_columns:
        counters.unknown_keys_ignored = len(unknown_columns)
        counters.warnings.append(f"[{run_id}] unmapped columns: {unknown_columns}")

    click.echo(f"[{run_id}] Pre-scan: {counters.rows_read} rows read, {len(raw_rows)} to process")

    # DB phase
    conn = psycopg.connect(db_dsn, autocommit=False)
    try:
        _run_rows(conn, raw_rows, counters, rejects)

        if dry_run:
            conn.rollback()
            click.echo(f"[{run_id}] [dry-run] All changes rolled back.")
            if counters.db_phase_errors > 0:
                click.echo(f"[{run_id}] [dry-run] {counters.db_phase_errors} row-level DB error(s) detected.", err=True)
                sys.exit(1)
            return

        if counters.db_phase_errors > 0:
            conn.rollback()
            click.echo(f"[{run_id}] FATAL: {counters.db_phase_errors} row-level DB error(s); rolling back.", err=True)
            sys.exit(1)

        if counters.rows_read > 0 and (counters.rows_rejected / counters.rows_read) > max_reject_rate:
            conn.rollback()
            click.echo(
                f"[{run_id}] FATAL: reject rate ({counters.rows_rejected / counters.rows_read:.2%}) "
                f"exceeds threshold of {max_reject_rate:.2%}; rolling back.",
                err=True,
            )
            sys.exit(1)

        conn.commit()
    except psycopg.Error as e:
        conn.rollback()
        click.echo(f"[{run_id}] FATAL: run failed with DB error: {e}", err=True)
        sys.exit(1)
    finally:
        conn.close()
        rejects.close()
