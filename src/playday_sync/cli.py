"""playday_sync.cli

Unified command line entry point (``playday-sync``).

Modes:
  webhook_replay   replay captured builder deliveries into the store
  airtable_export  one-time import of the legacy Airtable CSV export
  fetch_content    dump stored locations keyed by display names
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click

from playday_sync.config import DEFAULT_DSN_ENV, load_config, resolve_db_dsn
from playday_sync.errors import ConfigError
from playday_sync.shared import RejectWriter, RunCounters, write_run_report


@click.command()
@click.option(
    "--mode",
    required=True,
    type=click.Choice(["webhook_replay", "airtable_export", "fetch_content"]),
    help="Run mode",
)
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False), help="YAML run configuration")
@click.option("--db-dsn", default=None, help="PostgreSQL DSN (overrides --db-dsn-env)")
@click.option("--db-dsn-env", default=None, help=f"Env var holding the PostgreSQL DSN [default: {DEFAULT_DSN_ENV}]")
# webhook_replay flags
@click.option("--deliveries-path", default=None, type=click.Path(), help="[webhook_replay] JSON array (one element per delivery) or JSON Lines file of captured deliveries")
# airtable_export flags
@click.option("--csv-path", default=None, type=click.Path(), help="[airtable_export] Airtable CSV export")
# fetch_content flags
@click.option("--account-name", default=None, help="[fetch_content] Only locations of this account")
@click.option("--output-path", default=None, type=click.Path(), help="[fetch_content] Write JSON here instead of stdout")
# shared flags
@click.option(
    "--max-reject-rate",
    default=None,
    type=float,
    help="[webhook_replay|airtable_export] Fraction of inputs that may be rejected before the run fails",
)
@click.option("--dry-run", is_flag=True, default=False)
@click.option("--rejects-path", default=None, type=click.Path(), help="Rejects CSV path")
@click.option("--reports-dir", default=None, type=click.Path(file_okay=False), help="Run report directory")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
def main(
    mode: str,
    config_path: str | None,
    db_dsn: str | None,
    db_dsn_env: str | None,
    deliveries_path: str | None,
    csv_path: str | None,
    account_name: str | None,
    output_path: str | None,
    max_reject_rate: float | None,
    dry_run: bool,
    rejects_path: str | None,
    reports_dir: str | None,
    run_id: str | None,
    log_level: str | None,
) -> None:
    """Playday location sync CLI."""
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc).isoformat()

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.echo(f"[{run_id}] FATAL: invalid config: {e}", err=True)
        sys.exit(1)
    config = config.with_overrides(
        db_dsn=db_dsn,
        db_dsn_env=db_dsn_env,
        rejects_path=Path(rejects_path) if rejects_path else None,
        reports_dir=Path(reports_dir) if reports_dir else None,
        max_reject_rate=max_reject_rate,
        log_level=log_level.upper() if log_level else None,
    )

    logging.basicConfig(
        level=config.log_level,
        format=f"[{run_id}] %(levelname)s %(name)s: %(message)s",
    )

    dsn = resolve_db_dsn(config)
    if not dsn:
        click.echo(
            f"[{run_id}] FATAL: no DSN; pass --db-dsn or set {config.db_dsn_env}",
            err=True,
        )
        sys.exit(1)

    counters = RunCounters()
    rejects = RejectWriter(config.rejects_path)

    # fetch_content without --output-path owns stdout.
    to_stderr = mode == "fetch_content" and not output_path
    click.echo(f"[{run_id}] Starting {mode} run (dry_run={dry_run})", err=to_stderr)

    if mode == "webhook_replay":
        if not deliveries_path:
            click.echo(f"[{run_id}] ERROR: --deliveries-path is required for webhook_replay", err=True)
            sys.exit(1)
        from playday_sync.webhook import _run_webhook_replay

        _run_webhook_replay(
            run_id=run_id,
            db_dsn=dsn,
            counters=counters,
            rejects=rejects,
            deliveries_path=deliveries_path,
            max_reject_rate=config.max_reject_rate,
            dry_run=dry_run,
        )
        source_paths = {"deliveries_path": deliveries_path}

    elif mode == "airtable_export":
        if not csv_path:
            click.echo(f"[{run_id}] ERROR: --csv-path is required for airtable_export", err=True)
            sys.exit(1)
        from playday_sync.import_airtable_export import _run_airtable_export

        _run_airtable_export(
            run_id=run_id,
            db_dsn=dsn,
            counters=counters,
            rejects=rejects,
            csv_path=csv_path,
            max_reject_rate=config.max_reject_rate,
            dry_run=dry_run,
        )
        source_paths = {"csv_path": csv_path}

    else:
        from playday_sync.fetch_content import _run_fetch_content

        _run_fetch_content(
            run_id=run_id,
            db_dsn=dsn,
            counters=counters,
            account_name=account_name,
            output_path=output_path,
        )
        if to_stderr:
            return
        source_paths = {"output_path": output_path}

    report_path = write_run_report(
        run_id, started_at, mode, dry_run, source_paths, counters, config.reports_dir,
    )
    click.echo(f"[{run_id}] Run report: {report_path}")
    click.echo(
        f"[{run_id}] Done: created={counters.locations_created} "
        f"updated={counters.locations_updated} noop={counters.noop_updates} "
        f"rejected={counters.deliveries_rejected + counters.rows_rejected}"
    )


if __name__ == "__main__":
    main()
