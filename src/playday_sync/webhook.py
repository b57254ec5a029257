"""playday_sync.webhook

Webhook ingestion: one builder delivery in, one acknowledgement decision out.

process_delivery() is what a transport layer calls per request.  It never
raises for bad input; the returned DeliveryStatus tells the transport how to
answer:

  ACCEPTED  acknowledge (2xx).  Includes probes, no-op updates and payloads
            made only of unknown keys.
  REJECTED  client error (4xx); the payload is structurally invalid and a
            retry would fail the same way.
  RETRY     do not acknowledge (5xx); the store failed and the sender should
            redeliver.  Safe because reconciliation is idempotent.

Each payload of a delivery is reconciled in its own transaction block, so a
storage failure on payload N leaves payloads 1..N-1 committed.

--mode webhook_replay feeds captured deliveries (JSON array or JSON Lines
file) through the same path, e.g. to backfill after an outage.
"""

from __future__ import annotations

import enum
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
import psycopg

from playday_sync.errors import InvalidPayload, StorageError
from playday_sync.reconcile import ReconcileResult, reconcile
from playday_sync.shared import RejectWriter, RunCounters
from playday_sync.transform import decode_body, is_probe, split_delivery, transform_payload

log = logging.getLogger(__name__)


class DeliveryStatus(enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    RETRY = "retry"


@dataclass
class DeliveryOutcome:
    status: DeliveryStatus
    results: list[ReconcileResult] = field(default_factory=list)
    reason: str | None = None
    probe: bool = False

    @property
    def acknowledged(self) -> bool:
        return self.status is not DeliveryStatus.RETRY


# ---------------------------------------------------------------------------
# Single delivery
# ---------------------------------------------------------------------------

def process_delivery(
    conn: psycopg.Connection,
    body: Any,
    counters: RunCounters | None = None,
) -> DeliveryOutcome:
    """Validate, transform and reconcile every payload of one delivery."""
    counters = counters if counters is not None else RunCounters()

    try:
        body = decode_body(body)
        if is_probe(body):
            log.info("Probe delivery acknowledged")
            counters.probes_acknowledged += 1
            counters.deliveries_accepted += 1
            return DeliveryOutcome(DeliveryStatus.ACCEPTED, probe=True)
        payloads = split_delivery(body)
    except InvalidPayload as exc:
        log.warning("Rejected delivery: %s", exc)
        counters.deliveries_rejected += 1
        return DeliveryOutcome(DeliveryStatus.REJECTED, reason=str(exc))

    results: list[ReconcileResult] = []
    for payload in payloads:
        transformed = transform_payload(payload)
        if transformed.unknown_keys:
            log.debug("Ignored unknown keys: %s", transformed.unknown_keys)
            counters.unknown_keys_ignored += len(transformed.unknown_keys)
        if transformed.coercion_skipped:
            log.info("Numeric fields left absent: %s", transformed.coercion_skipped)
            counters.numeric_coercions_skipped += len(transformed.coercion_skipped)

        try:
            with conn.transaction():
                result = reconcile(conn, transformed.values)
        except (StorageError, psycopg.Error) as exc:
            log.error("Store failed, delivery left unacknowledged: %s", exc)
            counters.deliveries_retry += 1
            return DeliveryOutcome(DeliveryStatus.RETRY, results, reason=str(exc))

        counters.record(result)
        results.append(result)

    counters.deliveries_accepted += 1
    return DeliveryOutcome(DeliveryStatus.ACCEPTED, results)


# ---------------------------------------------------------------------------
# Replay of captured deliveries
# ---------------------------------------------------------------------------

def read_deliveries(path: Path) -> list[tuple[int, Any]]:
    """Return (ordinal, body) pairs from a JSON array or JSON Lines file.

    JSON Lines bodies are returned as raw text so that an undecodable line is
    rejected by process_delivery like any other malformed body.

    In a .json file a top-level array is a list of deliveries, one element
    each.  A list-form delivery (several payloads in one request) is kept
    whole by nesting it: [[{...}, {...}], {...}] replays two deliveries.
    """
    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() in (".jsonl", ".ndjson"):
        return [
            (idx, line)
            for idx, line in enumerate(text.splitlines())
            if line.strip()
        ]
    data = json.loads(text)
    if isinstance(data, list):
        return list(enumerate(data))
    return [(0, data)]


def _reject_row(ordinal: int, body: Any) -> dict[str, str]:
    raw = body if isinstance(body, str) else json.dumps(body, ensure_ascii=False)
    return {"ordinal": str(ordinal), "body": raw}


def _replay(
    conn: psycopg.Connection,
    deliveries: list[tuple[int, Any]],
    counters: RunCounters,
    rejects: RejectWriter,
) -> None:
    for ordinal, body in deliveries:
        outcome = process_delivery(conn, body, counters)
        if outcome.status is DeliveryStatus.REJECTED:
            rejects.write(_reject_row(ordinal, body), f"invalid_payload: {outcome.reason}")
        elif outcome.status is DeliveryStatus.RETRY:
            rejects.write(_reject_row(ordinal, body), f"db_error: {outcome.reason}")
            counters.db_phase_errors += 1


def _run_webhook_replay(
    run_id: str,
    db_dsn: str,
    counters: RunCounters,
    rejects: RejectWriter,
    deliveries_path: str,
    max_reject_rate: float,
    dry_run: bool,
) -> None:
    try:
        deliveries = read_deliveries(Path(deliveries_path))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        click.echo(f"[{run_id}] FATAL: cannot read deliveries: {e}", err=True)
        sys.exit(1)
    counters.deliveries_read = len(deliveries)
    click.echo(f"[{run_id}] Pre-scan: {counters.deliveries_read} deliveries read")

    try:
        conn = psycopg.connect(db_dsn, autocommit=True)
    except psycopg.Error as e:
        click.echo(f"[{run_id}] FATAL: cannot connect: {e}", err=True)
        sys.exit(1)
    try:
        if dry_run:
            with conn.transaction(force_rollback=True):
                _replay(conn, deliveries, counters, rejects)
            click.echo(f"[{run_id}] [dry-run] All changes rolled back.")
        else:
            _replay(conn, deliveries, counters, rejects)
    finally:
        conn.close()
        rejects.close()

    if counters.db_phase_errors > 0:
        click.echo(
            f"[{run_id}] FATAL: {counters.db_phase_errors} delivery(ies) hit store errors; "
            "rerun the replay once the store is healthy.",
            err=True,
        )
        sys.exit(1)

    if counters.deliveries_read > 0:
        reject_rate = counters.deliveries_rejected / counters.deliveries_read
        if reject_rate > max_reject_rate:
            click.echo(
                f"[{run_id}] FATAL: reject rate ({reject_rate:.2%}) exceeds threshold "
                f"of {max_reject_rate:.2%}.",
                err=True,
            )
            sys.exit(1)
