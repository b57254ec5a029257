"""playday_sync.shared

Shared utilities used by every CLI mode: RejectWriter, RunCounters and
report writing.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from playday_sync.reconcile import ReconcileAction, ReconcileResult


# ---------------------------------------------------------------------------
# RejectWriter
# ---------------------------------------------------------------------------

class RejectWriter:
    """Lazy-open CSV writer for rejected rows and deliveries."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh = None
        self._writer = None

    def write(self, row: dict[str, Any], reason: str) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "w", newline="", encoding="utf-8")
            fieldnames = list(row.keys()) + ["_reject_reason"]
            self._writer = csv.DictWriter(
                self._fh, fieldnames=fieldnames, extrasaction="ignore"
            )
            self._writer.writeheader()
        out = dict(row)
        out["_reject_reason"] = reason
        self._writer.writerow(out)
        self._fh.flush()

    def close(self) -> None:
        if self._fh:
            self._fh.close()


# ---------------------------------------------------------------------------
# RunCounters
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    # Deliveries (webhook_replay)
    deliveries_read: int = 0
    deliveries_accepted: int = 0
    deliveries_rejected: int = 0
    deliveries_retry: int = 0
    probes_acknowledged: int = 0
    # Rows (airtable_export)
    rows_read: int = 0
    rows_rejected: int = 0
    # Reconciliation
    payloads_processed: int = 0
    locations_created: int = 0
    locations_updated: int = 0
    noop_updates: int = 0
    unknown_keys_ignored: int = 0
    numeric_coercions_skipped: int = 0
    db_phase_errors: int = 0
    # Content fetch
    records_exported: int = 0
    warnings: list[str] = field(default_factory=list)

    def record(self, result: ReconcileResult) -> None:
        self.payloads_processed += 1
        if result.action is ReconcileAction.CREATED:
            self.locations_created += 1
        elif result.action is ReconcileAction.UPDATED:
            self.locations_updated += 1
        else:
            self.noop_updates += 1

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in self.__dict__.items() if k != "warnings"}
        d["warnings"] = self.warnings[:50]
        return d


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def write_run_report(
    run_id: str,
    started_at: str,
    mode: str,
    dry_run: bool,
    source_paths: dict[str, str],
    counters: RunCounters,
    reports_dir: Path,
) -> Path:
    report = {
        "run_id": run_id,
        "mode": mode,
        "started_at": started_at,
        "finished_at": datetime.now(timezone.utc).isoformat(),
        "dry_run": dry_run,
        **source_paths,
        "counters": counters.to_dict(),
    }
    report_path = reports_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
