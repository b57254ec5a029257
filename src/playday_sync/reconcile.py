"""playday_sync.reconcile

Reconciler: turns one canonical attribute map into a create-or-update of a
location record keyed by the builder's record_id.

Policy (non-destructive merge):
  - An update never replaces a stored value with None, "", "null" or
    "undefined".  Non-empty incoming values overwrite.
  - If nothing but record_id survives that filter the call is a NOOP:
    storage is not touched and the delivery still counts as a success.
    In particular such a map never creates a record.
  - No record_id means every delivery creates a new record; there is no
    other de-duplication key.

The create-vs-update decision is taken once per call and results in at most
one write.  No locking is done here: concurrent partial updates commute on
distinct fields and are last-write-wins on shared ones, and the create path
is an INSERT ... ON CONFLICT so racing first deliveries converge on one row.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import psycopg

from playday_sync.errors import InvalidPayload, StorageError
from playday_sync.fields import RECORD_ID, canonical_names
from playday_sync.normalize import is_absent
from playday_sync.store import find_location_id, insert_location, update_location

log = logging.getLogger(__name__)

_CANONICAL_NAMES = frozenset(canonical_names())


class ReconcileAction(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    NOOP = "noop"


@dataclass
class ReconcileResult:
    action: ReconcileAction
    record_id: str | None
    location_id: int | None = None
    fields_written: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_canonical(canonical_map: Any) -> None:
    if not isinstance(canonical_map, Mapping):
        raise InvalidPayload(
            f"canonical map must be a mapping, got {type(canonical_map).__name__}"
        )
    unknown = set(canonical_map) - _CANONICAL_NAMES
    if unknown:
        raise InvalidPayload(f"non-canonical fields: {sorted(unknown)}")


def filter_updatable(canonical_map: Mapping[str, Any]) -> dict[str, Any]:
    """Return the fields an update may write: non-empty values, record_id excluded."""
    return {
        k: v for k, v in canonical_map.items()
        if k != RECORD_ID and not is_absent(v)
    }


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------

def reconcile(
    conn: psycopg.Connection,
    canonical_map: Mapping[str, Any],
) -> ReconcileResult:
    """Create or non-destructively update the location for canonical_map.

    Raises:
        InvalidPayload: canonical_map is not a mapping of canonical fields.
        StorageError: the store failed; the caller must not acknowledge.
    """
    _check_canonical(canonical_map)
    record_id = canonical_map.get(RECORD_ID)
    if is_absent(record_id):
        record_id = None

    updates = filter_updatable(canonical_map)
    if not updates:
        log.info("Nothing to store for record_id=%s; empty fields skipped", record_id)
        return ReconcileResult(ReconcileAction.NOOP, record_id)

    try:
        location_id = find_location_id(conn, record_id) if record_id else None

        if location_id is None:
            values = dict(canonical_map)
            values[RECORD_ID] = record_id
            location_id, inserted = insert_location(conn, values)
            if inserted:
                log.info("Created location %s (record_id=%s)", location_id, record_id)
                return ReconcileResult(
                    ReconcileAction.CREATED, record_id, location_id, sorted(values),
                )
            # Lost a create race; the insert already merged into the winner.
            log.info("Merged into concurrently created location %s (record_id=%s)",
                     location_id, record_id)
            return ReconcileResult(
                ReconcileAction.UPDATED, record_id, location_id,
                sorted(updates),
            )

        update_location(conn, location_id, updates)
        log.info("Updated location %s (record_id=%s, fields=%d)",
                 location_id, record_id, len(updates))
        return ReconcileResult(
            ReconcileAction.UPDATED, record_id, location_id, sorted(updates),
        )
    except psycopg.Error as exc:
        raise StorageError(f"store failed for record_id={record_id!r}: {exc}") from exc
