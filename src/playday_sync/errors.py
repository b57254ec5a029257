"""Exceptions raised by the ingestion pipeline.

Only structural payload errors and storage failures escalate to callers.
Unknown keys, skipped numeric coercions and no-op updates are outcomes,
not exceptions; they are reported through TransformResult and RunCounters.
"""

from __future__ import annotations


class InvalidPayload(ValueError):
    """Raised when a delivery is not a flat key/value object (client error)."""


class StorageError(Exception):
    """Raised when the record store fails; the delivery must not be acknowledged."""


class ConfigError(ValueError):
    """Raised when a YAML config file fails validation."""
