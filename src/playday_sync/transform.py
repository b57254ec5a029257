"""playday_sync.transform

Payload Transformer: turns one incoming builder payload into a canonical
attribute map, and splits a raw delivery into its payloads.

Rules:
  - The payload must be a flat mapping of string keys to scalars; anything
    else raises InvalidPayload.
  - Unknown keys are dropped (reported in TransformResult.unknown_keys).
  - Exactly one value per canonical field: aliases are tried in priority
    order and the first alias holding a non-absent value wins.  A field whose
    aliases are all present-but-absent is emitted as None.
  - Numeric coercion failures resolve to None, never 0 and never an
    exception (reported in TransformResult.coercion_skipped).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from playday_sync.errors import InvalidPayload
from playday_sync.fields import FIELDS, CanonicalField, coerce, resolve
from playday_sync.normalize import is_absent

PROBE_KEY = "test"
PROBE_VALUE = "test"

_SCALAR_TYPES = (str, int, float, bool)


@dataclass
class TransformResult:
    values: dict[str, Any] = field(default_factory=dict)
    unknown_keys: list[str] = field(default_factory=list)
    coercion_skipped: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_payload(payload: Any) -> Mapping[str, Any]:
    """Return payload unchanged if it is a flat key/value object."""
    if not isinstance(payload, Mapping):
        raise InvalidPayload(f"payload must be an object, got {type(payload).__name__}")
    for key, value in payload.items():
        if not isinstance(key, str):
            raise InvalidPayload(f"payload key {key!r} is not a string")
        if value is not None and not isinstance(value, _SCALAR_TYPES):
            raise InvalidPayload(
                f"payload value for {key!r} is {type(value).__name__}, expected a scalar"
            )
    return payload


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------

def _pick(f: CanonicalField, payload: Mapping[str, Any]) -> tuple[bool, Any]:
    """Return (mentioned, raw) for the highest-priority alias of f in payload."""
    mentioned = False
    for alias in f.aliases:
        if alias not in payload:
            continue
        mentioned = True
        raw = payload[alias]
        if not is_absent(raw):
            return True, raw
    return mentioned, None


def transform_payload(payload: Any) -> TransformResult:
    validate_payload(payload)
    result = TransformResult()

    for key in payload:
        if resolve(key) is None:
            result.unknown_keys.append(key)

    for f in FIELDS:
        mentioned, raw = _pick(f, payload)
        if not mentioned:
            continue
        value = coerce(f, raw) if raw is not None else None
        if raw is not None and value is None:
            result.coercion_skipped.append(f.name)
        result.values[f.name] = value

    return result


def transform(payload: Any) -> dict[str, Any]:
    """Return the canonical attribute map for one payload."""
    return transform_payload(payload).values


# ---------------------------------------------------------------------------
# Delivery handling
# ---------------------------------------------------------------------------

def decode_body(body: Any) -> Any:
    """Decode a JSON str/bytes body; parsed objects are returned unchanged."""
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidPayload(f"body is not UTF-8: {exc}") from exc
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise InvalidPayload(f"body is not valid JSON: {exc}") from exc
    return body


def _is_probe_object(obj: Any) -> bool:
    return isinstance(obj, Mapping) and len(obj) == 1 and obj.get(PROBE_KEY) == PROBE_VALUE


def is_probe(body: Any) -> bool:
    """True for the builder's connectivity check: exactly {"test": "test"}, or that
    object as the only element of a list.

    An object carrying other keys next to "test" is real data and is
    transformed like any other payload ("test" itself is an unknown key).
    """
    if isinstance(body, list):
        return len(body) == 1 and _is_probe_object(body[0])
    return _is_probe_object(body)


def split_delivery(body: Any) -> list[Mapping[str, Any]]:
    """Return the payloads carried by one delivery, in order.

    A delivery is a single object or, in older integrations, a list of
    objects.  An empty object or an empty list carries no data and is
    rejected.
    """
    if isinstance(body, Mapping):
        payloads = [body]
    elif isinstance(body, list):
        payloads = list(body)
    else:
        raise InvalidPayload(
            f"delivery must be an object or a list of objects, got {type(body).__name__}"
        )
    if not payloads or any(isinstance(p, Mapping) and not p for p in payloads):
        raise InvalidPayload("delivery carries no data")
    for p in payloads:
        validate_payload(p)
    return payloads
