"""playday_sync.display

One-way mapping from canonical storage names to the display keys the page
templates on the website read ("title", "1h-card", "prizeimg1", ...).

This table must stay in lockstep with playday_sync.fields: every
non-metadata canonical field needs a display key, otherwise it would be
stored but never rendered.  unmapped_canonical_fields() reports the gap and
the unit tests keep it empty.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from playday_sync.fields import FIELDS

DISPLAY_KEYS: dict[str, str] = {
    # basic info
    "account_name": "account",
    "name": "title",
    "description": "description",
    "email": "email",
    "phone": "phone",
    "image": "cover_image",
    "address": "address",
    # time cards (list prices)
    "time_card_1h": "1h-card",
    "time_card_2h": "2h-card",
    "time_card_3h": "3h-card",
    "time_card_4h": "4h-card",
    "time_card_5h": "5h-card",
    # prizes and draw
    "prize_1_text": "prizetxt1",
    "prize_2_text": "prizetxt2",
    "prize_3_text": "prizetxt3",
    "prize_1_image": "prizeimg1",
    "prize_2_image": "prizeimg2",
    "prize_3_image": "prizeimg3",
    "prizes_text": "prizealltxt",
    "draw_text": "rozegrishtxt",
    "topup_amount": "600",
    "next_draw_date": "nextdate",
    # promotions
    "thursday_title": "every30",
    "thursday_text": "akciatxt",
    "discount_1": "skidka1",
    "discount_2": "skidka2",
    # time cards (display prices)
    "time_card_1h_price": "time-card1",
    "time_card_2h_price": "time-card2",
    "time_card_3h_price": "time-card3",
    "time_card_4h_price": "time-card4",
    "time_card_5h_price": "time-card5",
    # loyalty
    **{f"topup_{n}": f"vznos{n}" for n in range(1, 7)},
    **{f"bonus_{n}": f"bonus{n}" for n in range(1, 7)},
    **{f"accumulation_{n}": f"nakoplenie{n}" for n in range(1, 5)},
    **{f"privilege_{n}": f"privilege{n}" for n in range(1, 5)},
}

METADATA_KEYS = ("id", "record_id", "created_at", "updated_at")


def unmapped_canonical_fields() -> list[str]:
    return [
        f.name for f in FIELDS
        if not f.is_metadata and f.name not in DISPLAY_KEYS
    ]


def _render(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def to_display_record(row: Mapping[str, Any]) -> dict[str, Any]:
    """Render one stored row for the page templates.

    Absent values become "" because the templates test for truthiness; zero
    stays zero.
    """
    record = {
        display: _render(row.get(canonical))
        for canonical, display in DISPLAY_KEYS.items()
    }
    for key in METADATA_KEYS:
        value = row.get(key)
        record[key] = value.isoformat() if isinstance(value, datetime) else value
    return record
