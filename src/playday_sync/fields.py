"""playday_sync.fields

Field Normalizer: the static alias table mapping every external spelling of a
location attribute to one canonical field.

Canonical names double as the column names of the ``locations`` table
(see migrations/0001_locations.sql).  Aliases are matched case-sensitively
and exactly.  Within one CanonicalField the aliases are listed in priority
order: when a payload carries several of them, the first one holding a
non-absent value wins.

Two naming conventions are covered:
  - Tilda webhook form names ("Название", "тайм-карта_1_часа",
    "Приз_1_картинка_2", "Пополнение_1", ...)
  - Airtable column names used by the one-time export
    ("Название ЛК", "тайм-карта 1 часа", "Тайм карта (1 час)", ...)

Image slots carry a "_2" upload-slot variant: a resubmitted image lands in
slot 2 and must take precedence over the stale slot 1 value.

Usage:
    from playday_sync.fields import coerce, resolve

    field = resolve("Бонус_1")          # CanonicalField(name="bonus_1", ...)
    coerce(field, "500")                # 500
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from playday_sync.normalize import coerce_identifier, coerce_text, parse_int


class FieldKind(enum.Enum):
    TEXT = "text"
    INTEGER = "integer"
    IDENTIFIER = "identifier"


@dataclass(frozen=True)
class CanonicalField:
    """A named, typed slot of the location record."""

    name: str
    kind: FieldKind
    aliases: tuple[str, ...]

    @property
    def is_numeric(self) -> bool:
        return self.kind is FieldKind.INTEGER

    @property
    def is_metadata(self) -> bool:
        return self.kind is FieldKind.IDENTIFIER


def _text(name: str, *aliases: str) -> CanonicalField:
    return CanonicalField(name, FieldKind.TEXT, aliases)


def _int(name: str, *aliases: str) -> CanonicalField:
    return CanonicalField(name, FieldKind.INTEGER, aliases)


def _ident(name: str, *aliases: str) -> CanonicalField:
    return CanonicalField(name, FieldKind.IDENTIFIER, aliases)


# ---------------------------------------------------------------------------
# Alias table
# ---------------------------------------------------------------------------

# Hours label per time-card slot, in the spelling each source uses.
_TIME_CARD_SLOTS = (
    (1, "time_card_1h", "часа"),
    (2, "time_card_2h", "часа"),
    (3, "time_card_3h", "часа"),
    (4, "time_card_4h", "часа"),
    (5, "time_card_5h", "часов"),
)


def _time_card_fields() -> list[CanonicalField]:
    fields = []
    for n, name, hours in _TIME_CARD_SLOTS:
        fields.append(_int(name, f"тайм-карта_{n}_{hours}", f"тайм-карта {n} {hours}"))
    return fields


def _time_card_price_fields() -> list[CanonicalField]:
    return [
        _int(f"{name}_price", f"Тайм_карта_{n}_час", f"Тайм карта ({n} час)")
        for n, name, _hours in _TIME_CARD_SLOTS
    ]


def _prize_fields() -> list[CanonicalField]:
    fields = []
    for n in (1, 2, 3):
        fields.append(_text(
            f"prize_{n}_text",
            f"Приз_{n}_текст", f"приз_{n}_текст", f"Приз {n} текст",
        ))
        fields.append(_text(
            f"prize_{n}_image",
            f"Приз_{n}_картинка_2", f"Приз_{n}_картинка",
            f"приз_{n}_картинка_2", f"приз_{n}_картинка",
            f"Приз {n} картинка",
        ))
    return fields


def _loyalty_fields() -> list[CanonicalField]:
    fields = []
    for n in range(1, 7):
        fields.append(_int(f"topup_{n}", f"Пополнение_{n}", f"Пополнение {n}"))
        fields.append(_int(f"bonus_{n}", f"Бонус_{n}", f"Бонус {n}"))
    return fields


def _privilege_fields() -> list[CanonicalField]:
    fields = []
    for n in range(1, 5):
        fields.append(_int(f"accumulation_{n}", f"Накопление_{n}", f"Накопление {n}"))
        fields.append(_text(f"privilege_{n}", f"Привилегия_{n}", f"Привилегия {n}"))
    return fields


FIELDS: tuple[CanonicalField, ...] = (
    # Basic info
    _text("account_name", "Название ЛК"),
    _text("name", "Название", "Name"),
    _text("description", "Описание"),
    _text("email", "Email"),
    _text("phone", "Номер телефона"),
    _text("image", "Картинка_1", "картинка", "Картинка", "Картинка 1"),
    _text("address", "Адрес"),
    # Time cards (list prices)
    *_time_card_fields(),
    # Prizes and draw
    *_prize_fields(),
    _text("prizes_text", "Призы_текст", "призы_текст", "Призы текст"),
    _text("draw_text", "Розыгрыш тайм карт на __ час"),
    _int("topup_amount", "Пополнить_карту_на_сумму", "Пополнить карту на сумму"),
    _text("next_draw_date", "Дата_следующего_розыгрыша", "Дата следующего розыгрыша"),
    # Promotions
    _text("thursday_title", "Заголовок_каждый_четверг_ПО_30", "Заголовок каждый четверг ПО 30"),
    _text("thursday_text", "Каждый_четверг_все_по", "Каждый четверг все по"),
    _text("discount_1", "Скидка_1"),
    _text("discount_2", "Скидка_2"),
    # Time cards (display prices)
    *_time_card_price_fields(),
    # Loyalty: top-ups and bonuses, accumulation tiers and privileges
    *_loyalty_fields(),
    *_privilege_fields(),
    # Builder metadata
    _ident("record_id", "record_id", "Record ID"),
    _ident("ma_name", "ma_name"),
    _ident("ma_email", "ma_email"),
    _ident("tranid", "tranid"),
    _ident("formid", "formid"),
)


def _build_alias_index(fields: tuple[CanonicalField, ...]) -> dict[str, CanonicalField]:
    index: dict[str, CanonicalField] = {}
    names: set[str] = set()
    for f in fields:
        if f.name in names:
            raise ValueError(f"duplicate canonical field {f.name!r}")
        names.add(f.name)
        for alias in f.aliases:
            if alias in index:
                raise ValueError(
                    f"alias {alias!r} claimed by both {index[alias].name!r} and {f.name!r}"
                )
            index[alias] = f
    return index


_ALIAS_INDEX = _build_alias_index(FIELDS)
_BY_NAME = {f.name: f for f in FIELDS}

RECORD_ID = "record_id"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def resolve(external_key: str) -> CanonicalField | None:
    """Return the canonical field an external key denotes, or None if unknown."""
    return _ALIAS_INDEX.get(external_key)


def get_field(name: str) -> CanonicalField | None:
    return _BY_NAME.get(name)


def canonical_names() -> list[str]:
    return [f.name for f in FIELDS]


def aliases_for(name: str) -> tuple[str, ...]:
    """Return the aliases of a canonical field in priority order."""
    return _BY_NAME[name].aliases


def coerce(field: CanonicalField, raw: Any) -> str | int | None:
    """Coerce a raw payload value to the field's type; bad input becomes None."""
    if field.is_numeric:
        return parse_int(raw)
    if field.is_metadata:
        return coerce_identifier(raw)
    return coerce_text(raw)
