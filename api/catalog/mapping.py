"""
Schema mapping: RawRecord -> MappedRecord.

Per attribute, in order:
1. exact header match against a short alias list
2. the value at a fixed column position (the ingestion template's order)
3. an attribute default

A value only counts as resolved when it is non-blank. Rows shorter than a
configured position just skip that step.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.sheets import RawRecord

UNKNOWN_IDENTIFIER = "S/D"


@dataclass(frozen=True)
class FieldRule:
    aliases: tuple[str, ...]
    offset: int
    default: str = ""


# Column A..G of the template. Offsets are 0-based.
FIELD_RULES: dict[str, FieldRule] = {
    "identifier": FieldRule(("ITEM ID", "Item ID", "ID"), 0, UNKNOWN_IDENTIFIER),
    "display_name": FieldRule(("Nombre", "Título", "Titulo"), 1),
    "publication_name": FieldRule(("Publicación", "Publicacion", "Nombre publicación"), 2),
    "variation": FieldRule(("Variación", "Variacion"), 3),
    "shipping_note": FieldRule(("Envío", "Envio"), 4, UNKNOWN_IDENTIFIER),
    "quantity": FieldRule(("Cantidad", "Unidades"), 5),
    "image_ref": FieldRule(("Imagen", "Foto", "Image"), 6),
}

# Columns N, O, P, Q: free-form extras, kept in column order.
EXTRA_ATTACHMENT_OFFSETS: tuple[int, ...] = (13, 14, 15, 16)


@dataclass(frozen=True)
class MappedRecord:
    identifier: str
    display_name: str = ""
    publication_name: str = ""
    variation: str = ""
    image_ref: str = ""
    shipping_note: str = ""
    quantity: str = ""
    extra_attachments: tuple[str, ...] = field(default_factory=tuple)
    group: str = ""

    def searchable_values(self) -> tuple[str, ...]:
        return (
            self.identifier,
            self.display_name,
            self.publication_name,
            self.variation,
            self.image_ref,
            self.shipping_note,
            self.quantity,
            *self.extra_attachments,
        )


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def resolve(raw: RawRecord, rule: FieldRule) -> str | None:
    for alias in rule.aliases:
        value = _clean(raw.get(alias))
        if value:
            return value

    value = _clean(raw.at(rule.offset))
    if value:
        return value
    return None


def extra_attachments(raw: RawRecord, offsets: tuple[int, ...] = EXTRA_ATTACHMENT_OFFSETS) -> tuple[str, ...]:
    values = (_clean(raw.at(i)) for i in offsets)
    return tuple(v for v in values if v)


def map_record_with_gaps(raw: RawRecord, *, group: str = "") -> tuple[MappedRecord, list[str]]:
    """
    Map one row and also report which attributes fell back to their default.
    """
    values: dict[str, str] = {}
    gaps: list[str] = []
    for name, rule in FIELD_RULES.items():
        value = resolve(raw, rule)
        if value is None:
            gaps.append(name)
            value = rule.default
        values[name] = value

    record = MappedRecord(
        extra_attachments=extra_attachments(raw),
        group=group,
        **values,
    )
    return record, gaps


def map_record(raw: RawRecord, *, group: str = "") -> MappedRecord:
    record, _gaps = map_record_with_gaps(raw, group=group)
    return record
