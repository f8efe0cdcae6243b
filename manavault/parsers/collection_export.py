"""
Collection export formats.

- csv: our own columns; `parse_csv` reads it back without loss of
  quantity, foil count, condition or set
- moxfield: Moxfield's collection CSV, one row per finish
- json: list of card objects
- txt: "4x Lightning Bolt"
- arena: "4 Lightning Bolt"
"""

import csv
import json
from collections.abc import Sequence
from datetime import datetime
from io import StringIO
from typing import Literal

from manavault.models.collection import CollectionEntry, Condition
from manavault.parsers.collection_import import LANGUAGE_CODES

ExportFormat = Literal["csv", "json", "moxfield", "txt", "arena"]

CSV_HEADERS = [
    "Card Name",
    "Set Code",
    "Collector Number",
    "Quantity",
    "Foil",
    "Condition",
    "Language",
    "Price (USD)",
    "Purchase Price",
]

MOXFIELD_HEADERS = [
    "Count",
    "Tradelist Count",
    "Name",
    "Edition",
    "Condition",
    "Language",
    "Foil",
    "Tags",
    "Last Modified",
    "Collector Number",
    "Alter",
    "Proxy",
    "Purchase Price",
]

MOXFIELD_CONDITIONS = {
    Condition.MINT: "Mint",
    Condition.NEAR_MINT: "Near Mint",
    Condition.EXCELLENT: "Near Mint",
    Condition.GOOD: "Lightly Played",
    Condition.LIGHT_PLAYED: "Lightly Played",
    Condition.PLAYED: "Moderately Played",
    Condition.POOR: "Heavily Played",
}

MOXFIELD_LANGUAGES = {code: name.title() for name, code in LANGUAGE_CODES.items()}

CONTENT_TYPES: dict[str, str] = {
    "csv": "text/csv",
    "moxfield": "text/csv",
    "json": "application/json",
    "txt": "text/plain",
    "arena": "text/plain",
}


def _price(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def export_csv(entries: Sequence[CollectionEntry]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow(
            [
                entry.card_name,
                entry.set_code.upper(),
                entry.collector_number,
                entry.quantity,
                entry.foil,
                entry.condition.value,
                entry.language,
                _price(entry.price_usd),
                _price(entry.purchase_price),
            ]
        )
    return buffer.getvalue()


def export_moxfield(
    entries: Sequence[CollectionEntry], exported_at: datetime | None = None
) -> str:
    """Moxfield CSV. Entries with both finishes become two rows."""
    stamp = (exported_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(MOXFIELD_HEADERS)
    for entry in entries:
        for count, foil in ((entry.quantity, ""), (entry.foil, "foil")):
            if count <= 0:
                continue
            writer.writerow(
                [
                    count,
                    0,
                    entry.card_name,
                    entry.set_code.lower(),
                    MOXFIELD_CONDITIONS[entry.condition],
                    MOXFIELD_LANGUAGES.get(entry.language, entry.language),
                    foil,
                    ",".join(entry.tags),
                    stamp,
                    entry.collector_number,
                    "False",
                    "False",
                    _price(entry.purchase_price),
                ]
            )
    return buffer.getvalue()


def export_json(entries: Sequence[CollectionEntry]) -> str:
    data = [
        {
            "name": entry.card_name,
            "card_id": entry.card_id,
            "quantity": entry.quantity,
            "foil": entry.foil,
            "condition": entry.condition.value,
            "set_code": entry.set_code,
            "collector_number": entry.collector_number,
            "language": entry.language,
            "price_usd": entry.price_usd,
            "purchase_price": entry.purchase_price,
            "tags": list(entry.tags),
        }
        for entry in entries
    ]
    return json.dumps(data, indent=2)


def export_text(entries: Sequence[CollectionEntry]) -> str:
    """Plain list with foils on their own flagged lines."""
    lines = []
    for entry in entries:
        if entry.quantity > 0:
            lines.append(f"{entry.quantity}x {entry.card_name}")
        if entry.foil > 0:
            lines.append(f"{entry.foil}x {entry.card_name} *F*")
    return "\n".join(lines) + "\n" if lines else ""


def export_arena(entries: Sequence[CollectionEntry]) -> str:
    """Arena has no foils, so both finishes are counted together."""
    lines = [f"{entry.total_copies} {entry.card_name}" for entry in entries if entry.total_copies]
    return "\n".join(lines) + "\n" if lines else ""


def export_collection(entries: Sequence[CollectionEntry], format_name: ExportFormat) -> str:
    """
    Serialize collection entries.

    Raises:
        ValueError: For an unknown format
    """
    if format_name == "csv":
        return export_csv(entries)
    if format_name == "moxfield":
        return export_moxfield(entries)
    if format_name == "json":
        return export_json(entries)
    if format_name == "txt":
        return export_text(entries)
    if format_name == "arena":
        return export_arena(entries)
    raise ValueError(f"Unknown export format: {format_name}")
