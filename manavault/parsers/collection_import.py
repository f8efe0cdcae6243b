"""
Parsers for collection import formats.

Supports:
- Text lists: "4 Lightning Bolt", "4x Lightning Bolt", "Lightning Bolt 4",
  optionally followed by "(SET) 123" and a "*F*" foil flag
- CSV: our own export columns, or Moxfield's collection CSV
  (detected by its Count/Edition headers)
- JSON: a list of card objects

Parsing only produces rows; resolving rows to real cards happens in
`manavault.services.collection_import`.
"""

import csv
import json
import re
from dataclasses import dataclass
from io import StringIO
from typing import Any, Literal

from manavault.models.collection import Condition

ImportFormat = Literal["auto", "csv", "json", "txt", "arena"]

# Pattern: "4 Lightning Bolt", "4x Lightning Bolt (LEB) 163"
# Groups: (quantity, name, set_code, collector_number)
QUANTITY_FIRST_PATTERN = re.compile(
    r"^(\d+)x?\s+(.+?)(?:\s+\(([A-Za-z0-9]+)\)(?:\s+(\S+))?)?$", re.IGNORECASE
)

# Pattern: "Lightning Bolt 4" or "Lightning Bolt x4"
# Groups: (name, quantity)
QUANTITY_LAST_PATTERN = re.compile(r"^(.+?)\s+x?(\d+)$", re.IGNORECASE)

FOIL_FLAG = "*F*"

SECTION_HEADERS = frozenset(
    {"deck", "main", "mainboard", "sideboard", "commander", "companion", "maybeboard"}
)

# Spellings seen in exports from other tools
CONDITION_ALIASES: dict[str, Condition] = {
    "m": Condition.MINT,
    "mint": Condition.MINT,
    "nm": Condition.NEAR_MINT,
    "near mint": Condition.NEAR_MINT,
    "ex": Condition.EXCELLENT,
    "excellent": Condition.EXCELLENT,
    "gd": Condition.GOOD,
    "good": Condition.GOOD,
    "lp": Condition.LIGHT_PLAYED,
    "light played": Condition.LIGHT_PLAYED,
    "lightly played": Condition.LIGHT_PLAYED,
    "mp": Condition.PLAYED,
    "pl": Condition.PLAYED,
    "played": Condition.PLAYED,
    "moderately played": Condition.PLAYED,
    "hp": Condition.POOR,
    "heavily played": Condition.POOR,
    "damaged": Condition.POOR,
    "poor": Condition.POOR,
}

TRUTHY = frozenset({"yes", "true", "foil", "etched", "y"})

# Moxfield writes language names instead of codes
LANGUAGE_CODES = {
    "english": "en",
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "japanese": "ja",
    "korean": "ko",
    "russian": "ru",
    "chinese simplified": "zhs",
    "chinese traditional": "zht",
}


class ImportFormatError(ValueError):
    """Raised when import text can't be read in the requested format."""


@dataclass(frozen=True, slots=True)
class ImportRow:
    """
    One card line from an import, before it is matched to a real card.

    `quantity` counts non-foil copies and `foil` counts foil copies.
    """

    name: str
    quantity: int = 1
    foil: int = 0
    set_code: str = ""
    collector_number: str = ""
    condition: Condition = Condition.NEAR_MINT
    language: str = "en"
    purchase_price: float | None = None
    tags: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return self.quantity + self.foil


def parse_condition(value: str | None) -> Condition:
    """Read a condition grade, defaulting to near mint for blanks and unknowns."""
    if not value:
        return Condition.NEAR_MINT

    normalized = value.strip().lower()
    try:
        return Condition(normalized.replace(" ", "_"))
    except ValueError:
        return CONDITION_ALIASES.get(normalized, Condition.NEAR_MINT)


def normalize_language(value: str) -> str:
    value = value.strip().lower()
    if not value:
        return "en"
    return LANGUAGE_CODES.get(value, value)


def _parse_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _parse_price(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace("$", "").strip())
    except ValueError:
        return None


# --- Text ---


def parse_card_line(line: str) -> ImportRow | None:
    """
    Parse one text line into a row.

    Returns None for blank lines, comments and section headers.
    """
    line = line.strip()
    if not line or line.startswith(("//", "#")):
        return None
    if line.lower().rstrip(":") in SECTION_HEADERS:
        return None
    if line[:3].upper() == "SB:":
        line = line[3:].strip()

    foil = FOIL_FLAG in line.upper()
    if foil:
        line = re.sub(re.escape(FOIL_FLAG), "", line, flags=re.IGNORECASE).strip()

    quantity = 1
    set_code = ""
    collector_number = ""

    match = QUANTITY_FIRST_PATTERN.match(line)
    if match:
        qty, name, set_part, number = match.groups()
        quantity = int(qty)
        set_code = (set_part or "").lower()
        collector_number = number or ""
    else:
        match = QUANTITY_LAST_PATTERN.match(line)
        if match:
            name, qty = match.groups()
            quantity = int(qty)
        else:
            name = line

    name = name.strip()
    if not name or quantity <= 0:
        return None

    return ImportRow(
        name=name,
        quantity=0 if foil else quantity,
        foil=quantity if foil else 0,
        set_code=set_code,
        collector_number=collector_number,
    )


def parse_text(text: str) -> list[ImportRow]:
    """Parse a text card list, one card per line."""
    rows = []
    for line in text.splitlines():
        row = parse_card_line(line)
        if row is not None:
            rows.append(row)
    return rows


# --- CSV ---


def _find_column(fieldnames: list[str], *candidates: str) -> str | None:
    """First header matching a candidate name (case-insensitive)."""
    lowered = {name.strip().lower(): name for name in fieldnames}
    for candidate in candidates:
        if candidate in lowered:
            return lowered[candidate]
    return None


def is_moxfield_csv(fieldnames: list[str]) -> bool:
    headers = {name.strip().lower() for name in fieldnames}
    return "count" in headers and "edition" in headers


def _split_foil(foil_value: str, count: int) -> tuple[int, int]:
    """
    Split a row's copies into (regular, foil).

    The foil column is either a foil count or a flag that marks every copy
    on the row as foil.
    """
    value = (foil_value or "").strip().lower()
    if not value or value in ("no", "false", "0", "n"):
        return count, 0
    if value in TRUTHY:
        return 0, count
    return count, _parse_int(value)


def parse_csv(text: str) -> list[ImportRow]:
    """
    Parse collection CSV.

    Our own layout has a separate foil count column; Moxfield's marks whole
    rows as foil. Columns are matched by header name in any order.

    Raises:
        ImportFormatError: If there is no card name column
    """
    reader = csv.DictReader(StringIO(text.strip()))
    if not reader.fieldnames:
        return []

    fields = list(reader.fieldnames)
    name_col = _find_column(fields, "card name", "name", "card")
    if name_col is None:
        raise ImportFormatError("CSV has no card name column")

    qty_col = _find_column(fields, "quantity", "count", "qty")
    foil_col = _find_column(fields, "foil")
    set_col = _find_column(fields, "set code", "edition", "set")
    number_col = _find_column(fields, "collector number", "number")
    condition_col = _find_column(fields, "condition")
    language_col = _find_column(fields, "language")
    price_col = _find_column(fields, "purchase price")
    tags_col = _find_column(fields, "tags")
    moxfield = is_moxfield_csv(fields)

    def cell(record: dict[str, str], column: str | None) -> str:
        if column is None:
            return ""
        return (record.get(column) or "").strip()

    rows = []
    for record in reader:
        name = cell(record, name_col)
        if not name:
            continue

        count = _parse_int(cell(record, qty_col), default=1)
        if moxfield and cell(record, foil_col):
            regular, foil = 0, count
        else:
            regular, foil = _split_foil(cell(record, foil_col), count)
        if regular + foil <= 0:
            continue

        rows.append(
            ImportRow(
                name=name,
                quantity=regular,
                foil=foil,
                set_code=cell(record, set_col).lower(),
                collector_number=cell(record, number_col),
                condition=parse_condition(cell(record, condition_col)),
                language=normalize_language(cell(record, language_col)),
                purchase_price=_parse_price(cell(record, price_col)),
                tags=tuple(t.strip() for t in cell(record, tags_col).split(",") if t.strip()),
            )
        )
    return rows


# --- JSON ---


def parse_json(text: str) -> list[ImportRow]:
    """
    Parse a JSON list of card objects.

    Each object needs a `name` (or `card_name`); `quantity`, `foil`,
    `set_code`, `collector_number`, `condition`, `language`,
    `purchase_price` and `tags` are optional.

    Raises:
        ImportFormatError: If the text isn't a JSON list of objects
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid JSON: {e.msg}") from e

    if isinstance(data, dict):
        data = data.get("collection", data.get("cards"))
    if not isinstance(data, list):
        raise ImportFormatError("JSON import must be a list of card objects")

    rows = []
    for item in data:
        if not isinstance(item, dict):
            raise ImportFormatError("JSON import must be a list of card objects")

        name = str(item.get("name") or item.get("card_name") or "").strip()
        if not name:
            continue

        foil_value = item.get("foil", 0)
        quantity = _parse_int(item.get("quantity"), default=1)
        if isinstance(foil_value, bool):
            regular, foil = (0, quantity) if foil_value else (quantity, 0)
        else:
            regular, foil = quantity, _parse_int(foil_value)
        if regular + foil <= 0:
            continue

        rows.append(
            ImportRow(
                name=name,
                quantity=regular,
                foil=foil,
                set_code=str(item.get("set_code") or item.get("set") or "").lower(),
                collector_number=str(item.get("collector_number") or ""),
                condition=parse_condition(item.get("condition")),
                language=normalize_language(str(item.get("language") or "")),
                purchase_price=_parse_price(item.get("purchase_price")),
                tags=tuple(str(t) for t in item.get("tags") or ()),
            )
        )
    return rows


def detect_format(text: str) -> Literal["csv", "json", "txt"]:
    """
    Guess the format of import text.

    JSON if it starts with a bracket or brace, CSV if the first line is a
    comma-separated header naming a card column, text otherwise.
    """
    stripped = text.strip()
    if stripped.startswith(("[", "{")):
        return "json"

    first_line = stripped.split("\n", 1)[0].lower()
    if "," in first_line and any(h in first_line for h in ("name", "count", "quantity")):
        return "csv"

    return "txt"


def parse_collection(text: str, format_hint: ImportFormat = "auto") -> list[ImportRow]:
    """
    Parse collection import text.

    Args:
        text: Raw import text (file contents or paste)
        format_hint: Format to use, or "auto" to detect

    Returns:
        Rows in input order; duplicates are kept as separate rows.

    Raises:
        ImportFormatError: If the text can't be read in the chosen format
    """
    if not text or not text.strip():
        return []

    if format_hint == "auto":
        format_hint = detect_format(text)

    if format_hint == "csv":
        return parse_csv(text)
    if format_hint == "json":
        return parse_json(text)
    return parse_text(text)
