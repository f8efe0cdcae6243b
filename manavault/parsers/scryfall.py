"""
Scryfall card object parsing.

This is the ingestion boundary between raw JSON from the card-data service
and the typed `Card` model. Everything downstream (detector, checker,
validator, stats) receives only cards built here.

Card objects: https://scryfall.com/docs/api/cards
"""

from typing import Any

from manavault.models.card import Card, CardPage, Ruling

VALID_RARITIES = frozenset({"common", "uncommon", "rare", "mythic", "special", "bonus"})

VALID_COLORS = frozenset({"W", "U", "B", "R", "G"})


class CardParseError(ValueError):
    """Raised when a card payload is missing required fields or is malformed."""

    def __init__(self, reason: str, payload_id: str | None = None):
        self.reason = reason
        self.payload_id = payload_id
        label = payload_id or "<unknown>"
        super().__init__(f"Invalid card payload {label}: {reason}")


def _parse_price(value: Any) -> float | None:
    """Scryfall sends prices as decimal strings or null."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_colors(value: Any, field_name: str, card_id: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise CardParseError(f"{field_name} must be a list", card_id)
    colors = tuple(str(c).upper() for c in value)
    unknown = set(colors) - VALID_COLORS
    if unknown:
        raise CardParseError(f"{field_name} has unknown colors {sorted(unknown)}", card_id)
    return colors


def _face_text(payload: dict[str, Any], key: str) -> str:
    """
    Get a text field, falling back to joined card faces.

    Double-faced and split cards keep oracle text and mana cost per face.
    """
    value = payload.get(key)
    if value:
        return str(value)

    faces = payload.get("card_faces") or []
    parts = [str(face.get(key, "")) for face in faces if face.get(key)]
    separator = "\n//\n" if key == "oracle_text" else " // "
    return separator.join(parts)


def parse_card(payload: dict[str, Any]) -> Card:
    """
    Build a Card from a Scryfall card object.

    Args:
        payload: Decoded JSON card object

    Returns:
        Immutable Card

    Raises:
        CardParseError: If id/name are missing or fields have the wrong shape
    """
    if not isinstance(payload, dict):
        raise CardParseError("payload must be an object")

    card_id = payload.get("id")
    name = payload.get("name")
    if not card_id or not isinstance(card_id, str):
        raise CardParseError("missing id")
    if not name or not isinstance(name, str):
        raise CardParseError("missing name", card_id)

    try:
        cmc = float(payload.get("cmc") or 0)
    except (TypeError, ValueError) as e:
        raise CardParseError("cmc must be numeric", card_id) from e

    legalities = payload.get("legalities") or {}
    if not isinstance(legalities, dict):
        raise CardParseError("legalities must be an object", card_id)

    prices = payload.get("prices") or {}
    if not isinstance(prices, dict):
        raise CardParseError("prices must be an object", card_id)

    rarity = str(payload.get("rarity") or "").lower()
    if rarity and rarity not in VALID_RARITIES:
        raise CardParseError(f"unknown rarity '{rarity}'", card_id)

    faces = payload.get("card_faces") or []
    power = payload.get("power")
    toughness = payload.get("toughness")
    if power is None and faces:
        # Use the front face for transforming creatures
        power = faces[0].get("power")
        toughness = faces[0].get("toughness")

    return Card(
        id=card_id,
        name=name,
        mana_cost=_face_text(payload, "mana_cost"),
        cmc=cmc,
        type_line=_face_text(payload, "type_line"),
        oracle_text=_face_text(payload, "oracle_text"),
        colors=_parse_colors(payload.get("colors"), "colors", card_id),
        color_identity=_parse_colors(payload.get("color_identity"), "color_identity", card_id),
        rarity=rarity,
        legalities={str(k): str(v) for k, v in legalities.items()},
        price_usd=_parse_price(prices.get("usd")),
        price_usd_foil=_parse_price(prices.get("usd_foil")),
        set_code=str(payload.get("set") or ""),
        set_name=str(payload.get("set_name") or ""),
        collector_number=str(payload.get("collector_number") or ""),
        power=str(power) if power is not None else None,
        toughness=str(toughness) if toughness is not None else None,
        keywords=tuple(str(k) for k in payload.get("keywords") or ()),
    )


def card_to_payload(card: Card) -> dict[str, Any]:
    """
    Serialize a Card back to Scryfall's shape.

    Used for the local card cache so cached rows go through `parse_card`
    again on the way out.
    """
    return {
        "id": card.id,
        "name": card.name,
        "mana_cost": card.mana_cost,
        "cmc": card.cmc,
        "type_line": card.type_line,
        "oracle_text": card.oracle_text,
        "colors": list(card.colors),
        "color_identity": list(card.color_identity),
        "rarity": card.rarity,
        "legalities": dict(card.legalities),
        "prices": {
            "usd": None if card.price_usd is None else f"{card.price_usd:.2f}",
            "usd_foil": None if card.price_usd_foil is None else f"{card.price_usd_foil:.2f}",
        },
        "set": card.set_code,
        "set_name": card.set_name,
        "collector_number": card.collector_number,
        "power": card.power,
        "toughness": card.toughness,
        "keywords": list(card.keywords),
    }


def parse_card_list(payload: dict[str, Any]) -> CardPage:
    """Parse a Scryfall list object from /cards/search."""
    data = payload.get("data")
    if not isinstance(data, list):
        raise CardParseError("list object has no data array")

    cards = tuple(parse_card(item) for item in data)
    return CardPage(
        cards=cards,
        total_cards=int(payload.get("total_cards", len(cards))),
        has_more=bool(payload.get("has_more", False)),
    )


def parse_rulings(payload: dict[str, Any]) -> list[Ruling]:
    """Parse a Scryfall list of ruling objects."""
    return [
        Ruling(
            source=str(item.get("source", "")),
            published_at=str(item.get("published_at", "")),
            comment=str(item.get("comment", "")),
        )
        for item in payload.get("data", [])
    ]


def parse_catalog(payload: dict[str, Any]) -> list[str]:
    """Parse a Scryfall catalog object (autocomplete results)."""
    return [str(item) for item in payload.get("data", [])]
