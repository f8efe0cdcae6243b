from dataclasses import dataclass, field

BASIC_LAND_NAMES = frozenset({"Plains", "Island", "Swamp", "Mountain", "Forest", "Wastes"})


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable card reference data from the card-data service.

    Instances are only built by `manavault.parsers.scryfall.parse_card`,
    so every field is present with a well-defined type.

    Attributes:
        id: Scryfall card ID (one per printing)
        name: Card name (both faces for double-faced cards, "A // B")
        cmc: Mana value
        type_line: Full type line (e.g., "Legendary Creature — Elf Druid")
        color_identity: Color letters for Commander legality (W, U, B, R, G)
        legalities: Format name -> "legal" / "not_legal" / "banned" / "restricted"
        price_usd: Non-foil market price snapshot, None if unpriced
        power: Printed power string ("3", "*", "1+*"), None for non-creatures
    """

    id: str
    name: str
    mana_cost: str = ""
    cmc: float = 0.0
    type_line: str = ""
    oracle_text: str = ""
    colors: tuple[str, ...] = ()
    color_identity: tuple[str, ...] = ()
    rarity: str = ""
    legalities: dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    price_usd: float | None = None
    price_usd_foil: float | None = None
    set_code: str = ""
    set_name: str = ""
    collector_number: str = ""
    power: str | None = None
    toughness: str | None = None
    keywords: tuple[str, ...] = ()

    def has_type(self, card_type: str) -> bool:
        """Case-insensitive substring check against the type line."""
        return card_type.lower() in self.type_line.lower()

    @property
    def is_land(self) -> bool:
        return self.has_type("land")

    @property
    def is_basic_land(self) -> bool:
        return self.name in BASIC_LAND_NAMES

    @property
    def power_value(self) -> int | None:
        """Numeric power, ignoring variable components like '*'."""
        if self.power is None:
            return None
        digits = "".join(ch for ch in self.power if ch.isdigit())
        return int(digits) if digits else None

    def legality(self, format_name: str) -> str | None:
        """Legality status for a format, None when the card carries no data."""
        return self.legalities.get(format_name)


@dataclass(frozen=True, slots=True)
class DeckCard:
    """A resolved deck entry: full card data plus how many copies are played."""

    card: Card
    quantity: int = 1

    @property
    def name(self) -> str:
        return self.card.name


@dataclass(frozen=True, slots=True)
class DeckEntry:
    """
    A decklist line as stored: card reference and quantity.

    Card metadata is looked up separately by `card_id`.
    """

    card_id: str
    card_name: str
    quantity: int = 1


@dataclass(frozen=True, slots=True)
class Ruling:
    """An official ruling attached to a card."""

    source: str
    published_at: str
    comment: str


@dataclass(frozen=True, slots=True)
class CardPage:
    """One page of card search results."""

    cards: tuple[Card, ...] = ()
    total_cards: int = 0
    has_more: bool = False
