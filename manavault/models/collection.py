from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from manavault.models.card import Card


class Condition(str, Enum):
    """Physical condition grades, best to worst."""

    MINT = "mint"
    NEAR_MINT = "near_mint"
    EXCELLENT = "excellent"
    GOOD = "good"
    LIGHT_PLAYED = "light_played"
    PLAYED = "played"
    POOR = "poor"


@dataclass
class CollectionEntry:
    """
    Copies of one printing owned by a user.

    Attributes:
        card_id: Scryfall ID of the printing
        quantity: Non-foil copies
        foil: Foil copies (tracked separately from quantity)
        price_usd: Non-foil price snapshot from the last sync
        price_usd_foil: Foil price snapshot from the last sync
        purchase_price: What the user paid per copy, if recorded
    """

    card_id: str
    card_name: str
    quantity: int = 1
    foil: int = 0
    condition: Condition = Condition.NEAR_MINT
    set_code: str = ""
    collector_number: str = ""
    language: str = "en"
    price_usd: float | None = None
    price_usd_foil: float | None = None
    purchase_price: float | None = None
    tags: list[str] = field(default_factory=list)
    notes: str | None = None
    added_at: datetime | None = None
    id: int | None = None

    @property
    def total_copies(self) -> int:
        return self.quantity + self.foil

    @property
    def value(self) -> float:
        """Market value of all copies; foils fall back to the non-foil price."""
        regular = (self.price_usd or 0.0) * self.quantity
        foil_price = self.price_usd_foil if self.price_usd_foil is not None else self.price_usd
        return regular + (foil_price or 0.0) * self.foil


@dataclass
class CollectionFilter:
    """
    Search and filter predicates for a collection view.

    Empty selections match everything.
    """

    search_query: str = ""
    sets: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    rarities: list[str] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    min_price: float | None = None
    max_price: float | None = None

    def matches(self, entry: CollectionEntry, card: Card | None = None) -> bool:
        if self.search_query:
            query = self.search_query.lower()
            haystacks = [entry.card_name.lower()]
            if card is not None:
                haystacks += [card.type_line.lower(), card.oracle_text.lower()]
            if not any(query in h for h in haystacks):
                return False

        if self.sets and entry.set_code.lower() not in {s.lower() for s in self.sets}:
            return False

        if self.conditions and entry.condition not in self.conditions:
            return False

        price = entry.price_usd or 0.0
        if self.min_price is not None and price < self.min_price:
            return False
        if self.max_price is not None and price > self.max_price:
            return False

        # Color and rarity need card data; entries without it don't match
        if self.colors:
            if card is None or not set(self.colors) & set(card.color_identity):
                return False
        if self.rarities:
            if card is None or card.rarity not in self.rarities:
                return False

        return True


@dataclass
class Collection:
    """
    A user's card collection.

    Entries are keyed by card ID (one entry per printing). Adding a card
    that is already present merges quantities.
    """

    user_id: str
    entries: dict[str, CollectionEntry] = field(default_factory=dict)

    def get(self, card_id: str) -> CollectionEntry | None:
        return self.entries.get(card_id)

    def add_card(self, entry: CollectionEntry) -> CollectionEntry:
        """Add copies, merging regular and foil counts into an existing entry."""
        existing = self.entries.get(entry.card_id)
        if existing is None:
            added = replace(entry, tags=list(entry.tags))
            self.entries[entry.card_id] = added
            return added

        existing.quantity += entry.quantity
        existing.foil += entry.foil
        return existing

    def remove_card(self, card_id: str) -> bool:
        """Remove an entry entirely. Returns False if it wasn't there."""
        return self.entries.pop(card_id, None) is not None

    def update_quantity(self, card_id: str, quantity: int, foil: int = 0) -> CollectionEntry | None:
        """
        Set regular and foil counts.

        Dropping both to zero or below removes the entry and returns None.

        Raises:
            KeyError: If the card isn't in the collection
        """
        entry = self.entries[card_id]
        if quantity + foil <= 0:
            del self.entries[card_id]
            return None

        entry.quantity = max(quantity, 0)
        entry.foil = max(foil, 0)
        return entry

    def update_condition(self, card_id: str, condition: Condition) -> CollectionEntry:
        entry = self.entries[card_id]
        entry.condition = condition
        return entry

    def add_tag(self, card_id: str, tag: str) -> None:
        entry = self.entries[card_id]
        if tag not in entry.tags:
            entry.tags.append(tag)

    def remove_tag(self, card_id: str, tag: str) -> None:
        entry = self.entries[card_id]
        if tag in entry.tags:
            entry.tags.remove(tag)

    def total_cards(self) -> int:
        """Total copies, regular and foil."""
        return sum(e.total_copies for e in self.entries.values())

    def unique_cards(self) -> int:
        return len(self.entries)

    def total_value(self) -> float:
        return sum(e.value for e in self.entries.values())

    def top_value_cards(self, limit: int = 10) -> list[CollectionEntry]:
        """Most valuable entries by total market value."""
        ranked = sorted(self.entries.values(), key=lambda e: e.value, reverse=True)
        return ranked[:limit]

    def cards_by_set(self, set_code: str) -> list[CollectionEntry]:
        return [e for e in self.entries.values() if e.set_code.lower() == set_code.lower()]

    def cards_by_color(self, color: str, cards: Mapping[str, Card]) -> list[CollectionEntry]:
        """Entries whose card has `color` in its color identity."""
        return [
            e
            for e in self.entries.values()
            if e.card_id in cards and color in cards[e.card_id].color_identity
        ]

    def filter(
        self, criteria: CollectionFilter, cards: Mapping[str, Card] | None = None
    ) -> list[CollectionEntry]:
        """Entries matching every predicate, sorted by card name."""
        lookup = cards or {}
        matched = [e for e in self.entries.values() if criteria.matches(e, lookup.get(e.card_id))]
        return sorted(matched, key=lambda e: e.card_name)
