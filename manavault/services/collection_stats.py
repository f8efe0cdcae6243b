"""
Collection statistics.

Counts are in copies (regular plus foil). Entries whose card data is
missing still count toward totals, value, sets and conditions; they are
colorless and "other" for color and type, and left out of rarity.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from manavault.models.card import Card
from manavault.models.collection import CollectionEntry, Condition

# Checked in order; a card counts under the first type it has
TYPE_ORDER = (
    "creature",
    "instant",
    "sorcery",
    "enchantment",
    "artifact",
    "planeswalker",
    "land",
    "battle",
)

RARITIES = ("common", "uncommon", "rare", "mythic")


@dataclass
class CollectionStats:
    total_cards: int = 0
    unique_cards: int = 0
    total_value: float = 0.0
    average_value: float = 0.0
    color_distribution: dict[str, int] = field(default_factory=dict)
    rarity_distribution: dict[str, int] = field(default_factory=dict)
    type_distribution: dict[str, int] = field(default_factory=dict)
    set_distribution: dict[str, int] = field(default_factory=dict)
    condition_distribution: dict[str, int] = field(default_factory=dict)
    foil_count: int = 0
    foil_value: float = 0.0


def _color_bucket(card: Card | None) -> str:
    """Single color letter, "C" for colorless or "M" for multicolor."""
    colors = card.color_identity if card is not None else ()
    if not colors:
        return "C"
    if len(colors) > 1:
        return "M"
    return colors[0]


def _type_bucket(card: Card | None) -> str:
    if card is None:
        return "other"
    return next((t for t in TYPE_ORDER if card.has_type(t)), "other")


def _foil_value(entry: CollectionEntry) -> float:
    price = entry.price_usd_foil if entry.price_usd_foil is not None else entry.price_usd
    return (price or 0.0) * entry.foil


def calculate_stats(
    entries: Sequence[CollectionEntry], cards: Mapping[str, Card]
) -> CollectionStats:
    """
    Compute totals and distributions for a set of collection entries.

    Args:
        entries: Collection entries
        cards: Card data by card ID, used for color, rarity and type

    Returns:
        CollectionStats with every distribution key present, zero or not
        (sets only list those that appear)
    """
    stats = CollectionStats(
        color_distribution=dict.fromkeys(("W", "U", "B", "R", "G", "C", "M"), 0),
        rarity_distribution=dict.fromkeys(RARITIES, 0),
        type_distribution=dict.fromkeys((*TYPE_ORDER, "other"), 0),
        condition_distribution=dict.fromkeys((c.value for c in Condition), 0),
    )

    for entry in entries:
        copies = entry.total_copies
        card = cards.get(entry.card_id)

        stats.total_cards += copies
        stats.total_value += entry.value
        stats.foil_count += entry.foil
        stats.foil_value += _foil_value(entry)

        stats.color_distribution[_color_bucket(card)] += copies
        stats.type_distribution[_type_bucket(card)] += copies
        if card is not None and card.rarity in stats.rarity_distribution:
            stats.rarity_distribution[card.rarity] += copies

        set_code = entry.set_code or "unknown"
        stats.set_distribution[set_code] = stats.set_distribution.get(set_code, 0) + copies
        stats.condition_distribution[entry.condition.value] += copies

    stats.unique_cards = len(entries)
    stats.total_value = round(stats.total_value, 2)
    stats.foil_value = round(stats.foil_value, 2)
    if stats.total_cards:
        stats.average_value = round(stats.total_value / stats.total_cards, 2)

    return stats
