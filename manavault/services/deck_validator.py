"""
Heuristic deck warnings.

Eight independent checks, each a pure function of the card list (plus the
format and optional commander). Warnings are advisory: they never block
saving or playing a deck.

Card roles (draw, removal, ramp, ...) come from `card_tags.classify`.
Source counts for draw, removal, ramp and win conditions count distinct
deck entries, not copies.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from manavault.models.card import Card, DeckCard
from manavault.services.card_tags import Tag, classify, creature_subtypes

Severity = Literal["error", "warning", "info"]
Category = Literal["mana", "curve", "synergy", "power", "legality", "balance"]

# Commander land counts
COMMANDER_MIN_LANDS = 33
COMMANDER_RECOMMENDED_LANDS = 35

# 60-card land counts
CONSTRUCTED_MIN_LANDS = 22
CONSTRUCTED_DECK_SIZE = 60

MULTICOLOR_THRESHOLD = 3
MIN_FIXING_LANDS = 10

TOP_HEAVY_PERCENT = 25.0
MIN_EARLY_GAME_PERCENT = 20.0

MIN_DRAW_SOURCES = 5
MIN_REMOVAL_COMMANDER = 8
MIN_REMOVAL_CONSTRUCTED = 6
MIN_RAMP_SOURCES = 8
MIN_WIN_CONDITIONS = 3
MIN_TRIBAL_CARDS = 15

MIN_CREATURE_PERCENT = 15.0
MAX_CREATURE_PERCENT = 60.0

# Commander creature types that trigger the tribal check, and the types
# looked for once it fires
TRIBAL_TRIGGER_TYPES = ("elf", "goblin", "zombie", "dragon")
TRIBAL_TYPES = ("elf", "goblin", "zombie", "dragon", "warrior", "wizard")


@dataclass(frozen=True)
class ValidationWarning:
    """One piece of actionable advice about a deck."""

    severity: Severity
    category: Category
    message: str
    suggestion: str | None = None
    affected_cards: list[str] = field(default_factory=list)


def _is_commander_format(format_name: str) -> bool:
    return format_name.lower() in ("commander", "edh")


def _total(cards: Sequence[DeckCard]) -> int:
    return sum(entry.quantity for entry in cards)


def _with_tag(cards: Sequence[DeckCard], tag: Tag) -> list[DeckCard]:
    return [entry for entry in cards if tag in classify(entry.card)]


def check_mana_base(cards: Sequence[DeckCard], format_name: str) -> list[ValidationWarning]:
    """Land count for the format, plus fixing for 3+ color decks."""
    warnings: list[ValidationWarning] = []
    lands = _with_tag(cards, Tag.LAND)
    total = _total(cards)
    land_count = _total(lands)
    land_percentage = (land_count / total) * 100 if total else 0.0

    if _is_commander_format(format_name):
        if land_count < COMMANDER_MIN_LANDS:
            warnings.append(
                ValidationWarning(
                    severity="warning",
                    category="mana",
                    message=f"Only {land_count} lands ({land_percentage:.1f}%)",
                    suggestion=(
                        "Commander decks typically run 35-40 lands. "
                        "Consider adding more lands or mana rocks."
                    ),
                )
            )
        elif land_count < COMMANDER_RECOMMENDED_LANDS:
            warnings.append(
                ValidationWarning(
                    severity="info",
                    category="mana",
                    message=f"{land_count} lands may be slightly low",
                    suggestion=(
                        "Most Commander decks run 35-40 lands unless heavily "
                        "focused on artifacts/ramp."
                    ),
                )
            )
    elif land_count < CONSTRUCTED_MIN_LANDS and total >= CONSTRUCTED_DECK_SIZE:
        warnings.append(
            ValidationWarning(
                severity="warning",
                category="mana",
                message=f"Only {land_count} lands ({land_percentage:.1f}%)",
                suggestion="Most 60-card decks run 22-26 lands. Consider adding more.",
            )
        )

    colors: set[str] = set()
    for entry in cards:
        colors.update(entry.card.color_identity)

    if len(colors) >= MULTICOLOR_THRESHOLD:
        fixing = [entry for entry in lands if Tag.MANA_FIXING in classify(entry.card)]
        if len(fixing) < MIN_FIXING_LANDS:
            warnings.append(
                ValidationWarning(
                    severity="warning",
                    category="mana",
                    message=f"{len(colors)}-color deck with limited fixing",
                    suggestion=(
                        "Add more dual lands, fetch lands, or mana fixing "
                        "to ensure consistent colors."
                    ),
                )
            )

    return warnings


def mana_curve(cards: Sequence[DeckCard]) -> dict[str, int]:
    """
    Non-land copies bucketed by mana value: 0-1, 2, 3, 4, 5, 6+.

    Fractional mana values fall into the bucket of their whole part.
    """
    bins = {"0-1": 0, "2": 0, "3": 0, "4": 0, "5": 0, "6+": 0}
    for entry in cards:
        if entry.card.is_land:
            continue
        value = math.floor(entry.card.cmc)
        if value <= 1:
            bins["0-1"] += entry.quantity
        elif value >= 6:
            bins["6+"] += entry.quantity
        else:
            bins[str(value)] += entry.quantity
    return bins


def check_mana_curve(cards: Sequence[DeckCard], format_name: str) -> list[ValidationWarning]:
    """Top-heavy curves and thin early game. Skipped for Commander."""
    if _is_commander_format(format_name):
        return []

    bins = mana_curve(cards)
    total_spells = sum(bins.values())
    if total_spells == 0:
        return []

    warnings: list[ValidationWarning] = []
    high_percentage = bins["6+"] / total_spells * 100
    if high_percentage > TOP_HEAVY_PERCENT:
        warnings.append(
            ValidationWarning(
                severity="warning",
                category="curve",
                message="Curve is very top-heavy",
                suggestion=(
                    f"{round(high_percentage)}% of spells cost 6+ mana. "
                    "Consider adding more low-cost cards."
                ),
            )
        )

    early_percentage = (bins["0-1"] + bins["2"]) / total_spells * 100
    if early_percentage < MIN_EARLY_GAME_PERCENT:
        warnings.append(
            ValidationWarning(
                severity="warning",
                category="curve",
                message="Few early game plays",
                suggestion="Add more 1-2 mana spells for early game consistency.",
            )
        )

    return warnings


def check_card_draw(cards: Sequence[DeckCard]) -> list[ValidationWarning]:
    sources = _with_tag(cards, Tag.CARD_DRAW)
    if len(sources) >= MIN_DRAW_SOURCES:
        return []

    return [
        ValidationWarning(
            severity="warning",
            category="balance",
            message="Limited card draw",
            suggestion=(
                "Add more card draw sources to maintain card advantage "
                "and prevent running out of resources."
            ),
            affected_cards=[entry.name for entry in sources],
        )
    ]


def check_removal(cards: Sequence[DeckCard], format_name: str) -> list[ValidationWarning]:
    removal = _with_tag(cards, Tag.REMOVAL)
    minimum = (
        MIN_REMOVAL_COMMANDER if _is_commander_format(format_name) else MIN_REMOVAL_CONSTRUCTED
    )
    if len(removal) >= minimum:
        return []

    return [
        ValidationWarning(
            severity="warning",
            category="balance",
            message="Insufficient removal",
            suggestion=(
                f"Only {len(removal)} removal spells found. Add more interaction "
                "to deal with opponents' threats."
            ),
        )
    ]


def check_ramp(cards: Sequence[DeckCard], format_name: str) -> list[ValidationWarning]:
    if not _is_commander_format(format_name):
        return []

    if len(_with_tag(cards, Tag.RAMP)) >= MIN_RAMP_SOURCES:
        return []

    return [
        ValidationWarning(
            severity="info",
            category="mana",
            message="Limited ramp",
            suggestion="Commander benefits from 10-15 ramp sources for consistent acceleration.",
        )
    ]


def check_win_conditions(cards: Sequence[DeckCard], format_name: str) -> list[ValidationWarning]:
    if not _is_commander_format(format_name):
        return []

    wincons = _with_tag(cards, Tag.WIN_CONDITION)
    if len(wincons) >= MIN_WIN_CONDITIONS:
        return []

    return [
        ValidationWarning(
            severity="warning",
            category="power",
            message="Unclear win conditions",
            suggestion="Add more threats or combo pieces to close out games.",
            affected_cards=[entry.name for entry in wincons],
        )
    ]


def check_commander_synergy(
    cards: Sequence[DeckCard], commander: Card | None = None
) -> list[ValidationWarning]:
    """Tribal coverage for commanders of a well-supported creature type."""
    if commander is None:
        return []

    commander_types = commander.type_line.lower()
    if not any(t in commander_types for t in TRIBAL_TRIGGER_TYPES):
        return []

    tribe = next((t for t in creature_subtypes(commander) if t in TRIBAL_TYPES), None)
    if tribe is None:
        return []

    tribal_cards = [entry for entry in cards if entry.card.has_type(tribe)]
    if len(tribal_cards) >= MIN_TRIBAL_CARDS:
        return []

    return [
        ValidationWarning(
            severity="info",
            category="synergy",
            message=f"Limited {tribe} tribal synergy",
            suggestion=(
                f"Commander appears to be {tribe} tribal. "
                f"Consider adding more {tribe}s for better synergy."
            ),
        )
    ]


def check_balance(cards: Sequence[DeckCard]) -> list[ValidationWarning]:
    """Creature share of the whole deck."""
    total = _total(cards)
    if total == 0:
        return []

    creature_percentage = _total(_with_tag(cards, Tag.CREATURE)) / total * 100

    if creature_percentage < MIN_CREATURE_PERCENT:
        return [
            ValidationWarning(
                severity="info",
                category="balance",
                message="Very few creatures",
                suggestion=(
                    "Deck has limited creature presence. "
                    "Ensure you have alternate win conditions."
                ),
            )
        ]
    if creature_percentage > MAX_CREATURE_PERCENT:
        return [
            ValidationWarning(
                severity="info",
                category="balance",
                message="Heavily creature-based",
                suggestion=(
                    "Deck is very creature-heavy. Consider adding more spells "
                    "for interaction and card advantage."
                ),
            )
        ]
    return []


def validate_deck(
    cards: Sequence[DeckCard],
    format_name: str,
    commander: Card | None = None,
) -> list[ValidationWarning]:
    """
    Run every heuristic check and collect the warnings.

    Args:
        cards: Deck contents (commander excluded)
        format_name: Format name, case-insensitive
        commander: Commander card, if any

    Returns:
        Flat list of warnings in check order
    """
    warnings: list[ValidationWarning] = []
    warnings += check_mana_base(cards, format_name)
    warnings += check_mana_curve(cards, format_name)
    warnings += check_card_draw(cards)
    warnings += check_removal(cards, format_name)
    warnings += check_ramp(cards, format_name)
    warnings += check_win_conditions(cards, format_name)
    warnings += check_commander_synergy(cards, commander)
    warnings += check_balance(cards)
    return warnings


def warnings_by_severity(
    warnings: Sequence[ValidationWarning], severity: Severity
) -> list[ValidationWarning]:
    return [w for w in warnings if w.severity == severity]


def warnings_by_category(
    warnings: Sequence[ValidationWarning], category: Category
) -> list[ValidationWarning]:
    return [w for w in warnings if w.category == category]
