"""
Deck legality checking.

One rule function per supported format. Every check runs regardless of
earlier failures and appends to a flat issue list, so a deck reports all
of its problems at once. `is_legal` is simply "no issues".

Unknown formats are not an error: the result is legal with a warning that
no checks were applied.
"""

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from manavault.models.card import BASIC_LAND_NAMES, Card, DeckCard
from manavault.services.card_tags import is_valid_commander

logger = logging.getLogger(__name__)

# Basic lands exempt from copy limits in constructed formats. Wastes is only
# exempt in Commander, where it is the colorless basic.
CONSTRUCTED_BASICS = frozenset({"Plains", "Island", "Swamp", "Mountain", "Forest"})

COMMANDER_DECK_SIZES = frozenset({99, 100})
CONSTRUCTED_MIN_DECK_SIZE = 60
MAX_COPIES = 4
RESTRICTED_MAX_COPIES = 1


@dataclass(frozen=True, slots=True)
class LegalityIssue:
    """A single legality problem, optionally tied to a card."""

    type: Literal["error", "warning"]
    message: str
    card: str | None = None


@dataclass(frozen=True)
class LegalityResult:
    """Outcome of checking a deck against a format."""

    is_legal: bool
    issues: list[LegalityIssue] = field(default_factory=list)
    warnings: list[LegalityIssue] = field(default_factory=list)


def _error(message: str, card: str | None = None) -> LegalityIssue:
    return LegalityIssue(type="error", message=message, card=card)


def _total_cards(cards: Sequence[DeckCard]) -> int:
    return sum(entry.quantity for entry in cards)


def _name_counts(cards: Sequence[DeckCard], exempt: frozenset[str]) -> Counter[str]:
    """Copies per card name, summed across entries, skipping exempt names."""
    counts: Counter[str] = Counter()
    for entry in cards:
        if entry.name not in exempt:
            counts[entry.name] += entry.quantity
    return counts


def _check_min_size(cards: Sequence[DeckCard], label: str) -> list[LegalityIssue]:
    total = _total_cards(cards)
    if total < CONSTRUCTED_MIN_DECK_SIZE:
        return [
            _error(
                f"{label} deck must have at least {CONSTRUCTED_MIN_DECK_SIZE} cards. "
                f"Current: {total}"
            )
        ]
    return []


def _check_copy_limit(cards: Sequence[DeckCard]) -> list[LegalityIssue]:
    return [
        _error(f"{name} appears {count} times (maximum {MAX_COPIES} copies allowed)", name)
        for name, count in _name_counts(cards, CONSTRUCTED_BASICS).items()
        if count > MAX_COPIES
    ]


def check_commander(cards: Sequence[DeckCard], commander: Card | None = None) -> LegalityResult:
    """
    Commander / EDH rules.

    - A commander is required and must be a legendary creature or
      planeswalker (or say it can be your commander)
    - The deck holds 99 or 100 cards
    - Singleton: one copy of each card except basic lands
    - Every card's color identity fits inside the commander's
    - No card banned or not legal in Commander
    """
    issues: list[LegalityIssue] = []

    if commander is None:
        issues.append(
            _error("Commander format requires a legendary creature or planeswalker as commander")
        )
    elif not is_valid_commander(commander):
        issues.append(_error(f"{commander.name} cannot be a commander", commander.name))

    total = _total_cards(cards)
    if total not in COMMANDER_DECK_SIZES:
        expected = 99 if commander is not None else 100
        issues.append(
            _error(f"Commander deck must have exactly {expected} cards. Current: {total}")
        )

    for name, count in _name_counts(cards, BASIC_LAND_NAMES).items():
        if count > 1:
            issues.append(_error(f"{name} appears {count} times (violates singleton rule)", name))

    if commander is not None:
        allowed = set(commander.color_identity)
        for entry in cards:
            invalid = [c for c in entry.card.color_identity if c not in allowed]
            if invalid:
                issues.append(
                    _error(
                        f"{entry.name} has colors outside commander's identity: "
                        f"{', '.join(invalid)}",
                        entry.name,
                    )
                )

    for entry in cards:
        if entry.card.legality("commander") in ("banned", "not_legal"):
            issues.append(_error(f"{entry.name} is banned or not legal in Commander", entry.name))

    return LegalityResult(is_legal=not issues, issues=issues)


def check_standard(cards: Sequence[DeckCard]) -> LegalityResult:
    """Standard: 60+ cards, 4-of limit, every card Standard-legal."""
    issues = _check_min_size(cards, "Standard")
    issues += _check_copy_limit(cards)

    for entry in cards:
        if entry.card.legality("standard") in ("banned", "not_legal"):
            issues.append(_error(f"{entry.name} is not legal in Standard", entry.name))

    return LegalityResult(is_legal=not issues, issues=issues)


def check_modern(cards: Sequence[DeckCard]) -> LegalityResult:
    """Modern: 60+ cards, 4-of limit, separate banned and not-legal messages."""
    issues = _check_min_size(cards, "Modern")
    issues += _check_copy_limit(cards)

    for entry in cards:
        status = entry.card.legality("modern")
        if status == "banned":
            issues.append(_error(f"{entry.name} is banned in Modern", entry.name))
        elif status == "not_legal":
            issues.append(_error(f"{entry.name} is not legal in Modern", entry.name))

    return LegalityResult(is_legal=not issues, issues=issues)


def check_legacy(cards: Sequence[DeckCard]) -> LegalityResult:
    """Legacy: 60+ cards, no banned cards."""
    issues = _check_min_size(cards, "Legacy")

    for entry in cards:
        if entry.card.legality("legacy") == "banned":
            issues.append(_error(f"{entry.name} is banned in Legacy", entry.name))

    return LegalityResult(is_legal=not issues, issues=issues)


def check_vintage(cards: Sequence[DeckCard]) -> LegalityResult:
    """Vintage: 60+ cards, no banned cards, restricted cards at most once."""
    issues = _check_min_size(cards, "Vintage")

    counts = _name_counts(cards, frozenset())
    reported_restricted: set[str] = set()
    for entry in cards:
        status = entry.card.legality("vintage")
        if status == "banned":
            issues.append(_error(f"{entry.name} is banned in Vintage", entry.name))
        elif status == "restricted":
            if counts[entry.name] > RESTRICTED_MAX_COPIES and entry.name not in reported_restricted:
                reported_restricted.add(entry.name)
                issues.append(
                    _error(f"{entry.name} is restricted to 1 copy in Vintage", entry.name)
                )

    return LegalityResult(is_legal=not issues, issues=issues)


def check_pauper(cards: Sequence[DeckCard]) -> LegalityResult:
    """Pauper: 60+ cards, commons only."""
    issues = _check_min_size(cards, "Pauper")

    for entry in cards:
        rarity = entry.card.rarity
        if rarity and rarity.lower() != "common":
            issues.append(
                _error(
                    f"{entry.name} is not common rarity (Pauper allows only commons)",
                    entry.name,
                )
            )

    return LegalityResult(is_legal=not issues, issues=issues)


FORMAT_CHECKERS: dict[str, Callable[[Sequence[DeckCard]], LegalityResult]] = {
    "standard": check_standard,
    "modern": check_modern,
    "legacy": check_legacy,
    "vintage": check_vintage,
    "pauper": check_pauper,
}

COMMANDER_FORMATS = frozenset({"commander", "edh"})

SUPPORTED_FORMATS = frozenset(FORMAT_CHECKERS) | COMMANDER_FORMATS


def check_deck(
    cards: Sequence[DeckCard],
    format_name: str,
    commander: Card | None = None,
) -> LegalityResult:
    """
    Check whether a deck is legal in a format.

    Args:
        cards: Deck contents (commander excluded)
        format_name: Format name, case-insensitive
        commander: Commander card, only consulted for Commander/EDH

    Returns:
        LegalityResult. Unrecognized formats are reported as legal with a
        single warning.
    """
    key = format_name.lower()

    if key in COMMANDER_FORMATS:
        return check_commander(cards, commander)

    checker = FORMAT_CHECKERS.get(key)
    if checker is None:
        logger.debug("No legality rules for format %r", format_name)
        return LegalityResult(
            is_legal=True,
            warnings=[
                LegalityIssue(
                    type="warning",
                    message=f"Format '{format_name}' is not recognized. Skipping legality checks.",
                )
            ],
        )

    return checker(cards)


def calculate_color_identity(
    cards: Sequence[DeckCard], commander: Card | None = None
) -> list[str]:
    """Sorted union of the commander's and every card's color identity."""
    colors: set[str] = set()
    if commander is not None:
        colors.update(commander.color_identity)
    for entry in cards:
        colors.update(entry.card.color_identity)
    return sorted(colors)
