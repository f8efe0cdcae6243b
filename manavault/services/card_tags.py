"""
Card classification.

Turns a card's type line, oracle text and stats into a set of functional
tags. All oracle-text substring matching used by the analyzers lives here;
the detector, checker and validator only ever ask "does this card carry
tag X" or "which of these keywords does it hit".

The rule tables are data: a tag is assigned when ANY of its rules match,
and a rule matches when ALL of its conditions hold.
"""

from dataclasses import dataclass
from enum import Enum

from manavault.models.card import Card


class Tag(str, Enum):
    """Functional roles a card can fill in a deck."""

    LAND = "land"
    CREATURE = "creature"
    INSTANT = "instant"
    SORCERY = "sorcery"
    ARTIFACT = "artifact"
    ENCHANTMENT = "enchantment"
    PLANESWALKER = "planeswalker"
    CARD_DRAW = "card_draw"
    REMOVAL = "removal"
    RAMP = "ramp"
    WIN_CONDITION = "win_condition"
    MANA_FIXING = "mana_fixing"


@dataclass(frozen=True, slots=True)
class TagRule:
    """
    One way for a card to earn a tag.

    Attributes:
        text_all: Every phrase must appear in the lowercased oracle text
        text_any: At least one phrase must appear (ignored when empty)
        type_any: At least one type must appear in the type line (ignored when empty)
        min_power: Printed power must be at least this (ignored when None)
    """

    text_all: tuple[str, ...] = ()
    text_any: tuple[str, ...] = ()
    type_any: tuple[str, ...] = ()
    min_power: int | None = None

    def matches(self, card: Card, text: str, type_line: str) -> bool:
        if any(phrase not in text for phrase in self.text_all):
            return False
        if self.text_any and not any(phrase in text for phrase in self.text_any):
            return False
        if self.type_any and not any(t in type_line for t in self.type_any):
            return False
        if self.min_power is not None:
            power = card.power_value
            if power is None or power < self.min_power:
                return False
        return True


TYPE_TAGS: dict[Tag, str] = {
    Tag.LAND: "land",
    Tag.CREATURE: "creature",
    Tag.INSTANT: "instant",
    Tag.SORCERY: "sorcery",
    Tag.ARTIFACT: "artifact",
    Tag.ENCHANTMENT: "enchantment",
    Tag.PLANESWALKER: "planeswalker",
}

TAG_RULES: dict[Tag, tuple[TagRule, ...]] = {
    Tag.CARD_DRAW: (TagRule(text_all=("draw", "card")),),
    Tag.REMOVAL: (
        TagRule(text_any=("destroy", "exile", "remove", "counter")),
        TagRule(text_all=("target",), type_any=("instant",)),
    ),
    Tag.RAMP: (
        TagRule(text_all=("search your library for", "land")),
        TagRule(text_any=("add {", "treasure", "ramp")),
        TagRule(text_all=("add",), type_any=("artifact",)),
    ),
    Tag.WIN_CONDITION: (
        TagRule(text_any=("you win the game", "loses the game", "commander damage")),
        TagRule(min_power=5),
    ),
    Tag.MANA_FIXING: (
        TagRule(text_all=("add",), text_any=("{", "any color"), type_any=("land",)),
    ),
}


def classify(card: Card) -> frozenset[Tag]:
    """
    Compute every tag a card carries.

    Pure function of the card; safe to cache by card ID.
    """
    text = card.oracle_text.lower()
    type_line = card.type_line.lower()

    tags = {tag for tag, type_name in TYPE_TAGS.items() if type_name in type_line}
    for tag, rules in TAG_RULES.items():
        if any(rule.matches(card, text, type_line) for rule in rules):
            tags.add(tag)

    return frozenset(tags)


def keyword_hits(card: Card, keywords: tuple[str, ...] | list[str]) -> list[str]:
    """
    Keywords found in the card's oracle text or name.

    Matching is case-insensitive substring matching, so "token" hits
    "Create a 1/1 Soldier creature token".
    """
    text = card.oracle_text.lower()
    name = card.name.lower()
    hits: list[str] = []
    for keyword in keywords:
        needle = keyword.lower()
        if needle in text or needle in name:
            hits.append(keyword)
    return hits


def name_matches(card_name: str, fragments: tuple[str, ...] | list[str]) -> list[str]:
    """Name fragments (case-insensitive substrings) contained in a card name."""
    lowered = card_name.lower()
    return [fragment for fragment in fragments if fragment.lower() in lowered]


def is_valid_commander(card: Card) -> bool:
    """
    Check whether a card may lead a Commander deck.

    Legendary creatures and planeswalkers qualify, as does any legendary
    card whose text says it "can be your commander".
    """
    type_line = card.type_line.lower()
    if "legendary" not in type_line:
        return False

    return (
        "creature" in type_line
        or "planeswalker" in type_line
        or "can be your commander" in card.oracle_text.lower()
    )


def creature_subtypes(card: Card) -> list[str]:
    """Lowercased subtypes after the em dash (e.g., ['elf', 'druid'])."""
    type_line = card.type_line.split("//")[0]
    for dash in ("—", " - "):
        if dash in type_line:
            return [t.lower() for t in type_line.split(dash, 1)[1].split()]
    return []
