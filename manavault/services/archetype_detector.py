"""
Archetype detection.

Scores a decklist against a fixed table of archetype signatures and picks
the best match. Each signature contributes up to four sub-scores, each
expressed as points earned out of points possible:

- card types: 10 points per type, proportional to how close the deck gets
  to the signature's minimum count
- keywords: one point per (card copy, keyword) hit, capped at 5 per keyword
- average mana value: 10 points inside the range, minus 2 per mana outside
- card names: 3 points per matching name, capped at 3 per listed name

The score is total earned / total possible, in [0, 1].
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from manavault.models.card import Card, DeckEntry
from manavault.services.card_tags import keyword_hits, name_matches

DEFAULT_ARCHETYPE = "Midrange"

# Average used when a deck has no non-land cards with data
DEFAULT_AVERAGE_CMC = 3.0

TYPE_POINTS = 10.0
KEYWORD_POINTS_PER_KEYWORD = 5
CMC_POINTS = 10.0
CMC_PENALTY_PER_MANA = 2.0
NAME_POINTS = 3


@dataclass(frozen=True)
class ArchetypeSignature:
    """
    Indicators that identify an archetype.

    Attributes:
        name: Archetype name
        description: One-line strategy summary shown to users
        min_score: Minimum normalized score needed to claim a deck
        card_types: Type name -> minimum card count for full points
        keywords: Phrases looked for in oracle text and card names
        avg_cmc: Inclusive (min, max) average mana value range
        card_names: Card name fragments that signal the archetype
        strategies: Descriptive strategy labels (not scored)
    """

    name: str
    description: str
    min_score: float
    card_types: dict[str, int] = field(default_factory=dict)
    keywords: tuple[str, ...] = ()
    avg_cmc: tuple[float, float] | None = None
    card_names: tuple[str, ...] = ()
    strategies: tuple[str, ...] = ()


@dataclass(frozen=True)
class ArchetypeResult:
    """Best-matching archetype for a deck."""

    archetype: str
    confidence: float
    description: str
    recommendations: list[str] = field(default_factory=list)


# Declaration order is the tie-break order: on equal scores the earlier
# signature wins.
ARCHETYPE_SIGNATURES: tuple[ArchetypeSignature, ...] = (
    ArchetypeSignature(
        name="Voltron",
        description=(
            "Focuses on making a single creature extremely powerful "
            "through auras, equipment, and buffs"
        ),
        min_score=0.6,
        keywords=("equip", "aura", "attach", "double strike", "hexproof", "indestructible"),
        strategies=("single-target-buffs", "commander-damage"),
    ),
    ArchetypeSignature(
        name="Aristocrats",
        description="Sacrifices creatures for value through death triggers and sacrifice outlets",
        min_score=0.65,
        keywords=("sacrifice", "dies", "death trigger", "blood artist", "aristocrat"),
        strategies=("sacrifice-value", "drain-life"),
    ),
    ArchetypeSignature(
        name="Combo",
        description="Seeks to win through specific card combinations and infinite loops",
        min_score=0.7,
        keywords=("infinite", "combo", "untap", "copy", "flicker"),
        card_names=(
            "thassa",
            "deadeye navigator",
            "kiki-jiki",
            "splinter twin",
            "dramatic reversal",
        ),
        strategies=("tutors", "card-draw", "protection"),
    ),
    ArchetypeSignature(
        name="Control",
        description="Controls the game through removal, counters, and card advantage",
        min_score=0.65,
        card_types={"instant": 15, "sorcery": 10},
        keywords=("counter", "destroy", "exile", "return to hand", "draw"),
        avg_cmc=(2.0, 4.0),
    ),
    ArchetypeSignature(
        name="Aggro",
        description="Wins quickly through efficient creatures and combat damage",
        min_score=0.6,
        card_types={"creature": 30},
        keywords=("haste", "first strike", "double strike", "menace", "trample"),
        avg_cmc=(1.0, 3.5),
    ),
    ArchetypeSignature(
        name="Tokens",
        description="Creates many creature tokens to overwhelm opponents",
        min_score=0.65,
        keywords=("token", "create", "populate", "convoke", "swarm"),
        strategies=("token-generation", "go-wide"),
    ),
    ArchetypeSignature(
        name="Reanimator",
        description="Puts powerful creatures from graveyard directly into play",
        min_score=0.7,
        keywords=("reanimate", "return from graveyard", "unearth", "embalm", "persist"),
        strategies=("mill", "discard", "big-creatures"),
    ),
    ArchetypeSignature(
        name="Stax",
        description="Slows down opponents through resource denial and hate pieces",
        min_score=0.7,
        keywords=("can't", "don't untap", "sacrifice", "tax", "additional cost"),
        strategies=("resource-denial", "prison"),
    ),
    ArchetypeSignature(
        name="Lands Matter",
        description="Focuses on landfall triggers and land-based strategies",
        min_score=0.65,
        card_types={"land": 38},
        keywords=("landfall", "ramp", "land", "fetch", "cultivation"),
        strategies=("land-ramp", "value-lands"),
    ),
    ArchetypeSignature(
        name="Storm",
        description="Wins by casting many spells in one turn",
        min_score=0.75,
        keywords=("storm", "ritual", "cost reduction", "copy spell"),
        avg_cmc=(1.0, 2.5),
        strategies=("fast-mana", "card-draw"),
    ),
    ArchetypeSignature(
        name="Tribal",
        description="Synergizes around a specific creature type",
        min_score=0.6,
        keywords=("elf", "goblin", "zombie", "dragon", "vampire", "wizard", "merfolk", "angel"),
        strategies=("creature-synergy", "tribal-lords"),
    ),
    ArchetypeSignature(
        name="Spellslinger",
        description="Wins through casting and copying instant and sorcery spells",
        min_score=0.65,
        card_types={"instant": 15, "sorcery": 15},
        keywords=("cast", "copy", "magecraft", "prowess", "storm"),
        strategies=("spell-copy", "spell-value"),
    ),
    ArchetypeSignature(
        name="Midrange",
        description="Balanced strategy with good creatures and interaction",
        min_score=0.5,
        card_types={"creature": 25, "instant": 8, "sorcery": 8},
        avg_cmc=(2.5, 4.5),
    ),
)

SIGNATURES_BY_NAME: dict[str, ArchetypeSignature] = {s.name: s for s in ARCHETYPE_SIGNATURES}

ARCHETYPE_RECOMMENDATIONS: dict[str, tuple[str, ...]] = {
    "Voltron": (
        "Consider adding more protection spells for your commander",
        "Equipment and auras with totem armor are valuable",
    ),
    "Combo": (
        "Add more tutors to find combo pieces consistently",
        "Include protection and backup plans",
    ),
    "Control": (
        "Balance removal with card draw to maintain resources",
        "Consider board wipes for multiple threats",
    ),
    "Aggro": (
        "Keep the curve low for faster starts",
        "Add haste enablers for immediate impact",
    ),
    "Tokens": (
        "Include anthems to boost token power",
        "Add sacrifice outlets for value",
    ),
    "Reanimator": (
        "Balance mill/discard with reanimation spells",
        "Include graveyard protection",
    ),
}


def _resolved(
    entries: Sequence[DeckEntry], card_data: Mapping[str, Card]
) -> list[tuple[DeckEntry, Card]]:
    """Pair entries with their card data, dropping entries with no data."""
    return [(entry, card_data[entry.card_id]) for entry in entries if entry.card_id in card_data]


def _type_points(
    required: dict[str, int], resolved: list[tuple[DeckEntry, Card]]
) -> tuple[float, float]:
    score = 0.0
    possible = 0.0
    for card_type, min_count in required.items():
        possible += TYPE_POINTS
        count = sum(entry.quantity for entry, card in resolved if card.has_type(card_type))
        score += TYPE_POINTS * min(count / min_count, 1.0)
    return score, possible


def _keyword_points(
    keywords: tuple[str, ...], resolved: list[tuple[DeckEntry, Card]]
) -> tuple[float, float]:
    possible = float(len(keywords) * KEYWORD_POINTS_PER_KEYWORD)
    matches = 0
    for entry, card in resolved:
        matches += entry.quantity * len(keyword_hits(card, keywords))
    return min(float(matches), possible), possible


def average_cmc(resolved: list[tuple[DeckEntry, Card]]) -> float:
    """Quantity-weighted average mana value of non-land cards."""
    total_cmc = 0.0
    total_cards = 0
    for entry, card in resolved:
        if card.is_land:
            continue
        total_cmc += card.cmc * entry.quantity
        total_cards += entry.quantity
    return total_cmc / total_cards if total_cards > 0 else DEFAULT_AVERAGE_CMC


def _cmc_points(
    cmc_range: tuple[float, float], resolved: list[tuple[DeckEntry, Card]]
) -> tuple[float, float]:
    low, high = cmc_range
    avg = average_cmc(resolved)
    if low <= avg <= high:
        return CMC_POINTS, CMC_POINTS

    distance = min(abs(avg - low), abs(avg - high))
    return max(0.0, CMC_POINTS - distance * CMC_PENALTY_PER_MANA), CMC_POINTS


def _name_points(
    card_names: tuple[str, ...], resolved: list[tuple[DeckEntry, Card]]
) -> tuple[float, float]:
    possible = float(len(card_names) * NAME_POINTS)
    matches = 0
    for entry, _card in resolved:
        matches += NAME_POINTS * len(name_matches(entry.card_name, card_names))
    return min(float(matches), possible), possible


def score_signature(
    signature: ArchetypeSignature,
    entries: Sequence[DeckEntry],
    card_data: Mapping[str, Card],
) -> float:
    """
    Normalized score in [0, 1] for how well a deck matches one signature.

    Cards without an entry in `card_data` contribute nothing to any sub-score.
    """
    resolved = _resolved(entries, card_data)
    score = 0.0
    possible = 0.0

    if signature.card_types:
        earned, max_points = _type_points(signature.card_types, resolved)
        score += earned
        possible += max_points

    if signature.keywords:
        earned, max_points = _keyword_points(signature.keywords, resolved)
        score += earned
        possible += max_points

    if signature.avg_cmc is not None:
        earned, max_points = _cmc_points(signature.avg_cmc, resolved)
        score += earned
        possible += max_points

    if signature.card_names:
        earned, max_points = _name_points(signature.card_names, resolved)
        score += earned
        possible += max_points

    return score / possible if possible > 0 else 0.0


def score_archetypes(
    entries: Sequence[DeckEntry], card_data: Mapping[str, Card]
) -> dict[str, float]:
    """Score every signature, keyed by archetype name in declaration order."""
    return {
        signature.name: score_signature(signature, entries, card_data)
        for signature in ARCHETYPE_SIGNATURES
    }


def get_recommendations(archetype: str) -> list[str]:
    """Canned advice for an archetype; empty for archetypes without any."""
    return list(ARCHETYPE_RECOMMENDATIONS.get(archetype, ()))


def detect_archetype(
    entries: Sequence[DeckEntry], card_data: Mapping[str, Card]
) -> ArchetypeResult:
    """
    Classify a deck into its best-matching archetype.

    The winner is the highest-scoring signature that clears its own
    `min_score`. A later signature only replaces the current best with a
    strictly higher score, so ties go to the earlier-declared signature.
    With no qualifying signature the deck is Midrange at 0 confidence.

    Args:
        entries: Decklist entries (card_id, card_name, quantity)
        card_data: Card metadata keyed by card ID

    Returns:
        ArchetypeResult with name, confidence (0-100), description, advice
    """
    scores = score_archetypes(entries, card_data)

    best_archetype = DEFAULT_ARCHETYPE
    best_score = 0.0
    for signature in ARCHETYPE_SIGNATURES:
        score = scores[signature.name]
        if score >= signature.min_score and score > best_score:
            best_archetype = signature.name
            best_score = score

    signature = SIGNATURES_BY_NAME[best_archetype]
    return ArchetypeResult(
        archetype=best_archetype,
        confidence=min(best_score * 100, 100.0),
        description=signature.description,
        recommendations=get_recommendations(best_archetype),
    )
