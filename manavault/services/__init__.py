"""
ManaVault services.

Card data access, deck analysis and collection management logic.
"""

from manavault.services.archetype_detector import ArchetypeResult, detect_archetype
from manavault.services.card_gateway import (
    CardDataError,
    CardGateway,
    CardNotFoundError,
    RateLimitedError,
)
from manavault.services.card_tags import Tag, classify
from manavault.services.collection_stats import CollectionStats, calculate_stats
from manavault.services.deck_validator import ValidationWarning, validate_deck
from manavault.services.legality_checker import LegalityIssue, LegalityResult, check_deck
from manavault.services.repositories import CardRepository, CollectionRepository, DeckRepository

__all__ = [
    "ArchetypeResult",
    "CardDataError",
    "CardGateway",
    "CardNotFoundError",
    "CardRepository",
    "CollectionRepository",
    "CollectionStats",
    "DeckRepository",
    "LegalityIssue",
    "LegalityResult",
    "RateLimitedError",
    "Tag",
    "ValidationWarning",
    "calculate_stats",
    "check_deck",
    "classify",
    "detect_archetype",
    "validate_deck",
]
