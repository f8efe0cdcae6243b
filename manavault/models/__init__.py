from manavault.models.card import BASIC_LAND_NAMES, Card, CardPage, DeckCard, DeckEntry, Ruling
from manavault.models.collection import Collection, CollectionEntry, CollectionFilter, Condition
from manavault.models.deck import (
    Board,
    Deck,
    DeckFolder,
    DeckMatch,
    DeckSlot,
    MatchResult,
    Visibility,
)
from manavault.models.storage import ContainerType, StorageContainer, StorageItem
from manavault.models.wanted import ListKind, WantedCard

__all__ = [
    "BASIC_LAND_NAMES",
    "Board",
    "Card",
    "CardPage",
    "Collection",
    "CollectionEntry",
    "CollectionFilter",
    "Condition",
    "ContainerType",
    "Deck",
    "DeckCard",
    "DeckEntry",
    "DeckFolder",
    "DeckMatch",
    "DeckSlot",
    "ListKind",
    "MatchResult",
    "Ruling",
    "StorageContainer",
    "StorageItem",
    "Visibility",
    "WantedCard",
]
