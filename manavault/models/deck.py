from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from manavault.models.card import Card, DeckCard, DeckEntry


class Board(str, Enum):
    """Which part of a deck an entry belongs to."""

    MAIN = "main"
    SIDE = "side"
    MAYBE = "maybe"


class Visibility(str, Enum):
    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"


class MatchResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


@dataclass
class DeckSlot:
    """A card in a deck with its quantity and board."""

    card_id: str
    card_name: str
    quantity: int = 1
    board: Board = Board.MAIN

    def to_entry(self) -> DeckEntry:
        return DeckEntry(card_id=self.card_id, card_name=self.card_name, quantity=self.quantity)


@dataclass
class Deck:
    """
    A user's deck.

    Slots are keyed by (card_id, board) and keep insertion order. The
    commander is held separately and never counted among the slots.

    Attributes:
        format: Format tag used for legality and validation (e.g., "commander")
        slug: Share slug, unique across all decks
        visibility: Who may open the deck through its slug
        archived: Hidden from the owner's active deck list
        folder_id: Folder the deck is filed under, if any
    """

    user_id: str
    name: str
    format: str = "commander"
    description: str = ""
    commander_id: str | None = None
    commander_name: str | None = None
    slots: dict[tuple[str, Board], DeckSlot] = field(default_factory=dict)
    slug: str | None = None
    visibility: Visibility = Visibility.PRIVATE
    archived: bool = False
    power_level: int | None = None
    folder_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def add_card(
        self, card_id: str, card_name: str, quantity: int = 1, board: Board = Board.MAIN
    ) -> DeckSlot:
        """Add copies, merging into an existing slot on the same board."""
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        key = (card_id, board)
        slot = self.slots.get(key)
        if slot is None:
            slot = DeckSlot(card_id=card_id, card_name=card_name, quantity=quantity, board=board)
            self.slots[key] = slot
        else:
            slot.quantity += quantity
        return slot

    def remove_card(self, card_id: str, board: Board = Board.MAIN) -> DeckSlot | None:
        """
        Remove one copy. The slot disappears when its last copy goes.

        Returns the remaining slot, or None if removed or never present.
        """
        key = (card_id, board)
        slot = self.slots.get(key)
        if slot is None:
            return None

        if slot.quantity > 1:
            slot.quantity -= 1
            return slot

        del self.slots[key]
        return None

    def update_quantity(
        self, card_id: str, quantity: int, board: Board = Board.MAIN
    ) -> DeckSlot | None:
        """
        Set a slot's quantity; zero or less removes it.

        Raises:
            KeyError: If the card isn't on that board
        """
        key = (card_id, board)
        slot = self.slots[key]
        if quantity <= 0:
            del self.slots[key]
            return None

        slot.quantity = quantity
        return slot

    def set_commander(self, card: Card | None) -> None:
        if card is None:
            self.commander_id = None
            self.commander_name = None
            return
        self.commander_id = card.id
        self.commander_name = card.name

    def clear(self) -> None:
        self.slots.clear()
        self.commander_id = None
        self.commander_name = None

    def cards_on(self, board: Board) -> list[DeckSlot]:
        return [slot for slot in self.slots.values() if slot.board == board]

    def total_cards(self, board: Board = Board.MAIN) -> int:
        return sum(slot.quantity for slot in self.cards_on(board))

    def entries(self, board: Board = Board.MAIN) -> list[DeckEntry]:
        return [slot.to_entry() for slot in self.cards_on(board)]

    def card_ids(self) -> set[str]:
        """Every card ID referenced by the deck, commander included."""
        ids = {card_id for card_id, _ in self.slots}
        if self.commander_id:
            ids.add(self.commander_id)
        return ids

    def resolve(self, cards: Mapping[str, Card], board: Board = Board.MAIN) -> list[DeckCard]:
        """Pair slots on a board with card data; slots without data are dropped."""
        return [
            DeckCard(card=cards[slot.card_id], quantity=slot.quantity)
            for slot in self.cards_on(board)
            if slot.card_id in cards
        ]

    def average_mana_value(self, cards: Mapping[str, Card]) -> float:
        """Quantity-weighted mana value of main-deck cards with data."""
        resolved = self.resolve(cards)
        total = sum(dc.quantity for dc in resolved)
        if total == 0:
            return 0.0
        return sum(dc.card.cmc * dc.quantity for dc in resolved) / total

    def color_distribution(self, cards: Mapping[str, Card]) -> dict[str, int]:
        """Copies per color (by card colors, not identity)."""
        distribution = {"W": 0, "U": 0, "B": 0, "R": 0, "G": 0}
        for dc in self.resolve(cards):
            for color in dc.card.colors:
                if color in distribution:
                    distribution[color] += dc.quantity
        return distribution


@dataclass(frozen=True)
class DeckMatch:
    """A recorded game played with a deck. Never edited after creation."""

    deck_id: int
    result: MatchResult
    opponent_name: str | None = None
    opponent_archetype: str | None = None
    notes: str | None = None
    played_at: datetime | None = None
    id: int | None = None


@dataclass
class DeckFolder:
    """
    A named group of a user's decks.

    Decks point at their folder; deleting a folder leaves its decks unfiled.
    `position` orders folders in the owner's list.
    """

    user_id: str
    name: str
    description: str = ""
    color: str = "#6366f1"
    icon: str = "folder"
    position: int = 0
    id: int | None = None
