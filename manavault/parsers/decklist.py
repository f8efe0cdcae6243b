"""
Decklist text import and export.

Import accepts the common paste formats: one card per line with an
optional quantity ("4 Card", "4x Card", "Card 4"), optional "(SET) 123"
printing info, and section markers:

    Commander        -> commander
    Deck / Main      -> main board
    Sideboard / SB:  -> sideboard ("SB:" may also prefix a single line)
    Companion        -> sideboard
    Maybeboard       -> maybe board

Export formats:
    text     "4x Card" with a "Sideboard:" section
    arena    "Deck" / "Sideboard" headers, "4 Card"
    mtgo     "4 Card" with "SB: 4 Card" sideboard lines
    moxfield "1 Card (SET) 123"
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from manavault.models.card import Card
from manavault.models.deck import Board, Deck, DeckSlot
from manavault.parsers.collection_import import parse_card_line

DeckExportFormat = Literal["text", "arena", "mtgo", "moxfield"]

SECTION_MARKERS: dict[str, Board | None] = {
    "commander": None,
    "deck": Board.MAIN,
    "main": Board.MAIN,
    "mainboard": Board.MAIN,
    "sideboard": Board.SIDE,
    "sb": Board.SIDE,
    "companion": Board.SIDE,
    "maybeboard": Board.MAYBE,
    "maybe": Board.MAYBE,
}


@dataclass(frozen=True, slots=True)
class DecklistLine:
    """One parsed card line with the board it belongs to."""

    name: str
    quantity: int
    board: Board = Board.MAIN
    set_code: str = ""
    collector_number: str = ""


@dataclass
class ParsedDecklist:
    """Result of parsing decklist text. Names are not yet resolved to cards."""

    commanders: list[DecklistLine] = field(default_factory=list)
    cards: list[DecklistLine] = field(default_factory=list)

    def on_board(self, board: Board) -> list[DecklistLine]:
        return [line for line in self.cards if line.board == board]

    @property
    def total_cards(self) -> int:
        return sum(line.quantity for line in self.cards)


def parse_decklist(text: str) -> ParsedDecklist:
    """
    Parse pasted decklist text.

    Unparseable lines and comments ("//", "#") are skipped. Foil flags are
    accepted and ignored.
    """
    parsed = ParsedDecklist()
    board: Board | None = Board.MAIN

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue

        marker = line.lower().rstrip(":").strip()
        if marker in SECTION_MARKERS:
            board = SECTION_MARKERS[marker]
            continue

        line_board = board
        if line[:3].upper() == "SB:":
            line_board = Board.SIDE
            line = line[3:].strip()

        row = parse_card_line(line)
        if row is None:
            continue

        entry = DecklistLine(
            name=row.name,
            quantity=row.total,
            board=line_board or Board.MAIN,
            set_code=row.set_code,
            collector_number=row.collector_number,
        )
        if line_board is None:
            parsed.commanders.append(entry)
        else:
            parsed.cards.append(entry)

    return parsed


def _lines(slots: list[DeckSlot], template: str) -> list[str]:
    return [template.format(qty=slot.quantity, name=slot.card_name) for slot in slots]


def export_text(deck: Deck) -> str:
    lines = []
    if deck.commander_name:
        lines += ["Commander:", f"1x {deck.commander_name}", ""]
    lines += _lines(deck.cards_on(Board.MAIN), "{qty}x {name}")

    sideboard = deck.cards_on(Board.SIDE)
    if sideboard:
        lines += ["", "Sideboard:"] + _lines(sideboard, "{qty}x {name}")
    return "\n".join(lines) + "\n"


def export_arena(deck: Deck) -> str:
    lines = []
    if deck.commander_name:
        lines += ["Commander", f"1 {deck.commander_name}", ""]
    lines += ["Deck"] + _lines(deck.cards_on(Board.MAIN), "{qty} {name}")

    sideboard = deck.cards_on(Board.SIDE)
    if sideboard:
        lines += ["", "Sideboard"] + _lines(sideboard, "{qty} {name}")
    return "\n".join(lines) + "\n"


def export_mtgo(deck: Deck) -> str:
    lines = _lines(deck.cards_on(Board.MAIN), "{qty} {name}")

    sideboard = deck.cards_on(Board.SIDE)
    if sideboard:
        lines += [""] + _lines(sideboard, "SB: {qty} {name}")
    return "\n".join(lines) + "\n"


def export_moxfield(deck: Deck, cards: Mapping[str, Card]) -> str:
    """Moxfield text with printings; cards without data get a bare line."""

    def line(card_id: str, name: str, quantity: int) -> str:
        card = cards.get(card_id)
        if card is None or not card.set_code:
            return f"{quantity} {name}"
        return f"{quantity} {name} ({card.set_code.upper()}) {card.collector_number}".rstrip()

    lines = []
    if deck.commander_id and deck.commander_name:
        lines += ["Commander", line(deck.commander_id, deck.commander_name, 1), ""]
    lines += [line(s.card_id, s.card_name, s.quantity) for s in deck.cards_on(Board.MAIN)]

    sideboard = deck.cards_on(Board.SIDE)
    if sideboard:
        lines += ["", "SIDEBOARD:"] + [line(s.card_id, s.card_name, s.quantity) for s in sideboard]
    return "\n".join(lines) + "\n"


def export_decklist(
    deck: Deck, format_name: DeckExportFormat, cards: Mapping[str, Card] | None = None
) -> str:
    """
    Serialize a deck's main and side boards.

    Raises:
        ValueError: For an unknown format
    """
    if format_name == "text":
        return export_text(deck)
    if format_name == "arena":
        return export_arena(deck)
    if format_name == "mtgo":
        return export_mtgo(deck)
    if format_name == "moxfield":
        return export_moxfield(deck, cards or {})
    raise ValueError(f"Unknown deck export format: {format_name}")
