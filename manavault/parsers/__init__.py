from manavault.parsers.collection_export import export_collection
from manavault.parsers.collection_import import (
    ImportFormatError,
    ImportRow,
    parse_card_line,
    parse_collection,
)
from manavault.parsers.decklist import ParsedDecklist, export_decklist, parse_decklist
from manavault.parsers.scryfall import CardParseError, parse_card, parse_card_list

__all__ = [
    "CardParseError",
    "ImportFormatError",
    "ImportRow",
    "ParsedDecklist",
    "export_collection",
    "export_decklist",
    "parse_card",
    "parse_card_line",
    "parse_card_list",
    "parse_collection",
    "parse_decklist",
]
