"""
Bulk collection import.

Parsed rows are matched to real printings through the card gateway, one
search per row, and added to the collection aggregate. Rows that can't be
matched are counted as failures with a message; they never abort the
import.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from manavault.config import settings
from manavault.models.card import Card
from manavault.models.collection import Collection, CollectionEntry
from manavault.parsers.collection_import import ImportRow
from manavault.services.card_gateway import CardDataError, CardGateway, CardNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of an import. `cards` holds the card data of matched rows."""

    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)


def search_query(row: ImportRow) -> str:
    """Exact-name Scryfall query, pinned to the row's set when it has one."""
    name = row.name.replace('"', "")
    query = f'!"{name}"'
    if row.set_code:
        query += f" set:{row.set_code}"
    return query


def _names_match(card: Card, name: str) -> bool:
    wanted = name.strip().lower()
    full = card.name.lower()
    return full == wanted or full.split(" // ")[0] == wanted


async def resolve_row(gateway: CardGateway, row: ImportRow) -> Card | None:
    """
    The printing a row refers to, or None if nothing matches.

    Rows naming both a set and a collector number are looked up as that
    exact printing first. A miss there (or a printing with a different
    name) falls back to an exact-name search.
    """
    if row.set_code and row.collector_number:
        try:
            card = await gateway.get_card_by_printing(row.set_code, row.collector_number)
        except CardNotFoundError:
            logger.debug("No printing %s/%s for %s", row.set_code, row.collector_number, row.name)
        else:
            if _names_match(card, row.name):
                return card
            logger.debug(
                "Printing %s/%s is %s, not %s",
                row.set_code,
                row.collector_number,
                card.name,
                row.name,
            )

    page = await gateway.search_cards(search_query(row))
    if not page.cards:
        return None

    if row.collector_number:
        for card in page.cards:
            if card.collector_number == row.collector_number:
                return card
    return page.cards[0]


def _entry_for(card: Card, row: ImportRow) -> CollectionEntry:
    return CollectionEntry(
        card_id=card.id,
        card_name=card.name,
        quantity=row.quantity,
        foil=row.foil,
        condition=row.condition,
        set_code=card.set_code,
        collector_number=card.collector_number,
        language=row.language,
        price_usd=card.price_usd,
        price_usd_foil=card.price_usd_foil,
        purchase_price=row.purchase_price,
        tags=list(row.tags),
    )


async def import_rows(
    collection: Collection,
    rows: Sequence[ImportRow],
    gateway: CardGateway,
    merge: bool = True,
) -> ImportResult:
    """
    Resolve rows and add them to a collection.

    Args:
        collection: Aggregate to add to (not saved here)
        rows: Parsed import rows
        gateway: Card data gateway used to match rows
        merge: Add to existing quantities; when False, an imported row
            replaces the quantities of an entry already present

    Returns:
        ImportResult with per-row failures
    """
    result = ImportResult()
    replaced: set[str] = set()
    batch_size = settings.bulk_batch_size
    batches = (len(rows) + batch_size - 1) // batch_size

    for start in range(0, len(rows), batch_size):
        for row in rows[start : start + batch_size]:
            try:
                card = await resolve_row(gateway, row)
            except (CardDataError, httpx.HTTPError) as e:
                result.failed += 1
                result.errors.append(f"{row.name}: {e}")
                continue

            if card is None:
                result.failed += 1
                result.errors.append(f"{row.name}: card not found")
                continue

            entry = _entry_for(card, row)
            if not merge and card.id not in replaced:
                collection.remove_card(card.id)
                replaced.add(card.id)
            collection.add_card(entry)
            result.cards.append(card)
            result.success += 1

        logger.info(
            "Import for %s: batch %d/%d done (%d ok, %d failed)",
            collection.user_id,
            start // batch_size + 1,
            batches,
            result.success,
            result.failed,
        )

    return result
