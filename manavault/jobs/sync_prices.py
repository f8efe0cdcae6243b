"""
Scheduled job to refresh card prices.

Fetches every card held in any collection from Scryfall, one at a time
through the gateway, refreshes the card cache and copies the new prices
onto collection entries. Writes are committed per batch.

Run as a module:
    python -m manavault.jobs.sync_prices
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.config import settings
from manavault.db.database import async_session_factory
from manavault.db.operations import get_collected_card_ids, update_entry_prices, upsert_cards
from manavault.models.card import Card
from manavault.parsers.scryfall import CardParseError
from manavault.services.card_gateway import CardDataError, CardGateway

logger = logging.getLogger(__name__)


@dataclass
class PriceSyncResult:
    updated: int = 0
    failed: int = 0
    failed_ids: list[str] = field(default_factory=list)


async def _write_batch(session_factory: Callable[[], AsyncSession], cards: list[Card]) -> int:
    async with session_factory() as session:
        await upsert_cards(session, cards)
        rows = 0
        for card in cards:
            rows += await update_entry_prices(session, card.id, card.price_usd, card.price_usd_foil)
        await session.commit()
    return rows


async def sync_prices(
    session_factory: Callable[[], AsyncSession],
    gateway: CardGateway,
    batch_size: int | None = None,
) -> PriceSyncResult:
    """
    Refresh prices for every collected card.

    Cards that fail to fetch are logged and skipped; they keep their old
    price snapshot.

    Args:
        session_factory: Creates database sessions
        gateway: Card data gateway
        batch_size: Cards per committed batch, defaults to settings

    Returns:
        Counts of updated and failed cards
    """
    size = batch_size or settings.bulk_batch_size

    async with session_factory() as session:
        card_ids = await get_collected_card_ids(session)

    logger.info("Syncing prices for %d cards", len(card_ids))
    result = PriceSyncResult()

    for start in range(0, len(card_ids), size):
        fetched: list[Card] = []
        for card_id in card_ids[start : start + size]:
            try:
                fetched.append(await gateway.get_card(card_id))
            except (CardDataError, CardParseError, httpx.HTTPError) as e:
                logger.warning("Price sync skipped %s: %s", card_id, e)
                result.failed += 1
                result.failed_ids.append(card_id)

        if fetched:
            rows = await _write_batch(session_factory, fetched)
            result.updated += len(fetched)
            logger.info(
                "Price batch %d: %d cards, %d entries updated",
                start // size + 1,
                len(fetched),
                rows,
            )

    logger.info("Price sync complete: %d updated, %d failed", result.updated, result.failed)
    return result


async def run_price_sync() -> PriceSyncResult:
    async with CardGateway() as gateway:
        return await sync_prices(async_session_factory, gateway)


def main() -> None:
    """CLI entry point for running the price sync."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_price_sync())


if __name__ == "__main__":
    main()
