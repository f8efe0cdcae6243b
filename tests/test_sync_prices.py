"""Tests for the price sync job."""

import httpx
import pytest
import respx

from manavault.db.operations import (
    get_cached_cards,
    get_collection_entries,
    insert_collection_entries,
)
from manavault.jobs.sync_prices import sync_prices
from manavault.models.collection import CollectionEntry
from manavault.services.card_gateway import CardGateway

API = "https://api.scryfall.com"


@pytest.fixture
async def gateway():
    gateway = CardGateway(API, min_interval=0, retry_delay=0)
    yield gateway
    await gateway.aclose()


@pytest.fixture
async def collected(session_factory) -> None:
    async with session_factory() as session:
        await insert_collection_entries(
            session,
            "user-1",
            [
                CollectionEntry("bolt", "Lightning Bolt", price_usd=1.0),
                CollectionEntry("ring", "Sol Ring", price_usd=2.0),
            ],
        )
        await insert_collection_entries(session, "user-2", [CollectionEntry("bolt", "Bolt")])
        await session.commit()


class TestSyncPrices:
    @respx.mock
    async def test_updates_entries_and_cache(
        self, session_factory, gateway: CardGateway, collected, scryfall_card
    ) -> None:
        respx.get(f"{API}/cards/bolt").mock(
            return_value=httpx.Response(
                200,
                json=scryfall_card(
                    "bolt", "Lightning Bolt", prices={"usd": "3.00", "usd_foil": "12.00"}
                ),
            )
        )
        respx.get(f"{API}/cards/ring").mock(
            return_value=httpx.Response(
                200, json=scryfall_card("ring", "Sol Ring", prices={"usd": "1.25"})
            )
        )

        result = await sync_prices(session_factory, gateway, batch_size=1)

        assert (result.updated, result.failed) == (2, 0)
        async with session_factory() as session:
            user_1 = await get_collection_entries(session, "user-1")
            user_2 = await get_collection_entries(session, "user-2")
            cached = await get_cached_cards(session, ["bolt", "ring"])
        assert [(row.card_id, row.price_usd) for row in user_1] == [("bolt", 3.0), ("ring", 1.25)]
        assert user_2[0].price_usd_foil == 12.0
        assert set(cached) == {"bolt", "ring"}

    @respx.mock
    async def test_failures_keep_old_prices(
        self, session_factory, gateway: CardGateway, collected, scryfall_card
    ) -> None:
        respx.get(f"{API}/cards/bolt").mock(
            return_value=httpx.Response(200, json=scryfall_card("bolt", "Lightning Bolt"))
        )
        respx.get(f"{API}/cards/ring").mock(return_value=httpx.Response(404))

        result = await sync_prices(session_factory, gateway)

        assert result.updated == 1
        assert result.failed_ids == ["ring"]
        async with session_factory() as session:
            rows = await get_collection_entries(session, "user-1")
        assert [row.price_usd for row in rows] == [1.5, 2.0]

    async def test_nothing_collected(self, session_factory, gateway: CardGateway) -> None:
        result = await sync_prices(session_factory, gateway)

        assert (result.updated, result.failed) == (0, 0)

    @respx.mock
    async def test_malformed_card_is_skipped(
        self, session_factory, gateway: CardGateway, collected, scryfall_card
    ) -> None:
        """A card payload that can't be parsed counts as a failure, not a crash."""
        respx.get(f"{API}/cards/bolt").mock(
            return_value=httpx.Response(
                200, json=scryfall_card("bolt", "Lightning Bolt", prices={"usd": "3.00"})
            )
        )
        respx.get(f"{API}/cards/ring").mock(
            return_value=httpx.Response(200, json={"object": "card", "id": "ring"})
        )

        result = await sync_prices(session_factory, gateway)

        assert result.updated == 1
        assert result.failed_ids == ["ring"]
        async with session_factory() as session:
            rows = await get_collection_entries(session, "user-1")
        assert [row.price_usd for row in rows] == [3.0, 2.0]
