"""
Repositories over the database session.

Each repository keeps the aggregates it has loaded in memory for the life of
its session. Changes made to an aggregate stay in memory until `save()` is
called; nothing is written implicitly.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from manavault.db import operations as ops
from manavault.models.card import Card
from manavault.models.collection import Collection
from manavault.models.deck import Deck, Visibility
from manavault.services.card_gateway import CardGateway, CardNotFoundError

logger = logging.getLogger(__name__)


class CardRepository:
    """
    Card reference data: the local cache first, the gateway for misses.

    Cards fetched from the gateway are written to the cache.
    """

    def __init__(self, session: AsyncSession, gateway: CardGateway | None = None) -> None:
        self._session = session
        self._gateway = gateway
        self._cards: dict[str, Card] = {}

    async def get(self, card_id: str) -> Card | None:
        cards = await self.get_many([card_id])
        return cards.get(card_id)

    async def get_many(self, card_ids: Iterable[str]) -> dict[str, Card]:
        """
        Cards by ID. IDs that can't be found anywhere are left out.

        Without a gateway only cached cards are returned.
        """
        wanted = set(card_ids)
        missing = wanted - self._cards.keys()
        if missing:
            self._cards.update(await ops.get_cached_cards(self._session, missing))
            missing -= self._cards.keys()

        if missing and self._gateway is not None:
            fetched = []
            for card_id in sorted(missing):
                try:
                    fetched.append(await self._gateway.get_card(card_id))
                except CardNotFoundError:
                    logger.warning("Card %s not found in card data service", card_id)
            await self.remember(fetched)

        return {card_id: self._cards[card_id] for card_id in wanted if card_id in self._cards}

    async def cached(self, card_ids: Iterable[str]) -> dict[str, Card]:
        """Cards by ID from the cache only; never calls the gateway."""
        wanted = set(card_ids)
        missing = wanted - self._cards.keys()
        if missing:
            self._cards.update(await ops.get_cached_cards(self._session, missing))
        return {card_id: self._cards[card_id] for card_id in wanted if card_id in self._cards}

    async def remember(self, cards: Iterable[Card]) -> None:
        """Add cards to the cache (memory and database)."""
        cards = list(cards)
        if not cards:
            return
        await ops.upsert_cards(self._session, cards)
        self._cards.update((card.id, card) for card in cards)


class CollectionRepository:
    """Loads and saves whole collections, one per user."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._collections: dict[str, Collection] = {}

    async def load(self, user_id: str) -> Collection:
        """The user's collection; empty if they have none yet."""
        cached = self._collections.get(user_id)
        if cached is not None:
            return cached

        rows = await ops.get_collection_entries(self._session, user_id)
        collection = Collection(
            user_id=user_id, entries={row.card_id: ops.entry_to_model(row) for row in rows}
        )
        self._collections[user_id] = collection
        return collection

    async def save(self, collection: Collection) -> None:
        """Write the collection back, inserting, updating and deleting rows to match."""
        await ops.sync_collection_entries(
            self._session, collection.user_id, list(collection.entries.values())
        )
        self._collections[collection.user_id] = collection

    async def clear(self, user_id: str) -> int:
        """Delete every entry immediately. Returns the number removed."""
        removed = await ops.delete_collection(self._session, user_id)
        self._collections[user_id] = Collection(user_id=user_id)
        return removed

    def forget(self, user_id: str) -> None:
        """Drop the cached aggregate so the next load reads the database."""
        self._collections.pop(user_id, None)


class DeckRepository:
    """Loads and saves decks. Match history is handled by `db.operations` directly."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._decks: dict[int, Deck] = {}

    def _cache(self, deck: Deck) -> Deck:
        if deck.id is not None:
            self._decks[deck.id] = deck
        return deck

    async def list_for_user(
        self, user_id: str, include_archived: bool = False, folder_id: int | None = None
    ) -> list[Deck]:
        rows = await ops.list_decks(self._session, user_id, include_archived, folder_id)
        return [self._decks.get(row.id) or self._cache(ops.deck_to_model(row)) for row in rows]

    async def get(self, user_id: str, deck_id: int) -> Deck | None:
        cached = self._decks.get(deck_id)
        if cached is not None and cached.user_id == user_id:
            return cached

        row = await ops.get_deck(self._session, user_id, deck_id)
        if row is None:
            return None
        return self._cache(ops.deck_to_model(row))

    async def get_shared(self, slug: str) -> Deck | None:
        """A deck by share slug, unless its owner made it private."""
        row = await ops.get_deck_by_slug(self._session, slug)
        if row is None or row.visibility == Visibility.PRIVATE.value:
            return None
        return ops.deck_to_model(row)

    async def create(self, deck: Deck) -> Deck:
        """Insert a new deck, giving it a share slug if it has none."""
        if deck.slug is None:
            deck.slug = ops.generate_slug(deck.name)
        row = await ops.create_deck(self._session, deck)
        logger.info("Created deck %d '%s' for user %s", row.id, deck.name, deck.user_id)
        return self._cache(deck)

    async def save(self, deck: Deck) -> None:
        """
        Write a loaded deck back.

        Raises:
            LookupError: If the deck no longer exists
        """
        await ops.save_deck(self._session, deck)
        self._cache(deck)

    async def delete(self, user_id: str, deck_id: int) -> bool:
        deleted = await ops.delete_deck(self._session, user_id, deck_id)
        if deleted:
            self._decks.pop(deck_id, None)
        return deleted
