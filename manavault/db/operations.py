"""
Database CRUD operations.

Async functions for the card cache, collection entries, decks, deck
folders, match history, want lists and physical storage, plus conversions
between rows and domain models.
"""

import re
import secrets
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manavault.models.card import Card
from manavault.models.collection import CollectionEntry, Condition
from manavault.models.db import (
    CardCacheDB,
    CollectionEntryDB,
    DeckCardDB,
    DeckDB,
    DeckFolderDB,
    DeckMatchDB,
    StorageContainerDB,
    StorageItemDB,
    WantedCardDB,
)
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
from manavault.parsers.scryfall import card_to_payload, parse_card

# --- Card Cache Operations ---


async def get_cached_cards(session: AsyncSession, card_ids: Iterable[str]) -> dict[str, Card]:
    """Cached cards by ID. IDs not in the cache are simply absent."""
    ids = list(set(card_ids))
    if not ids:
        return {}

    result = await session.execute(select(CardCacheDB).where(CardCacheDB.id.in_(ids)))
    return {row.id: parse_card(row.payload) for row in result.scalars().all()}


async def upsert_cards(session: AsyncSession, cards: Iterable[Card]) -> int:
    """Insert or refresh cached card data. Returns the number of cards written."""
    by_id = {card.id: card for card in cards}
    if not by_id:
        return 0

    result = await session.execute(select(CardCacheDB).where(CardCacheDB.id.in_(list(by_id))))
    existing = {row.id: row for row in result.scalars().all()}

    for card_id, card in by_id.items():
        row = existing.get(card_id)
        if row is None:
            row = CardCacheDB(id=card_id)
            session.add(row)
        row.name = card.name
        row.payload = card_to_payload(card)
        row.price_usd = card.price_usd
        row.price_usd_foil = card.price_usd_foil

    await session.flush()
    return len(by_id)


# --- Collection Operations ---


async def get_collection_entries(session: AsyncSession, user_id: str) -> list[CollectionEntryDB]:
    """All entry rows for a user, ordered by card name."""
    result = await session.execute(
        select(CollectionEntryDB)
        .where(CollectionEntryDB.user_id == user_id)
        .order_by(CollectionEntryDB.card_name)
    )
    return list(result.scalars().all())


def entry_to_model(row: CollectionEntryDB) -> CollectionEntry:
    """Convert a database entry to a domain model."""
    return CollectionEntry(
        id=row.id,
        card_id=row.card_id,
        card_name=row.card_name,
        quantity=row.quantity,
        foil=row.foil,
        condition=Condition(row.condition),
        set_code=row.set_code,
        collector_number=row.collector_number,
        language=row.language,
        price_usd=row.price_usd,
        price_usd_foil=row.price_usd_foil,
        purchase_price=row.purchase_price,
        tags=list(row.tags or []),
        notes=row.notes,
        added_at=row.created_at,
    )


def _apply_entry(row: CollectionEntryDB, entry: CollectionEntry) -> None:
    row.card_name = entry.card_name
    row.quantity = entry.quantity
    row.foil = entry.foil
    row.condition = entry.condition.value
    row.set_code = entry.set_code
    row.collector_number = entry.collector_number
    row.language = entry.language
    row.price_usd = entry.price_usd
    row.price_usd_foil = entry.price_usd_foil
    row.purchase_price = entry.purchase_price
    row.tags = list(entry.tags)
    row.notes = entry.notes


async def sync_collection_entries(
    session: AsyncSession, user_id: str, entries: Sequence[CollectionEntry]
) -> list[CollectionEntryDB]:
    """
    Make the stored collection match `entries`.

    Existing rows are updated in place, new cards inserted and rows for
    cards no longer present deleted.
    """
    rows = {row.card_id: row for row in await get_collection_entries(session, user_id)}
    wanted = {entry.card_id: entry for entry in entries}

    for card_id, row in rows.items():
        if card_id not in wanted:
            await session.delete(row)

    synced = []
    for card_id, entry in wanted.items():
        row = rows.get(card_id)
        if row is None:
            row = CollectionEntryDB(user_id=user_id, card_id=card_id)
            session.add(row)
        _apply_entry(row, entry)
        synced.append(row)

    await session.flush()
    for row, entry in zip(synced, wanted.values(), strict=True):
        entry.id = row.id
    return synced


async def insert_collection_entries(
    session: AsyncSession, user_id: str, entries: Sequence[CollectionEntry]
) -> int:
    """Insert new entry rows without looking at what is already stored."""
    for entry in entries:
        row = CollectionEntryDB(user_id=user_id, card_id=entry.card_id)
        _apply_entry(row, entry)
        session.add(row)
    await session.flush()
    return len(entries)


async def delete_collection(session: AsyncSession, user_id: str) -> int:
    """
    Delete every entry in a user's collection.

    Returns the number of deleted rows.
    """
    result = await session.execute(
        delete(CollectionEntryDB).where(CollectionEntryDB.user_id == user_id)
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


async def get_collected_card_ids(session: AsyncSession) -> list[str]:
    """Distinct card IDs held in any collection."""
    result = await session.execute(
        select(CollectionEntryDB.card_id).distinct().order_by(CollectionEntryDB.card_id)
    )
    return list(result.scalars().all())


async def update_entry_prices(
    session: AsyncSession,
    card_id: str,
    price_usd: float | None,
    price_usd_foil: float | None,
) -> int:
    """Refresh the price snapshot on every entry for a card."""
    result = await session.execute(
        update(CollectionEntryDB)
        .where(CollectionEntryDB.card_id == card_id)
        .values(price_usd=price_usd, price_usd_foil=price_usd_foil)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


# --- Deck Operations ---


def generate_slug(name: str) -> str:
    """URL-safe share slug: the deck name plus a random suffix."""
    base = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:40] or "deck"
    return f"{base}-{secrets.token_hex(4)}"


async def get_deck(session: AsyncSession, user_id: str, deck_id: int) -> DeckDB | None:
    """Get a user's deck with its cards loaded. None if absent or not theirs."""
    result = await session.execute(
        select(DeckDB)
        .where(DeckDB.id == deck_id, DeckDB.user_id == user_id)
        .options(selectinload(DeckDB.cards))
    )
    return result.scalar_one_or_none()


async def get_deck_by_slug(session: AsyncSession, slug: str) -> DeckDB | None:
    result = await session.execute(
        select(DeckDB).where(DeckDB.slug == slug).options(selectinload(DeckDB.cards))
    )
    return result.scalar_one_or_none()


async def list_decks(
    session: AsyncSession,
    user_id: str,
    include_archived: bool = False,
    folder_id: int | None = None,
) -> list[DeckDB]:
    """A user's decks, most recently updated first, optionally from one folder."""
    query = (
        select(DeckDB)
        .where(DeckDB.user_id == user_id)
        .options(selectinload(DeckDB.cards))
        .order_by(DeckDB.updated_at.desc(), DeckDB.id.desc())
    )
    if not include_archived:
        query = query.where(DeckDB.archived.is_(False))
    if folder_id is not None:
        query = query.where(DeckDB.folder_id == folder_id)
    result = await session.execute(query)
    return list(result.scalars().all())


def deck_to_model(row: DeckDB) -> Deck:
    """Convert a database deck to a domain model."""
    deck = Deck(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        format=row.format,
        description=row.description,
        commander_id=row.commander_id,
        commander_name=row.commander_name,
        slug=row.slug,
        visibility=Visibility(row.visibility),
        archived=row.archived,
        power_level=row.power_level,
        folder_id=row.folder_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
    for card in row.cards:
        board = Board(card.board)
        deck.slots[(card.card_id, board)] = DeckSlot(
            card_id=card.card_id, card_name=card.card_name, quantity=card.quantity, board=board
        )
    return deck


def _apply_deck(row: DeckDB, deck: Deck) -> None:
    row.name = deck.name
    row.format = deck.format
    row.description = deck.description
    row.commander_id = deck.commander_id
    row.commander_name = deck.commander_name
    row.slug = deck.slug
    row.visibility = deck.visibility.value
    row.archived = deck.archived
    row.power_level = deck.power_level
    row.folder_id = deck.folder_id


async def create_deck(session: AsyncSession, deck: Deck) -> DeckDB:
    """Insert a new deck and its cards. Sets `deck.id`."""
    row = DeckDB(user_id=deck.user_id)
    _apply_deck(row, deck)
    row.cards = [
        DeckCardDB(
            card_id=slot.card_id,
            card_name=slot.card_name,
            quantity=slot.quantity,
            board=slot.board.value,
            position=position,
        )
        for position, slot in enumerate(deck.slots.values())
    ]
    session.add(row)
    await session.flush()
    deck.id = row.id
    return row


async def save_deck(session: AsyncSession, deck: Deck) -> DeckDB:
    """
    Write a deck's fields and cards back to its row.

    Raises:
        LookupError: If the deck has no row for its owner
    """
    if deck.id is None:
        raise LookupError("Deck has not been created yet")

    row = await get_deck(session, deck.user_id, deck.id)
    if row is None:
        raise LookupError(f"Deck {deck.id} not found for user {deck.user_id}")

    _apply_deck(row, deck)

    existing = {(card.card_id, Board(card.board)): card for card in row.cards}
    for key, card in existing.items():
        if key not in deck.slots:
            row.cards.remove(card)

    for position, (key, slot) in enumerate(deck.slots.items()):
        card = existing.get(key)
        if card is None:
            card = DeckCardDB(card_id=slot.card_id, board=slot.board.value)
            row.cards.append(card)
        card.card_name = slot.card_name
        card.quantity = slot.quantity
        card.position = position

    await session.flush()
    return row


async def delete_deck(session: AsyncSession, user_id: str, deck_id: int) -> bool:
    """
    Delete a deck with its cards and matches.

    Returns True if deleted, False if not found.
    """
    row = await get_deck(session, user_id, deck_id)
    if row is None:
        return False

    await session.execute(delete(DeckMatchDB).where(DeckMatchDB.deck_id == deck_id))
    await session.execute(
        update(StorageContainerDB)
        .where(StorageContainerDB.deck_id == deck_id)
        .values(deck_id=None)
    )
    await session.delete(row)
    return True


# --- Deck Folder Operations ---


def folder_to_model(row: DeckFolderDB) -> DeckFolder:
    return DeckFolder(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        color=row.color,
        icon=row.icon,
        position=row.position,
    )


async def list_folders(session: AsyncSession, user_id: str) -> list[DeckFolderDB]:
    result = await session.execute(
        select(DeckFolderDB)
        .where(DeckFolderDB.user_id == user_id)
        .order_by(DeckFolderDB.position, DeckFolderDB.id)
    )
    return list(result.scalars().all())


async def count_decks_by_folder(session: AsyncSession, user_id: str) -> dict[int, int]:
    """Deck counts per folder, archived decks included. Empty folders are absent."""
    result = await session.execute(
        select(DeckDB.folder_id, func.count(DeckDB.id))
        .where(DeckDB.user_id == user_id, DeckDB.folder_id.is_not(None))
        .group_by(DeckDB.folder_id)
    )
    return {folder_id: count for folder_id, count in result.all()}


async def get_folder(session: AsyncSession, user_id: str, folder_id: int) -> DeckFolderDB | None:
    result = await session.execute(
        select(DeckFolderDB).where(DeckFolderDB.id == folder_id, DeckFolderDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def create_folder(session: AsyncSession, folder: DeckFolder) -> DeckFolderDB:
    """Insert a folder after the user's existing ones. Sets `folder.id` and `folder.position`."""
    count = await session.scalar(
        select(func.count(DeckFolderDB.id)).where(DeckFolderDB.user_id == folder.user_id)
    )
    row = DeckFolderDB(
        user_id=folder.user_id,
        name=folder.name,
        description=folder.description,
        color=folder.color,
        icon=folder.icon,
        position=count or 0,
    )
    session.add(row)
    await session.flush()
    folder.id = row.id
    folder.position = row.position
    return row


async def update_folder(
    session: AsyncSession, user_id: str, folder_id: int, changes: dict[str, Any]
) -> DeckFolderDB | None:
    row = await get_folder(session, user_id, folder_id)
    if row is None:
        return None

    for name, value in changes.items():
        setattr(row, name, value)
    await session.flush()
    return row


async def delete_folder(session: AsyncSession, user_id: str, folder_id: int) -> bool:
    """
    Delete a folder. Its decks stay, unfiled.

    Returns True if deleted, False if not found.
    """
    row = await get_folder(session, user_id, folder_id)
    if row is None:
        return False

    await session.execute(
        update(DeckDB).where(DeckDB.folder_id == folder_id).values(folder_id=None)
    )
    await session.delete(row)
    return True


# --- Match Operations ---


def match_to_model(row: DeckMatchDB) -> DeckMatch:
    return DeckMatch(
        id=row.id,
        deck_id=row.deck_id,
        result=MatchResult(row.result),
        opponent_name=row.opponent_name,
        opponent_archetype=row.opponent_archetype,
        notes=row.notes,
        played_at=row.played_at,
    )


async def add_match(session: AsyncSession, match: DeckMatch) -> DeckMatchDB:
    row = DeckMatchDB(
        deck_id=match.deck_id,
        result=match.result.value,
        opponent_name=match.opponent_name,
        opponent_archetype=match.opponent_archetype,
        notes=match.notes,
    )
    if match.played_at is not None:
        row.played_at = match.played_at
    session.add(row)
    await session.flush()
    await session.refresh(row)
    return row


async def get_matches(session: AsyncSession, deck_id: int) -> list[DeckMatchDB]:
    """Match history for a deck, newest first."""
    result = await session.execute(
        select(DeckMatchDB)
        .where(DeckMatchDB.deck_id == deck_id)
        .order_by(DeckMatchDB.played_at.desc(), DeckMatchDB.id.desc())
    )
    return list(result.scalars().all())


async def delete_match(session: AsyncSession, deck_id: int, match_id: int) -> bool:
    result = await session.execute(
        delete(DeckMatchDB).where(DeckMatchDB.id == match_id, DeckMatchDB.deck_id == deck_id)
    )
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


# --- Want List Operations ---


def wanted_to_model(row: WantedCardDB) -> WantedCard:
    return WantedCard(
        id=row.id,
        user_id=row.user_id,
        card_id=row.card_id,
        card_name=row.card_name,
        list_kind=ListKind(row.list_kind),
        quantity=row.quantity,
        target_price=row.target_price,
        alert_enabled=row.alert_enabled,
        priority=row.priority,
        note=row.note,
    )


async def list_wanted_cards(
    session: AsyncSession, user_id: str, list_kind: ListKind | None = None
) -> list[WantedCardDB]:
    query = (
        select(WantedCardDB)
        .where(WantedCardDB.user_id == user_id)
        .order_by(WantedCardDB.card_name)
    )
    if list_kind is not None:
        query = query.where(WantedCardDB.list_kind == list_kind.value)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_wanted_card(session: AsyncSession, user_id: str, item_id: int) -> WantedCardDB | None:
    result = await session.execute(
        select(WantedCardDB).where(WantedCardDB.id == item_id, WantedCardDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def find_wanted_card(
    session: AsyncSession, user_id: str, card_id: str, list_kind: ListKind
) -> WantedCardDB | None:
    result = await session.execute(
        select(WantedCardDB).where(
            WantedCardDB.user_id == user_id,
            WantedCardDB.card_id == card_id,
            WantedCardDB.list_kind == list_kind.value,
        )
    )
    return result.scalar_one_or_none()


async def add_wanted_card(session: AsyncSession, item: WantedCard) -> WantedCardDB:
    """
    Add a card to a want list.

    Raises IntegrityError if the card is already on that list.
    """
    row = WantedCardDB(
        user_id=item.user_id,
        card_id=item.card_id,
        card_name=item.card_name,
        list_kind=item.list_kind.value,
        quantity=item.quantity,
        target_price=item.target_price,
        alert_enabled=item.alert_enabled,
        priority=item.priority,
        note=item.note,
    )
    session.add(row)
    await session.flush()
    return row


async def delete_wanted_card(session: AsyncSession, user_id: str, item_id: int) -> bool:
    row = await get_wanted_card(session, user_id, item_id)
    if row is None:
        return False

    await session.delete(row)
    return True


async def update_wanted_card(
    session: AsyncSession, user_id: str, item_id: int, changes: dict[str, Any]
) -> WantedCardDB | None:
    """Apply field changes to a want-list item. None if it doesn't exist."""
    row = await get_wanted_card(session, user_id, item_id)
    if row is None:
        return None

    for name, value in changes.items():
        if name == "list_kind":
            value = ListKind(value).value
        setattr(row, name, value)
    await session.flush()
    return row


# --- Storage Operations ---


def container_to_model(row: StorageContainerDB) -> StorageContainer:
    return StorageContainer(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        type=ContainerType(row.type),
        color=row.color,
        icon=row.icon,
        deck_id=row.deck_id,
        created_at=row.created_at,
    )


def item_to_model(row: StorageItemDB) -> StorageItem:
    return StorageItem(
        id=row.id,
        container_id=row.container_id,
        card_id=row.card_id,
        card_name=row.card_name,
        quantity=row.quantity,
        foil=row.foil,
        slot=row.slot,
    )


async def list_containers(session: AsyncSession, user_id: str) -> list[StorageContainerDB]:
    """A user's containers with their items, oldest first."""
    result = await session.execute(
        select(StorageContainerDB)
        .where(StorageContainerDB.user_id == user_id)
        .options(selectinload(StorageContainerDB.items))
        .order_by(StorageContainerDB.created_at, StorageContainerDB.id)
    )
    return list(result.scalars().all())


async def get_container(
    session: AsyncSession, user_id: str, container_id: int
) -> StorageContainerDB | None:
    result = await session.execute(
        select(StorageContainerDB)
        .where(StorageContainerDB.id == container_id, StorageContainerDB.user_id == user_id)
        .options(selectinload(StorageContainerDB.items))
    )
    return result.scalar_one_or_none()


async def create_container(
    session: AsyncSession, container: StorageContainer
) -> StorageContainerDB:
    """Insert a container. Sets `container.id`."""
    row = StorageContainerDB(
        user_id=container.user_id,
        name=container.name,
        type=container.type.value,
        color=container.color,
        icon=container.icon,
        deck_id=container.deck_id,
        items=[],
    )
    session.add(row)
    await session.flush()
    await session.refresh(row, attribute_names=["created_at"])
    container.id = row.id
    return row


async def update_container(
    session: AsyncSession, user_id: str, container_id: int, changes: dict[str, Any]
) -> StorageContainerDB | None:
    row = await get_container(session, user_id, container_id)
    if row is None:
        return None

    for name, value in changes.items():
        if name == "type":
            value = ContainerType(value).value
        setattr(row, name, value)
    await session.flush()
    return row


async def delete_container(session: AsyncSession, user_id: str, container_id: int) -> bool:
    """Delete a container and anything still in it. False if not found."""
    row = await get_container(session, user_id, container_id)
    if row is None:
        return False

    await session.delete(row)
    return True


async def count_assigned_copies(
    session: AsyncSession, user_id: str, card_id: str, foil: bool
) -> int:
    """Copies of a card (regular or foil) placed across all of a user's containers."""
    total = await session.scalar(
        select(func.coalesce(func.sum(StorageItemDB.quantity), 0))
        .select_from(StorageItemDB)
        .join(StorageContainerDB, StorageItemDB.container_id == StorageContainerDB.id)
        .where(
            StorageContainerDB.user_id == user_id,
            StorageItemDB.card_id == card_id,
            StorageItemDB.foil.is_(foil),
        )
    )
    return int(total or 0)


async def get_storage_item(
    session: AsyncSession, user_id: str, item_id: int
) -> StorageItemDB | None:
    result = await session.execute(
        select(StorageItemDB)
        .join(StorageContainerDB, StorageItemDB.container_id == StorageContainerDB.id)
        .where(StorageItemDB.id == item_id, StorageContainerDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def assign_storage_item(session: AsyncSession, item: StorageItem) -> StorageItemDB:
    """
    Place copies in a container.

    Copies of the same card, finish and slot merge into one item. Ownership
    limits are checked by the caller.
    """
    slot = StorageItemDB.slot.is_(None) if item.slot is None else StorageItemDB.slot == item.slot
    result = await session.execute(
        select(StorageItemDB).where(
            StorageItemDB.container_id == item.container_id,
            StorageItemDB.card_id == item.card_id,
            StorageItemDB.foil.is_(item.foil),
            slot,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = StorageItemDB(
            container_id=item.container_id,
            card_id=item.card_id,
            card_name=item.card_name,
            quantity=item.quantity,
            foil=item.foil,
            slot=item.slot,
        )
        session.add(row)
    else:
        row.quantity += item.quantity

    await session.flush()
    item.id = row.id
    return row


async def unassign_storage_item(
    session: AsyncSession, user_id: str, item_id: int, quantity: int | None = None
) -> int | None:
    """
    Take copies out of storage; all of them when `quantity` is None.

    Returns the copies left in the item (0 once it is removed), or None if
    the item doesn't exist.
    """
    row = await get_storage_item(session, user_id, item_id)
    if row is None:
        return None

    if quantity is None or quantity >= row.quantity:
        await session.delete(row)
        await session.flush()
        return 0

    row.quantity -= quantity
    await session.flush()
    return row.quantity
