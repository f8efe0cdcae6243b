"""Tests for database CRUD operations."""

import re
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.db.operations import (
    add_match,
    add_wanted_card,
    assign_storage_item,
    count_assigned_copies,
    count_decks_by_folder,
    create_container,
    create_deck,
    create_folder,
    deck_to_model,
    delete_collection,
    delete_deck,
    delete_folder,
    delete_match,
    delete_wanted_card,
    find_wanted_card,
    generate_slug,
    get_cached_cards,
    get_collected_card_ids,
    get_collection_entries,
    get_container,
    get_deck,
    get_deck_by_slug,
    get_matches,
    insert_collection_entries,
    list_decks,
    list_folders,
    list_wanted_cards,
    save_deck,
    sync_collection_entries,
    unassign_storage_item,
    update_entry_prices,
    update_folder,
    update_wanted_card,
    upsert_cards,
)
from manavault.models.collection import CollectionEntry, Condition
from manavault.models.deck import Board, Deck, DeckFolder, DeckMatch, MatchResult, Visibility
from manavault.models.storage import ContainerType, StorageContainer, StorageItem
from manavault.models.wanted import ListKind, WantedCard


def _deck(**fields) -> Deck:
    deck = Deck(user_id=fields.pop("user_id", "user-1"), name=fields.pop("name", "Burn"), **fields)
    deck.add_card("bolt", "Lightning Bolt", 4)
    deck.add_card("swiftspear", "Monastery Swiftspear", 4)
    deck.add_card("abrade", "Abrade", 2, Board.SIDE)
    return deck


class TestCardCache:
    async def test_upsert_and_get(self, session: AsyncSession, make_card) -> None:
        bolt = make_card("Lightning Bolt", id="bolt", price_usd=1.0, colors=["R"])
        ring = make_card("Sol Ring", id="ring", type_line="Artifact")

        assert await upsert_cards(session, [bolt, ring]) == 2
        cached = await get_cached_cards(session, ["bolt", "ring", "missing"])

        assert set(cached) == {"bolt", "ring"}
        assert cached["bolt"] == bolt

    async def test_upsert_refreshes_existing(self, session: AsyncSession, make_card) -> None:
        await upsert_cards(session, [make_card("Lightning Bolt", id="bolt", price_usd=1.0)])
        await upsert_cards(session, [make_card("Lightning Bolt", id="bolt", price_usd=2.5)])

        cached = await get_cached_cards(session, ["bolt"])

        assert cached["bolt"].price_usd == 2.5

    async def test_empty_inputs(self, session: AsyncSession) -> None:
        assert await upsert_cards(session, []) == 0
        assert await get_cached_cards(session, []) == {}


class TestCollectionEntries:
    async def test_sync_inserts_updates_and_deletes(self, session: AsyncSession) -> None:
        await sync_collection_entries(
            session,
            "user-1",
            [
                CollectionEntry("bolt", "Lightning Bolt", quantity=2),
                CollectionEntry("ring", "Sol Ring", foil=1),
            ],
        )

        entries = [
            CollectionEntry("bolt", "Lightning Bolt", quantity=4, condition=Condition.PLAYED),
            CollectionEntry("elves", "Llanowar Elves", tags=["elf"]),
        ]
        await sync_collection_entries(session, "user-1", entries)

        rows = await get_collection_entries(session, "user-1")
        assert [(r.card_id, r.quantity) for r in rows] == [("bolt", 4), ("elves", 1)]
        assert rows[0].condition == "played"
        assert rows[1].tags == ["elf"]
        assert all(entry.id is not None for entry in entries)

    async def test_users_are_isolated(self, session: AsyncSession) -> None:
        await insert_collection_entries(session, "user-1", [CollectionEntry("bolt", "Bolt")])
        await insert_collection_entries(session, "user-2", [CollectionEntry("bolt", "Bolt")])

        assert await delete_collection(session, "user-1") == 1
        assert await get_collection_entries(session, "user-1") == []
        assert len(await get_collection_entries(session, "user-2")) == 1

    async def test_collected_ids_and_price_update(self, session: AsyncSession) -> None:
        await insert_collection_entries(
            session, "user-1", [CollectionEntry("bolt", "Bolt"), CollectionEntry("ring", "Ring")]
        )
        await insert_collection_entries(session, "user-2", [CollectionEntry("bolt", "Bolt")])

        assert await get_collected_card_ids(session) == ["bolt", "ring"]
        assert await update_entry_prices(session, "bolt", 1.25, 9.0) == 2

        session.expire_all()
        rows = await get_collection_entries(session, "user-2")
        assert (rows[0].price_usd, rows[0].price_usd_foil) == (1.25, 9.0)

    async def test_duplicate_card_rejected(self, session: AsyncSession) -> None:
        entry = CollectionEntry("bolt", "Bolt")

        with pytest.raises(IntegrityError):
            await insert_collection_entries(session, "user-1", [entry, entry])


class TestDecks:
    def test_generate_slug(self) -> None:
        slug = generate_slug("Mono-Red Burn!!")

        assert re.fullmatch(r"mono-red-burn-[0-9a-f]{8}", slug)
        assert generate_slug("!!!").startswith("deck-")

    async def test_create_and_load(self, session_factory) -> None:
        deck = _deck(format="modern", slug="burn-1", visibility=Visibility.PUBLIC)
        async with session_factory() as session:
            await create_deck(session, deck)
            await session.commit()

        async with session_factory() as session:
            row = await get_deck(session, "user-1", deck.id)
            loaded = deck_to_model(row)

        assert loaded.id == deck.id
        assert loaded.format == "modern"
        assert loaded.visibility == Visibility.PUBLIC
        assert list(loaded.slots) == list(deck.slots)
        assert loaded.created_at is not None

    async def test_get_deck_checks_owner(self, session: AsyncSession) -> None:
        deck = _deck()
        await create_deck(session, deck)

        assert await get_deck(session, "someone-else", deck.id) is None

    async def test_save_rewrites_cards_in_order(self, session_factory) -> None:
        deck = _deck()
        async with session_factory() as session:
            await create_deck(session, deck)
            await session.commit()

        deck.remove_card("abrade", Board.SIDE)
        deck.remove_card("abrade", Board.SIDE)
        deck.update_quantity("bolt", 3)
        deck.add_card("guide", "Goblin Guide", 4)
        deck.name = "Burn v2"
        async with session_factory() as session:
            await save_deck(session, deck)
            await session.commit()

        async with session_factory() as session:
            loaded = deck_to_model(await get_deck(session, "user-1", deck.id))

        assert loaded.name == "Burn v2"
        assert [(s.card_id, s.quantity) for s in loaded.slots.values()] == [
            ("bolt", 3),
            ("swiftspear", 4),
            ("guide", 4),
        ]

    async def test_save_unknown_deck(self, session: AsyncSession) -> None:
        with pytest.raises(LookupError):
            await save_deck(session, _deck())

        deck = _deck()
        deck.id = 999
        with pytest.raises(LookupError):
            await save_deck(session, deck)

    async def test_list_hides_archived(self, session: AsyncSession) -> None:
        await create_deck(session, _deck(name="Active"))
        await create_deck(session, _deck(name="Old", archived=True))
        await create_deck(session, _deck(name="Theirs", user_id="user-2"))

        active = await list_decks(session, "user-1")
        everything = await list_decks(session, "user-1", include_archived=True)

        assert [row.name for row in active] == ["Active"]
        assert {row.name for row in everything} == {"Active", "Old"}

    async def test_get_by_slug(self, session: AsyncSession) -> None:
        await create_deck(session, _deck(slug="burn-abc"))

        row = await get_deck_by_slug(session, "burn-abc")

        assert row is not None
        assert len(row.cards) == 3
        assert await get_deck_by_slug(session, "nope") is None

    async def test_delete_removes_matches(self, session: AsyncSession) -> None:
        deck = _deck()
        await create_deck(session, deck)
        await add_match(session, DeckMatch(deck_id=deck.id, result=MatchResult.WIN))

        assert not await delete_deck(session, "user-2", deck.id)
        assert await delete_deck(session, "user-1", deck.id)
        assert await get_matches(session, deck.id) == []
        assert await get_deck(session, "user-1", deck.id) is None


class TestMatches:
    async def test_history_is_newest_first(self, session: AsyncSession) -> None:
        deck = _deck()
        await create_deck(session, deck)
        await add_match(
            session,
            DeckMatch(deck_id=deck.id, result=MatchResult.LOSS, played_at=datetime(2024, 1, 1)),
        )
        await add_match(
            session,
            DeckMatch(
                deck_id=deck.id,
                result=MatchResult.WIN,
                opponent_name="Alex",
                played_at=datetime(2024, 2, 1),
            ),
        )

        rows = await get_matches(session, deck.id)

        assert [row.result for row in rows] == ["win", "loss"]
        assert rows[0].opponent_name == "Alex"

    async def test_delete_match_scoped_to_deck(self, session: AsyncSession) -> None:
        deck = _deck()
        await create_deck(session, deck)
        match = await add_match(session, DeckMatch(deck_id=deck.id, result=MatchResult.DRAW))

        assert not await delete_match(session, deck.id + 1, match.id)
        assert await delete_match(session, deck.id, match.id)
        assert await get_matches(session, deck.id) == []


class TestWantedCards:
    async def test_add_find_and_list(self, session: AsyncSession) -> None:
        await add_wanted_card(session, WantedCard("user-1", "ring", "Sol Ring", target_price=1.0))
        await add_wanted_card(
            session, WantedCard("user-1", "bolt", "Lightning Bolt", list_kind=ListKind.WATCHLIST)
        )

        found = await find_wanted_card(session, "user-1", "ring", ListKind.WISHLIST)
        wishlist = await list_wanted_cards(session, "user-1", ListKind.WISHLIST)
        everything = await list_wanted_cards(session, "user-1")

        assert found is not None and found.target_price == 1.0
        assert [row.card_id for row in wishlist] == ["ring"]
        assert [row.card_id for row in everything] == ["bolt", "ring"]

    async def test_same_card_on_two_lists(self, session: AsyncSession) -> None:
        await add_wanted_card(session, WantedCard("user-1", "ring", "Sol Ring"))
        await add_wanted_card(
            session, WantedCard("user-1", "ring", "Sol Ring", list_kind=ListKind.SHOPPING)
        )

        with pytest.raises(IntegrityError):
            await add_wanted_card(session, WantedCard("user-1", "ring", "Sol Ring"))

    async def test_update_and_delete(self, session: AsyncSession) -> None:
        row = await add_wanted_card(session, WantedCard("user-1", "ring", "Sol Ring"))

        updated = await update_wanted_card(
            session, "user-1", row.id, {"list_kind": "shopping", "quantity": 3}
        )

        assert updated is not None
        assert (updated.list_kind, updated.quantity) == ("shopping", 3)
        assert await update_wanted_card(session, "user-2", row.id, {"quantity": 1}) is None
        assert not await delete_wanted_card(session, "user-2", row.id)
        assert await delete_wanted_card(session, "user-1", row.id)
        assert await list_wanted_cards(session, "user-1") == []


class TestDeckFolders:
    async def test_create_appends_and_counts_decks(self, session: AsyncSession) -> None:
        competitive = DeckFolder("user-1", "Competitive")
        casual = DeckFolder("user-1", "Casual", color="#22c55e")
        await create_folder(session, competitive)
        await create_folder(session, casual)
        await create_folder(session, DeckFolder("user-2", "Theirs"))
        await create_deck(session, _deck(name="Burn", folder_id=competitive.id))
        await create_deck(session, _deck(name="Storm", folder_id=competitive.id, archived=True))
        await create_deck(session, _deck(name="Loose"))

        rows = await list_folders(session, "user-1")
        counts = await count_decks_by_folder(session, "user-1")
        filed = await list_decks(session, "user-1", include_archived=True, folder_id=competitive.id)

        assert [(row.name, row.position) for row in rows] == [("Competitive", 0), ("Casual", 1)]
        assert casual.position == 1
        assert counts == {competitive.id: 2}
        assert {row.name for row in filed} == {"Burn", "Storm"}

    async def test_update_scoped_to_owner(self, session: AsyncSession) -> None:
        folder = DeckFolder("user-1", "Cube")
        await create_folder(session, folder)

        updated = await update_folder(session, "user-1", folder.id, {"name": "Vintage Cube"})

        assert updated is not None and updated.name == "Vintage Cube"
        assert await update_folder(session, "user-2", folder.id, {"name": "Mine"}) is None

    async def test_delete_keeps_decks_unfiled(self, session_factory) -> None:
        folder = DeckFolder("user-1", "Old")
        deck = _deck()
        async with session_factory() as session:
            await create_folder(session, folder)
            deck.folder_id = folder.id
            await create_deck(session, deck)
            await session.commit()

        async with session_factory() as session:
            assert not await delete_folder(session, "user-2", folder.id)
            assert await delete_folder(session, "user-1", folder.id)
            await session.commit()

        async with session_factory() as session:
            loaded = deck_to_model(await get_deck(session, "user-1", deck.id))
            assert await list_folders(session, "user-1") == []
        assert loaded.folder_id is None


class TestStorage:
    async def test_assign_merges_same_card_finish_and_slot(self, session: AsyncSession) -> None:
        box = StorageContainer("user-1", "Red box")
        await create_container(session, box)

        first = await assign_storage_item(session, StorageItem(box.id, "bolt", "Lightning Bolt", 2))
        merged = await assign_storage_item(session, StorageItem(box.id, "bolt", "Lightning Bolt"))
        foil = await assign_storage_item(
            session, StorageItem(box.id, "bolt", "Lightning Bolt", 1, foil=True)
        )
        slotted = await assign_storage_item(
            session, StorageItem(box.id, "bolt", "Lightning Bolt", 1, slot="Row B")
        )

        assert merged.id == first.id
        assert merged.quantity == 3
        assert len({first.id, foil.id, slotted.id}) == 3

    async def test_assigned_copies_span_containers(self, session: AsyncSession) -> None:
        box = StorageContainer("user-1", "Box")
        binder = StorageContainer("user-1", "Binder", type=ContainerType.BINDER)
        theirs = StorageContainer("user-2", "Their box")
        for container in (box, binder, theirs):
            await create_container(session, container)
        await assign_storage_item(session, StorageItem(box.id, "ring", "Sol Ring", 2))
        await assign_storage_item(session, StorageItem(binder.id, "ring", "Sol Ring", 1))
        await assign_storage_item(session, StorageItem(binder.id, "ring", "Sol Ring", 1, True))
        await assign_storage_item(session, StorageItem(theirs.id, "ring", "Sol Ring", 5))

        assert await count_assigned_copies(session, "user-1", "ring", foil=False) == 3
        assert await count_assigned_copies(session, "user-1", "ring", foil=True) == 1
        assert await count_assigned_copies(session, "user-1", "bolt", foil=False) == 0

    async def test_unassign(self, session: AsyncSession) -> None:
        box = StorageContainer("user-1", "Box")
        await create_container(session, box)
        row = await assign_storage_item(session, StorageItem(box.id, "ring", "Sol Ring", 3))

        assert await unassign_storage_item(session, "user-2", row.id, 1) is None
        assert await unassign_storage_item(session, "user-1", row.id, 1) == 2
        assert await unassign_storage_item(session, "user-1", row.id) == 0
        assert await unassign_storage_item(session, "user-1", row.id) is None

    async def test_deleting_deck_unlinks_container(self, session_factory) -> None:
        deck = _deck()
        deckbox = StorageContainer("user-1", "Burn box", type=ContainerType.DECKBOX)
        async with session_factory() as session:
            await create_deck(session, deck)
            deckbox.deck_id = deck.id
            await create_container(session, deckbox)
            await session.commit()

        async with session_factory() as session:
            await delete_deck(session, "user-1", deck.id)
            await session.commit()

        async with session_factory() as session:
            row = await get_container(session, "user-1", deckbox.id)
        assert row is not None
        assert row.deck_id is None
        assert row.created_at is not None
