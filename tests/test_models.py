"""Tests for collection, deck and want-list models."""

import pytest

from manavault.models.collection import (
    Collection,
    CollectionEntry,
    CollectionFilter,
    Condition,
)
from manavault.models.deck import Board, Deck
from manavault.models.wanted import WantedCard


@pytest.fixture
def collection() -> Collection:
    collection = Collection(user_id="user-1")
    collection.add_card(
        CollectionEntry("bolt", "Lightning Bolt", quantity=4, set_code="lea", price_usd=300.0)
    )
    collection.add_card(
        CollectionEntry("ring", "Sol Ring", quantity=1, foil=1, set_code="c21", price_usd=1.0)
    )
    collection.add_card(
        CollectionEntry(
            "elves",
            "Llanowar Elves",
            quantity=2,
            set_code="m19",
            condition=Condition.PLAYED,
            price_usd=0.25,
        )
    )
    return collection


class TestCollection:
    def test_add_merges_quantities(self, collection: Collection) -> None:
        entry = collection.add_card(CollectionEntry("bolt", "Lightning Bolt", quantity=1, foil=2))

        assert entry.quantity == 5
        assert entry.foil == 2
        assert collection.unique_cards() == 3

    def test_added_entry_does_not_share_tags(self) -> None:
        tags = ["edh"]
        collection = Collection(user_id="u")

        collection.add_card(CollectionEntry("ring", "Sol Ring", tags=tags))
        collection.add_tag("ring", "staple")

        assert tags == ["edh"]

    def test_totals(self, collection: Collection) -> None:
        assert collection.total_cards() == 8
        assert collection.total_value() == pytest.approx(1202.5)

    def test_update_quantity_to_zero_removes(self, collection: Collection) -> None:
        assert collection.update_quantity("ring", 0, 0) is None
        assert collection.get("ring") is None

    def test_update_quantity_unknown_card(self, collection: Collection) -> None:
        with pytest.raises(KeyError):
            collection.update_quantity("missing", 1)

    def test_remove_card(self, collection: Collection) -> None:
        assert collection.remove_card("bolt")
        assert not collection.remove_card("bolt")

    def test_tags_are_unique(self, collection: Collection) -> None:
        collection.add_tag("bolt", "trade")
        collection.add_tag("bolt", "trade")
        collection.remove_tag("bolt", "missing")

        assert collection.get("bolt").tags == ["trade"]

    def test_top_value_cards(self, collection: Collection) -> None:
        top = collection.top_value_cards(limit=2)

        assert [e.card_id for e in top] == ["bolt", "ring"]

    def test_cards_by_set_and_color(self, collection: Collection, make_card) -> None:
        cards = {"elves": make_card("Llanowar Elves", id="elves", colors=["G"])}

        assert [e.card_id for e in collection.cards_by_set("LEA")] == ["bolt"]
        assert [e.card_id for e in collection.cards_by_color("G", cards)] == ["elves"]


class TestCollectionFilter:
    def test_empty_filter_matches_all_sorted(self, collection: Collection) -> None:
        names = [e.card_name for e in collection.filter(CollectionFilter())]

        assert names == ["Lightning Bolt", "Llanowar Elves", "Sol Ring"]

    def test_search_matches_oracle_text(self, collection: Collection, make_card) -> None:
        cards = {"ring": make_card("Sol Ring", id="ring", oracle_text="{T}: Add {C}{C}.")}

        result = collection.filter(CollectionFilter(search_query="add {c}"), cards)

        assert [e.card_id for e in result] == ["ring"]

    def test_price_and_condition(self, collection: Collection) -> None:
        criteria = CollectionFilter(max_price=1.0, conditions=[Condition.PLAYED])

        assert [e.card_id for e in collection.filter(criteria)] == ["elves"]

    def test_color_filter_needs_card_data(self, collection: Collection) -> None:
        assert collection.filter(CollectionFilter(colors=["G"])) == []


class TestDeck:
    def test_add_merges_per_board(self) -> None:
        deck = Deck(user_id="u", name="Burn")
        deck.add_card("bolt", "Lightning Bolt", 2)
        deck.add_card("bolt", "Lightning Bolt", 2)
        deck.add_card("bolt", "Lightning Bolt", 1, Board.SIDE)

        assert deck.total_cards() == 4
        assert deck.total_cards(Board.SIDE) == 1

    def test_add_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError):
            Deck(user_id="u", name="Burn").add_card("bolt", "Lightning Bolt", 0)

    def test_remove_one_copy(self) -> None:
        deck = Deck(user_id="u", name="Burn")
        deck.add_card("bolt", "Lightning Bolt", 2)

        assert deck.remove_card("bolt").quantity == 1
        assert deck.remove_card("bolt") is None
        assert deck.slots == {}

    def test_commander_is_not_a_slot(self, make_card) -> None:
        deck = Deck(user_id="u", name="Elves")
        deck.add_card("elves", "Llanowar Elves")
        deck.set_commander(make_card("Lathril", type_line="Legendary Creature — Elf Noble"))

        assert deck.total_cards() == 1
        assert deck.card_ids() == {"elves", "lathril"}

        deck.set_commander(None)
        assert deck.commander_id is None

    def test_resolve_skips_missing_data(self, make_card) -> None:
        deck = Deck(user_id="u", name="Burn")
        deck.add_card("bolt", "Lightning Bolt", 4)
        deck.add_card("mystery", "Mystery Card", 2)
        cards = {"bolt": make_card("Lightning Bolt", id="bolt", cmc=1.0, colors=["R"])}

        assert [dc.name for dc in deck.resolve(cards)] == ["Lightning Bolt"]
        assert deck.average_mana_value(cards) == 1.0
        assert deck.color_distribution(cards)["R"] == 4


class TestWantedCard:
    @pytest.mark.parametrize(
        ("alert_enabled", "target", "price", "expected"),
        [
            (True, 5.0, 4.0, True),
            (True, 5.0, 5.0, True),
            (True, 5.0, 6.0, False),
            (False, 5.0, 1.0, False),
            (True, None, 1.0, False),
            (True, 5.0, None, False),
        ],
    )
    def test_alert_triggered(
        self, alert_enabled: bool, target: float | None, price: float | None, expected: bool
    ) -> None:
        item = WantedCard(
            user_id="u",
            card_id="bolt",
            card_name="Lightning Bolt",
            target_price=target,
            alert_enabled=alert_enabled,
        )

        assert item.alert_triggered(price) is expected
