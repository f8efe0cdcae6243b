"""Tests for storage assignment limits and totals."""

import pytest

from manavault.models.collection import CollectionEntry
from manavault.models.storage import StorageContainer, StorageItem
from manavault.services.storage import (
    AssignmentError,
    check_assignment,
    item_value,
    summarize_storage,
)


@pytest.fixture
def entries() -> dict[str, CollectionEntry]:
    return {
        "bolt": CollectionEntry("bolt", "Lightning Bolt", quantity=4, price_usd=1.5),
        "ring": CollectionEntry(
            "ring", "Sol Ring", quantity=1, foil=2, price_usd=2.0, price_usd_foil=5.0
        ),
        "elves": CollectionEntry("elves", "Llanowar Elves", quantity=3, price_usd=0.25),
    }


class TestCheckAssignment:
    def test_within_owned_copies(self, entries) -> None:
        check_assignment(entries["bolt"], already_assigned=1, quantity=3, foil=False)

    def test_exceeding_owned_copies(self, entries) -> None:
        with pytest.raises(AssignmentError, match="Only 1 available") as exc_info:
            check_assignment(entries["bolt"], already_assigned=3, quantity=2, foil=False)

        assert (exc_info.value.requested, exc_info.value.available) == (2, 1)

    def test_foil_and_regular_are_counted_separately(self, entries) -> None:
        check_assignment(entries["ring"], already_assigned=0, quantity=2, foil=True)

        with pytest.raises(AssignmentError):
            check_assignment(entries["ring"], already_assigned=0, quantity=2, foil=False)

    def test_card_not_owned(self) -> None:
        with pytest.raises(AssignmentError, match="Only 0 available"):
            check_assignment(None, already_assigned=0, quantity=1, foil=False)


class TestItemValue:
    def test_foil_uses_foil_price(self, entries) -> None:
        assert item_value(StorageItem(1, "ring", "Sol Ring", 2, foil=True), entries["ring"]) == 10.0

    def test_foil_falls_back_to_regular_price(self, entries) -> None:
        assert item_value(StorageItem(1, "bolt", "Lightning Bolt", 2, True), entries["bolt"]) == 3.0

    def test_unknown_card_has_no_value(self) -> None:
        assert item_value(StorageItem(1, "x", "X", 5), None) == 0.0


class TestSummarizeStorage:
    def test_container_totals_and_unassigned(self, entries) -> None:
        box = StorageContainer("user-1", "Box", id=1)
        binder = StorageContainer("user-1", "Binder", id=2)
        placed = [
            (
                box,
                [
                    StorageItem(1, "bolt", "Lightning Bolt", 3),
                    StorageItem(1, "ring", "Sol Ring", 1, foil=True),
                ],
            ),
            (binder, []),
        ]

        overview = summarize_storage(placed, entries)

        box_summary, binder_summary = overview.containers
        assert (box_summary.item_count, box_summary.unique_cards) == (4, 2)
        assert box_summary.value_usd == 9.5
        assert (binder_summary.item_count, binder_summary.value_usd) == (0, 0.0)
        # 1 bolt, 1 regular + 1 foil ring, 3 elves
        assert overview.unassigned.count == 6
        assert overview.unassigned.unique_cards == 3
        assert overview.unassigned.value_usd == 9.25

    def test_overstored_card_is_never_negative(self, entries) -> None:
        """Copies stored before the collection shrank don't go below zero."""
        box = StorageContainer("user-1", "Box", id=1)
        placed = [(box, [StorageItem(1, "elves", "Llanowar Elves", 10)])]

        overview = summarize_storage(placed, {"elves": entries["elves"]})

        assert overview.unassigned.count == 0
        assert overview.unassigned.unique_cards == 0

    def test_nothing_stored(self, entries) -> None:
        overview = summarize_storage([], entries)

        assert overview.containers == []
        assert overview.unassigned.count == 10
