"""
Physical storage bookkeeping.

Containers hold copies of collected cards. The collection stays the source
of truth for how many copies a user owns: storage only records where they
are, so a card can never be assigned more times than it is owned. Copies
not placed in any container are "unassigned".
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from manavault.models.collection import CollectionEntry
from manavault.models.storage import StorageContainer, StorageItem


class AssignmentError(ValueError):
    """Raised when placing copies would exceed the copies owned."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"Cannot assign {requested} cards. Only {available} available.")


@dataclass(frozen=True)
class ContainerSummary:
    container: StorageContainer
    item_count: int
    unique_cards: int
    value_usd: float


@dataclass(frozen=True)
class UnassignedSummary:
    count: int = 0
    unique_cards: int = 0
    value_usd: float = 0.0


@dataclass(frozen=True)
class StorageOverview:
    containers: list[ContainerSummary] = field(default_factory=list)
    unassigned: UnassignedSummary = field(default_factory=UnassignedSummary)


def owned_copies(entry: CollectionEntry | None, foil: bool) -> int:
    if entry is None:
        return 0
    return entry.foil if foil else entry.quantity


def check_assignment(
    entry: CollectionEntry | None, already_assigned: int, quantity: int, foil: bool
) -> None:
    """
    Make sure `quantity` more copies can be placed.

    Raises:
        AssignmentError: If owned copies minus those already placed is
            less than `quantity`
    """
    available = max(0, owned_copies(entry, foil) - already_assigned)
    if quantity > available:
        raise AssignmentError(quantity, available)


def item_value(item: StorageItem, entry: CollectionEntry | None) -> float:
    """Market value of an item from the collection's price snapshot."""
    if entry is None:
        return 0.0
    price = entry.price_usd
    if item.foil and entry.price_usd_foil is not None:
        price = entry.price_usd_foil
    return (price or 0.0) * item.quantity


def summarize_storage(
    containers: Iterable[tuple[StorageContainer, list[StorageItem]]],
    entries: Mapping[str, CollectionEntry],
) -> StorageOverview:
    """
    Per-container totals plus what is left unassigned.

    Owned counts that dropped below what is stored (after editing the
    collection) leave nothing unassigned rather than a negative count.
    """
    assigned: defaultdict[tuple[str, bool], int] = defaultdict(int)
    summaries = []
    for container, items in containers:
        value = 0.0
        for item in items:
            assigned[(item.card_id, item.foil)] += item.quantity
            value += item_value(item, entries.get(item.card_id))
        summaries.append(
            ContainerSummary(
                container=container,
                item_count=sum(item.quantity for item in items),
                unique_cards=len({item.card_id for item in items}),
                value_usd=round(value, 2),
            )
        )

    count = 0
    unique = 0
    value = 0.0
    for entry in entries.values():
        regular = max(0, entry.quantity - assigned[(entry.card_id, False)])
        foil = max(0, entry.foil - assigned[(entry.card_id, True)])
        if regular + foil == 0:
            continue
        unique += 1
        count += regular + foil
        value += item_value(StorageItem(0, entry.card_id, entry.card_name, regular), entry)
        value += item_value(StorageItem(0, entry.card_id, entry.card_name, foil, True), entry)

    return StorageOverview(
        containers=summaries,
        unassigned=UnassignedSummary(count=count, unique_cards=unique, value_usd=round(value, 2)),
    )
