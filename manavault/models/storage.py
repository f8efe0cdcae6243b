from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ContainerType(str, Enum):
    """Physical kinds of card storage."""

    BOX = "box"
    BINDER = "binder"
    DECKBOX = "deckbox"
    SHELF = "shelf"
    OTHER = "other"


@dataclass
class StorageContainer:
    """
    A place a user keeps physical cards.

    Attributes:
        deck_id: Deck this container holds, for deckboxes built around one
    """

    user_id: str
    name: str
    type: ContainerType = ContainerType.BOX
    color: str | None = None
    icon: str | None = None
    deck_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class StorageItem:
    """
    Copies of one collected card placed in a container.

    Regular and foil copies are separate items. `slot` is a free-form
    location inside the container ("Page 3", "Row B").
    """

    container_id: int
    card_id: str
    card_name: str
    quantity: int = 1
    foil: bool = False
    slot: str | None = None
    id: int | None = None
