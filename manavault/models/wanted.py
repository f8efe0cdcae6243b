from dataclasses import dataclass
from enum import Enum


class ListKind(str, Enum):
    """Owner-scoped lists of cards a user wants."""

    WISHLIST = "wishlist"
    WATCHLIST = "watchlist"
    SHOPPING = "shopping"


@dataclass
class WantedCard:
    """
    A card on one of a user's want lists.

    Attributes:
        target_price: Price (USD) at or below which the user wants to buy
        alert_enabled: Raise a price alert when the current price hits target
        priority: Free-form priority label ("high", "1", ...)
    """

    user_id: str
    card_id: str
    card_name: str
    list_kind: ListKind = ListKind.WISHLIST
    quantity: int = 1
    target_price: float | None = None
    alert_enabled: bool = False
    priority: str | None = None
    note: str | None = None
    id: int | None = None

    def alert_triggered(self, current_price: float | None) -> bool:
        """True when alerts are on and the price has reached the target."""
        if not self.alert_enabled or self.target_price is None or current_price is None:
            return False
        return current_price <= self.target_price
