"""
Want list endpoints: wishlist, watchlist and shopping list.

Current prices come from the card cache, which the price sync keeps fresh.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.api.dependencies import CardsDep
from manavault.db import (
    add_wanted_card,
    delete_wanted_card,
    find_wanted_card,
    get_wanted_card,
    list_wanted_cards,
    update_wanted_card,
    wanted_to_model,
)
from manavault.db.database import get_session
from manavault.models.card import Card
from manavault.models.wanted import ListKind, WantedCard

router = APIRouter(prefix="/wishlist", tags=["wishlist"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]

# Fields a PATCH may set back to null
CLEARABLE_FIELDS = frozenset({"target_price", "priority", "note"})


class WantedCardResponse(BaseModel):
    id: int | None
    card_id: str
    card_name: str
    list_kind: ListKind
    quantity: int
    target_price: float | None = None
    alert_enabled: bool
    priority: str | None = None
    note: str | None = None
    current_price: float | None = None

    @classmethod
    def from_item(cls, item: WantedCard, card: Card | None = None) -> "WantedCardResponse":
        return cls(
            id=item.id,
            card_id=item.card_id,
            card_name=item.card_name,
            list_kind=item.list_kind,
            quantity=item.quantity,
            target_price=item.target_price,
            alert_enabled=item.alert_enabled,
            priority=item.priority,
            note=item.note,
            current_price=card.price_usd if card else None,
        )


class WantListResponse(BaseModel):
    user_id: str
    items: list[WantedCardResponse]
    count: int
    total_cost: float


class AddWantedRequest(BaseModel):
    card_id: str = Field(min_length=1)
    list_kind: ListKind = ListKind.WISHLIST
    quantity: int = Field(default=1, ge=1)
    target_price: float | None = Field(default=None, ge=0)
    alert_enabled: bool = False
    priority: str | None = Field(default=None, max_length=20)
    note: str | None = None


class UpdateWantedRequest(BaseModel):
    list_kind: ListKind | None = None
    quantity: int | None = Field(default=None, ge=1)
    target_price: float | None = Field(default=None, ge=0)
    alert_enabled: bool | None = None
    priority: str | None = Field(default=None, max_length=20)
    note: str | None = None


class PriceAlertResponse(BaseModel):
    item: WantedCardResponse
    current_price: float
    target_price: float
    savings: float


def _cost(item: WantedCard, card: Card | None) -> float:
    if card is None or card.price_usd is None:
        return 0.0
    return card.price_usd * item.quantity


@router.get("/{user_id}", response_model=WantListResponse)
async def get_want_list(
    user_id: str,
    session: SessionDep,
    cards: CardsDep,
    list_kind: ListKind | None = None,
) -> WantListResponse:
    """A user's want lists, optionally just one kind, with current prices."""
    items = [wanted_to_model(row) for row in await list_wanted_cards(session, user_id, list_kind)]
    card_data = await cards.cached(item.card_id for item in items)

    return WantListResponse(
        user_id=user_id,
        items=[WantedCardResponse.from_item(i, card_data.get(i.card_id)) for i in items],
        count=len(items),
        total_cost=round(sum(_cost(i, card_data.get(i.card_id)) for i in items), 2),
    )


@router.post("/{user_id}", response_model=WantedCardResponse, status_code=status.HTTP_201_CREATED)
async def add_to_want_list(
    user_id: str,
    request: AddWantedRequest,
    session: SessionDep,
    cards: CardsDep,
) -> WantedCardResponse:
    card = await cards.get(request.card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.card_id}' not found",
        )

    if await find_wanted_card(session, user_id, card.id, request.list_kind) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{card.name} is already on {user_id}'s {request.list_kind.value}",
        )

    row = await add_wanted_card(
        session,
        WantedCard(
            user_id=user_id,
            card_id=card.id,
            card_name=card.name,
            list_kind=request.list_kind,
            quantity=request.quantity,
            target_price=request.target_price,
            alert_enabled=request.alert_enabled,
            priority=request.priority,
            note=request.note,
        ),
    )
    return WantedCardResponse.from_item(wanted_to_model(row), card)


@router.get("/{user_id}/alerts", response_model=list[PriceAlertResponse])
async def get_price_alerts(
    user_id: str,
    session: SessionDep,
    cards: CardsDep,
) -> list[PriceAlertResponse]:
    """Items whose current price is at or below their target, biggest savings first."""
    items = [wanted_to_model(row) for row in await list_wanted_cards(session, user_id)]
    watched = [item for item in items if item.alert_enabled and item.target_price is not None]
    card_data = await cards.cached(item.card_id for item in watched)

    alerts = []
    for item in watched:
        card = card_data.get(item.card_id)
        price = card.price_usd if card else None
        if price is None or item.target_price is None or not item.alert_triggered(price):
            continue
        alerts.append(
            PriceAlertResponse(
                item=WantedCardResponse.from_item(item, card),
                current_price=price,
                target_price=item.target_price,
                savings=round(item.target_price - price, 2),
            )
        )

    return sorted(alerts, key=lambda a: a.savings, reverse=True)


@router.patch("/{user_id}/{item_id}", response_model=WantedCardResponse)
async def update_want_list_item(
    user_id: str,
    item_id: int,
    request: UpdateWantedRequest,
    session: SessionDep,
    cards: CardsDep,
) -> WantedCardResponse:
    """Edit an item. Moving it to a list that already has the card is a conflict."""
    current = await get_wanted_card(session, user_id, item_id)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found for user {user_id}",
        )

    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None or name in CLEARABLE_FIELDS
    }
    list_kind = changes.pop("list_kind", None)
    if list_kind is not None and list_kind.value != current.list_kind:
        if await find_wanted_card(session, user_id, current.card_id, list_kind) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{current.card_name} is already on {user_id}'s {list_kind.value}",
            )
        changes["list_kind"] = list_kind

    row = await update_wanted_card(session, user_id, item_id, changes)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found for user {user_id}",
        )

    item = wanted_to_model(row)
    card_data = await cards.cached([item.card_id])
    return WantedCardResponse.from_item(item, card_data.get(item.card_id))


@router.delete("/{user_id}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_want_list(user_id: str, item_id: int, session: SessionDep) -> None:
    if not await delete_wanted_card(session, user_id, item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found for user {user_id}",
        )
