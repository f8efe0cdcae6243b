"""
Physical storage endpoints: containers and the card copies placed in them.

Owned quantities come from the collection; a card can't be placed more
times than it is owned.
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.api.dependencies import CollectionsDep, DecksDep
from manavault.db import (
    assign_storage_item,
    container_to_model,
    count_assigned_copies,
    create_container,
    delete_container,
    get_container,
    item_to_model,
    list_containers,
    unassign_storage_item,
    update_container,
)
from manavault.db.database import get_session
from manavault.models.storage import ContainerType, StorageContainer, StorageItem
from manavault.services.storage import (
    AssignmentError,
    ContainerSummary,
    check_assignment,
    summarize_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]

CLEARABLE_FIELDS = frozenset({"color", "icon", "deck_id"})


class ContainerResponse(BaseModel):
    id: int | None
    name: str
    type: ContainerType
    color: str | None = None
    icon: str | None = None
    deck_id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_container(cls, container: StorageContainer) -> "ContainerResponse":
        return cls(
            id=container.id,
            name=container.name,
            type=container.type,
            color=container.color,
            icon=container.icon,
            deck_id=container.deck_id,
            created_at=container.created_at,
        )


class ContainerSummaryResponse(ContainerResponse):
    item_count: int
    unique_cards: int
    value_usd: float

    @classmethod
    def from_summary(cls, summary: ContainerSummary) -> "ContainerSummaryResponse":
        return cls(
            **ContainerResponse.from_container(summary.container).model_dump(),
            item_count=summary.item_count,
            unique_cards=summary.unique_cards,
            value_usd=summary.value_usd,
        )


class UnassignedResponse(BaseModel):
    count: int
    unique_cards: int
    value_usd: float


class StorageOverviewResponse(BaseModel):
    user_id: str
    containers: list[ContainerSummaryResponse]
    unassigned: UnassignedResponse


class CreateContainerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: ContainerType = ContainerType.BOX
    color: str | None = Field(default=None, max_length=16)
    icon: str | None = Field(default=None, max_length=32)
    deck_id: int | None = None


class UpdateContainerRequest(BaseModel):
    """Partial update; color, icon and deck_id may be cleared with null."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    type: ContainerType | None = None
    color: str | None = Field(default=None, max_length=16)
    icon: str | None = Field(default=None, max_length=32)
    deck_id: int | None = None


class StorageItemResponse(BaseModel):
    id: int | None
    container_id: int
    card_id: str
    card_name: str
    quantity: int
    foil: bool
    slot: str | None = None

    @classmethod
    def from_item(cls, item: StorageItem) -> "StorageItemResponse":
        return cls(
            id=item.id,
            container_id=item.container_id,
            card_id=item.card_id,
            card_name=item.card_name,
            quantity=item.quantity,
            foil=item.foil,
            slot=item.slot,
        )


class AssignRequest(BaseModel):
    card_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    foil: bool = False
    slot: str | None = Field(default=None, max_length=64)


class UnassignResponse(BaseModel):
    item_id: int
    remaining: int


def _container_not_found(user_id: str, container_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Container {container_id} not found for user {user_id}",
    )


async def _check_deck(decks: DecksDep, user_id: str, deck_id: int | None) -> None:
    if deck_id is not None and await decks.get(user_id, deck_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck {deck_id} not found for user {user_id}",
        )


@router.get("/{user_id}", response_model=StorageOverviewResponse)
async def get_storage_overview(
    user_id: str,
    session: SessionDep,
    collections: CollectionsDep,
) -> StorageOverviewResponse:
    """Every container with its totals, plus the owned copies not stored anywhere."""
    rows = await list_containers(session, user_id)
    collection = await collections.load(user_id)
    overview = summarize_storage(
        [(container_to_model(row), [item_to_model(i) for i in row.items]) for row in rows],
        collection.entries,
    )

    return StorageOverviewResponse(
        user_id=user_id,
        containers=[ContainerSummaryResponse.from_summary(s) for s in overview.containers],
        unassigned=UnassignedResponse(
            count=overview.unassigned.count,
            unique_cards=overview.unassigned.unique_cards,
            value_usd=overview.unassigned.value_usd,
        ),
    )


@router.post(
    "/{user_id}/containers",
    response_model=ContainerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_container(
    user_id: str,
    request: CreateContainerRequest,
    session: SessionDep,
    decks: DecksDep,
) -> ContainerResponse:
    await _check_deck(decks, user_id, request.deck_id)

    row = await create_container(
        session,
        StorageContainer(
            user_id=user_id,
            name=request.name,
            type=request.type,
            color=request.color,
            icon=request.icon,
            deck_id=request.deck_id,
        ),
    )
    logger.info("Created %s '%s' for user %s", request.type.value, request.name, user_id)
    return ContainerResponse.from_container(container_to_model(row))


@router.patch("/{user_id}/containers/{container_id}", response_model=ContainerResponse)
async def edit_container(
    user_id: str,
    container_id: int,
    request: UpdateContainerRequest,
    session: SessionDep,
    decks: DecksDep,
) -> ContainerResponse:
    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None or name in CLEARABLE_FIELDS
    }
    await _check_deck(decks, user_id, changes.get("deck_id"))

    row = await update_container(session, user_id, container_id, changes)
    if row is None:
        raise _container_not_found(user_id, container_id)
    return ContainerResponse.from_container(container_to_model(row))


@router.delete("/{user_id}/containers/{container_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_container(user_id: str, container_id: int, session: SessionDep) -> None:
    """Delete an empty container. Containers still holding cards are a conflict."""
    row = await get_container(session, user_id, container_id)
    if row is None:
        raise _container_not_found(user_id, container_id)
    if row.items:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete container with items. Remove all items first.",
        )
    await delete_container(session, user_id, container_id)


@router.get(
    "/{user_id}/containers/{container_id}/items", response_model=list[StorageItemResponse]
)
async def get_container_items(
    user_id: str, container_id: int, session: SessionDep
) -> list[StorageItemResponse]:
    row = await get_container(session, user_id, container_id)
    if row is None:
        raise _container_not_found(user_id, container_id)
    return [StorageItemResponse.from_item(item_to_model(item)) for item in row.items]


@router.post(
    "/{user_id}/containers/{container_id}/items",
    response_model=StorageItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_card(
    user_id: str,
    container_id: int,
    request: AssignRequest,
    session: SessionDep,
    collections: CollectionsDep,
) -> StorageItemResponse:
    """Place owned copies of a card in a container, merging with the same slot."""
    if await get_container(session, user_id, container_id) is None:
        raise _container_not_found(user_id, container_id)

    collection = await collections.load(user_id)
    entry = collection.get(request.card_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.card_id}' is not in {user_id}'s collection",
        )

    assigned = await count_assigned_copies(session, user_id, request.card_id, request.foil)
    try:
        check_assignment(entry, assigned, request.quantity, request.foil)
    except AssignmentError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    row = await assign_storage_item(
        session,
        StorageItem(
            container_id=container_id,
            card_id=entry.card_id,
            card_name=entry.card_name,
            quantity=request.quantity,
            foil=request.foil,
            slot=request.slot,
        ),
    )
    return StorageItemResponse.from_item(item_to_model(row))


@router.delete("/{user_id}/items/{item_id}", response_model=UnassignResponse)
async def unassign_card(
    user_id: str,
    item_id: int,
    session: SessionDep,
    quantity: Annotated[int | None, Query(ge=1)] = None,
) -> UnassignResponse:
    """Take copies out of storage; without `quantity` the whole item is removed."""
    remaining = await unassign_storage_item(session, user_id, item_id, quantity)
    if remaining is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Storage item {item_id} not found for user {user_id}",
        )
    return UnassignResponse(item_id=item_id, remaining=remaining)
