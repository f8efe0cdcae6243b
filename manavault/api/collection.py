"""
Collection API endpoints.

Browsing, editing, bulk import/export, statistics and backup/restore of a
user's collection. Card data for filters and statistics comes from the
local card cache only; adding and importing cards go through the gateway.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manavault.api.dependencies import CardsDep, CollectionsDep, GatewayDep, get_session_factory
from manavault.models.card import Card
from manavault.models.collection import CollectionEntry, CollectionFilter, Condition
from manavault.parsers.collection_export import CONTENT_TYPES, ExportFormat, export_collection
from manavault.parsers.collection_import import (
    ImportFormat,
    ImportFormatError,
    parse_collection,
)
from manavault.services.backup import (
    BackupFormatError,
    RestoreError,
    create_backup,
    restore_backup,
)
from manavault.services.collection_import import import_rows
from manavault.services.collection_stats import calculate_stats

router = APIRouter(prefix="/collection", tags=["collection"])


class EntryResponse(BaseModel):
    card_id: str
    card_name: str
    quantity: int
    foil: int
    condition: Condition
    set_code: str
    collector_number: str
    language: str
    price_usd: float | None = None
    price_usd_foil: float | None = None
    purchase_price: float | None = None
    value: float
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    added_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: CollectionEntry) -> "EntryResponse":
        return cls(
            card_id=entry.card_id,
            card_name=entry.card_name,
            quantity=entry.quantity,
            foil=entry.foil,
            condition=entry.condition,
            set_code=entry.set_code,
            collector_number=entry.collector_number,
            language=entry.language,
            price_usd=entry.price_usd,
            price_usd_foil=entry.price_usd_foil,
            purchase_price=entry.purchase_price,
            value=round(entry.value, 2),
            tags=list(entry.tags),
            notes=entry.notes,
            added_at=entry.added_at,
        )


class CollectionResponse(BaseModel):
    user_id: str
    entries: list[EntryResponse]
    total_cards: int
    unique_cards: int
    total_value: float


class AddCardRequest(BaseModel):
    """Copies to add. With neither count given, one regular copy is added."""

    card_id: str = Field(min_length=1)
    quantity: int | None = Field(default=None, ge=0)
    foil: int = Field(default=0, ge=0)
    condition: Condition = Condition.NEAR_MINT
    language: str = "en"
    purchase_price: float | None = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None

    @property
    def regular_copies(self) -> int:
        if self.quantity is not None:
            return self.quantity
        return 0 if self.foil else 1


class UpdateEntryRequest(BaseModel):
    """Partial update; omitted fields are left alone."""

    quantity: int | None = None
    foil: int | None = None
    condition: Condition | None = None
    purchase_price: float | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    notes: str | None = None


class UpdateEntryResponse(BaseModel):
    removed: bool
    entry: EntryResponse | None = None


class DeleteResponse(BaseModel):
    deleted: int


class ImportRequest(BaseModel):
    content: str
    format: ImportFormat = "auto"
    merge: bool = True


class ImportResponse(BaseModel):
    success: int
    failed: int
    errors: list[str]


class StatsResponse(BaseModel):
    total_cards: int
    unique_cards: int
    total_value: float
    average_value: float
    color_distribution: dict[str, int]
    rarity_distribution: dict[str, int]
    type_distribution: dict[str, int]
    set_distribution: dict[str, int]
    condition_distribution: dict[str, int]
    foil_count: int
    foil_value: float


class RestoreResponse(BaseModel):
    restored: int
    batches: int


def _not_found(user_id: str, card_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Card '{card_id}' is not in {user_id}'s collection",
    )


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_collection(
    user_id: str,
    collections: CollectionsDep,
    cards: CardsDep,
    q: str = "",
    sets: Annotated[list[str] | None, Query()] = None,
    colors: Annotated[list[str] | None, Query()] = None,
    rarities: Annotated[list[str] | None, Query()] = None,
    conditions: Annotated[list[Condition] | None, Query()] = None,
    min_price: Annotated[float | None, Query(ge=0)] = None,
    max_price: Annotated[float | None, Query(ge=0)] = None,
) -> CollectionResponse:
    """
    Get a user's collection, optionally filtered.

    Totals describe the whole collection, not just the filtered entries.
    """
    collection = await collections.load(user_id)
    criteria = CollectionFilter(
        search_query=q,
        sets=sets or [],
        colors=colors or [],
        rarities=rarities or [],
        conditions=conditions or [],
        min_price=min_price,
        max_price=max_price,
    )

    card_data: dict[str, Card] = {}
    if criteria.search_query or criteria.colors or criteria.rarities:
        card_data = await cards.cached(collection.entries)

    return CollectionResponse(
        user_id=user_id,
        entries=[EntryResponse.from_entry(e) for e in collection.filter(criteria, card_data)],
        total_cards=collection.total_cards(),
        unique_cards=collection.unique_cards(),
        total_value=round(collection.total_value(), 2),
    )


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_collection(user_id: str, collections: CollectionsDep) -> DeleteResponse:
    return DeleteResponse(deleted=await collections.clear(user_id))


@router.post("/{user_id}/cards", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def add_card(
    user_id: str,
    request: AddCardRequest,
    collections: CollectionsDep,
    cards: CardsDep,
) -> EntryResponse:
    """Add copies of a printing, merging into an existing entry."""
    quantity = request.regular_copies
    if quantity + request.foil <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quantity and foil can't both be zero",
        )

    card = await cards.get(request.card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.card_id}' not found",
        )

    collection = await collections.load(user_id)
    entry = collection.add_card(
        CollectionEntry(
            card_id=card.id,
            card_name=card.name,
            quantity=quantity,
            foil=request.foil,
            condition=request.condition,
            set_code=card.set_code,
            collector_number=card.collector_number,
            language=request.language,
            price_usd=card.price_usd,
            price_usd_foil=card.price_usd_foil,
            purchase_price=request.purchase_price,
            tags=request.tags,
            notes=request.notes,
        )
    )
    await collections.save(collection)
    return EntryResponse.from_entry(entry)


@router.patch("/{user_id}/cards/{card_id}", response_model=UpdateEntryResponse)
async def update_card(
    user_id: str,
    card_id: str,
    request: UpdateEntryRequest,
    collections: CollectionsDep,
) -> UpdateEntryResponse:
    """Edit an entry. Setting both quantity and foil to zero removes it."""
    collection = await collections.load(user_id)
    entry = collection.get(card_id)
    if entry is None:
        raise _not_found(user_id, card_id)

    if request.quantity is not None or request.foil is not None:
        quantity = entry.quantity if request.quantity is None else request.quantity
        foil = entry.foil if request.foil is None else request.foil
        if collection.update_quantity(card_id, quantity, foil) is None:
            await collections.save(collection)
            return UpdateEntryResponse(removed=True)

    if request.condition is not None:
        collection.update_condition(card_id, request.condition)
    if request.tags is not None:
        entry.tags = list(dict.fromkeys(request.tags))
    if request.notes is not None:
        entry.notes = request.notes
    if request.purchase_price is not None:
        entry.purchase_price = request.purchase_price

    await collections.save(collection)
    return UpdateEntryResponse(removed=False, entry=EntryResponse.from_entry(entry))


@router.delete("/{user_id}/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_card(user_id: str, card_id: str, collections: CollectionsDep) -> None:
    collection = await collections.load(user_id)
    if not collection.remove_card(card_id):
        raise _not_found(user_id, card_id)
    await collections.save(collection)


@router.post("/{user_id}/import", response_model=ImportResponse)
async def import_collection(
    user_id: str,
    request: ImportRequest,
    collections: CollectionsDep,
    cards: CardsDep,
    gateway: GatewayDep,
) -> ImportResponse:
    """
    Import cards from text, CSV or JSON.

    Each row is matched through the card data service; rows that can't be
    matched are reported in `errors` and the rest are still imported.
    """
    try:
        rows = parse_collection(request.content, request.format)
    except ImportFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    collection = await collections.load(user_id)
    result = await import_rows(collection, rows, gateway, merge=request.merge)
    await cards.remember(result.cards)
    await collections.save(collection)

    return ImportResponse(success=result.success, failed=result.failed, errors=result.errors)


@router.get("/{user_id}/export")
async def export(
    user_id: str,
    collections: CollectionsDep,
    format: ExportFormat = "csv",
) -> Response:
    collection = await collections.load(user_id)
    entries = sorted(collection.entries.values(), key=lambda e: e.card_name)
    extension = "csv" if format == "moxfield" else format
    return Response(
        content=export_collection(entries, format),
        media_type=CONTENT_TYPES[format],
        headers={
            "Content-Disposition": f'attachment; filename="collection-{user_id}.{extension}"'
        },
    )


@router.get("/{user_id}/stats", response_model=StatsResponse)
async def get_stats(
    user_id: str,
    collections: CollectionsDep,
    cards: CardsDep,
) -> StatsResponse:
    collection = await collections.load(user_id)
    card_data = await cards.cached(collection.entries)
    stats = calculate_stats(list(collection.entries.values()), card_data)
    return StatsResponse(**asdict(stats))


@router.get("/{user_id}/backup")
async def backup(user_id: str, collections: CollectionsDep) -> dict[str, Any]:
    """Full collection backup as a JSON document."""
    return create_backup(await collections.load(user_id))


@router.post("/{user_id}/restore", response_model=RestoreResponse)
async def restore(
    user_id: str,
    document: Annotated[dict[str, Any], Body()],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> RestoreResponse:
    """
    Replace the collection with a backup.

    Rows are committed in batches. On a failed batch the response is 500
    and the rows from earlier batches remain.
    """
    try:
        result = await restore_backup(session_factory, user_id, document)
    except BackupFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except RestoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(e), "restored": e.restored},
        ) from e

    return RestoreResponse(restored=result.restored, batches=result.batches)
