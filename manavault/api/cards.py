"""
Card search and lookup endpoints.

Thin wrappers over the card gateway. Card lookups by ID go through the
local cache first.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from manavault.api.dependencies import CardsDep, GatewayDep
from manavault.models.card import Card, Ruling

router = APIRouter(prefix="/cards", tags=["cards"])


class CardResponse(BaseModel):
    id: str
    name: str
    mana_cost: str = ""
    cmc: float = 0.0
    type_line: str = ""
    oracle_text: str = ""
    colors: list[str] = Field(default_factory=list)
    color_identity: list[str] = Field(default_factory=list)
    rarity: str = ""
    set_code: str = ""
    set_name: str = ""
    collector_number: str = ""
    power: str | None = None
    toughness: str | None = None
    keywords: list[str] = Field(default_factory=list)
    legalities: dict[str, str] = Field(default_factory=dict)
    price_usd: float | None = None
    price_usd_foil: float | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            name=card.name,
            mana_cost=card.mana_cost,
            cmc=card.cmc,
            type_line=card.type_line,
            oracle_text=card.oracle_text,
            colors=list(card.colors),
            color_identity=list(card.color_identity),
            rarity=card.rarity,
            set_code=card.set_code,
            set_name=card.set_name,
            collector_number=card.collector_number,
            power=card.power,
            toughness=card.toughness,
            keywords=list(card.keywords),
            legalities=dict(card.legalities),
            price_usd=card.price_usd,
            price_usd_foil=card.price_usd_foil,
        )


class CardSearchResponse(BaseModel):
    cards: list[CardResponse]
    total_cards: int
    has_more: bool
    page: int


class AutocompleteResponse(BaseModel):
    data: list[str]


class RulingResponse(BaseModel):
    source: str
    published_at: str
    comment: str

    @classmethod
    def from_ruling(cls, ruling: Ruling) -> "RulingResponse":
        return cls(source=ruling.source, published_at=ruling.published_at, comment=ruling.comment)


@router.get("/search", response_model=CardSearchResponse)
async def search_cards(
    gateway: GatewayDep,
    q: Annotated[str, Query(min_length=1, description="Scryfall search syntax")],
    page: Annotated[int, Query(ge=1)] = 1,
) -> CardSearchResponse:
    """Search cards with Scryfall syntax. No matches is an empty page."""
    result = await gateway.search_cards(q, page=page)
    return CardSearchResponse(
        cards=[CardResponse.from_card(card) for card in result.cards],
        total_cards=result.total_cards,
        has_more=result.has_more,
        page=page,
    )


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    gateway: GatewayDep,
    q: Annotated[str, Query(min_length=1)],
) -> AutocompleteResponse:
    return AutocompleteResponse(data=await gateway.autocomplete(q))


@router.get("/named", response_model=CardResponse)
async def get_card_by_name(
    gateway: GatewayDep,
    cards: CardsDep,
    name: Annotated[str, Query(min_length=1)],
    set_code: Annotated[str | None, Query(alias="set")] = None,
) -> CardResponse:
    """Fuzzy name lookup, optionally restricted to a set."""
    card = await gateway.get_card_by_name(name, set_code)
    await cards.remember([card])
    return CardResponse.from_card(card)


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, cards: CardsDep) -> CardResponse:
    card = await cards.get(card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{card_id}' not found",
        )
    return CardResponse.from_card(card)


@router.get("/{card_id}/rulings", response_model=list[RulingResponse])
async def get_rulings(card_id: str, gateway: GatewayDep) -> list[RulingResponse]:
    return [RulingResponse.from_ruling(r) for r in await gateway.get_rulings(card_id)]
