"""
Deck API endpoints.

Deck CRUD, card editing, folder filing, decklist import/export, analysis
(archetype, legality, validation) and match history.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.api.dependencies import CardsDep, DecksDep, GatewayDep
from manavault.db import add_match, delete_match, get_folder, get_matches, match_to_model
from manavault.db.database import get_session
from manavault.models.deck import Board, Deck, DeckMatch, MatchResult, Visibility
from manavault.parsers.decklist import DeckExportFormat, export_decklist, parse_decklist
from manavault.services.archetype_detector import detect_archetype
from manavault.services.card_gateway import CardDataError
from manavault.services.deck_validator import mana_curve, validate_deck
from manavault.services.legality_checker import calculate_color_identity, check_deck
from manavault.services.repositories import DeckRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/decks", tags=["decks"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


class DeckCardResponse(BaseModel):
    card_id: str
    card_name: str
    quantity: int
    board: Board


class DeckResponse(BaseModel):
    """Response model for a single deck."""

    id: int | None
    user_id: str
    name: str
    format: str
    description: str
    commander_id: str | None = None
    commander_name: str | None = None
    slug: str | None = None
    visibility: Visibility
    archived: bool
    power_level: int | None = None
    folder_id: int | None = None
    cards: list[DeckCardResponse] = Field(default_factory=list)
    main_count: int
    side_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_deck(cls, deck: Deck) -> "DeckResponse":
        return cls(
            id=deck.id,
            user_id=deck.user_id,
            name=deck.name,
            format=deck.format,
            description=deck.description,
            commander_id=deck.commander_id,
            commander_name=deck.commander_name,
            slug=deck.slug,
            visibility=deck.visibility,
            archived=deck.archived,
            power_level=deck.power_level,
            folder_id=deck.folder_id,
            cards=[
                DeckCardResponse(
                    card_id=s.card_id, card_name=s.card_name, quantity=s.quantity, board=s.board
                )
                for s in deck.slots.values()
            ],
            main_count=deck.total_cards(Board.MAIN),
            side_count=deck.total_cards(Board.SIDE),
            created_at=deck.created_at,
            updated_at=deck.updated_at,
        )


class DeckListResponse(BaseModel):
    """Response model for a list of decks."""

    user_id: str
    decks: list[DeckResponse]
    count: int


class CreateDeckRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    format: str = "commander"
    description: str = ""
    visibility: Visibility = Visibility.PRIVATE
    power_level: int | None = Field(default=None, ge=1, le=10)


class UpdateDeckRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    format: str | None = None
    description: str | None = None
    visibility: Visibility | None = None
    archived: bool | None = None
    power_level: int | None = Field(default=None, ge=1, le=10)


class AddDeckCardRequest(BaseModel):
    card_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    board: Board = Board.MAIN


class UpdateDeckCardRequest(BaseModel):
    quantity: int


class SetCommanderRequest(BaseModel):
    card_id: str | None = None


class SetFolderRequest(BaseModel):
    folder_id: int | None = None


class DeckImportRequest(BaseModel):
    content: str
    replace: bool = True


class DeckImportResponse(BaseModel):
    deck: DeckResponse
    imported: int
    failed: int
    errors: list[str]


class IssueResponse(BaseModel):
    type: str
    message: str
    card: str | None = None


class WarningResponse(BaseModel):
    severity: str
    category: str
    message: str
    suggestion: str | None = None
    affected_cards: list[str] = Field(default_factory=list)


class DeckAnalysisResponse(BaseModel):
    """Everything known about a deck's construction."""

    archetype: str
    archetype_confidence: float
    archetype_description: str
    recommendations: list[str]
    format: str
    is_legal: bool
    legality_issues: list[IssueResponse]
    legality_warnings: list[IssueResponse]
    warnings: list[WarningResponse]
    color_identity: list[str]
    color_distribution: dict[str, int]
    mana_curve: dict[str, int]
    average_mana_value: float
    main_count: int
    side_count: int
    missing_cards: list[str]


class MatchRequest(BaseModel):
    result: MatchResult
    opponent_name: str | None = None
    opponent_archetype: str | None = None
    notes: str | None = None
    played_at: datetime | None = None


class MatchResponse(BaseModel):
    id: int | None
    deck_id: int
    result: MatchResult
    opponent_name: str | None = None
    opponent_archetype: str | None = None
    notes: str | None = None
    played_at: datetime | None = None

    @classmethod
    def from_match(cls, match: DeckMatch) -> "MatchResponse":
        return cls(
            id=match.id,
            deck_id=match.deck_id,
            result=match.result,
            opponent_name=match.opponent_name,
            opponent_archetype=match.opponent_archetype,
            notes=match.notes,
            played_at=match.played_at,
        )


class MatchHistoryResponse(BaseModel):
    matches: list[MatchResponse]
    wins: int
    losses: int
    draws: int
    win_rate: float


async def _load_deck(decks: DeckRepository, user_id: str, deck_id: int) -> Deck:
    deck = await decks.get(user_id, deck_id)
    if deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck {deck_id} not found for user {user_id}",
        )
    return deck


async def _save(decks: DeckRepository, deck: Deck) -> None:
    try:
        await decks.save(deck)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


def _card_missing(card_id: str, deck: Deck, board: Board) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Card '{card_id}' is not on the {board.value} board of deck {deck.id}",
    )


@router.get("/shared/{slug}", response_model=DeckResponse)
async def get_shared_deck(slug: str, decks: DecksDep) -> DeckResponse:
    """Open a public or unlisted deck by its share slug."""
    deck = await decks.get_shared(slug)
    if deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No shared deck with slug '{slug}'",
        )
    return DeckResponse.from_deck(deck)


@router.get("/{user_id}", response_model=DeckListResponse)
async def list_decks(
    user_id: str,
    decks: DecksDep,
    include_archived: bool = False,
    folder_id: int | None = None,
) -> DeckListResponse:
    """A user's decks; `folder_id` narrows the list to one folder."""
    found = await decks.list_for_user(user_id, include_archived, folder_id)
    return DeckListResponse(
        user_id=user_id,
        decks=[DeckResponse.from_deck(deck) for deck in found],
        count=len(found),
    )


@router.post("/{user_id}", response_model=DeckResponse, status_code=status.HTTP_201_CREATED)
async def create_deck(user_id: str, request: CreateDeckRequest, decks: DecksDep) -> DeckResponse:
    deck = await decks.create(
        Deck(
            user_id=user_id,
            name=request.name,
            format=request.format.lower(),
            description=request.description,
            visibility=request.visibility,
            power_level=request.power_level,
        )
    )
    return DeckResponse.from_deck(deck)


@router.get("/{user_id}/{deck_id}", response_model=DeckResponse)
async def get_deck(user_id: str, deck_id: int, decks: DecksDep) -> DeckResponse:
    return DeckResponse.from_deck(await _load_deck(decks, user_id, deck_id))


@router.patch("/{user_id}/{deck_id}", response_model=DeckResponse)
async def update_deck(
    user_id: str,
    deck_id: int,
    request: UpdateDeckRequest,
    decks: DecksDep,
) -> DeckResponse:
    deck = await _load_deck(decks, user_id, deck_id)
    for name, value in request.model_dump(exclude_unset=True).items():
        if value is None and name != "power_level":
            continue
        if name == "format":
            value = value.lower()
        setattr(deck, name, value)
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.delete("/{user_id}/{deck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deck(user_id: str, deck_id: int, decks: DecksDep) -> None:
    if not await decks.delete(user_id, deck_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deck {deck_id} not found for user {user_id}",
        )


@router.post("/{user_id}/{deck_id}/cards", response_model=DeckResponse)
async def add_deck_card(
    user_id: str,
    deck_id: int,
    request: AddDeckCardRequest,
    decks: DecksDep,
    cards: CardsDep,
) -> DeckResponse:
    deck = await _load_deck(decks, user_id, deck_id)
    card = await cards.get(request.card_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card '{request.card_id}' not found",
        )

    deck.add_card(card.id, card.name, request.quantity, request.board)
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.patch("/{user_id}/{deck_id}/cards/{card_id}", response_model=DeckResponse)
async def update_deck_card(
    user_id: str,
    deck_id: int,
    card_id: str,
    request: UpdateDeckCardRequest,
    decks: DecksDep,
    board: Board = Board.MAIN,
) -> DeckResponse:
    """Set a card's quantity on a board; zero or less removes it."""
    deck = await _load_deck(decks, user_id, deck_id)
    try:
        deck.update_quantity(card_id, request.quantity, board)
    except KeyError as e:
        raise _card_missing(card_id, deck, board) from e
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.delete("/{user_id}/{deck_id}/cards/{card_id}", response_model=DeckResponse)
async def remove_deck_card(
    user_id: str,
    deck_id: int,
    card_id: str,
    decks: DecksDep,
    board: Board = Board.MAIN,
) -> DeckResponse:
    """Remove one copy of a card from a board."""
    deck = await _load_deck(decks, user_id, deck_id)
    if (card_id, board) not in deck.slots:
        raise _card_missing(card_id, deck, board)
    deck.remove_card(card_id, board)
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.put("/{user_id}/{deck_id}/commander", response_model=DeckResponse)
async def set_commander(
    user_id: str,
    deck_id: int,
    request: SetCommanderRequest,
    decks: DecksDep,
    cards: CardsDep,
) -> DeckResponse:
    """Set or clear (card_id null) the commander."""
    deck = await _load_deck(decks, user_id, deck_id)
    if request.card_id is None:
        deck.set_commander(None)
    else:
        card = await cards.get(request.card_id)
        if card is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Card '{request.card_id}' not found",
            )
        deck.set_commander(card)
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.put("/{user_id}/{deck_id}/folder", response_model=DeckResponse)
async def set_folder(
    user_id: str,
    deck_id: int,
    request: SetFolderRequest,
    decks: DecksDep,
    session: SessionDep,
) -> DeckResponse:
    """File the deck in one of the owner's folders, or unfile it (folder_id null)."""
    deck = await _load_deck(decks, user_id, deck_id)
    folder_id = request.folder_id
    if folder_id is not None and await get_folder(session, user_id, folder_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Folder {folder_id} not found for user {user_id}",
        )
    deck.folder_id = folder_id
    await _save(decks, deck)
    return DeckResponse.from_deck(deck)


@router.post("/{user_id}/{deck_id}/import", response_model=DeckImportResponse)
async def import_decklist(
    user_id: str,
    deck_id: int,
    request: DeckImportRequest,
    decks: DecksDep,
    cards: CardsDep,
    gateway: GatewayDep,
) -> DeckImportResponse:
    """
    Import a pasted decklist.

    Every line is looked up by name (and set, when given). Lines that can't
    be found are reported and skipped. With `replace` the deck is cleared
    first.
    """
    deck = await _load_deck(decks, user_id, deck_id)
    parsed = parse_decklist(request.content)
    if request.replace:
        deck.clear()

    imported = 0
    errors: list[str] = []
    found = []

    lines = [(line, True) for line in parsed.commanders]
    lines += [(line, False) for line in parsed.cards]

    for line, is_commander in lines:
        try:
            card = await gateway.get_card_by_name(line.name, line.set_code or None)
        except (CardDataError, httpx.HTTPError) as e:
            errors.append(f"{line.name}: {e}")
            continue

        found.append(card)
        imported += 1
        if is_commander:
            deck.set_commander(card)
        else:
            deck.add_card(card.id, card.name, line.quantity, line.board)

    await cards.remember(found)
    await _save(decks, deck)
    logger.info("Imported %d lines into deck %d (%d failed)", imported, deck_id, len(errors))

    return DeckImportResponse(
        deck=DeckResponse.from_deck(deck),
        imported=imported,
        failed=len(errors),
        errors=errors,
    )


@router.get("/{user_id}/{deck_id}/export")
async def export_deck(
    user_id: str,
    deck_id: int,
    decks: DecksDep,
    cards: CardsDep,
    format: DeckExportFormat = "text",
) -> Response:
    deck = await _load_deck(decks, user_id, deck_id)
    card_data = await cards.get_many(deck.card_ids()) if format == "moxfield" else None
    return Response(content=export_decklist(deck, format, card_data), media_type="text/plain")


@router.get("/{user_id}/{deck_id}/analysis", response_model=DeckAnalysisResponse)
async def analyze_deck(
    user_id: str,
    deck_id: int,
    decks: DecksDep,
    cards: CardsDep,
) -> DeckAnalysisResponse:
    """
    Analyze a deck's main board.

    Cards the card data service doesn't know are listed in
    `missing_cards` and left out of every calculation.
    """
    deck = await _load_deck(decks, user_id, deck_id)
    card_data = await cards.get_many(deck.card_ids())
    commander = card_data.get(deck.commander_id) if deck.commander_id else None
    main = deck.resolve(card_data)

    archetype = detect_archetype(deck.entries(), card_data)
    legality = check_deck(main, deck.format, commander)
    warnings = validate_deck(main, deck.format, commander)

    return DeckAnalysisResponse(
        archetype=archetype.archetype,
        archetype_confidence=round(archetype.confidence, 1),
        archetype_description=archetype.description,
        recommendations=archetype.recommendations,
        format=deck.format,
        is_legal=legality.is_legal,
        legality_issues=[IssueResponse(**asdict(i)) for i in legality.issues],
        legality_warnings=[IssueResponse(**asdict(i)) for i in legality.warnings],
        warnings=[WarningResponse(**asdict(w)) for w in warnings],
        color_identity=calculate_color_identity(main, commander),
        color_distribution=deck.color_distribution(card_data),
        mana_curve=mana_curve(main),
        average_mana_value=round(deck.average_mana_value(card_data), 2),
        main_count=deck.total_cards(Board.MAIN),
        side_count=deck.total_cards(Board.SIDE),
        missing_cards=sorted(card_id for card_id in deck.card_ids() if card_id not in card_data),
    )


@router.get("/{user_id}/{deck_id}/matches", response_model=MatchHistoryResponse)
async def list_matches(
    user_id: str,
    deck_id: int,
    decks: DecksDep,
    session: SessionDep,
) -> MatchHistoryResponse:
    """Match history, newest first, with a win/loss/draw summary."""
    await _load_deck(decks, user_id, deck_id)
    matches = [match_to_model(row) for row in await get_matches(session, deck_id)]

    wins = sum(1 for m in matches if m.result == MatchResult.WIN)
    losses = sum(1 for m in matches if m.result == MatchResult.LOSS)
    draws = sum(1 for m in matches if m.result == MatchResult.DRAW)

    return MatchHistoryResponse(
        matches=[MatchResponse.from_match(m) for m in matches],
        wins=wins,
        losses=losses,
        draws=draws,
        win_rate=round(wins / len(matches), 3) if matches else 0.0,
    )


@router.post(
    "/{user_id}/{deck_id}/matches",
    response_model=MatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_match(
    user_id: str,
    deck_id: int,
    request: MatchRequest,
    decks: DecksDep,
    session: SessionDep,
) -> MatchResponse:
    await _load_deck(decks, user_id, deck_id)
    row = await add_match(
        session,
        DeckMatch(
            deck_id=deck_id,
            result=request.result,
            opponent_name=request.opponent_name,
            opponent_archetype=request.opponent_archetype,
            notes=request.notes,
            played_at=request.played_at,
        ),
    )
    return MatchResponse.from_match(match_to_model(row))


@router.delete("/{user_id}/{deck_id}/matches/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_match(
    user_id: str,
    deck_id: int,
    match_id: int,
    decks: DecksDep,
    session: SessionDep,
) -> None:
    await _load_deck(decks, user_id, deck_id)
    if not await delete_match(session, deck_id, match_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Match {match_id} not found for deck {deck_id}",
        )
