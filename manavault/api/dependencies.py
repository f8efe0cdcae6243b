"""
Shared FastAPI dependencies.

The card gateway lives on `app.state` for the life of the application;
routes get it (and repositories built on the request session) from here.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manavault.db.database import async_session_factory, get_session
from manavault.services.card_gateway import CardGateway
from manavault.services.repositories import (
    CardRepository,
    CollectionRepository,
    DeckRepository,
)


def get_gateway(request: Request) -> CardGateway:
    gateway: CardGateway = request.app.state.card_gateway
    return gateway


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for endpoints that commit in several steps."""
    return async_session_factory


def get_card_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
    gateway: Annotated[CardGateway, Depends(get_gateway)],
) -> CardRepository:
    return CardRepository(session, gateway)


def get_collection_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionRepository:
    return CollectionRepository(session)


def get_deck_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeckRepository:
    return DeckRepository(session)


GatewayDep = Annotated[CardGateway, Depends(get_gateway)]
CardsDep = Annotated[CardRepository, Depends(get_card_repository)]
CollectionsDep = Annotated[CollectionRepository, Depends(get_collection_repository)]
DecksDep = Annotated[DeckRepository, Depends(get_deck_repository)]
