from collections.abc import Callable
from typing import Any

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manavault.api.dependencies import get_session_factory
from manavault.db.database import get_session
from manavault.main import app
from manavault.models.card import Card
from manavault.models.db import Base
from manavault.services.card_gateway import CardGateway

SCRYFALL_API = "https://api.scryfall.com"

CardFactory = Callable[..., Card]


@pytest.fixture
def make_card() -> CardFactory:
    """Build Cards with sensible defaults; the ID defaults to a slug of the name."""

    def factory(name: str, **fields: Any) -> Card:
        fields.setdefault("id", name.lower().replace(" ", "-").replace(",", ""))
        fields.setdefault("type_line", "Instant")
        fields.setdefault("rarity", "common")
        for key in ("colors", "color_identity", "keywords"):
            if key in fields:
                fields[key] = tuple(fields[key])
        if "color_identity" not in fields and "colors" in fields:
            fields["color_identity"] = fields["colors"]
        return Card(name=name, **fields)

    return factory


@pytest.fixture
def scryfall_card() -> Callable[..., dict[str, Any]]:
    """Build Scryfall card objects as the API returns them."""

    def factory(card_id: str, name: str, **fields: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "object": "card",
            "id": card_id,
            "name": name,
            "mana_cost": "{R}",
            "cmc": 1.0,
            "type_line": "Instant",
            "oracle_text": "Lightning Bolt deals 3 damage to any target.",
            "colors": ["R"],
            "color_identity": ["R"],
            "keywords": [],
            "legalities": {"commander": "legal", "modern": "legal", "standard": "not_legal"},
            "set": "lea",
            "set_name": "Limited Edition Alpha",
            "collector_number": "161",
            "rarity": "common",
            "prices": {"usd": "1.50", "usd_foil": None},
        }
        payload.update(fields)
        return payload

    return factory


@pytest.fixture
def sample_arena_export() -> str:
    """Sample Arena deck export for testing."""
    return """Deck
4 Lightning Bolt (LEB) 163
4 Monastery Swiftspear (BRO) 144
20 Mountain (NEO) 290

Sideboard
2 Abrade (VOW) 139"""


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database session."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.card_gateway = CardGateway(
        SCRYFALL_API, min_interval=0, retry_delay=0, max_retries=0
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await app.state.card_gateway.aclose()


@pytest.fixture
def card_pool(scryfall_card) -> dict[str, dict[str, Any]]:
    """Scryfall payloads served by the mocked API, keyed by card ID."""
    return {
        "bolt": scryfall_card("bolt", "Lightning Bolt"),
        "ring": scryfall_card(
            "ring",
            "Sol Ring",
            mana_cost="{1}",
            type_line="Artifact",
            oracle_text="{T}: Add {C}{C}.",
            colors=[],
            color_identity=[],
            set="c21",
            collector_number="263",
            rarity="uncommon",
            prices={"usd": "2.00", "usd_foil": "5.00"},
        ),
        "elves": scryfall_card(
            "elves",
            "Llanowar Elves",
            mana_cost="{G}",
            type_line="Creature — Elf Druid",
            oracle_text="{T}: Add {G}.",
            colors=["G"],
            color_identity=["G"],
            set="m19",
            collector_number="314",
            power="1",
            toughness="1",
            prices={"usd": "0.25", "usd_foil": None},
        ),
        "atraxa": scryfall_card(
            "atraxa",
            "Atraxa, Praetors' Voice",
            mana_cost="{G}{W}{U}{B}",
            cmc=4.0,
            type_line="Legendary Creature — Phyrexian Angel Horror",
            oracle_text="Flying, vigilance, deathtouch, lifelink",
            colors=["W", "U", "B", "G"],
            color_identity=["W", "U", "B", "G"],
            set="c16",
            collector_number="28",
            rarity="mythic",
            power="4",
            toughness="4",
            prices={"usd": "20.00", "usd_foil": None},
        ),
    }


@pytest.fixture
def scryfall(card_pool):
    """
    Mock the Scryfall API over `card_pool`.

    Serves lookups by ID or by set and collector number, exact-name search
    (as used by imports) and fuzzy named lookups. Cards outside the pool
    are 404s.
    """
    by_name = {payload["name"].lower(): payload for payload in card_pool.values()}

    def not_found() -> httpx.Response:
        return httpx.Response(404, json={"object": "error", "details": "No card found"})

    def card_by_id(request: httpx.Request) -> httpx.Response:
        payload = card_pool.get(request.url.path.rsplit("/", 1)[-1])
        return httpx.Response(200, json=payload) if payload else not_found()

    def card_by_printing(request: httpx.Request) -> httpx.Response:
        set_code, number = request.url.path.split("/")[-2:]
        for payload in card_pool.values():
            if (payload["set"], payload["collector_number"]) == (set_code, number):
                return httpx.Response(200, json=payload)
        return not_found()

    def card_by_name(request: httpx.Request) -> httpx.Response:
        payload = by_name.get(request.url.params["fuzzy"].lower())
        return httpx.Response(200, json=payload) if payload else not_found()

    def search(request: httpx.Request) -> httpx.Response:
        name = request.url.params["q"].split(" set:")[0].strip("!\"").lower()
        payload = by_name.get(name)
        if payload is None:
            return not_found()
        return httpx.Response(
            200, json={"object": "list", "total_cards": 1, "has_more": False, "data": [payload]}
        )

    with respx.mock(assert_all_called=False) as router:
        router.get(f"{SCRYFALL_API}/cards/named", name="named").mock(side_effect=card_by_name)
        router.get(f"{SCRYFALL_API}/cards/search", name="search").mock(side_effect=search)
        router.get(
            url__regex=rf"{SCRYFALL_API}/cards/(?!named$|search$|autocomplete$)[\w-]+$",
            name="card",
        ).mock(side_effect=card_by_id)
        router.get(
            url__regex=rf"{SCRYFALL_API}/cards/[a-z0-9]+/(?!rulings$)[\w-]+$",
            name="printing",
        ).mock(side_effect=card_by_printing)
        yield router
