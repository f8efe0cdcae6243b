"""Tests for the rate-limited Scryfall gateway."""

import asyncio

import httpx
import pytest
import respx

from manavault.services.card_gateway import (
    CardDataError,
    CardGateway,
    CardNotFoundError,
    RateLimitedError,
)

API = "https://api.scryfall.com"


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def gateway(clock: FakeClock):
    gateway = CardGateway(
        API, min_interval=0.1, retry_delay=1.0, max_retries=2, clock=clock, sleep=clock.sleep
    )
    yield gateway
    await gateway.aclose()


class TestGetCard:
    @respx.mock
    async def test_parses_card(self, gateway: CardGateway, scryfall_card) -> None:
        """A card lookup returns a parsed Card."""
        respx.get(f"{API}/cards/bolt-1").mock(
            return_value=httpx.Response(200, json=scryfall_card("bolt-1", "Lightning Bolt"))
        )

        card = await gateway.get_card("bolt-1")

        assert card.id == "bolt-1"
        assert card.name == "Lightning Bolt"
        assert card.price_usd == 1.5
        assert card.color_identity == ("R",)

    @respx.mock
    async def test_not_found(self, gateway: CardGateway) -> None:
        """404 raises CardNotFoundError with Scryfall's message."""
        respx.get(f"{API}/cards/missing").mock(
            return_value=httpx.Response(
                404, json={"object": "error", "status": 404, "details": "No card found"}
            )
        )

        with pytest.raises(CardNotFoundError, match="No card found") as exc_info:
            await gateway.get_card("missing")
        assert exc_info.value.status_code == 404

    @respx.mock
    async def test_server_error(self, gateway: CardGateway) -> None:
        """Other failures raise CardDataError with the status code."""
        respx.get(f"{API}/cards/broken").mock(return_value=httpx.Response(500))

        with pytest.raises(CardDataError) as exc_info:
            await gateway.get_card("broken")
        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, CardNotFoundError)


class TestSearch:
    @respx.mock
    async def test_search_returns_page(self, gateway: CardGateway, scryfall_card) -> None:
        route = respx.get(f"{API}/cards/search").mock(
            return_value=httpx.Response(
                200,
                json={
                    "object": "list",
                    "total_cards": 2,
                    "has_more": False,
                    "data": [
                        scryfall_card("a", "Lightning Bolt"),
                        scryfall_card("b", "Lightning Helix", color_identity=["R", "W"]),
                    ],
                },
            )
        )

        page = await gateway.search_cards("lightning", page=2)

        assert [card.name for card in page.cards] == ["Lightning Bolt", "Lightning Helix"]
        assert page.total_cards == 2
        assert not page.has_more
        params = route.calls.last.request.url.params
        assert params["q"] == "lightning"
        assert params["page"] == "2"

    @respx.mock
    async def test_no_matches_is_empty_page(self, gateway: CardGateway) -> None:
        """Scryfall answers 404 for a search with no results."""
        respx.get(f"{API}/cards/search").mock(
            return_value=httpx.Response(404, json={"object": "error", "details": "No cards"})
        )

        page = await gateway.search_cards("xyzzy")

        assert page.cards == ()
        assert page.total_cards == 0

    @respx.mock
    async def test_named_lookup_sends_set(self, gateway: CardGateway, scryfall_card) -> None:
        route = respx.get(f"{API}/cards/named").mock(
            return_value=httpx.Response(200, json=scryfall_card("a", "Lightning Bolt"))
        )

        await gateway.get_card_by_name("lightning bolt", "LEA")

        params = route.calls.last.request.url.params
        assert params["fuzzy"] == "lightning bolt"
        assert params["set"] == "lea"

    @respx.mock
    async def test_printing_lookup(self, gateway: CardGateway, scryfall_card) -> None:
        route = respx.get(f"{API}/cards/m10/146").mock(
            return_value=httpx.Response(
                200, json=scryfall_card("b", "Lightning Bolt", set="m10", collector_number="146")
            )
        )

        card = await gateway.get_card_by_printing("M10", "146")

        assert route.called
        assert (card.set_code, card.collector_number) == ("m10", "146")

    @respx.mock
    async def test_autocomplete_and_rulings(self, gateway: CardGateway) -> None:
        respx.get(f"{API}/cards/autocomplete").mock(
            return_value=httpx.Response(200, json={"object": "catalog", "data": ["Llanowar Elves"]})
        )
        respx.get(f"{API}/cards/a/rulings").mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {"source": "wotc", "published_at": "2020-01-01", "comment": "Ruling."}
                    ]
                },
            )
        )

        assert await gateway.autocomplete("llan") == ["Llanowar Elves"]
        rulings = await gateway.get_rulings("a")
        assert rulings[0].comment == "Ruling."

    @respx.mock
    async def test_sets(self, gateway: CardGateway) -> None:
        respx.get(f"{API}/sets").mock(
            return_value=httpx.Response(
                200, json={"object": "list", "data": [{"code": "lea", "name": "Alpha"}]}
            )
        )

        assert await gateway.get_sets() == [{"code": "lea", "name": "Alpha"}]


class TestRateLimiting:
    @respx.mock
    async def test_requests_are_spaced(
        self, gateway: CardGateway, clock: FakeClock, scryfall_card
    ) -> None:
        """Concurrent callers are dispatched one at a time, min_interval apart."""
        dispatched: list[float] = []

        def record(request: httpx.Request) -> httpx.Response:
            dispatched.append(clock.now)
            card_id = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=scryfall_card(card_id, f"Card {card_id}"))

        respx.get(url__regex=rf"{API}/cards/c\d").mock(side_effect=record)

        cards = await asyncio.gather(*(gateway.get_card(f"c{i}") for i in range(5)))

        assert [card.id for card in cards] == [f"c{i}" for i in range(5)]
        assert len(dispatched) == 5
        gaps = [later - earlier for earlier, later in zip(dispatched, dispatched[1:])]
        assert all(gap >= 0.1 - 1e-9 for gap in gaps)

    @respx.mock
    async def test_retries_after_429(
        self, gateway: CardGateway, clock: FakeClock, scryfall_card
    ) -> None:
        """A 429 is retried after retry_delay and the caller gets the eventual answer."""
        route = respx.get(f"{API}/cards/a").mock(
            side_effect=[
                httpx.Response(429),
                httpx.Response(200, json=scryfall_card("a", "Lightning Bolt")),
            ]
        )

        card = await gateway.get_card("a")

        assert card.name == "Lightning Bolt"
        assert route.call_count == 2
        assert 1.0 in clock.sleeps

    @respx.mock
    async def test_gives_up_after_max_retries(self, gateway: CardGateway) -> None:
        route = respx.get(f"{API}/cards/a").mock(return_value=httpx.Response(429))

        with pytest.raises(RateLimitedError):
            await gateway.get_card("a")
        assert route.call_count == 3

    @respx.mock
    async def test_failure_does_not_stop_queue(self, gateway: CardGateway, scryfall_card) -> None:
        """One failing job doesn't affect jobs queued behind it."""
        respx.get(f"{API}/cards/bad").mock(return_value=httpx.Response(404))
        respx.get(f"{API}/cards/good").mock(
            return_value=httpx.Response(200, json=scryfall_card("good", "Island"))
        )

        results = await asyncio.gather(
            gateway.get_card("bad"), gateway.get_card("good"), return_exceptions=True
        )

        assert isinstance(results[0], CardNotFoundError)
        assert results[1].name == "Island"


class TestLifecycle:
    async def test_closed_gateway_rejects_requests(self) -> None:
        gateway = CardGateway(API, min_interval=0)
        await gateway.aclose()

        with pytest.raises(RuntimeError):
            await gateway.get_card("a")

    @respx.mock
    async def test_close_settles_in_flight_request(self) -> None:
        """Closing mid-request cancels the caller instead of leaving it waiting."""
        started = asyncio.Event()

        async def stall(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200)

        respx.get(f"{API}/cards/a").mock(side_effect=stall)
        gateway = CardGateway(API, min_interval=0)
        task = asyncio.create_task(gateway.get_card("a"))
        await started.wait()

        await gateway.aclose()
        done, _ = await asyncio.wait({task}, timeout=1)

        assert task in done
        assert task.cancelled()

    @respx.mock
    async def test_close_cancels_queued_requests(self, scryfall_card) -> None:
        started = asyncio.Event()

        async def stall(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200)

        respx.get(f"{API}/cards/a").mock(side_effect=stall)
        respx.get(f"{API}/cards/b").mock(
            return_value=httpx.Response(200, json=scryfall_card("b", "Island"))
        )
        gateway = CardGateway(API, min_interval=0)
        first = asyncio.create_task(gateway.get_card("a"))
        second = asyncio.create_task(gateway.get_card("b"))
        await started.wait()

        await gateway.aclose()
        done, _ = await asyncio.wait({first, second}, timeout=1)

        assert done == {first, second}
        assert first.cancelled() and second.cancelled()

    @respx.mock
    async def test_context_manager(self, scryfall_card) -> None:
        respx.get(f"{API}/cards/a").mock(
            return_value=httpx.Response(200, json=scryfall_card("a", "Lightning Bolt"))
        )

        async with CardGateway(API, min_interval=0) as gateway:
            card = await gateway.get_card("a")

        assert card.id == "a"
