"""
Rate-limited client for the Scryfall card-data API.

All requests go through one FIFO queue drained by a single worker task, so
exactly one request is in flight at a time and consecutive dispatches are
spaced by at least `min_interval` seconds. HTTP 429 responses are retried
inside the same queue slot after a fixed delay.

Responses are converted to typed objects here; callers never see raw JSON.

API docs: https://scryfall.com/docs/api
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from manavault.config import settings
from manavault.models.card import Card, CardPage, Ruling
from manavault.parsers.scryfall import parse_card, parse_card_list, parse_catalog, parse_rulings

logger = logging.getLogger(__name__)


class CardDataError(Exception):
    """Raised when the card-data service answers with a non-success status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Card data request failed ({status_code}): {message}")


class CardNotFoundError(CardDataError):
    """The requested card (or named lookup) does not exist."""


class RateLimitedError(CardDataError):
    """Still rate limited after every retry was used."""


@dataclass
class _Job:
    path: str
    params: dict[str, Any]
    future: asyncio.Future[Any] = field(repr=False)


def _error_detail(response: httpx.Response) -> str:
    """Scryfall error objects carry a human-readable `details` field."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("details"):
        return str(body["details"])
    return response.reason_phrase


class CardGateway:
    """
    Async gateway to Scryfall.

    Usage:
        async with CardGateway() as gateway:
            card = await gateway.get_card("...")

    Args:
        base_url: API root, defaults to settings
        min_interval: Minimum seconds between dispatched requests
        retry_delay: Seconds to wait before retrying a 429
        max_retries: Retries allowed for a single rate-limited request
        client: Pre-built httpx client (not closed by the gateway)
        clock: Monotonic clock used for request spacing
        sleep: Coroutine used to wait between requests
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        min_interval: float | None = None,
        retry_delay: float | None = None,
        max_retries: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = (base_url or settings.scryfall_api_url).rstrip("/")
        self.min_interval = (
            settings.scryfall_min_interval if min_interval is None else min_interval
        )
        self.retry_delay = settings.scryfall_retry_delay if retry_delay is None else retry_delay
        self.max_retries = settings.scryfall_max_retries if max_retries is None else max_retries

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.scryfall_timeout,
            headers={
                "User-Agent": settings.scryfall_user_agent,
                "Accept": "application/json",
            },
        )
        self._clock = clock
        self._sleep = sleep
        self._queue: asyncio.Queue[_Job] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._last_dispatch: float | None = None
        self._closed = False

    async def __aenter__(self) -> "CardGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the worker, cancel queued jobs and close the HTTP client."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        while not self._queue.empty():
            job = self._queue.get_nowait()
            job.future.cancel()

        if self._owns_client:
            await self._client.aclose()

    # --- Queue ---

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="card-gateway-worker")

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if self._closed:
            raise RuntimeError("CardGateway is closed")

        self._ensure_worker()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        await self._queue.put(_Job(path=path, params=params or {}, future=future))
        return await future

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.future.cancelled():
                    continue
                try:
                    result = await self._execute(job)
                except asyncio.CancelledError:
                    # Shutdown mid-request; the caller must not wait forever
                    job.future.cancel()
                    raise
                except Exception as e:
                    if not job.future.done():
                        job.future.set_exception(e)
                else:
                    if not job.future.done():
                        job.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _wait_for_slot(self) -> None:
        if self._last_dispatch is not None:
            remaining = self.min_interval - (self._clock() - self._last_dispatch)
            if remaining > 0:
                await self._sleep(remaining)
        self._last_dispatch = self._clock()

    async def _execute(self, job: _Job) -> Any:
        retries = 0
        while True:
            await self._wait_for_slot()
            response = await self._client.get(job.path, params=job.params)

            if response.status_code == 429:
                if retries >= self.max_retries:
                    logger.error("Rate limited on %s after %d retries", job.path, retries)
                    raise RateLimitedError(429, "Rate limit exceeded")
                retries += 1
                logger.warning(
                    "Rate limited on %s, retry %d/%d in %.1fs",
                    job.path,
                    retries,
                    self.max_retries,
                    self.retry_delay,
                )
                await self._sleep(self.retry_delay)
                continue

            if response.status_code == 404:
                raise CardNotFoundError(404, _error_detail(response))

            if not response.is_success:
                detail = _error_detail(response)
                logger.error(
                    "Card data request %s failed: %d %s", job.path, response.status_code, detail
                )
                raise CardDataError(response.status_code, detail)

            return response.json()

    # --- Endpoints ---

    async def search_cards(self, query: str, page: int = 1) -> CardPage:
        """
        Full-text Scryfall search, one card per oracle identity.

        A search with no matches is an empty page, not an error.
        """
        params = {"q": query, "page": page, "order": "name", "unique": "cards"}
        try:
            payload = await self._request("/cards/search", params)
        except CardNotFoundError:
            return CardPage()
        return parse_card_list(payload)

    async def get_card(self, card_id: str) -> Card:
        return parse_card(await self._request(f"/cards/{card_id}"))

    async def get_card_by_printing(self, set_code: str, collector_number: str) -> Card:
        """The exact printing with this set code and collector number."""
        return parse_card(await self._request(f"/cards/{set_code.lower()}/{collector_number}"))

    async def get_card_by_name(self, name: str, set_code: str | None = None) -> Card:
        """Fuzzy name lookup, optionally pinned to a set."""
        params: dict[str, Any] = {"fuzzy": name}
        if set_code:
            params["set"] = set_code.lower()
        return parse_card(await self._request("/cards/named", params))

    async def get_rulings(self, card_id: str) -> list[Ruling]:
        return parse_rulings(await self._request(f"/cards/{card_id}/rulings"))

    async def autocomplete(self, query: str) -> list[str]:
        """Up to 20 card names starting with or containing `query`."""
        return parse_catalog(await self._request("/cards/autocomplete", {"q": query}))

    async def get_sets(self) -> list[dict[str, Any]]:
        payload = await self._request("/sets")
        return list(payload.get("data", []))
