"""Tests for want list endpoints."""

import respx
from httpx import AsyncClient


async def _want(client: AsyncClient, card_id: str, **fields) -> dict:
    response = await client.post("/wishlist/user-1", json={"card_id": card_id, **fields})
    assert response.status_code == 201
    return response.json()


class TestWantList:
    async def test_empty(self, client: AsyncClient) -> None:
        response = await client.get("/wishlist/user-1")

        assert response.json() == {"user_id": "user-1", "items": [], "count": 0, "total_cost": 0}

    async def test_add_and_list_with_prices(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        added = await _want(client, "ring", quantity=2, priority="high")
        await _want(client, "atraxa", list_kind="watchlist")

        everything = (await client.get("/wishlist/user-1")).json()
        wishlist = (await client.get("/wishlist/user-1", params={"list_kind": "wishlist"})).json()

        assert added["card_name"] == "Sol Ring"
        assert added["current_price"] == 2.0
        assert everything["count"] == 2
        assert everything["total_cost"] == 24.0
        assert [item["card_id"] for item in wishlist["items"]] == ["ring"]
        assert wishlist["total_cost"] == 4.0

    async def test_unknown_card(self, client: AsyncClient, scryfall: respx.MockRouter) -> None:
        response = await client.post("/wishlist/user-1", json={"card_id": "nope"})

        assert response.status_code == 404

    async def test_duplicate_on_same_list(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        await _want(client, "ring")

        duplicate = await client.post("/wishlist/user-1", json={"card_id": "ring"})
        other_list = await client.post(
            "/wishlist/user-1", json={"card_id": "ring", "list_kind": "shopping"}
        )

        assert duplicate.status_code == 409
        assert other_list.status_code == 201


class TestPriceAlerts:
    async def test_alerts_sorted_by_savings(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        await _want(client, "bolt", target_price=2.0, alert_enabled=True)
        await _want(client, "atraxa", target_price=25.0, alert_enabled=True)
        await _want(client, "ring", target_price=1.0, alert_enabled=True)
        await _want(client, "elves", target_price=5.0)

        response = await client.get("/wishlist/user-1/alerts")

        alerts = response.json()
        assert [alert["item"]["card_id"] for alert in alerts] == ["atraxa", "bolt"]
        assert alerts[0]["savings"] == 5.0
        assert alerts[1]["current_price"] == 1.5


class TestUpdateAndRemove:
    async def test_update_and_clear_fields(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        item = await _want(client, "ring", target_price=1.0, note="for EDH")

        response = await client.patch(
            f"/wishlist/user-1/{item['id']}",
            json={"quantity": 3, "target_price": None, "note": None, "alert_enabled": None},
        )

        data = response.json()
        assert data["quantity"] == 3
        assert data["target_price"] is None
        assert data["note"] is None
        assert data["alert_enabled"] is False

    async def test_move_between_lists(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        item = await _want(client, "ring")

        response = await client.patch(
            f"/wishlist/user-1/{item['id']}", json={"list_kind": "shopping"}
        )

        assert response.json()["list_kind"] == "shopping"

    async def test_move_conflict(self, client: AsyncClient, scryfall: respx.MockRouter) -> None:
        item = await _want(client, "ring")
        await _want(client, "ring", list_kind="shopping")

        response = await client.patch(
            f"/wishlist/user-1/{item['id']}", json={"list_kind": "shopping"}
        )

        assert response.status_code == 409

    async def test_update_other_users_item(
        self, client: AsyncClient, scryfall: respx.MockRouter
    ) -> None:
        item = await _want(client, "ring")

        response = await client.patch(f"/wishlist/user-2/{item['id']}", json={"quantity": 2})

        assert response.status_code == 404

    async def test_remove(self, client: AsyncClient, scryfall: respx.MockRouter) -> None:
        item = await _want(client, "ring")

        removed = await client.delete(f"/wishlist/user-1/{item['id']}")
        again = await client.delete(f"/wishlist/user-1/{item['id']}")

        assert removed.status_code == 204
        assert again.status_code == 404
