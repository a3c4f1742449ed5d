"""
API tests for asset endpoints.

Tests cover:
- Create/list/get assets
- Balance and funded views
- Allocation updates and removal
- Deposits with auto-tracking
- Error responses (400, 404, 422)
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def asset_id(client: TestClient) -> str:
    response = client.post("/assets", json={"name": "Wallet", "currency": "usd"})
    return response.json()["asset_id"]


@pytest.fixture
def goal_ids(client: TestClient) -> list[str]:
    return [
        client.post("/goals", json={"name": name, "currency": "USD"}).json()["goal_id"]
        for name in ("House", "Car")
    ]


# =============================================================================
# CATALOG TESTS
# =============================================================================


class TestAssetCatalogAPI:
    """Tests for POST/GET /assets."""

    def test_create_asset_success(self, client: TestClient):
        """
        GIVEN no assets exist
        WHEN I POST /assets with valid data
        THEN response is 201 and the currency is upper-cased
        """
        response = client.post("/assets", json={"name": "Wallet", "currency": "btc"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Wallet"
        assert data["currency"] == "BTC"
        assert data["asset_id"]

    def test_create_duplicate_name_returns_400(self, client: TestClient, asset_id):
        """
        GIVEN an asset named Wallet
        WHEN I POST another asset with the same name
        THEN response is 400 with a validation error
        """
        response = client.post("/assets", json={"name": "Wallet", "currency": "USD"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_create_asset_missing_currency_returns_422(self, client: TestClient):
        """
        GIVEN a request without currency
        WHEN I POST /assets
        THEN request validation fails with 422
        """
        response = client.post("/assets", json={"name": "Wallet"})

        assert response.status_code == 422

    def test_list_and_get(self, client: TestClient, asset_id):
        """
        GIVEN one asset
        WHEN I list and fetch it
        THEN both return the same asset
        """
        listed = client.get("/assets").json()
        fetched = client.get(f"/assets/{asset_id}").json()

        assert [a["asset_id"] for a in listed] == [asset_id]
        assert fetched["name"] == "Wallet"

    def test_get_unknown_asset_returns_404(self, client: TestClient):
        """
        GIVEN no assets
        WHEN I GET an unknown id
        THEN response is 404 with NOT_FOUND
        """
        response = client.get("/assets/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


# =============================================================================
# DEPOSIT AND ALLOCATION TESTS
# =============================================================================


class TestAllocationAPI:
    """Tests for allocation and deposit endpoints."""

    def test_deposit_and_balance(self, client: TestClient, asset_id):
        """
        GIVEN an empty asset
        WHEN I deposit 100 and withdraw 30
        THEN the balance is 70 and all of it is unallocated
        """
        first = client.post(
            f"/assets/{asset_id}/deposits",
            json={"amount": "100", "at": "2024-03-01T12:00:00Z", "note": "salary"},
        )
        client.post(f"/assets/{asset_id}/deposits", json={"amount": "-30", "at": "2024-03-02T12:00:00Z"})

        assert first.status_code == 201
        assert first.json()["note"] == "salary"
        balance = client.get(f"/assets/{asset_id}/balance", params={"as_of": "2024-03-03T00:00:00Z"}).json()
        assert Decimal(balance["balance"]) == Decimal("70")
        assert Decimal(balance["unallocated"]) == Decimal("70")

    def test_zero_deposit_returns_400(self, client: TestClient, asset_id):
        """
        GIVEN an asset
        WHEN I deposit zero
        THEN response is 400
        """
        response = client.post(f"/assets/{asset_id}/deposits", json={"amount": "0"})

        assert response.status_code == 400

    def test_update_allocations(self, client: TestClient, asset_id, goal_ids):
        """
        GIVEN an asset holding 100
        WHEN I PUT targets 60 and 30
        THEN the live targets are returned with 10 unallocated
        """
        client.post(f"/assets/{asset_id}/deposits", json={"amount": "100", "at": "2024-03-01T12:00:00Z"})

        response = client.put(
            f"/assets/{asset_id}/allocations",
            json={
                "allocations": [
                    {"goal_id": goal_ids[0], "amount": "60"},
                    {"goal_id": goal_ids[1], "amount": "30"},
                ],
                "at": "2024-03-02T12:00:00Z",
            },
        )

        assert response.status_code == 200
        data = response.json()
        amounts = {a["goal_id"]: Decimal(a["amount"]) for a in data["allocations"]}
        assert amounts == {goal_ids[0]: Decimal("60"), goal_ids[1]: Decimal("30")}
        assert Decimal(data["unallocated"]) == Decimal("10")

    def test_negative_allocation_returns_422(self, client: TestClient, asset_id, goal_ids):
        """
        GIVEN an asset
        WHEN I PUT a negative target
        THEN request validation fails with 422
        """
        response = client.put(
            f"/assets/{asset_id}/allocations",
            json={"allocations": [{"goal_id": goal_ids[0], "amount": "-1"}]},
        )

        assert response.status_code == 422

    def test_allocation_to_unknown_goal_returns_404(self, client: TestClient, asset_id):
        """
        GIVEN an asset
        WHEN I allocate to an unknown goal
        THEN response is 404
        """
        response = client.put(
            f"/assets/{asset_id}/allocations",
            json={"allocations": [{"goal_id": "missing", "amount": "5"}]},
        )

        assert response.status_code == 404

    def test_remove_allocation(self, client: TestClient, asset_id, goal_ids):
        """
        GIVEN an asset with two targets
        WHEN I DELETE one of them
        THEN only the other remains
        """
        client.put(
            f"/assets/{asset_id}/allocations",
            json={"allocations": [{"goal_id": g, "amount": "5"} for g in goal_ids]},
        )

        response = client.delete(f"/assets/{asset_id}/allocations/{goal_ids[0]}")

        assert response.status_code == 200
        assert [a["goal_id"] for a in response.json()["allocations"]] == [goal_ids[1]]

    def test_funded_view_splits_over_allocation(self, client: TestClient, asset_id, goal_ids):
        """
        GIVEN an asset holding 80 with targets 60 and 60
        WHEN I GET its funded view
        THEN each goal is funded 40
        """
        client.post(f"/assets/{asset_id}/deposits", json={"amount": "80", "at": "2024-03-01T12:00:00Z"})
        client.put(
            f"/assets/{asset_id}/allocations",
            json={
                "allocations": [{"goal_id": g, "amount": "60"} for g in goal_ids],
                "at": "2024-03-02T12:00:00Z",
            },
        )

        data = client.get(f"/assets/{asset_id}/funded", params={"as_of": "2024-03-03T00:00:00Z"}).json()

        assert {g: Decimal(v) for g, v in data["funded"].items()} == {
            goal_ids[0]: Decimal("40"),
            goal_ids[1]: Decimal("40"),
        }
        assert Decimal(data["unallocated"]) == Decimal("0")

    def test_deposit_auto_tracks_dedicated_asset(self, client: TestClient, asset_id, goal_ids):
        """
        GIVEN an asset fully allocated to one goal
        WHEN I deposit 25
        THEN the goal's target follows the balance
        """
        client.post(f"/assets/{asset_id}/deposits", json={"amount": "50", "at": "2024-03-01T12:00:00Z"})
        client.put(
            f"/assets/{asset_id}/allocations",
            json={"allocations": [{"goal_id": goal_ids[0], "amount": "50"}], "at": "2024-03-02T12:00:00Z"},
        )

        client.post(f"/assets/{asset_id}/deposits", json={"amount": "25", "at": "2024-03-03T12:00:00Z"})

        (allocation,) = client.get(f"/assets/{asset_id}/allocations").json()["allocations"]
        assert Decimal(allocation["amount"]) == Decimal("75")
