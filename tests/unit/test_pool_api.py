"""HTTP-level tests for the pm_pool router, backed by in-memory repositories."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from src.main import app
from src.pm_common.database import get_db_session
from src.pm_pool.api import router as pool_router

BASE = "/api/v1/pool"


@pytest.fixture
def api(service, db, monkeypatch):
    monkeypatch.setattr(pool_router, "pool_service", service)

    async def _override_db():
        yield db

    app.dependency_overrides[get_db_session] = _override_db
    yield
    app.dependency_overrides.clear()


def _amount(value: object) -> Decimal:
    return Decimal(str(value))


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}


@pytest.mark.usefixtures("api")
class TestConfigEndpoints:
    async def test_get_config(self, client: AsyncClient) -> None:
        resp = await client.get(f"{BASE}/config")
        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["request_id"].startswith("req_")
        assert _amount(body["data"]["pool_size"]) == Decimal("10000")
        assert _amount(body["data"]["vault_rate"]) == Decimal("0.03")

    async def test_patch_partial(self, client: AsyncClient) -> None:
        resp = await client.patch(f"{BASE}/config", json={"vault_rate": "0.05"})
        body = resp.json()
        assert resp.status_code == 200
        assert body["message"] == "Pool config updated"
        assert _amount(body["data"]["vault_rate"]) == Decimal("0.05")
        assert _amount(body["data"]["cap_multiplier"]) == Decimal("5")

    async def test_patch_out_of_range(self, client: AsyncClient) -> None:
        resp = await client.patch(f"{BASE}/config", json={"vault_rate": "2"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 6004
        assert resp.json()["data"] is None

    async def test_patch_storage_failure(self, client: AsyncClient, config_repo) -> None:
        config_repo.save = AsyncMock(side_effect=SQLAlchemyError("down"))
        resp = await client.patch(f"{BASE}/config", json={"pool_size": "500"})
        assert resp.status_code == 503
        assert resp.json()["code"] == 9003


@pytest.mark.usefixtures("api")
class TestPositionEndpoints:
    async def test_deposit_trade_withdraw(self, client: AsyncClient) -> None:
        resp = await client.post(f"{BASE}/deposit", json={"user_id": "alice", "amount": "100"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Successfully deposited 100.00 PXB into the trading pool"
        assert _amount(resp.json()["data"]["points_balance"]) == Decimal("900")

        resp = await client.post(f"{BASE}/trade", json={"user_id": "alice", "direction": "up"})
        data = resp.json()["data"]
        assert data["direction"] == "up"
        assert _amount(data["current_pxb"]) == Decimal("105")

        resp = await client.get(f"{BASE}/positions/alice")
        data = resp.json()["data"]
        assert data["username"] == "alice_pxb"
        assert _amount(data["percent_change"]) == Decimal("5")

        resp = await client.get(f"{BASE}/positions/alice/withdrawal-preview")
        assert _amount(resp.json()["data"]["final_payout"]) == Decimal("101.85")

        resp = await client.post(f"{BASE}/withdraw", json={"user_id": "alice"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert _amount(data["payout"]["final_payout"]) == Decimal("101.85")
        assert _amount(data["vault_balance"]) == Decimal("3.15")

        resp = await client.get(f"{BASE}/positions/alice")
        assert resp.json()["data"] is None

    async def test_second_deposit_conflict(self, client: AsyncClient) -> None:
        await client.post(f"{BASE}/deposit", json={"user_id": "alice", "amount": "10"})
        resp = await client.post(f"{BASE}/deposit", json={"user_id": "alice", "amount": "10"})
        assert resp.status_code == 409
        assert resp.json()["code"] == 6003

    async def test_deposit_insufficient_points(self, client: AsyncClient) -> None:
        resp = await client.post(f"{BASE}/deposit", json={"user_id": "bob", "amount": "500.01"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 2001

    @pytest.mark.parametrize("amount", ["0", "-1", "1.001"])
    async def test_deposit_rejects_bad_amount(self, client: AsyncClient, amount: str) -> None:
        resp = await client.post(f"{BASE}/deposit", json={"user_id": "alice", "amount": amount})
        assert resp.status_code == 422

    async def test_trade_rejects_unknown_direction(self, client: AsyncClient) -> None:
        resp = await client.post(
            f"{BASE}/trade", json={"user_id": "alice", "direction": "sideways"}
        )
        assert resp.status_code == 422

    async def test_withdraw_without_position(self, client: AsyncClient) -> None:
        resp = await client.post(f"{BASE}/withdraw", json={"user_id": "bob"})
        assert resp.status_code == 404
        assert resp.json()["code"] == 6002

    async def test_preview_without_position(self, client: AsyncClient) -> None:
        resp = await client.get(f"{BASE}/positions/bob/withdrawal-preview")
        assert resp.status_code == 404


@pytest.mark.usefixtures("api")
class TestLeaderboardAndVault:
    async def test_leaderboard(self, client: AsyncClient) -> None:
        await client.post(f"{BASE}/deposit", json={"user_id": "bob", "amount": "50"})
        await client.post(f"{BASE}/deposit", json={"user_id": "alice", "amount": "100"})
        await client.post(f"{BASE}/trade", json={"user_id": "alice", "direction": "up"})

        resp = await client.get(f"{BASE}/leaderboard")
        items = resp.json()["data"]["items"]
        assert [i["user_id"] for i in items] == ["alice", "bob"]
        assert [i["username"] for i in items] == ["alice_pxb", "bobby"]

    async def test_leaderboard_empty(self, client: AsyncClient) -> None:
        resp = await client.get(f"{BASE}/leaderboard")
        assert resp.json()["data"] == {"items": []}

    async def test_vault_below_threshold(self, client: AsyncClient) -> None:
        resp = await client.post(f"{BASE}/vault/distribute")
        assert resp.status_code == 422
        assert resp.json()["code"] == 6006

    async def test_vault_distribution(self, client: AsyncClient) -> None:
        await client.patch(f"{BASE}/config", json={"vault_balance": "150"})
        resp = await client.post(f"{BASE}/vault/distribute")
        data = resp.json()["data"]
        assert resp.status_code == 200
        # alice 1000 and bob 500 of 1500 points
        assert data["recipients"] == 2
        assert _amount(data["distributed"]) == Decimal("150")
        assert _amount(data["vault_balance"]) == Decimal("0")
