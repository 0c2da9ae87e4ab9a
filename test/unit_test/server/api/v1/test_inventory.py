import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

ADMIN_HEADERS = {"X-Admin-Id": "admin-9", "X-Admin-Name": "Stock Keeper"}
PLATFORM = {"product_id": "p1", "spec_id": "s1", "warehouse_type": "PLATFORM"}


async def stock_in(client: AsyncClient, quantity: int, batch_number: str = "B1", **extra) -> dict:
    response = await client.post(
        "/api/v1/inventory/manual-in",
        json={**PLATFORM, "quantity": quantity, "batch_number": batch_number, **extra},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200, response.text
    return response.json()


async def test_manual_in_records_operator(client: AsyncClient):
    """The admin header becomes the operator of the log row."""
    result = await stock_in(client, 25)
    assert result["success"] is True
    assert (result["before_quantity"], result["after_quantity"]) == (0, 25)

    response = await client.get(f"/api/v1/inventory/logs/{result['log_id']}")
    assert response.status_code == 200
    log = response.json()
    assert log["operator_id"] == "admin-9"
    assert log["operation_type"] == "MANUAL_IN"
    assert log["quantity"] == 25


async def test_manual_in_rejects_non_positive_quantity(client: AsyncClient):
    response = await client.post("/api/v1/inventory/manual-in", json={**PLATFORM, "quantity": 0})
    assert response.status_code == 422


async def test_cloud_scope_requires_user(client: AsyncClient):
    response = await client.post(
        "/api/v1/inventory/manual-in", json={**PLATFORM, "warehouse_type": "CLOUD", "quantity": 1}
    )
    assert response.status_code == 422


async def test_manual_out_insufficient_stock(client: AsyncClient):
    await stock_in(client, 5)
    response = await client.post("/api/v1/inventory/manual-out", json={**PLATFORM, "quantity": 6})

    assert response.status_code == 400
    assert response.json()["code"] == "INSUFFICIENT_STOCK"


async def test_manual_out_unknown_batch(client: AsyncClient):
    await stock_in(client, 5)
    response = await client.post(
        "/api/v1/inventory/manual-out", json={**PLATFORM, "quantity": 1, "batch_number": "NOPE"}
    )
    assert response.status_code == 404


async def test_stock_summary_and_listing(client: AsyncClient):
    await stock_in(client, 10, "B1")
    await stock_in(client, 15, "B2")

    response = await client.get("/api/v1/inventory/stocks/summary", params=PLATFORM)
    assert response.status_code == 200
    assert response.json()["quantity"] == 25

    response = await client.get("/api/v1/inventory/stocks", params={"product_id": "p1"})
    assert response.json()["pagination"]["total"] == 2


async def test_transfer_to_cloud(client: AsyncClient):
    await stock_in(client, 10)
    target = {**PLATFORM, "warehouse_type": "CLOUD", "user_id": "u1"}

    response = await client.post(
        "/api/v1/inventory/transfer", json={"source": PLATFORM, "target": target, "quantity": 4}
    )
    assert response.status_code == 200

    response = await client.get("/api/v1/inventory/stocks/summary", params=target)
    assert response.json()["quantity"] == 4


async def test_transfer_to_same_scope(client: AsyncClient):
    await stock_in(client, 10)
    response = await client.post(
        "/api/v1/inventory/transfer", json={"source": PLATFORM, "target": PLATFORM, "quantity": 1}
    )
    assert response.status_code == 400


async def test_reservation_cycle(client: AsyncClient):
    await stock_in(client, 10)

    response = await client.post("/api/v1/inventory/reserve", json={**PLATFORM, "quantity": 11})
    assert response.json() == {"success": False, "message": "insufficient available stock"}

    response = await client.post("/api/v1/inventory/reserve", json={**PLATFORM, "quantity": 4})
    assert response.json()["success"] is True
    response = await client.post("/api/v1/inventory/reduce", json={**PLATFORM, "quantity": 4})
    assert response.json()["success"] is True

    response = await client.get("/api/v1/inventory/stocks/summary", params=PLATFORM)
    assert response.json()["quantity"] == 6


async def test_statistics(client: AsyncClient):
    await stock_in(client, 10)
    response = await client.get("/api/v1/inventory/statistics")
    assert response.status_code == 200
    assert response.json()["total"]["total_quantity"] == 10


async def test_log_listing_and_statistics(client: AsyncClient):
    await stock_in(client, 10)
    await client.post("/api/v1/inventory/manual-out", json={**PLATFORM, "quantity": 3})

    response = await client.get("/api/v1/inventory/logs", params={"operation_type": "MANUAL_OUT"})
    assert response.json()["pagination"]["total"] == 1

    response = await client.get("/api/v1/inventory/logs/statistics/summary")
    assert response.json()["net_quantity"] == 7


async def test_unknown_log(client: AsyncClient):
    response = await client.get("/api/v1/inventory/logs/404")
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "NOT_FOUND"
    assert body["error_type"] == "NotFoundError"


async def test_alert_flow(client: AsyncClient):
    await stock_in(client, 2)

    response = await client.get("/api/v1/inventory/alerts", params={"status": "ACTIVE"})
    (alert,) = response.json()["items"]
    assert alert["alert_level"] == "CRITICAL"

    response = await client.post(f"/api/v1/inventory/alerts/{alert['id']}/resolve", json={"reason": "reordered"})
    assert response.status_code == 200
    assert response.json()["resolve_reason"] == "reordered"

    response = await client.post(f"/api/v1/inventory/alerts/{alert['id']}/ignore")
    assert response.status_code == 409

    response = await client.get("/api/v1/inventory/alerts/statistics/summary")
    assert response.json()["resolved"] == 1


async def test_alert_threshold_validation(client: AsyncClient):
    response = await client.put(
        "/api/v1/inventory/alerts/thresholds/s1", json={"low_stock_threshold": 2, "out_of_stock_threshold": 5}
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/v1/inventory/alerts/thresholds/missing", json={"low_stock_threshold": 5, "out_of_stock_threshold": 2}
    )
    assert response.status_code == 404


async def test_alert_check_and_bulk_read(client: AsyncClient):
    await stock_in(client, 1)
    response = await client.post("/api/v1/inventory/alerts/check")
    assert response.json() == {"checked": 1}

    alert_id = (await client.get("/api/v1/inventory/alerts")).json()["items"][0]["id"]
    response = await client.post("/api/v1/inventory/alerts/read", json={"alert_ids": [alert_id]})
    assert response.json()["count"] == 1

    response = await client.get("/api/v1/inventory/alerts/999")
    assert response.status_code == 404


async def test_batches(client: AsyncClient):
    await stock_in(client, 10, "SOON", expiry_date="2999-01-01T00:00:00")
    await stock_in(client, 10, "LATER", expiry_date="2999-06-01T00:00:00")

    response = await client.get("/api/v1/inventory/batches", params={"product_id": "p1"})
    batches = response.json()
    assert [batch["batch_number"] for batch in batches] == ["SOON", "LATER"]
    assert batches[0]["status"] == "ACTIVE"

    response = await client.get("/api/v1/inventory/batches/select", params={**PLATFORM, "quantity": 5})
    assert response.status_code == 200, response.text
    assert response.json()["batch_number"] == "SOON"

    response = await client.get("/api/v1/inventory/batches/select", params={**PLATFORM, "quantity": 50})
    assert response.status_code == 200, response.text
    assert response.json() is None

    stock_id = batches[0]["id"]
    response = await client.patch(f"/api/v1/inventory/batches/{stock_id}", json={"location": "A-01"})
    assert response.json()["location"] == "A-01"

    response = await client.get(f"/api/v1/inventory/batches/{stock_id}/expiry")
    assert response.json()["is_expired"] is False

    response = await client.get("/api/v1/inventory/batches/statistics")
    assert response.json()["total"] == 2


@pytest.mark.parametrize(
    "params",
    [
        {**PLATFORM},
        {**PLATFORM, "quantity": 0},
        {"product_id": "p1", "spec_id": "s1", "warehouse_type": "CLOUD", "quantity": 1},
    ],
)
async def test_select_batch_rejects_bad_query(client: AsyncClient, params: dict):
    response = await client.get("/api/v1/inventory/batches/select", params=params)
    assert response.status_code == 422


async def test_unknown_batch(client: AsyncClient):
    response = await client.get("/api/v1/inventory/batches/77/expiry")
    assert response.status_code == 404
