import pytest

BASE = "/api/v1/budget"
PRIMARY = f"{BASE}/Primary/2025/3"

CONFIG = {
    "salary": 100000,
    "budget_percentage": 70,
    "allocation": {"need": 50, "want": 20, "savings": 15, "investments": 15},
}

PLAN = {
    "portfolios": [
        {
            "id": "p-1",
            "name": "Long term",
            "allocation_type": "percentage",
            "allocation_value": 80,
            "categories": [
                {
                    "id": "c-1",
                    "name": "Equity",
                    "allocation_type": "percentage",
                    "allocation_value": 100,
                    "funds": [{"id": "f-1", "name": "Index"}, {"id": "f-2", "name": "Flexi"}],
                }
            ],
        },
        {
            "id": "p-2",
            "name": "Gold",
            "allocation_type": "percentage",
            "allocation_value": 20,
            "allow_direct_investment": True,
        },
    ]
}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_period_summary(client):
    resp = await client.get(f"{PRIMARY}/summary")
    assert resp.status_code == 200
    body = resp.json()
    assert body["has_data"] is False
    assert body["total_budget"] == 0
    assert body["read_only"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_month_flow(client):
    resp = await client.put(f"{PRIMARY}/config", json=CONFIG)
    assert resp.status_code == 200
    assert resp.json()["id"]

    resp = await client.put(f"{PRIMARY}/portfolios", json=PLAN)
    assert resp.status_code == 200
    assert [p["allocated_amount"] for p in resp.json()] == [8400, 2100]

    resp = await client.post(f"{PRIMARY}/expenses", json={
        "date": "2025-03-02", "amount": 5000, "category": "need", "tag": "Rent", "payment_type": "upi",
    })
    assert resp.status_code == 201
    expense_id = resp.json()["id"]

    resp = await client.post(f"{PRIMARY}/refunds", json={
        "date": "2025-03-04", "amount": 1000, "original_expense_id": expense_id,
    })
    assert resp.status_code == 201
    assert resp.json()["category"] == "need"

    resp = await client.post(f"{PRIMARY}/investments", json={
        "date": "2025-03-05", "amount": 4200, "portfolio_id": "p-1", "category_id": "c-1", "fund_id": "f-1",
    })
    assert resp.status_code == 201

    resp = await client.put(f"{PRIMARY}/opening-balance", json={"amount": 50000})
    assert resp.status_code == 200

    resp = await client.get(f"{PRIMARY}/summary")
    body = resp.json()
    assert body["has_data"] is True
    assert body["total_budget"] == 70000
    assert body["allocated"]["investments"] == 10500
    assert body["spent"]["need"] == 4000
    assert body["spent"]["investments"] == 4200
    assert body["total_spent"] == 8200
    assert body["total_remaining"] == 61800
    assert body["current_balance"] == 41800
    fund = next(n for n in body["nodes"] if n["node_id"] == "f-1")
    assert fund["allocated"] == 4200
    assert fund["progress_percent"] == 100
    assert fund["over_budget"] is False

    resp = await client.get(f"{PRIMARY}/expenses")
    assert [e["status"] for e in resp.json()] == ["partial_refund"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_allocation_is_rejected(client):
    bad = {**CONFIG, "allocation": {"need": 50, "want": 20, "savings": 15, "investments": 10}}
    resp = await client.put(f"{PRIMARY}/config", json=bad)
    assert resp.status_code == 400
    assert "must total 100%" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_plan_over_budget_is_rejected(client):
    await client.put(f"{PRIMARY}/config", json=CONFIG)
    over = {"portfolios": [{**PLAN["portfolios"][0], "allocation_value": 90}, PLAN["portfolios"][1]]}
    resp = await client.put(f"{PRIMARY}/portfolios", json=over)
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_combined_view_is_read_only(client):
    await client.put(f"{PRIMARY}/config", json=CONFIG)
    await client.put(f"{BASE}/Partner/2025/3/config", json={**CONFIG, "salary": 50000, "budget_percentage": 100})

    resp = await client.get(f"{BASE}/combined/2025/3/summary", params={"members": "Primary,Partner"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["read_only"] is True
    assert body["total_budget"] == 120000

    resp = await client.post(
        f"{BASE}/combined/2025/3/expenses",
        params={"members": "Primary,Partner"},
        json={"date": "2025-03-02", "amount": 10, "category": "want"},
    )
    assert resp.status_code == 403
    assert "combined view" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_combined_view_needs_two_members(client):
    resp = await client.get(f"{BASE}/combined/2025/3/summary", params={"members": "Primary"})
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_out_reads_empty_and_writes_401(client, auth_state):
    await client.put(f"{PRIMARY}/config", json=CONFIG)
    auth_state["user"] = None

    resp = await client.get(f"{PRIMARY}/summary")
    assert resp.status_code == 200
    assert resp.json()["has_data"] is False

    resp = await client.put(f"{PRIMARY}/config", json=CONFIG)
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_month_is_rejected(client):
    resp = await client.get(f"{BASE}/Primary/2025/13/summary")
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expense_update_and_delete(client):
    resp = await client.post(f"{PRIMARY}/expenses", json={"date": "2025-03-02", "amount": 900, "category": "want"})
    expense_id = resp.json()["id"]

    resp = await client.put(f"{PRIMARY}/expenses/{expense_id}", json={"amount": 700, "tag": "Movies"})
    assert resp.status_code == 200
    assert resp.json()["amount"] == 700
    assert resp.json()["tag"] == "Movies"

    resp = await client.delete(f"{PRIMARY}/expenses/{expense_id}")
    assert resp.status_code == 204

    resp = await client.delete(f"{PRIMARY}/expenses/{expense_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tags_and_inheritance(client):
    resp = await client.post(f"{PRIMARY}/tags/want", json={"tag": "Concerts"})
    assert resp.status_code == 200
    assert "Concerts" in resp.json()
    assert "Movies" in resp.json()

    await client.put(f"{PRIMARY}/config", json=CONFIG)
    await client.put(f"{PRIMARY}/portfolios", json=PLAN)

    resp = await client.post(f"{BASE}/Primary/2025/4/inherit", json={"year": 2025, "month": 3})
    assert resp.status_code == 200
    assert resp.json()["total_budget"] == 70000

    resp = await client.get(f"{BASE}/Primary/2025/4/portfolios")
    plan = resp.json()
    assert [p["name"] for p in plan] == ["Long term", "Gold"]
    assert plan[0]["id"] != "p-1"

    resp = await client.post(f"{BASE}/Primary/2025/5/inherit", json={"year": 2024, "month": 1})
    assert resp.status_code == 400
