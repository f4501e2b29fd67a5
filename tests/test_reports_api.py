async def _seed(ledger, make_product, make_warehouse):
    north = await make_warehouse(name="North")
    south = await make_warehouse(name="South")
    bolts = await make_product(name="Bolts")
    nuts = await make_product(name="Nuts")
    gone = await ledger.create(bolts.id, north.id, quantity=0, min_threshold=5)
    low = await ledger.create(nuts.id, north.id, quantity=2, min_threshold=5)
    fine = await ledger.create(nuts.id, south.id, quantity=40, min_threshold=5)
    await ledger.reserve_quantity(fine.id, 4)
    return north, south, gone, low, fine


async def test_alerts(client, ledger, make_product, make_warehouse):
    north, south, gone, low, _fine = await _seed(ledger, make_product, make_warehouse)

    body = (await client.get("/alerts/")).json()

    assert body["total_alerts"] == 2
    by_id = {a["id"]: a for a in body["alerts"]}
    assert by_id[f"out-of-stock:{gone.id}"]["severity"] == "critical"
    assert by_id[f"out-of-stock:{gone.id}"]["product_name"] == "Bolts"
    assert by_id[f"low-stock:{low.id}"]["severity"] == "warning"
    assert by_id[f"low-stock:{low.id}"]["warehouse_name"] == "North"
    assert by_id[f"low-stock:{low.id}"]["threshold"] == 5

    body = (await client.get("/alerts/", params={"type": "low-stock"})).json()
    assert [a["inventory_id"] for a in body["alerts"]] == [low.id]

    body = (await client.get("/alerts/", params={"warehouse_id": south.id})).json()
    assert body["total_alerts"] == 0

    assert (await client.get("/alerts/", params={"type": "bogus"})).status_code == 422


async def test_alert_stats(client, ledger, make_product, make_warehouse):
    await _seed(ledger, make_product, make_warehouse)

    stats = (await client.get("/alerts/stats")).json()

    assert stats == {
        "total": 2,
        "by_type": {"out-of-stock": 1, "low-stock": 1},
        "by_severity": {"critical": 1, "warning": 1},
    }


async def test_dashboard_overview(client, ledger, make_product, make_warehouse, make_category):
    await make_category()
    await _seed(ledger, make_product, make_warehouse)

    body = (await client.get("/dashboard/overview")).json()

    assert body["total_products"] == 2
    assert body["total_categories"] == 1
    assert body["total_warehouses"] == 2
    assert body["total_quantity"] == 42
    assert body["total_reserved"] == 4
    assert body["low_stock_items"] == 2
    assert body["out_of_stock_items"] == 1
    assert len(body["recent_activity"]) == 3
    assert {a["product_name"] for a in body["recent_activity"]} == {"Bolts", "Nuts"}


async def test_dashboard_empty(viewer_client):
    body = (await viewer_client.get("/dashboard/overview")).json()

    assert body["total_quantity"] == 0
    assert body["recent_activity"] == []


async def test_analytics_overview(client, make_category):
    await make_category(name="Electronics")
    await make_category(name="Furniture")

    res = await client.get("/analytics/overview", params={"time_range": "7d"})

    assert res.status_code == 200
    body = res.json()
    assert body["generated"] is True
    assert len(body["sales_trends"]) == 7
    assert {c["category"] for c in body["category_performance"]} == {"Electronics", "Furniture"}


async def test_analytics_rejects_unknown_range(client):
    assert (await client.get("/analytics/overview", params={"time_range": "1y"})).status_code == 422
