from db.inventory import InventoryLedger


async def _stock(ledger: InventoryLedger, product, warehouse, quantity, min_threshold=0):
    return await ledger.create(product.id, warehouse.id, quantity=quantity, min_threshold=min_threshold)


async def test_low_stock_includes_boundary_and_orders_by_quantity(ledger, make_product, warehouse):
    p1, p2, p3, p4 = [await make_product() for _ in range(4)]
    at_threshold = await _stock(ledger, p1, warehouse, 10, min_threshold=10)
    below = await _stock(ledger, p2, warehouse, 3, min_threshold=10)
    await _stock(ledger, p3, warehouse, 11, min_threshold=10)
    empty = await _stock(ledger, p4, warehouse, 0, min_threshold=0)

    low = await ledger.find_low_stock()

    assert [r.id for r in low] == [empty.id, below.id, at_threshold.id]


async def test_low_stock_ignores_reservations(ledger, record):
    # quantity 10, min 2: fully reserved but on-hand is still above threshold
    await ledger.reserve_quantity(record.id, 10)

    assert await ledger.find_low_stock() == []


async def test_out_of_stock(ledger, make_product, warehouse):
    p1, p2 = await make_product(), await make_product()
    gone = await _stock(ledger, p1, warehouse, 0)
    await _stock(ledger, p2, warehouse, 1)

    assert [r.id for r in await ledger.find_out_of_stock()] == [gone.id]

    await ledger.adjust_quantity(gone.id, 4)
    assert await ledger.find_out_of_stock() == []


async def test_summary_by_warehouse(ledger, make_product, make_warehouse):
    big = await make_warehouse(name="Big")
    small = await make_warehouse(name="Small")
    empty = await make_warehouse(name="Empty")
    closed = await make_warehouse(name="Closed", is_active=False)
    p1, p2 = await make_product(), await make_product()

    r = await _stock(ledger, p1, big, 40)
    await _stock(ledger, p2, big, 60)
    await _stock(ledger, p1, small, 5)
    await _stock(ledger, p2, closed, 500)
    await ledger.reserve_quantity(r.id, 15)

    summary = await ledger.summary_by_warehouse()

    assert [s["warehouse_name"] for s in summary] == ["Big", "Small", "Empty"]
    assert summary[0] == {
        "warehouse_id": big.id,
        "warehouse_name": "Big",
        "total_products": 2,
        "total_items": 100,
        "total_reserved": 15,
    }
    assert summary[1]["total_products"] == 1
    assert summary[1]["total_items"] == 5
    assert summary[2] == {
        "warehouse_id": empty.id,
        "warehouse_name": "Empty",
        "total_products": 0,
        "total_items": 0,
        "total_reserved": 0,
    }


async def test_total_quantity_counts_active_products_only(ledger, make_product, make_warehouse):
    w1, w2 = await make_warehouse(), await make_warehouse()
    live = await make_product()
    retired = await make_product(is_active=False)

    await _stock(ledger, live, w1, 7)
    await _stock(ledger, live, w2, 8)
    await _stock(ledger, retired, w1, 100)

    assert await ledger.total_quantity() == 15


async def test_total_quantity_empty(ledger):
    assert await ledger.total_quantity() == 0
    assert await ledger.summary_by_warehouse() == []
