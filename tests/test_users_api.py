import uuid


async def test_admin_lists_users_by_role(admin_client, make_user):
    await make_user(role="manager")
    await make_user(role="staff")
    await make_user(role="staff", is_active=False)

    assert len((await admin_client.get("/users/")).json()) == 2
    managers = (await admin_client.get("/users/", params={"role": "manager"})).json()
    assert [u["role"] for u in managers] == ["manager"]
    everyone = (await admin_client.get("/users/", params={"include_inactive": True})).json()
    assert len(everyone) == 3


async def test_user_stats(admin_client, make_user):
    await make_user(role="admin")
    await make_user(role="manager")
    await make_user(role="staff")
    await make_user(role="staff", is_active=False)

    body = (await admin_client.get("/users/stats")).json()

    assert body == {"total": 4, "active": 3, "by_role": {"admin": 1, "manager": 1, "staff": 1}}


async def test_admin_sets_role(admin_client, make_user):
    user = await make_user(role="staff")

    res = await admin_client.put(f"/users/{user.id}/role", json={"role": "manager"})
    assert res.status_code == 200
    assert res.json()["role"] == "manager"
    assert res.json()["is_superuser"] is False

    res = await admin_client.put(f"/users/{user.id}/role", json={"role": "admin"})
    assert res.json()["is_superuser"] is True


async def test_set_role_errors(admin_client, make_user):
    user = await make_user()

    assert (await admin_client.put(f"/users/{user.id}/role", json={"role": "owner"})).status_code == 422
    assert (await admin_client.put(f"/users/{uuid.uuid4()}/role", json={"role": "staff"})).status_code == 404


async def test_managers_write_stock_but_do_not_manage_users(client, make_user, record):
    user = await make_user()

    assert (await client.put(f"/inventory/{record.id}/quantity", json={"quantity_change": 1})).status_code == 200
    assert (await client.get("/users/")).status_code == 403
    assert (await client.get("/users/stats")).status_code == 403
    assert (await client.put(f"/users/{user.id}/role", json={"role": "admin"})).status_code == 403


async def test_admins_write_stock_too(admin_client, record):
    res = await admin_client.put(f"/inventory/{record.id}/reserve", json={"quantity": 2})

    assert res.status_code == 200
