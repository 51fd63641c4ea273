import pytest


@pytest.fixture
async def bootstrapped(client):
    response = await client.post(
        "/api/v1/branches/bootstrap",
        json={
            "branch": {"name": "Main Branch", "location": "Colombo"},
            "login": {"username": "admin", "password": "secret123"},
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_bootstrap_creates_main_branch(bootstrapped):
    assert bootstrapped["type"] == "main"
    assert bootstrapped["allowed_products"] == ["mug", "plate", "tshirt", "banner"]


async def test_bootstrap_only_once(client, bootstrapped):
    response = await client.post(
        "/api/v1/branches/bootstrap",
        json={"branch": {"name": "Second"}, "login": {"username": "other", "password": "secret123"}},
    )

    assert response.status_code == 409


async def test_login_sets_cookie_and_identifies_branch(client, bootstrapped):
    response = await client.post("/api/v1/auth/login", json={"username": "admin", "password": "secret123"})

    assert response.status_code == 200
    assert response.json()["user"]["branch_name"] == "Main Branch"
    assert "token" in response.cookies

    me = await client.get("/api/v1/auth/me")
    assert me.json()["username"] == "admin"
    assert me.json()["branch_type"] == "main"

    await client.post("/api/v1/auth/logout")
    assert (await client.get("/api/v1/auth/me")).status_code == 401


async def test_wrong_password(client, bootstrapped):
    response = await client.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["type"] == "AuthenticationFailed"


async def test_main_branch_manages_branches(client, main_branch, auth_headers):
    headers = auth_headers(main_branch)

    created = await client.post("/api/v1/branches", json={"name": "Kandy", "type": "SUB"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["type"] == "sub"
    assert created.json()["allowed_products"] == ["mug", "plate", "banner"]

    login = await client.post(
        f"/api/v1/branches/{created.json()['id']}/logins",
        json={"username": "kandy", "password": "secret123"},
        headers=headers,
    )
    assert login.status_code == 201

    duplicate = await client.post(
        f"/api/v1/branches/{created.json()['id']}/logins",
        json={"username": "kandy", "password": "secret123"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    listed = await client.get("/api/v1/branches", headers=headers)
    assert {b["name"] for b in listed.json()} == {"Main Branch", "Kandy"}


async def test_only_one_main_branch(client, main_branch, auth_headers):
    response = await client.post(
        "/api/v1/branches", json={"name": "Another Main", "type": "main"}, headers=auth_headers(main_branch)
    )

    assert response.status_code == 409


async def test_sub_branch_cannot_create_branches(client, sub_branch, auth_headers):
    response = await client.post("/api/v1/branches", json={"name": "Kandy"}, headers=auth_headers(sub_branch))

    assert response.status_code == 403


async def test_unknown_product_in_allowed_list(client, main_branch, auth_headers):
    response = await client.post(
        "/api/v1/branches",
        json={"name": "Kandy", "allowed_products": ["mug", "hoodie"]},
        headers=auth_headers(main_branch),
    )

    assert response.status_code == 422


async def test_employees_are_branch_scoped(client, sub_branch, other_branch, auth_headers):
    await client.post("/api/v1/employees", json={"name": "Nimal"}, headers=auth_headers(sub_branch))
    await client.post("/api/v1/employees", json={"name": "Sunil"}, headers=auth_headers(other_branch))

    response = await client.get("/api/v1/employees", headers=auth_headers(sub_branch))

    assert [e["name"] for e in response.json()] == ["Nimal"]


async def test_inventory_endpoints(client, sub_branch, auth_headers):
    headers = auth_headers(sub_branch)

    created = await client.post(
        "/api/v1/inventory",
        json={"name": "Coffee Mug", "product_id": "mug", "quantity": 40, "price": 350},
        headers=headers,
    )
    duplicate = await client.post(
        "/api/v1/inventory", json={"name": "Mug", "product_id": "mug"}, headers=headers
    )
    listed = await client.get("/api/v1/inventory", headers=headers)
    found = await client.get("/api/v1/inventory/search", params={"q": "coffee"}, headers=headers)

    assert created.status_code == 201
    assert created.json()["status"] == "In Stock"
    assert duplicate.status_code == 409
    assert listed.json()["total"] == 1
    assert found.json()[0]["product_id"] == "mug"


async def test_inventory_item_is_branch_scoped(client, sub_branch, other_branch, auth_headers, make_stock):
    item = await make_stock(sub_branch, "mug", 5)

    own = await client.get(f"/api/v1/inventory/{item.id}", headers=auth_headers(sub_branch))
    foreign = await client.get(f"/api/v1/inventory/{item.id}", headers=auth_headers(other_branch))

    assert own.json()["status"] == "Low Stock"
    assert foreign.status_code == 404


async def test_product_catalog(client, sub_branch, auth_headers):
    headers = auth_headers(sub_branch)

    created = await client.post(
        "/api/v1/products", json={"name": "Magic Mug", "product_id": "mug", "code": "MM-01"}, headers=headers
    )
    listed = await client.get("/api/v1/products", headers=headers)

    assert created.status_code == 201
    assert [p["code"] for p in listed.json()] == ["MM-01"]
