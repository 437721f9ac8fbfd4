from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.main import app, build_operator_account
from app.models.user import User

USERS_URL = "/api/v1/users"


def registration(**overrides):
    body = {
        "name": "Otieno Achieng",
        "email": "Otieno@Plates.co.ke",
        "password": "plates-2024",
        "phone": "0722000111",
        "id_number": "29876543",
        "address": "Ngong Road 5",
        "city": "Nairobi",
    }
    body.update(overrides)
    return body


async def test_register_returns_token(client):
    response = await client.post(USERS_URL, json=registration())

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "otieno@plates.co.ke"
    assert data["is_admin"] is False
    assert data["token"]

    profile = await client.get(
        f"{USERS_URL}/profile", headers={"Authorization": f"Bearer {data['token']}"}
    )
    assert profile.status_code == 200
    assert profile.json()["city"] == "Nairobi"


async def test_duplicate_email_or_id_number(client):
    await client.post(USERS_URL, json=registration())

    same_email = await client.post(USERS_URL, json=registration(id_number="111"))
    same_id = await client.post(USERS_URL, json=registration(email="other@plates.co.ke"))

    for response in (same_email, same_id):
        assert response.status_code == 400
        assert response.json()["error"] == "User already exists"


async def test_login(client):
    await client.post(USERS_URL, json=registration())

    ok = await client.post(
        f"{USERS_URL}/login", json={"email": "otieno@plates.co.ke", "password": "plates-2024"}
    )
    wrong = await client.post(
        f"{USERS_URL}/login", json={"email": "otieno@plates.co.ke", "password": "nope-nope"}
    )
    unknown = await client.post(
        f"{USERS_URL}/login", json={"email": "ghost@plates.co.ke", "password": "plates-2024"}
    )

    assert ok.status_code == 200
    assert ok.json()["name"] == "Otieno Achieng"
    assert wrong.status_code == 401
    assert unknown.status_code == 401


async def test_update_profile(client):
    token = (await client.post(USERS_URL, json=registration())).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.put(
        f"{USERS_URL}/profile",
        json={"name": "O. Achieng", "city": "Kisumu", "password": "new-secret"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "O. Achieng"
    assert response.json()["token"]

    relogin = await client.post(
        f"{USERS_URL}/login", json={"email": "otieno@plates.co.ke", "password": "new-secret"}
    )
    assert relogin.status_code == 200


async def test_profile_requires_token(client):
    response = await client.get(f"{USERS_URL}/profile")
    assert response.status_code in (401, 403)

    bad = await client.get(f"{USERS_URL}/profile", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401


async def test_list_users_is_operator_only(client, operator_headers, customer_headers):
    everyone = await client.get(USERS_URL, headers=operator_headers)
    denied = await client.get(USERS_URL, headers=customer_headers)

    assert everyone.status_code == 200
    assert {u["email"] for u in everyone.json()} == {
        "operator@plates.test",
        "wanjiku@plates.test",
    }
    assert denied.status_code == 403


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "connected"


async def test_http_errors_keep_their_status_and_detail(client):
    response = await client.post(
        f"{USERS_URL}/login", json={"email": "nobody@plates.co.ke", "password": "x"}
    )

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials"}


async def test_unexpected_error_renders_generic_500():
    async def broken_db():
        raise RuntimeError("connection pool exhausted")
        yield

    app.dependency_overrides[get_db] = broken_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/health")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Internal server error"
    assert body["type"] == "RuntimeError"
    assert body["path"] == "/health"
    assert "traceback" not in body


def test_seeded_operator_id_number_fits_column():
    email = "storefront-operations-team-nairobi-branch@plates.co.ke"
    operator = build_operator_account(email, "operator-pass")
    other = build_operator_account(email, "operator-pass")

    assert len(operator.id_number) <= User.__table__.c.id_number.type.length
    assert operator.id_number != other.id_number
    assert operator.email == email
    assert operator.is_admin is True
