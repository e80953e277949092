"""
Registration, login and bearer-token verification.
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt

from blogger.config import settings
from blogger.security import create_access_token
from conftest import PASSWORD, auth, register


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_user_and_token(async_client: AsyncClient):
    resp = await async_client.post("/api/auth/register", json={
        "name": "  Alice  ",
        "email": "  Alice@Example.COM ",
        "password": PASSWORD,
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["message"] == "User registered successfully"
    assert data["token"]
    user = data["user"]
    assert user["name"] == "Alice"
    assert user["email"] == "alice@example.com"
    assert user["is_admin"] is False
    assert user["social_links"] == {}
    assert "password" not in user
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_register_never_grants_admin(async_client: AsyncClient):
    """An is_admin flag in the payload is ignored."""
    resp = await async_client.post("/api/auth/register", json={
        "name": "Mallory",
        "email": "mallory@example.com",
        "password": PASSWORD,
        "is_admin": True,
    })
    assert resp.status_code == 201
    assert resp.json()["user"]["is_admin"] is False


@pytest.mark.asyncio
async def test_register_duplicate_email_is_case_insensitive(async_client: AsyncClient):
    await register(async_client, "Bob", "bob@example.com")
    resp = await async_client.post("/api/auth/register", json={
        "name": "Bobby",
        "email": "BOB@example.com",
        "password": PASSWORD,
    })
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User already exists with this email"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, field", [
    ({"name": "A", "email": "a@example.com", "password": PASSWORD}, "name"),
    ({"name": "Anna", "email": "not-an-email", "password": PASSWORD}, "email"),
    ({"name": "Anna", "email": "anna@example.com", "password": "12345"}, "password"),
    ({"email": "anna@example.com", "password": PASSWORD}, "name"),
])
async def test_register_rejects_invalid_fields(async_client: AsyncClient, payload, field):
    resp = await async_client.post("/api/auth/register", json=payload)
    assert resp.status_code == 400
    data = resp.json()
    assert data["detail"] == "Validation error"
    assert field in [error["field"] for error in data["errors"]]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient):
    await register(async_client, "Carol", "carol@example.com")
    resp = await async_client.post("/api/auth/login", json={
        "email": "CAROL@example.com",
        "password": PASSWORD,
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Login successful"
    assert data["user"]["email"] == "carol@example.com"

    me = await async_client.put("/api/users/profile", json={}, headers=auth(data["token"]))
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_login_is_enumeration_safe(async_client: AsyncClient):
    """A wrong password and an unknown email produce identical responses."""
    await register(async_client, "Dave", "dave@example.com")

    wrong_password = await async_client.post("/api/auth/login", json={
        "email": "dave@example.com",
        "password": "not-the-password",
    })
    unknown_email = await async_client.post("/api/auth/login", json={
        "email": "nobody@example.com",
        "password": "not-the-password",
    })

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"detail": "Invalid email or password"}


# ---------------------------------------------------------------------------
# Bearer token verification
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_missing_token_is_401(async_client: AsyncClient):
    resp = await async_client.patch("/api/articles/1/like")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, no token"
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_non_bearer_scheme_counts_as_missing(async_client: AsyncClient):
    resp = await async_client.patch(
        "/api/articles/1/like", headers={"Authorization": "Token abc"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, no token"


@pytest.mark.asyncio
async def test_garbage_token_is_401(async_client: AsyncClient):
    resp = await async_client.patch("/api/articles/1/like", headers=auth("not.a.jwt"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_expired_token_is_401(async_client: AsyncClient):
    account = await register(async_client, "Erin")
    token = create_access_token(account["user"]["id"], expires_delta=timedelta(seconds=-10))
    resp = await async_client.patch("/api/articles/1/like", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_token_with_foreign_signature_is_401(async_client: AsyncClient):
    account = await register(async_client, "Frank")
    token = jwt.encode(
        {"sub": str(account["user"]["id"]), "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        "some-other-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = await async_client.patch("/api/articles/1/like", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_token_with_non_numeric_subject_is_401(async_client: AsyncClient):
    token = jwt.encode(
        {"sub": "alice", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = await async_client.patch("/api/articles/1/like", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_token_for_deleted_user_is_401(async_client: AsyncClient):
    account = await register(async_client, "Grace")
    resp = await async_client.delete(
        f"/api/users/{account['user']['id']}", headers=account["headers"]
    )
    assert resp.status_code == 200

    resp = await async_client.patch("/api/articles/1/like", headers=account["headers"])
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authorized, user not found"
