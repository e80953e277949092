"""
User endpoint tests: public profile, admin listing, profile updates,
password changes and account deletion.
"""
import pytest
from httpx import AsyncClient

from conftest import PASSWORD, create_article, make_admin, register


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_user_includes_article_count(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    for _ in range(2):
        assert (await create_article(async_client, alice["headers"])).status_code == 201

    resp = await async_client.get(f"/api/users/{alice['user']['id']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Alice"
    assert data["article_count"] == 2
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_get_missing_user_is_404(async_client: AsyncClient):
    resp = await async_client.get("/api/users/999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_get_user_with_malformed_id_is_400(async_client: AsyncClient):
    resp = await async_client.get("/api/users/not-a-number")
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "user_id"


@pytest.mark.asyncio
async def test_list_users_requires_admin(async_client: AsyncClient):
    alice = await register(async_client, "Alice")

    assert (await async_client.get("/api/users")).status_code == 401

    resp = await async_client.get("/api/users", headers=alice["headers"])
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Not authorized as admin"


@pytest.mark.asyncio
async def test_admin_lists_users_with_article_counts(async_client: AsyncClient):
    admin = await register(async_client, "Admin")
    await make_admin(admin["user"]["id"])
    bob = await register(async_client, "Bob")
    await create_article(async_client, bob["headers"])

    resp = await async_client.get("/api/users", headers=admin["headers"])
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_users"] == 2
    counts = {u["name"]: u["article_count"] for u in data["users"]}
    assert counts == {"Admin": 0, "Bob": 1}


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_profile_partial(async_client: AsyncClient):
    alice = await register(async_client, "Alice")

    resp = await async_client.put("/api/users/profile", json={"bio": "I write things."},
                                  headers=alice["headers"])
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Profile updated successfully"
    assert data["user"]["bio"] == "I write things."
    assert data["user"]["name"] == "Alice"
    assert data["user"]["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_update_profile_merges_social_links(async_client: AsyncClient):
    alice = await register(async_client, "Alice")

    await async_client.put("/api/users/profile", json={
        "social_links": {"github": "https://github.com/alice"},
    }, headers=alice["headers"])
    resp = await async_client.put("/api/users/profile", json={
        "social_links": {"twitter": "https://twitter.com/alice"},
    }, headers=alice["headers"])

    assert resp.status_code == 200
    assert resp.json()["user"]["social_links"] == {
        "github": "https://github.com/alice",
        "twitter": "https://twitter.com/alice",
    }


@pytest.mark.asyncio
async def test_update_profile_email_is_normalized(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    resp = await async_client.put("/api/users/profile", json={"email": " Alice.New@Example.com "},
                                  headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == "alice.new@example.com"


@pytest.mark.asyncio
async def test_update_profile_email_taken_is_400(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    await register(async_client, "Bob")

    resp = await async_client.put("/api/users/profile", json={"email": "BOB@example.com"},
                                  headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email already in use"


@pytest.mark.asyncio
async def test_update_profile_requires_auth(async_client: AsyncClient):
    resp = await async_client.put("/api/users/profile", json={"bio": "x"})
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Password
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient):
    alice = await register(async_client, "Alice")

    resp = await async_client.put(f"/api/users/{alice['user']['id']}/password", json={
        "current_password": PASSWORD,
        "new_password": "brand-new-secret",
    }, headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json() == {"message": "Password changed successfully"}

    old = await async_client.post("/api/auth/login", json={
        "email": "alice@example.com", "password": PASSWORD,
    })
    new = await async_client.post("/api/auth/login", json={
        "email": "alice@example.com", "password": "brand-new-secret",
    })
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current_keeps_old(async_client: AsyncClient):
    alice = await register(async_client, "Alice")

    resp = await async_client.put(f"/api/users/{alice['user']['id']}/password", json={
        "current_password": "wrong-password",
        "new_password": "brand-new-secret",
    }, headers=alice["headers"])
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Current password is incorrect"

    login = await async_client.post("/api/auth/login", json={
        "email": "alice@example.com", "password": PASSWORD,
    })
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_change_password_too_short(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    resp = await async_client.put(f"/api/users/{alice['user']['id']}/password", json={
        "current_password": PASSWORD,
        "new_password": "123",
    }, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "new_password"


@pytest.mark.asyncio
async def test_change_password_of_another_user_is_403_even_for_admin(async_client: AsyncClient):
    admin = await register(async_client, "Admin")
    await make_admin(admin["user"]["id"])
    bob = await register(async_client, "Bob")

    for actor in (admin, await register(async_client, "Carol")):
        resp = await async_client.put(f"/api/users/{bob['user']['id']}/password", json={
            "current_password": PASSWORD,
            "new_password": "hijacked-secret",
        }, headers=actor["headers"])
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_user_deletes_self(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    resp = await async_client.delete(f"/api/users/{alice['user']['id']}", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json() == {"message": "User deleted successfully"}
    assert (await async_client.get(f"/api/users/{alice['user']['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_user_cannot_delete_another(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    bob = await register(async_client, "Bob")
    resp = await async_client.delete(f"/api/users/{bob['user']['id']}", headers=alice["headers"])
    assert resp.status_code == 403
    assert (await async_client.get(f"/api/users/{bob['user']['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_admin_deletes_any_user(async_client: AsyncClient):
    admin = await register(async_client, "Admin")
    await make_admin(admin["user"]["id"])
    bob = await register(async_client, "Bob")

    resp = await async_client.delete(f"/api/users/{bob['user']['id']}", headers=admin["headers"])
    assert resp.status_code == 200

    resp = await async_client.delete("/api/users/999", headers=admin["headers"])
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_deleting_user_keeps_their_articles(async_client: AsyncClient):
    alice = await register(async_client, "Alice")
    article = (await create_article(async_client, alice["headers"])).json()

    await async_client.delete(f"/api/users/{alice['user']['id']}", headers=alice["headers"])

    resp = await async_client.get(f"/api/articles/{article['id']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["author_id"] == alice["user"]["id"]
    assert data["author"] is None

    listing = (await async_client.get("/api/articles")).json()
    assert listing["totalArticles"] == 1
    assert listing["articles"][0]["author"] is None
