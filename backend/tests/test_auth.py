from fastapi import status
import uuid

import pytest

@pytest.mark.asyncio
async def test_register_login_me(client):
    # Use unique email and username for each test run
    unique_email = f"test-{uuid.uuid4()}@example.com"
    unique_username = f"User_{uuid.uuid4().hex[:8]}"

    # register
    r = await client.post("/auth/register", json={"email": unique_email, "username": unique_username, "password": "supersecret"})
    assert r.status_code == status.HTTP_201_CREATED
    assert r.json()["role"] == "normal"
    # login
    r = await client.post("/auth/login", json={"email": unique_email, "password": "supersecret"})
    assert r.status_code == 200
    tokens = r.json()
    assert "access" in tokens and "refresh" in tokens
    # me with access token
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access']}"})
    assert me.status_code == 200
    body = me.json()
    assert body["email"] == unique_email
    assert body["username"] == unique_username.lower()
    # refresh to new pair
    r = await client.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh']}"})
    assert r.status_code == 200
    tokens2 = r.json()
    assert "access" in tokens2 and "refresh" in tokens2

@pytest.mark.asyncio
async def test_login_wrong_password(client, factory):
    user = await factory.user()
    r = await client.post("/auth/login", json={"email": f"{user.username}@example.com", "password": "not-it-at-all"})
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"

@pytest.mark.asyncio
async def test_cannot_self_register_as_admin(client):
    r = await client.post("/auth/register", json={
        "email": "boss@example.com", "username": "boss", "password": "supersecret", "role": "admin",
    })
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"

@pytest.mark.asyncio
async def test_me_requires_token(client):
    r = await client.get("/auth/me")
    assert r.status_code == 401
    r = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"

@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client, factory):
    user = await factory.user()
    r = await client.post("/auth/login", json={"email": f"{user.username}@example.com", "password": "supersecret"})
    refresh = r.json()["refresh"]
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {refresh}"})
    assert me.status_code == 401
    assert me.json()["message"] == "Wrong token type"
