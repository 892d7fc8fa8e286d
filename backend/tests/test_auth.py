import httpx
from httpx import AsyncClient
from fastapi import status
from app.main import app
import uuid

import pytest

@pytest.mark.asyncio
async def test_register_login_me():
    unique_email = f"test-{uuid.uuid4()}@example.com"
    unique_username = f"user_{uuid.uuid4().hex[:8]}"

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.post("/auth/register", json={"email": unique_email, "username": unique_username, "password": "supersecret", "full_name": "Ada Trader"})
        assert r.status_code == status.HTTP_201_CREATED
        assert r.json()["role"] == "user"
        # login
        r = await ac.post("/auth/login", json={"email": unique_email, "password": "supersecret"})
        assert r.status_code == 200
        tokens = r.json()
        assert "access" in tokens and "refresh" in tokens
        # me with access token
        me = await ac.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access']}"})
        assert me.status_code == 200
        body = me.json()
        assert body["email"] == unique_email
        assert body["username"] == unique_username
        assert body["full_name"] == "Ada Trader"
        # refresh to new pair
        r = await ac.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh']}"})
        assert r.status_code == 200
        tokens2 = r.json()
        assert tokens2["access"] != tokens["access"]

@pytest.mark.asyncio
async def test_wrong_password_and_token_types():
    email = f"test-{uuid.uuid4()}@example.com"
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        await ac.post("/auth/register", json={"email": email, "username": f"u_{uuid.uuid4().hex[:8]}", "password": "supersecret"})
        r = await ac.post("/auth/login", json={"email": email, "password": "not-it-at-all"})
        assert r.status_code == 401

        tokens = (await ac.post("/auth/login", json={"email": email, "password": "supersecret"})).json()
        # refresh token is not accepted as an access token, and vice versa
        assert (await ac.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh']}"})).status_code == 401
        assert (await ac.post("/auth/refresh", headers={"Authorization": f"Bearer {tokens['access']}"})).status_code == 401
        assert (await ac.get("/auth/me", headers={"Authorization": "Bearer garbage"})).status_code == 401

@pytest.mark.asyncio
async def test_duplicate_email_and_username():
    unique_id = uuid.uuid4().hex[:8]
    email = f"duplicate-{unique_id}@example.com"
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        r1 = await ac.post("/auth/register", json={"email": email, "username": f"a_{unique_id}", "password": "password1"})
        assert r1.status_code == status.HTTP_201_CREATED

        r2 = await ac.post("/auth/register", json={"email": email, "username": f"b_{unique_id}", "password": "password2"})
        assert r2.status_code == 409
        assert "email" in r2.json()["detail"].lower()

        r3 = await ac.post("/auth/register", json={"email": f"other-{unique_id}@example.com", "username": f"a_{unique_id}", "password": "password3"})
        assert r3.status_code == 409
        assert "username" in r3.json()["detail"].lower()

@pytest.mark.asyncio
async def test_configured_admin_email_gets_admin_role():
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.post("/auth/register", json={"email": "Boss@Example.com", "username": "the_boss", "password": "supersecret"})
        assert r.status_code == 201
        assert r.json()["role"] == "admin"
