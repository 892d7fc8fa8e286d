import httpx, uuid
from httpx import AsyncClient
from datetime import datetime, timedelta, timezone
from app.main import app
import pytest

def _today():
    return datetime.now(timezone.utc).date()

@pytest.mark.asyncio
async def test_admin_creates_campaign_and_users_can_read_it(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        user, _ = await register_login(ac)
        c = await create_campaign(ac, admin, start_offset=-2, days=7)
        assert c["days_count"] == 7
        assert c["status"] == "live"
        assert c["stored_status"] == "live"
        assert c["current_day_number"] == 3
        assert c["submissions_open"] is True

        r = await ac.get(f"/campaigns/{c['id']}", headers=user)
        assert r.status_code == 200
        assert r.json()["title"] == c["title"]

        r = await ac.get("/campaigns", headers=user)
        assert any(x["id"] == c["id"] for x in r.json())

        r = await ac.get("/campaigns/active", headers=user)
        assert r.status_code == 200
        assert r.json()["status"] == "live"

@pytest.mark.asyncio
async def test_campaign_endpoints_need_auth_and_admin(register_login):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        assert (await ac.get("/campaigns")).status_code in (401, 403)
        user, _ = await register_login(ac)
        start = _today()
        r = await ac.post("/admin/campaigns", headers=user, json={
            "title": "Not allowed", "start_date": start.isoformat(), "end_date": start.isoformat(),
        })
        assert r.status_code == 403
        assert (await ac.get(f"/campaigns/{uuid.uuid4()}", headers=user)).status_code == 404

@pytest.mark.asyncio
async def test_days_count_must_match_span(register_login):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        start = _today()
        body = {"title": "Bad span", "start_date": start.isoformat(), "end_date": (start + timedelta(days=6)).isoformat()}
        r = await ac.post("/admin/campaigns", headers=admin, json={**body, "days_count": 5})
        assert r.status_code == 422
        r = await ac.post("/admin/campaigns", headers=admin, json={**body, "end_date": (start - timedelta(days=1)).isoformat()})
        assert r.status_code == 422

@pytest.mark.asyncio
async def test_duplicate_slug_conflicts(register_login, create_campaign):
    slug = f"march-{uuid.uuid4().hex[:6]}"
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        await create_campaign(ac, admin, slug=slug)
        start = _today()
        r = await ac.post("/admin/campaigns", headers=admin, json={
            "title": "Again", "slug": slug, "start_date": start.isoformat(), "end_date": start.isoformat(),
        })
        assert r.status_code == 409

@pytest.mark.asyncio
async def test_join_is_idempotent_and_closed_campaigns_refuse(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        user, user_id = await register_login(ac)
        live = await create_campaign(ac, admin)
        r1 = await ac.post(f"/campaigns/{live['id']}/join", headers=user)
        assert r1.status_code == 201
        assert r1.json()["user_id"] == user_id
        r2 = await ac.post(f"/campaigns/{live['id']}/join", headers=user)
        assert r2.status_code == 201
        assert r2.json()["joined_at"] == r1.json()["joined_at"]

        upcoming = await create_campaign(ac, admin, start_offset=3, days=5)
        assert upcoming["status"] == "upcoming"
        assert (await ac.post(f"/campaigns/{upcoming['id']}/join", headers=user)).status_code == 201

        ended = await create_campaign(ac, admin, start_offset=-10, days=5)
        assert ended["status"] == "ended"
        assert (await ac.post(f"/campaigns/{ended['id']}/join", headers=user)).status_code == 400

@pytest.mark.asyncio
async def test_day_grid_unlocks_only_today(register_login, create_campaign, seed_submission):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        user, user_id = await register_login(ac)
        c = await create_campaign(ac, admin, start_offset=-2, days=5)
        await seed_submission(c["id"], user_id, _today() - timedelta(days=1), has_hashtag=True)

        r = await ac.get(f"/campaigns/{c['id']}/days", headers=user)
        assert r.status_code == 200
        days = r.json()
        assert [d["state"] for d in days] == ["past", "past", "today", "future", "future"]
        assert [d["unlocked"] for d in days] == [False, False, True, False, False]
        assert days[1]["submitted"] and days[1]["has_hashtag"] and days[1]["has_analysis"]
        assert not days[0]["submitted"]

@pytest.mark.asyncio
async def test_archive_and_unarchive(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        c = await create_campaign(ac, admin)
        r = await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"archived": True})
        assert r.status_code == 200
        assert r.json()["status"] == "archived"
        assert r.json()["submissions_open"] is False

        # editing other fields keeps the archive flag
        r = await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"title": "Renamed campaign"})
        assert r.json()["status"] == "archived"

        r = await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"archived": False})
        assert r.json()["status"] == "live"

@pytest.mark.asyncio
async def test_patch_dates_recomputes_days_count(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        c = await create_campaign(ac, admin, start_offset=-1, days=3)
        new_end = (_today() + timedelta(days=8)).isoformat()
        r = await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"end_date": new_end})
        assert r.status_code == 200
        assert r.json()["days_count"] == 10
        r = await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"days_count": 4})
        assert r.status_code == 422

@pytest.mark.asyncio
async def test_delete_campaign(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        c = await create_campaign(ac, admin)
        assert (await ac.delete(f"/admin/campaigns/{c['id']}", headers=admin)).status_code == 204
        assert (await ac.get(f"/campaigns/{c['id']}", headers=admin)).status_code == 404
        assert (await ac.delete(f"/admin/campaigns/{c['id']}", headers=admin)).status_code == 404

@pytest.mark.asyncio
async def test_archived_campaign_locks_the_day_grid(register_login, create_campaign):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        admin, _ = await register_login(ac, admin=True)
        user, _ = await register_login(ac)
        c = await create_campaign(ac, admin, start_offset=-1, days=3)
        await ac.post(f"/campaigns/{c['id']}/join", headers=user)
        await ac.patch(f"/admin/campaigns/{c['id']}", headers=admin, json={"archived": True})

        days = (await ac.get(f"/campaigns/{c['id']}/days", headers=user)).json()
        assert [d["state"] for d in days] == ["past", "today", "future"]
        assert not any(d["unlocked"] for d in days)
