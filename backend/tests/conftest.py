import asyncio
import io
import os
import uuid
from datetime import date, datetime, timedelta, timezone

# settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_tradejournal.db")
os.environ.setdefault("REALTIME_BACKEND", "off")
os.environ.setdefault("ENABLE_JOBS", "0")
os.environ.setdefault("STATUS_REFRESH_SECONDS", "0")
os.environ.setdefault("ADMIN_EMAILS", "boss@example.com")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from PIL import Image
from sqlalchemy import update

from app.db import Base, engine, SessionLocal
import app.models.campaign  # noqa: F401  register tables
import app.models.scorecard  # noqa: F401
import app.models.promo  # noqa: F401
from app.models.user import Profile
from app.models.submission import TradeSubmission


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    asyncio.run(_reset_schema())
    yield


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def png_bytes(size=(8, 8), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (20, 120, 200)).save(buf, format=fmt)
    return buf.getvalue()


async def _register_login(ac, admin: bool = False, full_name: str | None = None):
    email = f"user-{uuid.uuid4()}@ex.com"
    username = f"user_{uuid.uuid4().hex[:8]}"
    r = await ac.post("/auth/register", json={"email": email, "username": username, "password": "supersecret", "full_name": full_name})
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]
    if admin:
        async with SessionLocal() as session:
            await session.execute(update(Profile).where(Profile.id == uuid.UUID(user_id)).values(role="admin"))
            await session.commit()
    r = await ac.post("/auth/login", json={"email": email, "password": "supersecret"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access']}"}, user_id


async def _create_campaign(ac, admin_hdrs, start_offset: int = -2, days: int = 7, **extra):
    start = today_utc() + timedelta(days=start_offset)
    payload = {
        "title": f"Campaign {uuid.uuid4().hex[:6]}",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=days - 1)).isoformat(),
        "required_hashtag": "#TradeJournal",
        "required_account": "@desk",
        **extra,
    }
    r = await ac.post("/admin/campaigns", headers=admin_hdrs, json=payload)
    assert r.status_code == 201, r.text
    return r.json()


async def _seed_submission(campaign_id, user_id, day: date, status: str = "pending", **flags):
    async with SessionLocal() as session:
        s = TradeSubmission(
            user_id=uuid.UUID(str(user_id)),
            campaign_id=uuid.UUID(str(campaign_id)),
            submission_date=day,
            day_number=1,
            trade_idea=flags.pop("trade_idea", "Long EURUSD on the London breakout retest"),
            twitter_link="https://x.com/trader/status/1234567890",
            verification_status=status,
            automated_checks={},
            **flags,
        )
        session.add(s)
        await session.commit()
        return s.id


@pytest.fixture
def register_login():
    return _register_login


@pytest.fixture
def create_campaign():
    return _create_campaign


@pytest.fixture
def seed_submission():
    return _seed_submission


@pytest.fixture
def image_bytes():
    return png_bytes
