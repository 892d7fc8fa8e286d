import asyncio

import pytest

from app.services.realtime import (
    ChangeEvent, LocalChangeFeed, NullChangeFeed, DebouncedRefresher,
    RedisChangeFeed, build_change_feed, notify_change, set_change_feed,
)
import app.services.realtime as realtime_mod
from app.services.scorecards import scorecard_change_handler


@pytest.mark.asyncio
async def test_burst_of_notices_triggers_one_fetch():
    fetched, applied = [], []

    async def fetch(key):
        fetched.append(key)
        return f"rows-for-{key}"

    async def apply(key, result):
        applied.append((key, result))

    r = DebouncedRefresher(fetch, apply, delay=0.05)
    for seq in range(1, 6):
        r.notify("camp-1", seq)
    r.notify("camp-2", 1)
    await r.drain()

    assert sorted(fetched) == ["camp-1", "camp-2"]
    assert sorted(applied) == [("camp-1", "rows-for-camp-1"), ("camp-2", "rows-for-camp-2")]


@pytest.mark.asyncio
async def test_stale_response_never_overwrites_newer_one():
    release_first = asyncio.Event()
    calls, applied = [], []

    async def fetch(key):
        n = len(calls)
        calls.append(n)
        if n == 0:
            await release_first.wait()
        return f"result-{n}"

    async def apply(key, result):
        applied.append(result)

    r = DebouncedRefresher(fetch, apply, delay=0.01)
    r.notify("camp", 1)
    await asyncio.sleep(0.05)  # first fetch is now stuck in flight
    r.notify("camp", 2)
    await asyncio.sleep(0.05)
    assert applied == ["result-1"]

    release_first.set()
    await r.drain()
    assert applied == ["result-1"]
    await r.close()


@pytest.mark.asyncio
async def test_slow_apply_of_older_result_cannot_land_after_newer_one():
    gate = asyncio.Event()
    calls, state = [], {}

    async def fetch(key):
        calls.append(key)
        return f"result-{len(calls)}"

    async def apply(key, result):
        if result == "result-1":
            await gate.wait()
        state[key] = result

    r = DebouncedRefresher(fetch, apply, delay=0.01)
    r.notify("camp", 1)
    await asyncio.sleep(0.05)  # apply of result-1 is parked on the gate
    r.notify("camp", 2)
    await asyncio.sleep(0.05)
    assert calls == ["camp", "camp"]
    assert "camp" not in state  # result-2 waits its turn

    gate.set()
    await r.drain()
    assert state["camp"] == "result-2"
    await r.close()


@pytest.mark.asyncio
async def test_failed_fetch_is_logged_not_raised():
    applied = []

    async def fetch(key):
        raise RuntimeError("db down")

    async def apply(key, result):
        applied.append(result)

    r = DebouncedRefresher(fetch, apply, delay=0.01)
    r.notify("camp", 1)
    await r.drain()
    assert applied == []


@pytest.mark.asyncio
async def test_local_feed_isolates_failing_subscribers():
    feed = LocalChangeFeed()
    seen = []

    async def broken(event):
        raise ValueError("boom")

    async def ok(event):
        seen.append(event)

    feed.subscribe(broken)
    feed.subscribe(ok)
    await feed.publish(ChangeEvent(table="trade_submissions", op="INSERT", campaign_id="c1", seq=3))
    assert [e.seq for e in seen] == [3]


@pytest.mark.asyncio
async def test_notify_change_reaches_scorecard_handler_for_relevant_tables():
    notified = []

    class Recorder:
        def notify(self, key, seq=0):
            notified.append((key, seq))

    feed = LocalChangeFeed()
    feed.subscribe(scorecard_change_handler(Recorder()))
    set_change_feed(feed)
    try:
        await notify_change("trade_submissions", "INSERT", "c1")
        await notify_change("challenge_participants", "INSERT", "c1")
        await notify_change("promo_clicks", "INSERT", "c1")
        await notify_change("campaigns", "DELETE", None)
    finally:
        set_change_feed(None)

    assert [k for (k, _) in notified] == ["c1", "c1"]
    assert notified[0][1] < notified[1][1]


def test_event_json_and_backend_selection():
    ev = ChangeEvent(table="campaigns", op="UPDATE", campaign_id="c9", seq=12)
    assert ChangeEvent.from_json(ev.to_json()) == ev
    assert isinstance(build_change_feed("local"), LocalChangeFeed)
    assert isinstance(build_change_feed("off"), NullChangeFeed)


class _Recorder:
    def __init__(self):
        self.events = []

    def error(self, event, **kw):
        self.events.append(("error", event))

    def warning(self, event, **kw):
        self.events.append(("warning", event))


class _StubRedis:
    closed = False

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_dead_redis_listener_is_logged_and_close_still_releases_client(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(realtime_mod, "log", recorder)
    feed = RedisChangeFeed("redis://localhost:6379/0", "changes")
    stub = _StubRedis()
    feed._redis = stub

    async def lost_connection():
        raise ConnectionError("redis went away")

    feed._listen = lost_connection
    await feed.start()
    await asyncio.sleep(0.01)

    assert ("error", "change_listener_died") in recorder.events
    await feed.close()
    assert stub.closed is True
    assert feed._listener is None
    assert ("warning", "change_listener_close_failed") in recorder.events
