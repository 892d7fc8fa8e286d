from __future__ import annotations
import asyncio
import itertools
import json
import time
from dataclasses import dataclass, asdict
from typing import Awaitable, Callable, Hashable

import structlog
from redis import asyncio as aioredis

from app.config import settings

log = structlog.get_logger()

ChangeCallback = Callable[["ChangeEvent"], Awaitable[None]]

_seq = itertools.count(1)


def _next_seq() -> int:
    # wall-clock prefix keeps ordering meaningful across API processes
    return time.time_ns() + next(_seq)


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change notice. Used only as a trigger to re-fetch, never as a delta."""
    table: str
    op: str  # INSERT|UPDATE|DELETE
    campaign_id: str | None = None
    seq: int = 0

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ChangeEvent":
        data = json.loads(raw)
        return cls(
            table=data["table"],
            op=data["op"],
            campaign_id=data.get("campaign_id"),
            seq=int(data.get("seq") or 0),
        )


class ChangeFeed:
    """Publish/subscribe interface the rest of the app talks to."""

    def __init__(self) -> None:
        self._callbacks: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    async def _dispatch(self, event: ChangeEvent) -> None:
        for cb in list(self._callbacks):
            try:
                await cb(event)
            except Exception:
                log.exception("change_callback_failed", table=event.table, campaign_id=event.campaign_id)

    async def publish(self, event: ChangeEvent) -> None:
        raise NotImplementedError

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass


class NullChangeFeed(ChangeFeed):
    async def publish(self, event: ChangeEvent) -> None:
        return None


class LocalChangeFeed(ChangeFeed):
    """In-process fan-out; for single-process deployments and tests."""

    async def publish(self, event: ChangeEvent) -> None:
        await self._dispatch(event)


class RedisChangeFeed(ChangeFeed):
    def __init__(self, url: str, channel: str) -> None:
        super().__init__()
        self.url = url
        self.channel = channel
        self._redis = aioredis.from_url(url)
        self._listener: asyncio.Task | None = None

    async def publish(self, event: ChangeEvent) -> None:
        await self._redis.publish(self.channel, event.to_json())

    async def start(self) -> None:
        if self._listener is None:
            self._listener = asyncio.create_task(self._listen())
            self._listener.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("change_listener_died", channel=self.channel, error=repr(exc))

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = ChangeEvent.from_json(message["data"])
                except (ValueError, KeyError):
                    log.warning("change_event_malformed", raw=str(message.get("data"))[:200])
                    continue
                await self._dispatch(event)
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                log.warning("change_listener_close_failed", channel=self.channel, error=repr(exc))
            self._listener = None
        await self._redis.aclose()


def build_change_feed(backend: str | None = None) -> ChangeFeed:
    backend = backend or settings.realtime_backend
    if backend == "redis":
        return RedisChangeFeed(settings.redis_url, settings.realtime_channel)
    if backend == "local":
        return LocalChangeFeed()
    return NullChangeFeed()


_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    global _feed
    if _feed is None:
        _feed = build_change_feed()
    return _feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    global _feed
    _feed = feed


async def notify_change(table: str, op: str, campaign_id=None) -> None:
    """Best effort: a failed publish is logged, never raised into the write path."""
    event = ChangeEvent(
        table=table,
        op=op,
        campaign_id=str(campaign_id) if campaign_id is not None else None,
        seq=_next_seq(),
    )
    try:
        await get_change_feed().publish(event)
    except Exception:
        log.warning("change_publish_failed", table=table, op=op, campaign_id=event.campaign_id)


class DebouncedRefresher:
    """
    Coalesce bursts of change notices into one fetch per key.

    `notify(key, seq)` (re)arms a timer of `delay` seconds for the key. When
    it fires, `fetch(key)` runs, tagged with the newest seq seen so far.
    Fetches may overlap but applies for a key run one at a time. A result is
    handed to `apply(key, result)` only if no result for a more recent seq
    was applied before it, so a slow response to an old event can never
    overwrite a newer one.
    """

    def __init__(
        self,
        fetch: Callable[[Hashable], Awaitable[object]],
        apply: Callable[[Hashable, object], Awaitable[None]],
        delay: float = 0.5,
    ) -> None:
        self.fetch = fetch
        self.apply = apply
        self.delay = delay
        self._timers: dict[Hashable, asyncio.Task] = {}
        self._latest_seq: dict[Hashable, int] = {}
        self._applied_seq: dict[Hashable, int] = {}
        self._inflight: set[asyncio.Task] = set()
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def notify(self, key: Hashable, seq: int = 0) -> None:
        if seq >= self._latest_seq.get(key, -1):
            self._latest_seq[key] = seq
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = asyncio.create_task(self._fire_later(key))

    async def _fire_later(self, key: Hashable) -> None:
        await asyncio.sleep(self.delay)
        self._timers.pop(key, None)
        task = asyncio.create_task(self._run(key, self._latest_seq.get(key, 0)))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, key: Hashable, seq: int) -> None:
        try:
            result = await self.fetch(key)
        except Exception:
            log.exception("refresh_fetch_failed", key=str(key), seq=seq)
            return
        # applies for one key run one at a time; the seq check must sit inside the lock
        async with self._locks.setdefault(key, asyncio.Lock()):
            if seq < self._applied_seq.get(key, -1):
                log.info("refresh_result_discarded", key=str(key), seq=seq)
                return
            self._applied_seq[key] = seq
            try:
                await self.apply(key, result)
            except Exception:
                log.exception("refresh_apply_failed", key=str(key), seq=seq)

    async def drain(self) -> None:
        """Wait for pending timers and in-flight fetches."""
        while self._timers or self._inflight:
            pending = list(self._timers.values()) + list(self._inflight)
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        for t in list(self._timers.values()) + list(self._inflight):
            t.cancel()
        await asyncio.gather(*self._timers.values(), *self._inflight, return_exceptions=True)
        self._timers.clear()
