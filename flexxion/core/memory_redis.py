from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple

from redis.exceptions import RedisError, ResponseError, WatchError

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


async def _round_trip() -> None:
    # a real client suspends on every command; let other tasks interleave
    await asyncio.sleep(0)


def _span(length: int, start: int, end: int) -> Tuple[int, int]:
    # redis range semantics: inclusive end, negative indexes count from the tail
    for index in (start, end):
        if not isinstance(index, int) or not _INT64_MIN <= index <= _INT64_MAX:
            raise ResponseError("value is not an integer or out of range")
    if start < 0:
        start = max(0, length + start)
    if end < 0:
        end = length + end
    end = min(end, length - 1)
    return start, end


class AsyncMemoryRedis:
    """In-process stand-in for ``redis.asyncio.Redis`` (decode_responses=True).

    Covers the strings, hashes, sets, lists and sorted sets the app uses, plus
    WATCH/MULTI/EXEC pipelines. Every write bumps a per-key version so watched
    transactions fail with the real ``WatchError`` exactly like a server would.
    """

    def __init__(self) -> None:
        self._kv: Dict[str, str] = {}
        self._hash: Dict[str, Dict[str, str]] = {}
        self._sets: Dict[str, set] = {}
        self._lists: Dict[str, List[str]] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._ttl: Dict[str, float] = {}
        self._versions: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    def _touch(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _cleanup(self) -> None:
        now = time.time()
        expired = [k for k, t in self._ttl.items() if t <= now]
        for k in expired:
            self._kv.pop(k, None)
            self._ttl.pop(k, None)
            self._touch(k)

    async def _run(self, name: str, *args: Any, **kwargs: Any) -> Any:
        await _round_trip()
        async with self._lock:
            self._cleanup()
            return getattr(self, f"_{name}")(*args, **kwargs)

    # -- synchronous command bodies; callers hold the lock --

    def _get(self, key: str) -> Optional[str]:
        return self._kv.get(key)

    def _set(self, key: str, value: Any, nx: bool | None = None) -> bool:
        if nx and key in self._kv:
            return False
        self._kv[key] = str(value)
        self._ttl.pop(key, None)
        self._touch(key)
        return True

    def _setex(self, key: str, ttl_seconds: int, value: Any) -> bool:
        self._kv[key] = str(value)
        self._ttl[key] = time.time() + ttl_seconds
        self._touch(key)
        return True

    def _incr(self, key: str) -> int:
        cur = int(self._kv.get(key, 0)) + 1
        self._kv[key] = str(cur)
        self._touch(key)
        return cur

    def _exists(self, *keys: str) -> int:
        stores = (self._kv, self._hash, self._sets, self._lists, self._zsets)
        return sum(1 for k in keys if any(k in s for s in stores))

    def _delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            hit = False
            for store in (self._kv, self._hash, self._sets, self._lists, self._zsets):
                if store.pop(key, None) is not None:
                    hit = True
            self._ttl.pop(key, None)
            if hit:
                removed += 1
                self._touch(key)
        return removed

    def _hset(self, key: str, field: str | None = None, value: Any = None, mapping: Dict[str, Any] | None = None) -> int:
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        h = self._hash.setdefault(key, {})
        added = sum(1 for f in items if f not in h)
        h.update({f: "" if v is None else str(v) for f, v in items.items()})
        self._touch(key)
        return added

    def _hgetall(self, key: str) -> Dict[str, str]:
        return dict(self._hash.get(key, {}))

    def _sadd(self, key: str, *members: Any) -> int:
        s = self._sets.setdefault(key, set())
        before = len(s)
        s.update(str(m) for m in members)
        self._touch(key)
        return len(s) - before

    def _srem(self, key: str, *members: Any) -> int:
        s = self._sets.get(key)
        if not s:
            return 0
        before = len(s)
        for m in members:
            s.discard(str(m))
        removed = before - len(s)
        if not s:
            del self._sets[key]
        if removed:
            self._touch(key)
        return removed

    def _smembers(self, key: str) -> set:
        return set(self._sets.get(key, set()))

    def _sismember(self, key: str, member: Any) -> bool:
        return str(member) in self._sets.get(key, set())

    def _scard(self, key: str) -> int:
        return len(self._sets.get(key, set()))

    def _rpush(self, key: str, *values: Any) -> int:
        lst = self._lists.setdefault(key, [])
        lst.extend(str(v) for v in values)
        self._touch(key)
        return len(lst)

    def _lrange(self, key: str, start: int, end: int) -> List[str]:
        lst = self._lists.get(key, [])
        start, end = _span(len(lst), start, end)
        return list(lst[start:end + 1]) if start <= end else []

    def _llen(self, key: str) -> int:
        return len(self._lists.get(key, []))

    def _lrem(self, key: str, count: int, value: Any) -> int:
        lst = self._lists.get(key)
        if not lst:
            return 0
        value = str(value)
        limit = abs(count) or len(lst)
        indexes = [i for i, v in enumerate(lst) if v == value]
        if count < 0:
            indexes.reverse()
        doomed = set(indexes[:limit])
        if not doomed:
            return 0
        remaining = [v for i, v in enumerate(lst) if i not in doomed]
        if remaining:
            self._lists[key] = remaining
        else:
            del self._lists[key]
        self._touch(key)
        return len(doomed)

    def _zadd(self, key: str, mapping: Dict[str, float]) -> int:
        z = self._zsets.setdefault(key, {})
        added = sum(1 for m in mapping if str(m) not in z)
        z.update({str(m): float(score) for m, score in mapping.items()})
        self._touch(key)
        return added

    def _zrem(self, key: str, *members: Any) -> int:
        z = self._zsets.get(key)
        if not z:
            return 0
        removed = sum(1 for m in members if z.pop(str(m), None) is not None)
        if not z:
            del self._zsets[key]
        if removed:
            self._touch(key)
        return removed

    def _zcard(self, key: str) -> int:
        return len(self._zsets.get(key, {}))

    def _zrevrange(self, key: str, start: int, end: int) -> List[str]:
        z = self._zsets.get(key, {})
        ordered = sorted(z.items(), key=lambda item: (item[1], item[0]), reverse=True)
        start, end = _span(len(ordered), start, end)
        return [m for m, _ in ordered[start:end + 1]] if start <= end else []

    # -- public async API --

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def aclose(self) -> None:
        return None

    async def get(self, key: str) -> Optional[str]:
        return await self._run("get", key)

    async def set(self, key: str, value: Any, nx: bool | None = None) -> bool:
        return await self._run("set", key, value, nx=nx)

    async def setex(self, key: str, ttl_seconds: int, value: Any) -> bool:
        return await self._run("setex", key, ttl_seconds, value)

    async def incr(self, key: str) -> int:
        return await self._run("incr", key)

    async def exists(self, *keys: str) -> int:
        return await self._run("exists", *keys)

    async def delete(self, *keys: str) -> int:
        return await self._run("delete", *keys)

    async def hset(self, key: str, field: str | None = None, value: Any = None, mapping: Dict[str, Any] | None = None) -> int:
        return await self._run("hset", key, field, value, mapping=mapping)

    async def hgetall(self, key: str) -> Dict[str, str]:
        return await self._run("hgetall", key)

    async def sadd(self, key: str, *members: Any) -> int:
        return await self._run("sadd", key, *members)

    async def srem(self, key: str, *members: Any) -> int:
        return await self._run("srem", key, *members)

    async def smembers(self, key: str) -> set:
        return await self._run("smembers", key)

    async def sismember(self, key: str, member: Any) -> bool:
        return await self._run("sismember", key, member)

    async def scard(self, key: str) -> int:
        return await self._run("scard", key)

    async def rpush(self, key: str, *values: Any) -> int:
        return await self._run("rpush", key, *values)

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        return await self._run("lrange", key, start, end)

    async def llen(self, key: str) -> int:
        return await self._run("llen", key)

    async def lrem(self, key: str, count: int, value: Any) -> int:
        return await self._run("lrem", key, count, value)

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        return await self._run("zadd", key, mapping)

    async def zrem(self, key: str, *members: Any) -> int:
        return await self._run("zrem", key, *members)

    async def zcard(self, key: str) -> int:
        return await self._run("zcard", key)

    async def zrevrange(self, key: str, start: int, end: int) -> List[str]:
        return await self._run("zrevrange", key, start, end)

    def pipeline(self, transaction: bool = True) -> "MemoryPipeline":
        return MemoryPipeline(self)


_PIPELINE_COMMANDS = {
    "get", "set", "setex", "incr", "exists", "delete", "hset", "hgetall",
    "sadd", "srem", "smembers", "sismember", "scard", "rpush", "lrange",
    "llen", "lrem", "zadd", "zrem", "zcard", "zrevrange",
}


class MemoryPipeline:
    """Mirrors ``redis.asyncio.client.Pipeline`` closely enough for
    optimistic transactions: commands issued after ``watch`` and before
    ``multi`` run immediately, everything else is queued for ``execute``."""

    def __init__(self, store: AsyncMemoryRedis) -> None:
        self._store = store
        self._watched: Dict[str, int] | None = None
        self._stack: List[Tuple[str, tuple, dict]] = []
        self._explicit = False

    async def __aenter__(self) -> "MemoryPipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.reset()

    async def watch(self, *keys: str) -> bool:
        if self._explicit:
            raise RedisError("Cannot issue a WATCH after a MULTI")
        await _round_trip()
        async with self._store._lock:
            self._store._cleanup()
            watched = self._watched or {}
            for key in keys:
                watched[key] = self._store._versions.get(key, 0)
            self._watched = watched
        return True

    def multi(self) -> None:
        if self._explicit:
            raise RedisError("Cannot issue nested calls to MULTI")
        if self._stack:
            raise RedisError("Commands without an initial WATCH have already been issued")
        self._explicit = True

    async def execute(self) -> List[Any]:
        store = self._store
        try:
            await _round_trip()
            async with store._lock:
                store._cleanup()
                for key, version in (self._watched or {}).items():
                    if store._versions.get(key, 0) != version:
                        raise WatchError("Watched variable changed.")
                return [getattr(store, f"_{name}")(*args, **kwargs) for name, args, kwargs in self._stack]
        finally:
            self._clear()

    async def reset(self) -> None:
        self._clear()

    def _clear(self) -> None:
        self._watched = None
        self._stack = []
        self._explicit = False

    def __getattr__(self, name: str) -> Any:
        if name not in _PIPELINE_COMMANDS:
            raise AttributeError(name)

        def command(*args: Any, **kwargs: Any) -> Any:
            if self._watched is not None and not self._explicit:
                return self._store._run(name, *args, **kwargs)
            self._stack.append((name, args, kwargs))
            return self

        return command
