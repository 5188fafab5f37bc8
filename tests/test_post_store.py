"""
Tests for the redis layout and the optimistic transaction helper, run
against the in-process memory redis.
"""

import pytest
from redis.exceptions import ResponseError, WatchError

from flexxion.core.errors import ConflictError
from flexxion.services.post_store import StoredPost, likes_key, post_key


def _post(pid: str, author: str = "1") -> StoredPost:
    return StoredPost(id=pid, authorId=author, text=f"post {pid}", image=None, createdAt="2024-01-01T00:00:00+00:00")


class TestMemoryPipeline:
    async def test_watched_key_change_aborts_exec(self, redis):
        async with redis.pipeline(transaction=True) as pipe:
            await pipe.watch("k")
            await redis.set("k", "other writer")
            pipe.multi()
            pipe.set("k", "mine")
            with pytest.raises(WatchError):
                await pipe.execute()
        assert await redis.get("k") == "other writer"

    async def test_unchanged_watch_commits(self, redis):
        await redis.sadd("s", "a")
        async with redis.pipeline(transaction=True) as pipe:
            await pipe.watch("s")
            members = await pipe.smembers("s")
            pipe.multi()
            pipe.sadd("s", "b")
            pipe.scard("s")
            result = await pipe.execute()
        assert members == {"a"}
        assert result == [1, 2]

    async def test_noop_removal_does_not_trip_watch(self, redis):
        async with redis.pipeline(transaction=True) as pipe:
            await pipe.watch("s")
            await redis.srem("s", "ghost")
            pipe.multi()
            pipe.sadd("s", "x")
            assert await pipe.execute() == [1]

    async def test_lrem_removes_only_requested_occurrences(self, redis):
        await redis.rpush("l", "a", "b", "a", "c", "a")
        assert await redis.lrem("l", 1, "a") == 1
        assert await redis.lrange("l", 0, -1) == ["b", "a", "c", "a"]
        assert await redis.lrem("l", -1, "a") == 1
        assert await redis.lrange("l", 0, -1) == ["b", "a", "c"]

    async def test_zrevrange_bounds(self, redis):
        await redis.zadd("z", {"1": 1, "2": 2, "3": 3})
        assert await redis.zrevrange("z", 0, 1) == ["3", "2"]
        assert await redis.zrevrange("z", 2, 10) == ["1"]
        assert await redis.zrevrange("z", 5, 9) == []

    async def test_range_index_outside_int64_is_rejected(self, redis):
        await redis.zadd("z", {"1": 1})
        with pytest.raises(ResponseError):
            await redis.zrevrange("z", 0, 2 ** 63)
        with pytest.raises(ResponseError):
            await redis.lrange("l", -(2 ** 63) - 1, -1)


class TestPostStore:
    async def test_insert_and_load(self, store):
        pid = await store.next_post_id()
        await store.insert(_post(pid))

        loaded = await store.load(pid)

        assert loaded.text == f"post {pid}"
        assert loaded.likes == set() and loaded.comments == []
        assert await store.count() == 1
        assert await store.count("1") == 1
        assert await store.count("2") == 0

    async def test_load_missing(self, store):
        assert await store.load("nope") is None

    async def test_transact_retries_after_conflict(self, store, redis):
        pid = await store.next_post_id()
        await store.insert(_post(pid))
        attempts = []

        async def body(pipe):
            attempts.append(1)
            likes = await pipe.smembers(likes_key(pid))
            if len(attempts) == 1:
                # another request lands between our read and our write
                await redis.sadd(likes_key(pid), "intruder")
            pipe.multi()
            pipe.sadd(likes_key(pid), "me")
            return likes

        seen = await store.transact(pid, body)

        assert len(attempts) == 2
        assert seen == {"intruder"}
        assert store.conflicts == 1
        assert await redis.smembers(likes_key(pid)) == {"intruder", "me"}

    async def test_transact_gives_up_with_retryable_conflict(self, store, redis):
        pid = await store.next_post_id()
        await store.insert(_post(pid))

        async def body(pipe):
            await pipe.hgetall(post_key(pid))
            await redis.hset(post_key(pid), mapping={"text": "churn"})
            pipe.multi()
            pipe.hset(post_key(pid), mapping={"text": "mine"})

        with pytest.raises(ConflictError) as excinfo:
            await store.transact(pid, body)
        assert excinfo.value.retryable is True
        assert excinfo.value.status_code == 503
