from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, TypeVar

from redis.exceptions import WatchError

from ..core.config import get_tx_retries
from ..core.errors import ConflictError

log = logging.getLogger(__name__)

T = TypeVar("T")

POST_SEQ_KEY = "feed:post_seq"
FEED_INDEX_KEY = "feed:posts"


def post_key(post_id: str) -> str:
    return f"feed:post:{post_id}"


def likes_key(post_id: str) -> str:
    return f"feed:post:{post_id}:likes"


def comments_key(post_id: str) -> str:
    return f"feed:post:{post_id}:comments"


def author_index_key(author_id: str) -> str:
    return f"feed:user:{author_id}:posts"


@dataclass
class StoredComment:
    id: str
    postId: str
    authorId: str
    authorDisplayName: str
    text: str
    createdAt: str
    raw: str = ""

    @classmethod
    def parse(cls, raw: str) -> "StoredComment":
        data = json.loads(raw)
        return cls(raw=raw, **data)

    def encode(self) -> str:
        return json.dumps(
            {
                "id": self.id,
                "postId": self.postId,
                "authorId": self.authorId,
                "authorDisplayName": self.authorDisplayName,
                "text": self.text,
                "createdAt": self.createdAt,
            },
            separators=(",", ":"),
        )


@dataclass
class StoredPost:
    id: str
    authorId: str
    text: str
    image: str | None
    createdAt: str
    likes: set = field(default_factory=set)
    comments: List[StoredComment] = field(default_factory=list)

    @classmethod
    def from_parts(cls, data: Dict[str, str], likes: set, comments: List[str]) -> "StoredPost":
        return cls(
            id=data["id"],
            authorId=data["authorId"],
            text=data.get("text", ""),
            image=data.get("image") or None,
            createdAt=data.get("createdAt", ""),
            likes=set(likes),
            comments=[StoredComment.parse(c) for c in comments],
        )

    def find_comment(self, comment_id: str) -> StoredComment | None:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None


class PostStore:
    """Redis layout for posts.

    A post is a hash plus a like set and a comment list hanging off the same
    id prefix; two sorted sets scored by post sequence hold the global and
    per-author orderings. Read-modify-write goes through :meth:`transact`.
    """

    def __init__(self, redis: Any, tx_retries: int | None = None) -> None:
        self.redis = redis
        self.tx_retries = tx_retries or get_tx_retries()
        # WATCH aborts seen by this instance
        self.conflicts = 0

    async def next_post_id(self) -> str:
        return str(await self.redis.incr(POST_SEQ_KEY))

    async def insert(self, post: StoredPost) -> None:
        seq = float(post.id)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                post_key(post.id),
                mapping={
                    "id": post.id,
                    "authorId": post.authorId,
                    "text": post.text,
                    "image": post.image or "",
                    "createdAt": post.createdAt,
                },
            )
            pipe.zadd(FEED_INDEX_KEY, {post.id: seq})
            pipe.zadd(author_index_key(post.authorId), {post.id: seq})
            await pipe.execute()

    async def load(self, post_id: str) -> StoredPost | None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hgetall(post_key(post_id))
            pipe.smembers(likes_key(post_id))
            pipe.lrange(comments_key(post_id), 0, -1)
            data, likes, comments = await pipe.execute()
        if not data:
            return None
        return StoredPost.from_parts(data, likes, comments)

    async def load_many(self, post_ids: List[str]) -> List[StoredPost]:
        posts = []
        for pid in post_ids:
            post = await self.load(pid)
            # a concurrent delete can empty a slot between the index read and here
            if post is not None:
                posts.append(post)
        return posts

    async def count(self, author_id: str | None = None) -> int:
        key = FEED_INDEX_KEY if author_id is None else author_index_key(author_id)
        return int(await self.redis.zcard(key))

    async def page_ids(self, start: int, stop: int, author_id: str | None = None) -> List[str]:
        key = FEED_INDEX_KEY if author_id is None else author_index_key(author_id)
        return list(await self.redis.zrevrange(key, start, stop))

    async def read_in_tx(self, pipe: Any, post_id: str) -> StoredPost | None:
        data = await pipe.hgetall(post_key(post_id))
        if not data:
            return None
        likes = await pipe.smembers(likes_key(post_id))
        comments = await pipe.lrange(comments_key(post_id), 0, -1)
        return StoredPost.from_parts(data, likes, comments)

    async def transact(self, post_id: str, body: Callable[[Any], Awaitable[T]]) -> T:
        """Run ``body`` under WATCH on the post's keys, retrying on conflicts.

        ``body`` reads through the pipeline, calls ``pipe.multi()`` and queues
        its writes; its return value is handed back once EXEC succeeds.
        """
        keys = (post_key(post_id), likes_key(post_id), comments_key(post_id))
        for attempt in range(1, self.tx_retries + 1):
            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(*keys)
                    result = await body(pipe)
                    await pipe.execute()
                    return result
                except WatchError:
                    self.conflicts += 1
                    log.debug("post %s changed during transaction, attempt %d", post_id, attempt)
        log.warning("giving up on post %s after %d conflicting attempts", post_id, self.tx_retries)
        raise ConflictError("Post is being modified, retry later", retryable=True)
