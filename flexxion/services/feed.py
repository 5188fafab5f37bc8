from __future__ import annotations

import logging
import uuid
from typing import Any, List, Tuple

from ..core.clock import now_iso
from ..core.config import get_comment_max_length, get_post_max_length
from ..core.errors import AuthorizationError, NotFoundError
from ..core.validation import clean_image, clean_text
from ..schemas.feed import CommentPublic, Pagination, PostPublic
from .accounts import AccountService
from .pagination import build_pagination, page_window
from .post_store import (
    FEED_INDEX_KEY,
    PostStore,
    StoredComment,
    StoredPost,
    author_index_key,
    comments_key,
    likes_key,
    post_key,
)

log = logging.getLogger(__name__)


def _comment_public(comment: StoredComment) -> CommentPublic:
    return CommentPublic(
        id=comment.id,
        postId=comment.postId,
        authorId=comment.authorId,
        authorDisplayName=comment.authorDisplayName,
        text=comment.text,
        createdAt=comment.createdAt,
    )


class FeedService:
    """Posts, likes and comments.

    Counts are always derived from the stored collections; nothing here keeps
    a counter that could drift from the like set or the comment list.
    """

    def __init__(self, store: PostStore, accounts: AccountService) -> None:
        self.store = store
        self.accounts = accounts

    @classmethod
    def from_redis(cls, redis: Any) -> "FeedService":
        return cls(PostStore(redis), AccountService(redis))

    async def _render(self, posts: List[StoredPost]) -> List[PostPublic]:
        authors = await self.accounts.get_authors(p.authorId for p in posts)
        return [
            PostPublic(
                id=p.id,
                authorId=p.authorId,
                author=authors.get(p.authorId),
                text=p.text,
                image=p.image,
                createdAt=p.createdAt,
                likes=sorted(p.likes),
                likeCount=len(p.likes),
                comments=[_comment_public(c) for c in p.comments],
                commentCount=len(p.comments),
            )
            for p in posts
        ]

    async def _require(self, post_id: str) -> StoredPost:
        post = await self.store.load(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    # -- post lifecycle --

    async def create_post(self, author_id: str, text: Any, image: Any = None) -> PostPublic:
        text = clean_text(text, "Post", get_post_max_length())
        image = clean_image(image)
        post = StoredPost(
            id=await self.store.next_post_id(),
            authorId=author_id,
            text=text,
            image=image,
            createdAt=now_iso(),
        )
        await self.store.insert(post)
        log.info("user %s created post %s", author_id, post.id)
        return (await self._render([post]))[0]

    async def list_posts(self, page: Any = None, page_size: Any = None) -> Tuple[List[PostPublic], Pagination]:
        return await self._list(page, page_size, None)

    async def list_posts_by_author(self, author_id: str, page: Any = None, page_size: Any = None) -> Tuple[List[PostPublic], Pagination]:
        return await self._list(page, page_size, author_id)

    async def _list(self, page: Any, page_size: Any, author_id: str | None) -> Tuple[List[PostPublic], Pagination]:
        window = page_window(page, page_size)
        total = await self.store.count(author_id)
        ids = await self.store.page_ids(window.skip, window.stop, author_id) if window.skip < total else []
        posts = await self.store.load_many(ids)
        return await self._render(posts), build_pagination(total, window)

    async def get_post(self, post_id: str) -> PostPublic:
        return (await self._render([await self._require(post_id)]))[0]

    async def delete_post(self, requester_id: str, post_id: str) -> None:
        async def body(pipe: Any) -> None:
            post = await self.store.read_in_tx(pipe, post_id)
            if post is None:
                raise NotFoundError("Post not found")
            if post.authorId != requester_id:
                log.warning("user %s may not delete post %s", requester_id, post_id)
                raise AuthorizationError("Not authorized to delete this post")
            pipe.multi()
            pipe.delete(post_key(post_id), likes_key(post_id), comments_key(post_id))
            pipe.zrem(FEED_INDEX_KEY, post_id)
            pipe.zrem(author_index_key(post.authorId), post_id)

        await self.store.transact(post_id, body)
        log.info("user %s deleted post %s", requester_id, post_id)

    # -- likes --

    async def toggle_like(self, requester_id: str, post_id: str) -> Tuple[List[str], int, bool]:
        """Flip the requester's membership in the post's like set.

        Returns the resulting members, their count and whether the requester
        now likes the post. Calling it twice restores the original set.
        """

        async def body(pipe: Any) -> Tuple[List[str], int, bool]:
            if not await pipe.exists(post_key(post_id)):
                raise NotFoundError("Post not found")
            likes = set(await pipe.smembers(likes_key(post_id)))
            pipe.multi()
            if requester_id in likes:
                pipe.srem(likes_key(post_id), requester_id)
                likes.discard(requester_id)
                liked = False
            else:
                pipe.sadd(likes_key(post_id), requester_id)
                likes.add(requester_id)
                liked = True
            return sorted(likes), len(likes), liked

        likes, count, liked = await self.store.transact(post_id, body)
        log.info("user %s %s post %s", requester_id, "liked" if liked else "unliked", post_id)
        return likes, count, liked

    # -- comments --

    async def add_comment(self, requester_id: str, post_id: str, text: Any) -> CommentPublic:
        text = clean_text(text, "Comment", get_comment_max_length())
        # point-in-time copy of the display name; later renames do not touch it
        author = await self.accounts.get_user(requester_id)
        comment = StoredComment(
            id=uuid.uuid4().hex,
            postId=post_id,
            authorId=requester_id,
            authorDisplayName=author.name,
            text=text,
            createdAt=now_iso(),
        )

        async def body(pipe: Any) -> None:
            if not await pipe.exists(post_key(post_id)):
                raise NotFoundError("Post not found")
            pipe.multi()
            pipe.rpush(comments_key(post_id), comment.encode())

        await self.store.transact(post_id, body)
        log.info("user %s commented %s on post %s", requester_id, comment.id, post_id)
        return _comment_public(comment)

    async def delete_comment(self, requester_id: str, post_id: str, comment_id: str) -> None:
        async def body(pipe: Any) -> None:
            post = await self.store.read_in_tx(pipe, post_id)
            if post is None:
                raise NotFoundError("Post not found")
            comment = post.find_comment(comment_id)
            if comment is None:
                raise NotFoundError("Comment not found")
            if requester_id not in (comment.authorId, post.authorId):
                log.warning("user %s may not delete comment %s", requester_id, comment_id)
                raise AuthorizationError("Not authorized to delete this comment")
            pipe.multi()
            pipe.lrem(comments_key(post_id), 1, comment.raw)

        await self.store.transact(post_id, body)
        log.info("user %s deleted comment %s on post %s", requester_id, comment_id, post_id)
