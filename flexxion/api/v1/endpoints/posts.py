from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...deps import get_current_user, get_feed_service
from ....schemas.auth import UserPublic
from ....schemas.feed import (
    CommentCreate,
    CommentCreated,
    LikeToggled,
    MessageResponse,
    PostCreate,
    PostCreated,
    PostPage,
    PostPublic,
)
from ....services.feed import FeedService


router = APIRouter()


@router.post("", response_model=PostCreated, status_code=201)
async def create_post(
    payload: PostCreate,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> PostCreated:
    post = await feed.create_post(user.id, payload.text, payload.image)
    return PostCreated(message="Post created successfully", post=post)


# page/limit arrive as raw strings so junk falls back to defaults instead of 422
@router.get("", response_model=PostPage)
async def list_posts(
    page: str | None = None,
    limit: str | None = None,
    page_size: str | None = Query(default=None, alias="pageSize"),
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> PostPage:
    posts, pagination = await feed.list_posts(page, limit if limit is not None else page_size)
    return PostPage(posts=posts, pagination=pagination)


@router.get("/user/{user_id}", response_model=PostPage)
async def list_user_posts(
    user_id: str,
    page: str | None = None,
    limit: str | None = None,
    page_size: str | None = Query(default=None, alias="pageSize"),
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> PostPage:
    posts, pagination = await feed.list_posts_by_author(user_id, page, limit if limit is not None else page_size)
    return PostPage(posts=posts, pagination=pagination)


@router.get("/{post_id}", response_model=PostPublic)
async def get_post(
    post_id: str,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> PostPublic:
    return await feed.get_post(post_id)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> MessageResponse:
    await feed.delete_post(user.id, post_id)
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=LikeToggled)
async def toggle_like(
    post_id: str,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> LikeToggled:
    likes, count, liked = await feed.toggle_like(user.id, post_id)
    return LikeToggled(message="Post liked" if liked else "Post unliked", liked=liked, likes=likes, likeCount=count)


@router.post("/{post_id}/comment", response_model=CommentCreated, status_code=201)
async def add_comment(
    post_id: str,
    payload: CommentCreate,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> CommentCreated:
    comment = await feed.add_comment(user.id, post_id, payload.text)
    return CommentCreated(message="Comment added successfully", comment=comment)


@router.delete("/{post_id}/comment/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    post_id: str,
    comment_id: str,
    user: UserPublic = Depends(get_current_user),
    feed: FeedService = Depends(get_feed_service),
) -> MessageResponse:
    await feed.delete_comment(user.id, post_id, comment_id)
    return MessageResponse(message="Comment deleted successfully")
