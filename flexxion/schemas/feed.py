from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.validation import clean_image


class PostCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(min_length=1)
    image: str | None = None

    @field_validator("text")
    @classmethod
    def _strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Post text is required")
        return v

    @field_validator("image")
    @classmethod
    def _check_image(cls, v: str | None) -> str | None:
        return clean_image(v)


class CommentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(min_length=1)

    @field_validator("text")
    @classmethod
    def _strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text is required")
        return v


class AuthorPublic(BaseModel):
    id: str
    name: str
    profileImage: str | None = None


class CommentPublic(BaseModel):
    id: str
    postId: str
    authorId: str
    authorDisplayName: str
    text: str
    createdAt: str


class PostPublic(BaseModel):
    id: str
    authorId: str
    author: AuthorPublic | None = None
    text: str
    image: str | None = None
    createdAt: str
    likes: List[str]
    likeCount: int
    comments: List[CommentPublic]
    commentCount: int


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalPosts: int
    hasNextPage: bool
    hasPrevPage: bool


class PostPage(BaseModel):
    posts: List[PostPublic]
    pagination: Pagination


class PostCreated(BaseModel):
    message: str
    post: PostPublic


class CommentCreated(BaseModel):
    message: str
    comment: CommentPublic


class LikeToggled(BaseModel):
    message: str
    liked: bool
    likes: List[str]
    likeCount: int


class MessageResponse(BaseModel):
    message: str
