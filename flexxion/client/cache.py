"""
Consumer-side mirror of the feed.

``FeedCache`` holds the last page the client fetched; ``FeedClient`` talks to
the HTTP API and merges confirmed responses into the cache it was given. No
local change is made before the server answers, and a failed request leaves
the cache exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

log = logging.getLogger(__name__)


def _empty_pagination() -> Dict[str, Any]:
    return {
        "currentPage": 1,
        "totalPages": 1,
        "totalPosts": 0,
        "hasNextPage": False,
        "hasPrevPage": False,
    }


class FeedClientError(Exception):
    """Non-2xx answer from the API."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass
class FeedCache:
    posts: List[Dict[str, Any]] = field(default_factory=list)
    pagination: Dict[str, Any] = field(default_factory=_empty_pagination)
    current_post: Optional[Dict[str, Any]] = None
    is_loading: bool = False

    def reset(self) -> None:
        self.posts = []
        self.pagination = _empty_pagination()
        self.current_post = None
        self.is_loading = False

    def replace_page(self, posts: List[Dict[str, Any]], pagination: Dict[str, Any]) -> None:
        self.posts = list(posts)
        self.pagination = dict(pagination)

    def find(self, post_id: str) -> Optional[Dict[str, Any]]:
        for post in self.posts:
            if post["id"] == post_id:
                return post
        return None

    def _each_copy(self, post_id: str) -> List[Dict[str, Any]]:
        copies = [p for p in self.posts if p["id"] == post_id]
        current = self.current_post
        if current is not None and current["id"] == post_id and all(p is not current for p in copies):
            copies.append(current)
        return copies

    def apply_likes(self, post_id: str, likes: List[str]) -> None:
        for post in self._each_copy(post_id):
            post["likes"] = list(likes)
            post["likeCount"] = len(post["likes"])

    def append_comment(self, post_id: str, comment: Dict[str, Any]) -> None:
        for post in self._each_copy(post_id):
            post["comments"] = [*post.get("comments", []), comment]
            post["commentCount"] = len(post["comments"])

    def remove_comment(self, post_id: str, comment_id: str) -> None:
        for post in self._each_copy(post_id):
            post["comments"] = [c for c in post.get("comments", []) if c["id"] != comment_id]
            post["commentCount"] = len(post["comments"])

    def prepend_post(self, post: Dict[str, Any]) -> None:
        self.posts = [post, *self.posts]

    def drop_post(self, post_id: str) -> None:
        self.posts = [p for p in self.posts if p["id"] != post_id]
        if self.current_post is not None and self.current_post["id"] == post_id:
            self.current_post = None


class FeedClient:
    def __init__(self, http: httpx.Client, cache: FeedCache, token: str | None = None, base_path: str = "/api/posts") -> None:
        self.http = http
        self.cache = cache
        self.token = token
        self.base_path = base_path.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self.http.request(method, f"{self.base_path}{path}", headers=self._headers(), **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            message = data.get("detail") if isinstance(data, dict) else None
            log.debug("%s %s failed with %s", method, path, response.status_code)
            raise FeedClientError(response.status_code, str(message or response.reason_phrase))
        return data

    def _loading(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        self.cache.is_loading = True
        try:
            return self._request(method, path, **kwargs)
        finally:
            self.cache.is_loading = False

    # -- fetches replace local state wholesale --

    def fetch_posts(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        data = self._loading("GET", "", params={"page": page, "limit": limit})
        self.cache.replace_page(data["posts"], data["pagination"])
        return data

    def fetch_user_posts(self, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        data = self._loading("GET", f"/user/{user_id}", params={"page": page, "limit": limit})
        self.cache.replace_page(data["posts"], data["pagination"])
        return data

    def fetch_post(self, post_id: str) -> Dict[str, Any]:
        data = self._loading("GET", f"/{post_id}")
        self.cache.current_post = data
        return data

    def clear_current_post(self) -> None:
        self.cache.current_post = None

    # -- mutations merge only what the server confirmed --

    def create_post(self, text: str, image: str | None = None) -> Dict[str, Any]:
        data = self._loading("POST", "", json={"text": text, "image": image})
        self.cache.prepend_post(data["post"])
        return data

    def delete_post(self, post_id: str) -> Dict[str, Any]:
        data = self._loading("DELETE", f"/{post_id}")
        self.cache.drop_post(post_id)
        return data

    def toggle_like(self, post_id: str) -> Dict[str, Any]:
        data = self._request("POST", f"/{post_id}/like")
        self.cache.apply_likes(post_id, data["likes"])
        return data

    def add_comment(self, post_id: str, text: str) -> Dict[str, Any]:
        data = self._request("POST", f"/{post_id}/comment", json={"text": text})
        self.cache.append_comment(post_id, data["comment"])
        return data

    def delete_comment(self, post_id: str, comment_id: str) -> Dict[str, Any]:
        data = self._request("DELETE", f"/{post_id}/comment/{comment_id}")
        self.cache.remove_comment(post_id, comment_id)
        return data

    def logout(self) -> None:
        self.token = None
        self.cache.reset()

    # -- UI predicates --

    @staticmethod
    def is_liked_by_user(post: Dict[str, Any], user_id: str) -> bool:
        return user_id in post.get("likes", [])

    @staticmethod
    def can_delete_post(post: Dict[str, Any], user_id: str) -> bool:
        return post.get("authorId") == user_id

    @staticmethod
    def can_delete_comment(comment: Dict[str, Any], post: Dict[str, Any], user_id: str) -> bool:
        return user_id in (comment.get("authorId"), post.get("authorId"))
