from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from ..core.clock import now_iso
from ..core.config import get_session_ttl_seconds
from ..core.errors import AuthorizationError, ConflictError, NotFoundError, Unauthenticated
from ..core.security import generate_token, hash_password, verify_password
from ..schemas.auth import UserPublic
from ..schemas.feed import AuthorPublic

log = logging.getLogger(__name__)


def _public(data: Dict[str, str]) -> UserPublic:
    return UserPublic(
        id=str(data["id"]),
        name=data.get("name", ""),
        email=data.get("email", ""),
        profileImage=data.get("profileImage") or None,
    )


class AccountService:
    """Users, credentials and bearer sessions.

    The feed only needs three things from here: resolving a token to a user,
    the user's current display name, and author cards for rendering posts.
    """

    def __init__(self, redis: Any) -> None:
        self.redis = redis

    async def register(self, name: str, email: str, password: str, profile_image: str | None = None) -> UserPublic:
        email = email.strip().lower()
        # Generate new id first; if the email exists we won't reuse the id
        user_id = await self.redis.incr("users:seq")
        ok = await self.redis.set(f"user:byemail:{email}", user_id, nx=True)
        if not ok:
            raise ConflictError("User with this email already exists")
        data = {
            "id": str(user_id),
            "name": name.strip(),
            "email": email,
            "password_hash": hash_password(password),
            "profileImage": profile_image or "",
            "created_at": now_iso(),
        }
        await self.redis.hset(f"user:{user_id}", mapping=data)
        log.info("registered user %s", user_id)
        return _public(data)

    async def verify_credentials(self, email: str, password: str) -> str:
        uid = await self.redis.get(f"user:byemail:{email.strip().lower()}")
        if not uid:
            raise Unauthenticated("Invalid credentials")
        data = await self.redis.hgetall(f"user:{uid}")
        if not data or not verify_password(password, data.get("password_hash", "")):
            raise Unauthenticated("Invalid credentials")
        return str(uid)

    async def issue_token(self, user_id: str) -> str:
        token = generate_token()
        await self.redis.setex(f"session:{token}", get_session_ttl_seconds(), user_id)
        await self.redis.sadd(f"user:sessions:{user_id}", token)
        return token

    async def revoke_token(self, token: str) -> None:
        uid = await self.redis.get(f"session:{token}")
        if uid:
            await self.redis.delete(f"session:{token}")
            await self.redis.srem(f"user:sessions:{uid}", token)

    async def resolve_token(self, token: str) -> UserPublic:
        uid = await self.redis.get(f"session:{token}")
        if not uid:
            raise Unauthenticated("Unauthorized")
        data = await self.redis.hgetall(f"user:{uid}")
        if not data:
            raise Unauthenticated("Unauthorized")
        return _public(data)

    async def get_user(self, user_id: str) -> UserPublic:
        data = await self.redis.hgetall(f"user:{user_id}")
        if not data:
            raise NotFoundError("User not found")
        return _public(data)

    async def get_authors(self, user_ids: Iterable[str]) -> Dict[str, AuthorPublic]:
        authors: Dict[str, AuthorPublic] = {}
        for uid in set(user_ids):
            data = await self.redis.hgetall(f"user:{uid}")
            if data:
                authors[uid] = AuthorPublic(id=uid, name=data.get("name", ""), profileImage=data.get("profileImage") or None)
        return authors

    async def update_profile(self, requester_id: str, user_id: str, changes: Dict[str, Any]) -> UserPublic:
        if requester_id != user_id:
            log.warning("user %s tried to edit profile of %s", requester_id, user_id)
            raise AuthorizationError("Not authorized to update this user")
        current = await self.redis.hgetall(f"user:{user_id}")
        if not current:
            raise NotFoundError("User not found")
        mapping: Dict[str, Any] = {}
        if changes.get("name") is not None:
            mapping["name"] = changes["name"].strip()
        if "profileImage" in changes:
            mapping["profileImage"] = changes["profileImage"] or ""
        if mapping:
            await self.redis.hset(f"user:{user_id}", mapping=mapping)
            current.update(mapping)
        return _public(current)
