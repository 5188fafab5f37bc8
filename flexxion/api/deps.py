from __future__ import annotations

from typing import Any

from fastapi import Depends

from ..core.runtime import get_redis
from ..core.security import require_token
from ..schemas.auth import UserPublic
from ..services.accounts import AccountService
from ..services.feed import FeedService


def get_account_service(redis: Any = Depends(get_redis)) -> AccountService:
    return AccountService(redis)


def get_feed_service(redis: Any = Depends(get_redis)) -> FeedService:
    return FeedService.from_redis(redis)


async def get_current_user(
    token: str = Depends(require_token),
    accounts: AccountService = Depends(get_account_service),
) -> UserPublic:
    return await accounts.resolve_token(token)
