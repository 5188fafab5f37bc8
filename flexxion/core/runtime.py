from __future__ import annotations

from typing import Any

from fastapi import HTTPException

# Holds runtime singletons (e.g., redis client) to avoid circular imports.
redis_client: Any | None = None


async def get_redis() -> Any:
    if redis_client is None:
        raise HTTPException(status_code=500, detail="Redis not initialized")
    return redis_client
