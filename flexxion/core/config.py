from __future__ import annotations

import os
from typing import Iterable


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def use_fake_redis() -> bool:
    url = get_redis_url()
    return os.getenv("USE_FAKE_REDIS", "0") == "1" or url.startswith("memory://") or url.startswith("redis+fake://")


def get_redis_socket_timeout() -> float:
    return _float_env("REDIS_SOCKET_TIMEOUT", 5.0)


def get_cors_origins() -> list[str]:
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173")
    parts: Iterable[str] = (o.strip() for o in origins_env.split(","))
    return [o for o in parts if o]


def get_session_ttl_seconds() -> int:
    return _int_env("SESSION_TTL_SECONDS", 604800)  # 7 days


def get_bcrypt_rounds() -> int:
    # passlib rejects anything below 4
    return max(4, _int_env("BCRYPT_ROUNDS", 12))


def get_post_max_length() -> int:
    return _int_env("POST_MAX_LENGTH", 2000)


def get_comment_max_length() -> int:
    return _int_env("COMMENT_MAX_LENGTH", 500)


def get_default_page_size() -> int:
    size = _int_env("FEED_DEFAULT_PAGE_SIZE", 10)
    return size if size > 0 else 10


def get_max_page_size() -> int:
    # bounds the redis range indexes derived from untrusted paging input
    size = _int_env("FEED_MAX_PAGE_SIZE", 100)
    return size if size > 0 else 100


def get_tx_retries() -> int:
    return max(1, _int_env("FEED_TX_RETRIES", 10))


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
