"""
Shared fixtures.

Everything runs against the in-process ``AsyncMemoryRedis`` so no redis
server is needed. Service tests get the services directly; HTTP tests get a
``TestClient`` whose lifespan installs a fresh memory store.
"""

from __future__ import annotations

from typing import Dict, Tuple

import pytest
from fastapi.testclient import TestClient

from flexxion.core.memory_redis import AsyncMemoryRedis
from flexxion.main import create_app
from flexxion.schemas.auth import UserPublic
from flexxion.services.accounts import AccountService
from flexxion.services.feed import FeedService
from flexxion.services.post_store import PostStore


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Cheap password hashing and the memory store for every test."""
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("USE_FAKE_REDIS", "1")
    monkeypatch.delenv("POST_MAX_LENGTH", raising=False)
    monkeypatch.delenv("COMMENT_MAX_LENGTH", raising=False)
    monkeypatch.delenv("FEED_DEFAULT_PAGE_SIZE", raising=False)
    monkeypatch.delenv("FEED_MAX_PAGE_SIZE", raising=False)


@pytest.fixture
def redis():
    return AsyncMemoryRedis()


@pytest.fixture
def accounts(redis):
    return AccountService(redis)


@pytest.fixture
def store(redis):
    return PostStore(redis, tx_retries=3)


@pytest.fixture
def feed(store, accounts):
    return FeedService(store, accounts)


@pytest.fixture
async def users(accounts) -> Dict[str, UserPublic]:
    """Three registered users keyed by lowercase first name."""
    result = {}
    for name in ("Alice", "Bob", "Carol"):
        result[name.lower()] = await accounts.register(name, f"{name.lower()}@example.com", "secret123")
    return result


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c


def signup(client: TestClient, name: str) -> Tuple[dict, str]:
    response = client.post(
        "/api/auth/signup",
        json={"name": name, "email": f"{name.lower()}@example.com", "password": "secret123"},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"], body["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
