"""
FeedClient/FeedCache against the real app through TestClient.
"""

import pytest

from conftest import signup
from flexxion.client.cache import FeedCache, FeedClient, FeedClientError


@pytest.fixture
def alice(client):
    user, token = signup(client, "Alice")
    return user, FeedClient(client, FeedCache(), token)


@pytest.fixture
def bob(client):
    user, token = signup(client, "Bob")
    return user, FeedClient(client, FeedCache(), token)


def test_fetch_replaces_page(alice):
    _, api = alice
    for i in range(3):
        api.create_post(f"p{i}")
    api.cache.posts.append({"id": "stale"})

    api.fetch_posts(page=1, limit=2)

    assert [p["text"] for p in api.cache.posts] == ["p2", "p1"]
    assert api.cache.pagination["totalPages"] == 2
    assert api.cache.is_loading is False


def test_create_prepends(alice):
    _, api = alice
    api.create_post("older")
    api.fetch_posts()
    api.create_post("newer")
    assert [p["text"] for p in api.cache.posts] == ["newer", "older"]


def test_like_merges_confirmed_state(alice, bob):
    alice_user, alice_api = alice
    bob_user, bob_api = bob
    alice_api.create_post("hi")
    bob_api.fetch_posts()
    post = bob_api.cache.posts[0]

    bob_api.toggle_like(post["id"])

    cached = bob_api.cache.find(post["id"])
    assert cached["likes"] == [bob_user["id"]] and cached["likeCount"] == 1
    assert FeedClient.is_liked_by_user(cached, bob_user["id"])
    assert not FeedClient.is_liked_by_user(cached, alice_user["id"])


def test_comment_add_and_remove_keep_counts_consistent(alice, bob):
    alice_user, alice_api = alice
    bob_user, bob_api = bob
    alice_api.create_post("hi")
    bob_api.fetch_posts()
    pid = bob_api.cache.posts[0]["id"]
    bob_api.fetch_post(pid)

    comment = bob_api.add_comment(pid, "nice")["comment"]
    cached = bob_api.cache.find(pid)
    assert cached["commentCount"] == 1 == len(cached["comments"])
    assert bob_api.cache.current_post["commentCount"] == 1

    assert FeedClient.can_delete_comment(comment, cached, bob_user["id"])
    assert FeedClient.can_delete_comment(comment, cached, alice_user["id"])
    bob_api.delete_comment(pid, comment["id"])
    assert bob_api.cache.find(pid)["comments"] == []
    assert bob_api.cache.find(pid)["commentCount"] == 0


def test_failed_mutation_leaves_cache_alone(alice, bob):
    _, alice_api = alice
    bob_user, bob_api = bob
    alice_api.create_post("mine")
    bob_api.fetch_posts()
    before = [dict(p) for p in bob_api.cache.posts]
    pid = before[0]["id"]

    assert not FeedClient.can_delete_post(bob_api.cache.posts[0], bob_user["id"])
    with pytest.raises(FeedClientError) as excinfo:
        bob_api.delete_post(pid)

    assert excinfo.value.status_code == 403
    assert bob_api.cache.posts == before
    assert bob_api.cache.is_loading is False


def test_delete_post_and_logout(alice):
    _, api = alice
    api.create_post("bye")
    api.fetch_posts()
    pid = api.cache.posts[0]["id"]

    api.delete_post(pid)
    assert api.cache.find(pid) is None

    api.logout()
    assert api.cache.posts == [] and api.token is None
    with pytest.raises(FeedClientError) as excinfo:
        api.fetch_posts()
    assert excinfo.value.status_code == 401
