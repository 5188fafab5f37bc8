import pytest

from flexxion.core.errors import AuthorizationError, ConflictError, NotFoundError, Unauthenticated


async def test_register_and_login(accounts):
    user = await accounts.register("Dana", "Dana@Example.com", "secret123")

    assert user.email == "dana@example.com"
    assert await accounts.verify_credentials("dana@example.com", "secret123") == user.id


async def test_duplicate_email(accounts):
    await accounts.register("Dana", "dana@example.com", "secret123")
    with pytest.raises(ConflictError):
        await accounts.register("Other", "dana@example.com", "secret456")


@pytest.mark.parametrize("email,password", [("dana@example.com", "wrong-pass"), ("nobody@example.com", "secret123")])
async def test_bad_credentials(accounts, email, password):
    await accounts.register("Dana", "dana@example.com", "secret123")
    with pytest.raises(Unauthenticated):
        await accounts.verify_credentials(email, password)


async def test_token_lifecycle(accounts, users):
    token = await accounts.issue_token(users["alice"].id)

    assert (await accounts.resolve_token(token)).id == users["alice"].id

    await accounts.revoke_token(token)
    with pytest.raises(Unauthenticated):
        await accounts.resolve_token(token)


async def test_unknown_token(accounts):
    with pytest.raises(Unauthenticated):
        await accounts.resolve_token("made-up")


async def test_profile_update_is_self_only(accounts, users):
    with pytest.raises(AuthorizationError):
        await accounts.update_profile(users["bob"].id, users["alice"].id, {"name": "Mallory"})

    updated = await accounts.update_profile(
        users["alice"].id, users["alice"].id, {"name": "Ally", "profileImage": "https://img.example.com/a.png"}
    )
    assert updated.name == "Ally"
    assert (await accounts.get_user(users["alice"].id)).profileImage == "https://img.example.com/a.png"


async def test_missing_user(accounts):
    with pytest.raises(NotFoundError):
        await accounts.get_user("42")
